_00 = '\x1b[m'     # normal (reset all)
_0 = '\x1b[22;23;24;39m' # normal FG style
_b = '\x1b[1m'     # bold
_f = '\x1b[2m'     # faint
_i = '\x1b[3m'     # italic
_fi = '\x1b[2;3m'  # faint & italic
_g = '\x1b[32;1m'  # good/green
_c = '\x1b[33;1m'  # command
_o = '\x1b[34;1m'  # option
_K = '\x1b[K'      # clear end-of-line
_J = '\x1b[J'      # clear to end of screen
_E = '\x1b[41;97;1m' # ERROR (white on red)
_focus = '\x1b[1;38;2;207;52;118m'  # selected menu entry
_deleted = '\x1b[3;38;5;246m'       # soft-deleted menu entry
_HIDE = '\x1b[?25l'  # hide cursor
_SHOW = '\x1b[?25h'  # show cursor
