from .flow import FlowController, Stage, MenuState, AddShowState, ResultState, watch_choices, menu_title
from .styles import _0, _00, _b, _f, _fi, _i, _g, _o, _E, _focus, _deleted


entry_width = 24


def render(flow:FlowController) -> str:
	"""Return the screen contents of the active stage."""

	if flow.stage == Stage.MENU:
		return format_menu(flow.state)
	if flow.stage == Stage.ADD_SHOW:
		return format_add_show(flow.state)
	if flow.stage == Stage.RESULT:
		return format_result(flow.state)

	raise RuntimeError('Bug: unknown stage: %r' % flow.stage)


def format_menu(menu:MenuState) -> str:
	s = f'{_b}{menu_title}{_0}\n'
	if menu.message:
		s += f'{_i}{menu.message}{_0}\n'
	s += '\n'

	for idx, choice in enumerate(menu.choices):
		current = idx == menu.cursor
		s += format_entry(choice.label, current=current, deleted=choice.deleted)
		s += '\n'

	s += f'\n{_f}(Press {_b}q{_0}{_f} to quit, {_b}d{_0}{_f} to delete){_0}'

	return s


def format_entry(label:str, current:bool=False, deleted:bool=False) -> str:
	cursor = '>' if current else ' '

	if deleted:
		return f'{_deleted}{cursor} (deleted: {label}, press u to undo){_00}'

	text = f'{cursor} {label}'
	if len(text) < entry_width:
		# centered, like the rest of the menu
		text = text.center(entry_width).rstrip()

	if current:
		return f'{_focus}{text}{_00}'

	return text


def format_add_show(add:AddShowState) -> str:
	s = f'{_b}{add.prompt}{_0}\n\n'
	s += f'{_focus}> {add.text}{_00}█'

	if add.rejected:
		s += f'\n\n{_fi}{add.rejected}{_0}'

	return s


def format_result(result:ResultState) -> str:
	if result.error is not None:
		s = f'{_E}Error:{_00} {result.show.name}\n\n'
		s += f'{result.error}\n\n'
		s += f'{_f}(Press {_b}Return{_0}{_f} to go back){_0}'
		return s

	s = f'{_o}{result.show.name}{_0}\n'
	s += f'{_g}{result.episode}{_0}\n\n'

	for idx, choice in enumerate(watch_choices):
		s += format_entry(choice, current=idx == result.cursor)
		s += '\n'

	return s
