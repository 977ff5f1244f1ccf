import array
import fcntl
import select
import sys
import termios
import tty

from typing import Callable

from .config import debug
from .flow import FlowController
from .styles import _00, _K, _J, _HIDE, _SHOW


# some keys we want to detect
_key_names = {
	'\x1b[A': 'up',
	'\x1b[B': 'down',
	'\x1b[C': 'right',
	'\x1b[D': 'left',
	'\x1bOA': 'up',
	'\x1bOB': 'down',
	'\x1b[H': 'home',
	'\x1b[F': 'end',
	'\x0d': 'enter',
	'\x0a': 'enter',
	'\x7f': 'backspace',
	'\x08': 'backspace',
	'\x03': 'ctrl+c',
	'\x04': 'ctrl+d',
	'\x1b': 'esc',
	'\t': 'tab',
}


def decode_keys(buf:str) -> list[str]:
	"""Split a chunk of terminal input into key names.

	Printable characters are returned as-is, e.g. 'q' or ' '. Escape
	sequences not known in '_key_names' are dropped.
	"""

	keys:list[str] = []

	while buf:
		if buf[0] == '\x1b' and len(buf) >= 3 and buf[1] in '[O':
			# CSI / SS3 sequence; ends with a character in the range '@' .. '~'
			end = 2
			while end < len(buf) and not ('@' <= buf[end] <= '~'):
				end += 1
			seq = buf[:end + 1]
			buf = buf[end + 1:]

			key = _key_names.get(seq)
			if key is None:
				debug('term: ignored sequence: %r' % seq)
				continue

		else:
			ch = buf[0]
			buf = buf[1:]
			key = _key_names.get(ch, ch)

		keys.append(key)

	return keys


class Screen:
	"""Redraws its contents in place, below the current cursor position."""

	def __init__(self, out=None):
		self._out = out or sys.stdout
		self._lines = 0

	def draw(self, text:str) -> None:
		s = ''
		if self._lines:
			# move up to beginning of the previous contents
			s += '\x1b[%dA' % self._lines
		s += f'\r{_J}'

		lines = text.split('\n')
		s += f'{_K}\r\n'.join(lines) + _K

		self._out.write(s)
		self._out.flush()

		self._lines = len(lines) - 1

	def finish(self) -> None:
		self._out.write(f'{_00}\r\n')
		self._out.flush()


def run(flow:FlowController, render:Callable[[FlowController], str]) -> None:
	"""Read keys from the terminal and feed them to 'flow' until it's done."""

	infd = sys.stdin.fileno()
	screen = Screen()

	old_settings = termios.tcgetattr(infd)
	try:
		tty.setraw(infd)
		sys.stdout.write(_HIDE)
		avail_buf = array.array('i', [0])

		epoll = select.epoll()
		epoll.register(infd, select.EPOLLIN | select.EPOLLERR | select.EPOLLHUP | select.EPOLLPRI)

		try:
			screen.draw(render(flow))

			while flow.running:
				# wait for input on the file descriptor
				events = epoll.poll(1)
				if not events:
					continue

				# check how much is available to read
				fcntl.ioctl(infd, termios.FIONREAD, avail_buf, True)
				avail = avail_buf[0]
				if avail == 0:
					continue

				buf = sys.stdin.read(avail)
				debug('term: pressed: "%s" (%d bytes)' % (buf.replace('\x1b', r'\e'), len(buf)))

				for key in decode_keys(buf):
					if not flow.handle(key):
						break

				screen.draw(render(flow))

		finally:
			epoll.close()

	finally:
		termios.tcsetattr(infd, termios.TCSADRAIN, old_settings)
		sys.stdout.write(_SHOW)
		screen.finish()
