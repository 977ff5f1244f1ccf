from typing import Callable

from .config import debug
from .episodes import Show


class ValidationError(ValueError):
	pass


class NeedsMore:
	def __init__(self, prompt:str):
		self.prompt = prompt

	def __repr__(self) -> str:
		return '<NeedsMore %r>' % self.prompt


class Complete:
	def __init__(self, show:Show):
		self.show = show

	def __repr__(self) -> str:
		return '<Complete %r>' % self.show


class Rejected:
	def __init__(self, reason:str):
		self.reason = reason

	def __repr__(self) -> str:
		return '<Rejected %r>' % self.reason


StepResult = NeedsMore|Complete|Rejected

name_prompt = 'Show name: '
season_count_prompt = 'Season count: '


def season_length_prompt(season:int) -> str:
	return 'Season %d length: ' % season


def parse_positive(value:str, what:str) -> int:
	try:
		n = int(value)
	except ValueError:
		raise ValidationError('%s must be a number, got "%s"' % (what, value))

	if n <= 0:
		raise ValidationError('%s must be positive, got %d' % (what, n))

	return n


class ShowBuilder:
	"""Collects a new show, one input value at a time.

	The order is: name, season count, then the length of each season.
	When the last season length is submitted the show is handed to
	'create_show' (exactly once) and Complete is returned.
	"""

	def __init__(self, create_show:Callable[[Show], None], show_exists:Callable[[str], bool]|None=None):
		self._create_show = create_show
		self._show_exists = show_exists or (lambda name: False)

		self.name:str|None = None
		self.season_count:int|None = None
		self.season_lengths:list[int] = []
		self.done = False

	@property
	def prompt(self) -> str:
		if self.name is None:
			return name_prompt
		if self.season_count is None:
			return season_count_prompt
		return season_length_prompt(len(self.season_lengths) + 1)


	def submit(self, raw:str) -> StepResult:
		value = raw.strip()

		try:
			if self.done:
				raise ValidationError('Show already added')

			if not value:
				raise ValidationError('Empty input')

			if self.name is None:
				self._set_name(value)

			elif self.season_count is None:
				self.season_count = parse_positive(value, 'Season count')

			else:
				season_length = parse_positive(value, 'Season %d length' % (len(self.season_lengths) + 1))
				self.season_lengths.append(season_length)

				if len(self.season_lengths) == self.season_count:
					return Complete(self._finalize())

		except ValidationError as ve:
			debug('builder: rejected "%s": %s' % (value, ve))
			return Rejected(str(ve))

		return NeedsMore(self.prompt)


	def _set_name(self, name:str) -> None:
		if self._show_exists(name):
			raise ValidationError('Show already exists: %s' % name)
		self.name = name


	def _finalize(self) -> Show:
		assert self.name is not None and self.season_count == len(self.season_lengths)

		show = Show(self.name, self.season_lengths)

		# persistence is attempted only once, even if it fails
		self.done = True
		self._create_show(show)

		debug('builder: added "%s" %d episodes in %d seasons' % (show.name, show.episode_count, show.season_count))

		return show
