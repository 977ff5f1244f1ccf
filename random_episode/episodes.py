import random
import time

from typing import Callable

from . import config
from .config import debug


class ExhaustionError(RuntimeError):
	pass


class Show:
	def __init__(self, name:str, season_lengths:list[int], deleted:bool=False):
		self.name = name
		self.season_lengths = list(season_lengths)
		self.deleted = deleted

	@property
	def episode_count(self) -> int:
		return sum(self.season_lengths)

	@property
	def season_count(self) -> int:
		return len(self.season_lengths)

	def __eq__(self, other) -> bool:
		if not isinstance(other, Show):
			return NotImplemented
		return (self.name, self.season_lengths, self.deleted) == (other.name, other.season_lengths, other.deleted)

	def __repr__(self) -> str:
		deleted = ' deleted' if self.deleted else ''
		return '<Show "%s" %s%s>' % (self.name, self.season_lengths, deleted)


class Episode:
	"""A single episode of a show, by its linear number (0-based).

	'season' and 'episode' are the 1-based display form.
	"""
	def __init__(self, show:Show, number:int):
		self.show = show
		self.number = number
		self.season, self.episode = locate(number, show.season_lengths)

	def __eq__(self, other) -> bool:
		if not isinstance(other, Episode):
			return NotImplemented
		return self.show.name == other.show.name and self.number == other.number

	def __str__(self) -> str:
		return 'Season %d, episode %d' % (self.season, self.episode)

	def __repr__(self) -> str:
		return '<Episode "%s" #%d S%dE%d>' % (self.show.name, self.number, self.season, self.episode)


def locate(number:int, season_lengths:list[int]) -> tuple[int, int]:
	"""Convert a linear episode number to (season, episode), both 1-based."""

	if number < 0:
		raise ValueError('Episode number out of range: %d' % number)

	remainder = number
	for idx, length in enumerate(season_lengths):
		if length <= 0:
			raise ValueError('Invalid season length: %r (season %d)' % (length, idx + 1))
		if remainder < length:
			return idx + 1, remainder + 1
		remainder -= length

	raise ValueError('Episode number out of range: %d (of %d)' % (number, sum(season_lengths)))


def pick(show:Show, is_watched:Callable[[str, int], bool], rng:random.Random|None=None, max_attempts:int|None=None, fallback_scan:bool|None=None) -> Episode:
	"""Pick a random unwatched episode using bounded rejection sampling.

	At most 'max_attempts' random episode numbers are tried. If all of
	them turn out to be watched, ExhaustionError is raised, unless
	'fallback_scan' is set, in which case the episodes are checked in
	order and the first unwatched one is returned.

	Note that, without the fallback, ExhaustionError is not proof that
	all episodes have been watched; only that it's very likely.
	"""

	if show.episode_count <= 0:
		raise ExhaustionError('No episode found')

	rng = rng or random.Random()
	if max_attempts is None:
		max_attempts = config.get_int('pick/max-attempts', config.default_max_attempts)
	if fallback_scan is None:
		fallback_scan = config.get_bool('pick/fallback-scan')

	t0 = time.time()

	for attempt in range(max_attempts):
		number = rng.randrange(show.episode_count)
		if not is_watched(show.name, number):
			episode = Episode(show, number)
			ms = (time.time() - t0)*1000
			debug('pick: %r after %d attempt%s in %.1fms' % (episode, attempt + 1, '' if attempt == 0 else 's', ms))
			return episode

	debug('pick: "%s" no unwatched episode in %d attempts' % (show.name, max_attempts))

	if fallback_scan:
		for number in range(show.episode_count):
			if not is_watched(show.name, number):
				episode = Episode(show, number)
				debug('pick: %r found by scan' % episode)
				return episode

	raise ExhaustionError('No episode found')
