import copy
import io
import lzma
import os
import sys
import time
import zlib
from os.path import dirname, exists as pexists
from tempfile import mkstemp

from . import config, compression
from .config import debug
from .episodes import Show
from .utils import read_json_obj, write_json
from .styles import _0, _b, _f, _E, _00

from typing import Any, Callable

import zstandard

DB_VERSION = 1


class StoreError(RuntimeError):
	pass


def base_filename() -> str:
	path = config.get('paths/data-db')
	assert path, 'data-db is falsy: %r' % path
	return str(path)


class WatchStore:
	"""Shows and watched episodes, kept in a single (compressed) JSON file.

	Every mutation is written to disk immediately; if writing fails,
	StoreError is raised and the in-memory state is reverted.
	"""

	def __init__(self, base_name:str):
		self._base_name = base_name
		self._shows:list[Show] = []
		self._watched:dict[str, set[int]] = {}
		self._closed = False

	def __enter__(self) -> 'WatchStore':
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	@property
	def active_file(self) -> str:
		return _filename_slot(self._base_name, 0)

	@property
	def closed(self) -> bool:
		return self._closed

	def close(self) -> None:
		if not self._closed:
			debug('db: closed %s' % self.active_file)
		self._closed = True


	def load(self) -> None:
		db_file = self.active_file
		method = compression.method()

		if not pexists(db_file):
			debug('db: standard file doesn\'t exist: %s' % db_file)
			db_file, method = _find_other_file(self._base_name)

		if not db_file:
			# brand new database
			debug('db: new database: %s' % self.active_file)
			return

		t0 = time.time()
		try:
			fp = compression.open(db_file, method) if method else io.open(db_file, 'rb')
			doc = read_json_obj(fp, db_file)
		except (OSError, EOFError, lzma.LZMAError, zlib.error, zstandard.ZstdError) as e:
			raise StoreError('Failed reading %s: %s' % (db_file, e))
		t1 = time.time()

		doc, migrated = _migrate(doc)
		self._from_doc(doc)

		ms = (t1 - t0)*1000
		debug(f'db: read %d shows in %.1fms; v%d' % (len(self._shows), ms, DB_VERSION))

		if migrated or db_file != self.active_file:
			self._save()


	def list_shows(self) -> list[Show]:
		self._check_open()
		return [ Show(show.name, show.season_lengths, deleted=show.deleted) for show in self._shows ]

	def has_show(self, name:str) -> bool:
		self._check_open()
		return self._find(name) is not None


	def create_show(self, show:Show) -> None:
		self._check_open()

		if not show.name:
			raise StoreError('Show name is empty')
		if self._find(show.name) is not None:
			raise StoreError('Show already exists: %s' % show.name)
		if not show.season_lengths or any(length <= 0 for length in show.season_lengths):
			raise StoreError('Invalid season lengths: %s' % show.season_lengths)

		def add():
			self._shows.append(Show(show.name, show.season_lengths))

		self._mutate(add)
		debug('db: created show "%s" %s' % (show.name, show.season_lengths))


	def soft_delete_show(self, name:str) -> None:
		self._set_deleted(name, True)

	def restore_show(self, name:str) -> None:
		self._set_deleted(name, False)


	def is_watched(self, name:str, number:int) -> bool:
		self._check_open()
		return number in self._watched.get(name, ())

	def mark_watched(self, name:str, number:int) -> None:
		self._check_open()

		show = self._find(name)
		if show is None:
			raise StoreError('No such show: %s' % name)
		if number < 0 or number >= show.episode_count:
			raise StoreError('Episode number out of range: %d (%s)' % (number, name))

		if number in self._watched.get(name, ()):
			return

		def mark():
			self._watched.setdefault(name, set()).add(number)

		self._mutate(mark)
		debug('db: marked "%s" #%d watched' % (name, number))


	def _set_deleted(self, name:str, deleted:bool) -> None:
		self._check_open()

		show = self._find(name)
		if show is None:
			raise StoreError('No such show: %s' % name)

		if show.deleted == deleted:
			return

		def flag():
			show.deleted = deleted

		self._mutate(flag)
		debug('db: "%s" %s' % (name, 'deleted' if deleted else 'restored'))


	def _find(self, name:str) -> Show|None:
		for show in self._shows:
			if show.name == name:
				return show
		return None

	def _check_open(self) -> None:
		if self._closed:
			raise StoreError('Database is closed')


	def _mutate(self, change:Callable[[], None]) -> None:
		shows = copy.deepcopy(self._shows)
		watched = copy.deepcopy(self._watched)

		change()

		try:
			self._save()

		except StoreError:
			self._shows = shows
			self._watched = watched
			raise


	def _save(self) -> None:
		db_path = dirname(self._base_name) or '.'

		t0 = time.time()

		try:
			os.makedirs(db_path, exist_ok=True)

			tmp_name = write_json_tmp(self._to_doc(), db_path)
			if not tmp_name:
				raise StoreError('Failed writing database file')

			_rotate_backups(self._base_name)

			os.rename(tmp_name, self.active_file)

		except OSError as ose:
			raise StoreError('Failed writing database file: %s' % ose)

		t1 = time.time()
		ms = (t1 - t0)*1000
		debug('db: wrote %d shows in %.1fms; v%d' % (len(self._shows), ms, DB_VERSION))


	def _to_doc(self) -> dict[str, Any]:
		return {
			meta_key: { meta_version_key: DB_VERSION },
			shows_key: [
				{
					'name': show.name,
					'season_lengths': show.season_lengths,
					'deleted': show.deleted,
				}
				for show in self._shows
			],
			watched_key: {
				name: sorted(numbers)
				for name, numbers in self._watched.items()
				if numbers
			},
		}

	def _from_doc(self, doc:dict) -> None:
		entries = doc.get(shows_key, [])
		if not isinstance(entries, list):
			raise StoreError('Invalid database: "%s" is not a list' % shows_key)

		shows:list[Show] = []
		for entry in entries:
			name = entry.get('name') if isinstance(entry, dict) else None
			if not name or not isinstance(name, str):
				raise StoreError('Invalid database: show without a name: %r' % (entry, ))
			if any(show.name == name for show in shows):
				raise StoreError('Invalid database: duplicate show "%s"' % name)

			season_lengths = entry.get('season_lengths')
			if not _valid_season_lengths(season_lengths):
				raise StoreError('Invalid database: bad season lengths for "%s": %r' % (name, season_lengths))

			shows.append(Show(name, season_lengths, deleted=bool(entry.get('deleted'))))

		watched = doc.get(watched_key, {})
		if not isinstance(watched, dict):
			raise StoreError('Invalid database: "%s" is not an object' % watched_key)

		for name, numbers in watched.items():
			if not isinstance(numbers, list) or not all(_is_int(n) for n in numbers):
				raise StoreError('Invalid database: bad watched episodes for "%s": %r' % (name, numbers))

		self._shows = shows
		self._watched = { name: set(numbers) for name, numbers in watched.items() }


def open(base_name:str|None=None) -> WatchStore:
	"""Open (and load) the database; use as a context manager to close it."""

	store = WatchStore(base_name or base_filename())
	store.load()

	return store


def _find_other_file(base_name:str) -> tuple[str|None, dict|None]:
	# data written with another compression method than the currently preferred
	for method in compression._compressors:
		other_file = '%s.0%s' % (base_name, method['extension'])
		if pexists(other_file):
			debug('db: found file of other compression: %s' % other_file)
			return other_file, method

	# uncompressed (e.g. hand-edited or imported)
	if pexists(base_name):
		debug('db: found uncompressed file: %s' % base_name)
		return base_name, None

	return None, None


def _migrate(doc:dict) -> tuple[dict, bool]:
	db_version = doc.get(meta_key, {}).get(meta_version_key, 0)

	if db_version > DB_VERSION:
		raise StoreError('Database version %d is newer than supported (%d)' % (db_version, DB_VERSION))

	if db_version == DB_VERSION:
		return doc, False

	fixed_season_lengths = 0
	fixed_watched = 0

	if db_version < 1 and 'series' in doc:
		# imported table rows (e.g. 'sqlite3 -json' output of the old 'series'
		# and 'episodes' tables): comma-separated season lengths,
		# one 'episodes' row per episode
		shows = []
		for row in doc.get('series', []):
			if not isinstance(row, dict) or not row.get('name'):
				continue

			season_lengths = []
			for part in str(row.get('season_lengths', '')).split(','):
				try:
					length = int(part)
				except ValueError:
					continue
				if length > 0:
					season_lengths.append(length)

			if not season_lengths:
				print(f'{_E}WARNING{_00} Skipped show without episodes: %s' % row['name'], file=sys.stderr)
				continue

			shows.append({
				'name': row['name'],
				'season_lengths': season_lengths,
				'deleted': bool(row.get('deleted')),
			})
			fixed_season_lengths += 1

		watched:dict[str, list[int]] = {}
		for row in doc.get('episodes', []):
			if not isinstance(row, dict) or not row.get('watched') or not _is_int(row.get('number')):
				continue
			numbers = watched.setdefault(str(row.get('series')), [])
			if row['number'] not in numbers:
				numbers.append(row['number'])
				fixed_watched += 1

		doc = {
			meta_key: {},
			shows_key: shows,
			watched_key: watched,
		}

	doc.setdefault(meta_key, {})[meta_version_key] = DB_VERSION

	print(f'{_f}[{_b}db{_0}{_f}: migrated database v%d -> v%d; %d shows, %d watched episodes]{_0}' % (
		db_version, DB_VERSION, fixed_season_lengths, fixed_watched), file=sys.stderr)

	return doc, True


def _is_int(value:Any) -> bool:
	return isinstance(value, int) and not isinstance(value, bool)


def _valid_season_lengths(season_lengths:Any) -> bool:
	return isinstance(season_lengths, list) \
		and len(season_lengths) > 0 \
		and all(_is_int(length) and length > 0 for length in season_lengths)


def _filename_slot(base_name:str, idx:int) -> str:
	method = compression.method()
	if method:
		return '%s.%d%s' % (base_name, idx, method['extension'])

	return '%s.%d' % (base_name, idx)


def _rotate_backups(base_name:str):
	num_backups = 0

	# loop through all file slots, including 0
	for idx in range(config.get_int('num-backups', config.default_num_backups), 0, -1):
		org_file = _filename_slot(base_name, idx - 1)
		if pexists(org_file):
			num_backups += 1
			shifted_file = _filename_slot(base_name, idx)
			os.rename(org_file, shifted_file)

	return num_backups


def list_backups(base_name:str|None=None) -> list[str]:
	"""Returns a list of existing backups, most recent first."""

	base_name = base_name or base_filename()

	bups = []

	for idx in range(1, config.get_int('num-backups', config.default_num_backups) + 1):
		bup_name = _filename_slot(base_name, idx)
		if pexists(bup_name):
			bups.append(bup_name)

	return bups


def write_json_tmp(data:dict, dir:str) -> str|None:
	# write to a temp file and then rename it afterwards
	fd, tmp_name = mkstemp(dir=dir)
	os.close(fd)

	err = write_json(tmp_name, data)

	if err is not None:
		print(f'{_E}ERROR{_00} Failed writing JSON: %s' % str(err), file=sys.stderr)
		if pexists(tmp_name):
			os.remove(tmp_name)
		return None

	fd, tmp_name2 = mkstemp(dir=dir)
	os.close(fd)

	if not compression.compress_file(tmp_name, tmp_name2):
		os.remove(tmp_name)
		os.remove(tmp_name2)
		return None

	return tmp_name2


meta_key = 'meta'
meta_version_key = 'version'
shows_key = 'shows'
watched_key = 'watched'
