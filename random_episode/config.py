import enum
import os
import sys
import time
from os.path import basename, dirname, join as pjoin
from tempfile import gettempdir
from typing import Any

from .utils import read_json, write_json, warning_prefix, pexpand
from .styles import _00, _E


env_config_path = 'RANDOM_EPISODE_CONFIG'
env_data_db_path = 'RANDOM_EPISODE_DB'

default_max_attempts = 50
default_num_backups = 10

user_config_home = os.getenv('XDG_CONFIG_HOME') or pexpand(pjoin('$HOME', '.config'))
user_data_home = os.getenv('XDG_DATA_HOME') or pexpand(pjoin('$HOME', '.local', 'share'))

app_config_file = ''  # set in _init()
PRG = ''              # set in _init()

ValueType = str|int|float|list[Any]|dict[str, Any]  # "Any" b/c mypy doesn't support recursive type hints

_configuration_defaults:dict[str, ValueType] = {
	'pick': {
		'max-attempts': default_max_attempts,
		'fallback-scan': False,
	},
	'num-backups': default_num_backups,
	'debug': False,
}

_app_config:dict[str, ValueType] = {}
_app_config_dirty = False  # if True, it needs to be saved to disk
_memory_config:dict[str, ValueType] = {}  # only used at runtime, not persisted

class Store(enum.IntEnum):
	Persistent = 1
	Memory = 2
	Defaults = 3

_config_stores = {
	None: _app_config,
	Store.Persistent: _app_config,
	Store.Memory:     _memory_config,
	Store.Defaults:   _configuration_defaults,
}


def load() -> bool:
	"""Load persistent configuration from 'app_config_file' (into Store.Persistent)."""

	_app_config.clear()

	config = read_json(app_config_file)
	if config:
		_app_config.update(config)

	paths = _app_config.get('paths', {})
	if not isinstance(paths, dict):
		raise RuntimeError(f'{warning_prefix()} Config key "paths" is not an object')

	for key in paths.keys():
		paths[key] = pexpand(paths[key])

	db_file = os.getenv(env_data_db_path) or get('paths/data-db')
	if not db_file or not isinstance(db_file, str):
		db_file = pjoin(user_data_home, 'random-episode', 'data')
	set('paths/data-db', pexpand(db_file), store=Store.Memory)

	if not get('paths/debug-log'):
		set('paths/debug-log', pjoin(gettempdir(), 'random-episode.log'), store=Store.Memory)

	global _app_config_dirty
	_app_config_dirty = False

	return len(_app_config) > 0


def save() -> bool:
	"""Save configuration (if dirty)."""

	global _app_config_dirty
	if not _app_config_dirty or not _app_config:
		return False

	os.makedirs(dirname(app_config_file) or '.', exist_ok=True)
	err = write_json(app_config_file, _app_config)
	if err is not None:
		print(f'{_E}ERROR{_00} Failed saving configuration: %s' % str(err), file=sys.stderr)

	_app_config_dirty = False
	return True


def forget_all(store:Store):
	"""Clear specified config store."""

	_config_stores[store].clear()
	if store == Store.Persistent:
		global _app_config_dirty
		_app_config_dirty = True


def get(path:str, default_value:ValueType|None=None, convert=None) -> ValueType|None:
	# path: key/key/...
	keys = path.split('/')
	if not keys:
		raise RuntimeError('Empty key path')

	# from high to low priority
	configs:list[ValueType] = [_memory_config, _app_config, _configuration_defaults]
	scope:list[ValueType] = configs

	current:list[str] = []
	for key in keys:
		# remove non-dict entries
		scope = [sc for sc in scope if isinstance(sc, dict)]
		if not scope:
			raise RuntimeError('Invalid path "%s"; not object at "%s", got %s (%s)' % (path, '/'.join(current), scope, type(scope).__name__))

		for n in range(len(scope)):
			scope[n] = scope[n].get(key)  # type: ignore  # non-dicts already discarded above
		# remove scopes where the branch doesn't exist
		scope = [sc for sc in scope if sc is not None]
		if not scope:
			break  # not found anywhere!

		current.append(key)

	if not scope:
		value = default_value
	else:
		# use first value (higher prio)
		value = scope[0]

	if convert is not None:
		value = convert(value)

	return value


def get_int(path:str, default_value:int=0) -> int:
	v = get(path, default_value)
	if isinstance(v, (str, int)):
		return int(v)
	return default_value


def get_bool(path:str, default_value:bool=False) -> bool:
	v = get(path, default_value)
	if isinstance(v, (str, int, bool)):
		return bool(v)
	return default_value


def set(path:str, value:Any, store:Store|None=Store.Persistent) -> None:
	# path: key/key/key
	keys = path.split('/')
	if not keys:
		raise RuntimeError('Empty key path')

	store = store or Store.Memory
	maybe_store = _config_stores.get(store)
	if store not in _config_stores or maybe_store is None:
		raise RuntimeError('invalid config store "%s"' % store)

	config:dict[str, ValueType] = maybe_store
	scope = config

	current:list[str] = []
	while keys:
		key = keys.pop(0)

		if not keys:  # leaf key
			scope[key] = value
			break

		sub_scope = scope.get(key)
		if sub_scope is None:  # missing key (object container)
			sub_scope = {}
			scope[key] = sub_scope

		if not isinstance(sub_scope, dict): # exists, but is not an object
			raise RuntimeError('Invalid path "%s"; not object at "%s", got %s (%s)' % (
				path,
				'/'.join(current),
				scope,
				type(sub_scope).__name__,
			))

		scope = sub_scope
		current.append(key)


	if store == Store.Persistent:
		global _app_config_dirty
		_app_config_dirty = True


def debug(*args, **kw) -> None:
	"""Append a line to the debug log, if debugging is enabled.

	The terminal is owned by the interactive screen, so output goes to
	'paths/debug-log' instead of stderr.
	"""
	if not get_bool('debug'):
		return

	log_file = get('paths/debug-log')
	if not log_file or not isinstance(log_file, str):
		return

	kw.pop('end', None)
	stamp = time.strftime('%Y-%m-%d %H:%M:%S')
	with open(log_file, 'a') as fp:
		print(stamp, *args, file=fp, **kw)


def _init():
	global PRG
	PRG = basename(sys.argv[0])
	global app_config_file
	app_config_file = pexpand(os.getenv(env_config_path) or pjoin(user_config_home, 'random_episode', 'config'))

_init()
