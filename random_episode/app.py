#! /usr/bin/env python3

import re
import sys
import atexit
import random
from os.path import basename

from typing import Callable, Any

from . import config, db, display, terminal, utils, compression
from .config import Store, debug
from .flow import FlowController
from .styles import _0, _00, _b, _c, _f, _o, _E
from .utils import warning_prefix, clrline

PRG = basename(sys.argv[0])

VERSION = '0.3'
VERSION_DATE = '2026-10-18'


class BadUsageError(RuntimeError):
	pass


class Error(str):
	pass


def start(args:list[str]) -> Error|None:
	config.load()
	atexit.register(config.save)

	options:dict[str, Any] = {}
	parse_args(args, options)

	if options.get('help'):
		print_usage()
		return None

	if options.get('version'):
		print('%s %s (%s)' % (PRG, VERSION, VERSION_DATE))
		return None

	apply_options(options)

	if not sys.stdin.isatty() or not sys.stdout.isatty():
		return Error('Must be run in a terminal')

	seed = options.get('seed')
	rng = random.Random(seed)

	debug('start: %s %s; db: %s; compression: %s' % (PRG, VERSION, db.base_filename(), compression.compressor()))

	with db.open() as store:
		flow = FlowController(store, rng=rng, show_deleted=bool(options.get('show-deleted')))
		terminal.run(flow, display.render)

	return None


def parse_args(args:list[str], options:dict) -> None:
	args = list(args)

	while args:
		arg = args.pop(0)

		if not arg.startswith('-'):
			raise BadUsageError('Unexpected argument: %s' % arg)

		eat_option(arg, args, options)


def apply_options(options:dict) -> None:
	"""Put command-line options into the runtime configuration."""

	if options.get('debug'):
		config.set('debug', True, store=Store.Memory)

	if options.get('data-db'):
		config.set('paths/data-db', utils.pexpand(options['data-db']), store=Store.Memory)

	if options.get('max-attempts') is not None:
		config.set('pick/max-attempts', options['max-attempts'], store=Store.Memory)

	if options.get('fallback-scan'):
		config.set('pick/fallback-scan', True, store=Store.Memory)


long_option_arg_ptn = re.compile(r'^(?P<option>--[^= ]+)(?:=(?P<arg>.*))$')

def eat_option(option:str, args:list[str], options:dict) -> None:
	option_arg:str|None = None

	# check if it's a long option combined with an argument, i.e. --option=argument
	m = long_option_arg_ptn.search(option)
	if m:
		option = m.group('option')
		option_arg = m.groupdict().get('arg', None)

	opt_def = option_def(option)
	if not opt_def:
		raise BadUsageError('Unknown option: %s' % option)

	key:str = opt_def['key']
	arg_type = opt_def.get('arg')

	if not arg_type:
		# no argument expected
		if option_arg:
			raise BadUsageError('Option %s takes no argument' % option)

		options[key] = True
		return

	if option_arg is None and args:
		option_arg = args.pop(0)

	if option_arg is None:
		raise BadUsageError('Option %s requires an argument' % option)

	try:
		value = arg_type(option_arg)
	except ValueError:
		raise BadUsageError('Bad argument for %s: %s' % (option, option_arg))

	validator = opt_def.get('validator', lambda v: v)
	if validator(value) is None:
		explain = validator.__doc__ or ''
		raise BadUsageError('Bad argument for %s: %s %s' % (option, option_arg, explain))

	options[key] = value


def option_def(option:str) -> dict|None:
	for key, opt_def in command_options.items():
		names = opt_def['name']
		if isinstance(names, str):
			names = (names, )
		if option in names:
			return { 'key': key, **opt_def }

	return None


def _valid_int(a:int, b:int) -> Callable[[int], int|None]:
	assert(a <= b)
	def verify(v:int) -> int|None:
		if v >= a and v <= b:
			return v
		return None
	verify.__doc__ = '(between %d and %d)' % (a, b)
	return verify


command_options:dict[str, dict[str, Any]] = {
	'help':          { 'name': ('-h', '--help'),                       'help': 'Show this help' },
	'version':       { 'name': '--version',                            'help': 'Show version' },
	'data-db':       { 'name': '--db',       'arg': str,               'help': 'Database file (base name, without extension)' },
	'debug':         { 'name': '--debug',                              'help': 'Write debug log (to %s)' % config.get('paths/debug-log', '$TMPDIR/random-episode.log') },
	'seed':          { 'name': '--seed',     'arg': int,               'help': 'Seed for the random episode picker' },
	'max-attempts':  { 'name': '--attempts', 'arg': int, 'validator': _valid_int(1, 1000), 'help': 'Max random picks before giving up [1-1000] (default: %d)' % config.default_max_attempts },
	'fallback-scan': { 'name': '--fallback-scan',                      'help': 'Scan all episodes if the random picks fail' },
	'show-deleted':  { 'name': '--show-deleted',                       'help': 'Also list deleted shows (press u to restore)' },
}


def arg_placeholder(opt_def:dict) -> str:
	arg_type = opt_def.get('arg')
	if arg_type is None:
		return ''
	return f' <{_o}{arg_type.__name__}{_0}>'


def print_usage() -> None:
	print(f'{_b}%s{_0} / pick a random unwatched episode' % PRG)
	print('Version %s (%s) ' % (VERSION, VERSION_DATE))
	print(f'{_b}Usage:{_0} %s [<options>]' % PRG)
	print()
	print(f'Where {_b}<options>{_0} are:')
	for opt_def in command_options.values():
		names = opt_def['name']
		if isinstance(names, str):
			names = (names, )
		option = ', '.join(f'{_b}{name}{_0}' for name in names) + arg_placeholder(opt_def)
		print(f'  {option}')
		print(f'      {opt_def["help"]}')
	print()
	print(f'Keys: {_c}j{_0}/{_c}k{_0} or arrows to move, {_c}Return{_0} to select, {_c}d{_0}/{_c}u{_0} delete/restore, {_c}q{_0} quit')
	print()
	print_env_help()
	print()
	print(f'  {_f}Using {_b}{compression.compressor()}{_0}{_f} for compressing data files.{_0}')


def print_env_help() -> None:
	print('Some defaults may be overriden by environment variables:')
	print(f'  {_b}{config.env_config_path:22}{_0} Path to configuration file')
	print(f'  {_b}{config.env_data_db_path:22}{_0} Path to the database file')


def main():
	try:
		err = start(sys.argv[1: ])
		if err is not None:
			print(f'{warning_prefix()} {err}', file=sys.stderr)
			sys.exit(1)

	except BadUsageError as bue:
		print(f'{warning_prefix()} {bue}', file=sys.stderr)
		print(f'See: %s {_b}--help{_0}' % PRG, file=sys.stderr)
		sys.exit(1)

	except db.StoreError as se:
		clrline()
		print(f'{_E}ERROR{_00} {se}', file=sys.stderr)
		sys.exit(1)

	except utils.FatalJSONError as fje:
		clrline()
		print(f'{_E}ERROR{_00} Unreadable JSON: {fje}', file=sys.stderr)
		sys.exit(1)

	except KeyboardInterrupt:
		print('** User break', file=sys.stderr)
		sys.exit(1)

if __name__ == '__main__':
	main()
