from os.path import basename, dirname, expandvars, expanduser, exists as pexists, getsize as psize

import os
from tempfile import mkstemp
import sys

from typing import Any, BinaryIO

import orjson

from .styles import _0, _00, _b, _c, _f, _K, _E

PRG = ''

class FatalJSONError(ValueError):
	pass


def warning_prefix(context_name:str|None=None) -> str:
	if context_name is not None:
		return f'{_c}[{_00}{_b}{PRG} {context_name}{_c}]{_00}'
	return f'{_c}[{_00}{_b}{PRG}{_c}]{_00}'


def read_json(filepath:str) -> dict:
	if pexists(filepath) and psize(filepath) > 1:
		with open(filepath, 'rb') as fp:
			return read_json_obj(fp, filepath)

	return {}


def read_json_obj(fp:BinaryIO, filepath:str|None=None) -> dict:
	data = fp.read()
	try:
		obj = orjson.loads(data)

	except orjson.JSONDecodeError as jde:
		_dump_decode_error(jde, filepath or '<stream>', data)
		raise FatalJSONError(jde)

	finally:
		fp.close()

	if not isinstance(obj, dict):
		raise FatalJSONError('expected a JSON object in %s, got %s' % (filepath or '<stream>', type(obj).__name__))

	return obj


def _dump_decode_error(err, filepath:str, data:bytes) -> None:
	if hasattr(err, 'lineno') and hasattr(err, 'colno'):
		print(f'{_E}ERROR{_00} Failed to read JSON ({filepath}:{err.lineno}:{err.colno}): {err.msg}', file=sys.stderr)
		lines = data.decode('utf-8', errors='replace').splitlines()
		for line_num, line in enumerate(lines, start=1):
			if line_num in (err.lineno - 1, err.lineno + 1):
				print(f'   {line}', file=sys.stderr)
			elif line_num == err.lineno:
				N = max(err.colno - 1, 1)
				line = line.rstrip()
				left = line[:N - 1]
				bad_part = line[N - 1:N]
				right = line[N:]
				print(f'{_f}>>{_0} {left}{_E}{bad_part}{_00}{right} {_f}<<{_0}', file=sys.stderr)

			if line_num == err.lineno + 1:
				break


def write_json(filepath:str, data:Any) -> Exception|None:
	fd, tmp_name = mkstemp(dir=dirname(filepath) or '.')
	os.close(fd)
	try:
		with open(tmp_name, 'wb') as fpo:
			fpo.write(orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS))

		os.rename(tmp_name, filepath)

	except Exception as e:
		os.remove(tmp_name)
		return e

	return None


def pexpand(p):
	return expanduser(expandvars(p))


def clrline():
	print(f'{_00}\r{_K}', end='')


def _init():
	global PRG
	PRG = basename(sys.argv[0])

_init()
