import os
import io
import importlib
from typing import BinaryIO, IO

from .config import debug

# detected (preferred) compression method
_compressor:dict|None = None



def compress_file(source:str, destination:str) -> bool:
	if not _compressor:
		os.rename(source, destination)
		return True

	return _compressor['compress'](_compressor, source, destination)


def open(source:str, method:dict|None=None) -> BinaryIO:
	method = method or _compressor
	if not method:
		return io.open(source, 'rb')

	return method['open'](method, source)



def _zstandard_compress(method:dict, source:str, destination:str) -> bool:
	import zstandard
	compressor = zstandard.ZstdCompressor(level=method['level'])
	with io.open(source, 'rb') as sfp, io.open(destination, 'wb') as dfp:
		compressor.copy_stream(sfp, dfp)

	_copy_times(source, destination)
	os.remove(source)
	return True

def _zstandard_open(method:dict, source:str) -> BinaryIO:
	import zstandard
	fp = io.open(source, 'rb')
	dctx = zstandard.ZstdDecompressor()
	return dctx.stream_reader(fp, closefd=True)

def _xz_compress(method:dict, source:str, destination:str) -> bool:
	import lzma
	with io.open(source, 'rb') as sfp, io.open(destination, 'wb') as dfp:
		compressed = lzma.compress(sfp.read(), preset=method['level'])
		if not compressed:
			return False
		dfp.write(compressed)

	_copy_times(source, destination)
	os.remove(source)
	return True

def _xz_open(method:dict, source:str) -> IO[bytes]:
	import lzma
	return lzma.open(source)

def _gzip_compress(method:dict, source:str, destination:str) -> bool:
	import gzip
	with io.open(source, 'rb') as sfp, io.open(destination, 'wb') as dfp:
		compressed = gzip.compress(sfp.read(), compresslevel=method['level'])
		if not compressed:
			return False
		dfp.write(compressed)

	_copy_times(source, destination)
	os.remove(source)
	return True

def _gzip_open(method:dict, source:str) -> IO[bytes]:
	import gzip
	return gzip.open(source)


def _copy_times(source:str, destination:str):
	# copy timestamps from the source
	source_stat = os.stat(source)
	os.utime(destination, (source_stat.st_atime, source_stat.st_mtime))



def _detect_package(name):
	def detect(method:dict) -> bool:
		try:
			importlib.import_module(name)
			return True
		except ImportError:
			return False

	detect.__name__ = f'detect_{name}'
	return detect


ZSTD_LEVEL = 15
XZ_LEVEL = 6
GZIP_LEVEL = 9

_compressors:list[dict] = [
	{
		'name': 'python-zstandard',
		'detect': _detect_package('zstandard'),
		'level': ZSTD_LEVEL,
		'compress': _zstandard_compress,
		'open': _zstandard_open,
		'extension': '.zst',
	},
	{
		'name': 'python-xz',
		'detect': _detect_package('lzma'),
		'level': XZ_LEVEL,
		'compress': _xz_compress,
		'open': _xz_open,
		'extension': '.xz',
	},
	{
		'name': 'python-gzip',
		'detect': _detect_package('gzip'),
		'level': GZIP_LEVEL,
		'compress': _gzip_compress,
		'open': _gzip_open,
		'extension': '.gz',
	},
]

# detect which of the above compressor are available (in order of desirability)
def _init():
	global _compressor
	for method in _compressors:
		if method['detect'](method):
			_compressor = method
			debug('cmpr: detected compressor:', method['name'])
			break

	if not _compressor:
		raise RuntimeError('no compressor available (tried: %s)' % (', '.join(c['name'] for c in _compressors)))

def compressor() -> str|None:
	if not _compressor:
		return None
	return _compressor['name']

def method() -> dict|None:
	return _compressor


_init()
