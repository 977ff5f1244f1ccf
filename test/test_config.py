import unittest
import os

from random_episode import config

test_config_file = 'test_config'

class TestConfig(unittest.TestCase):
	def test_load_nonexistent(self) -> None:
		config.app_config_file = 'this-file-does-not-exist'
		self.assertFalse(config.load())

	def test_load(self) -> None:
		self.assertTrue(self.load_config('{ "key": "value" }'))

	def test_get(self) -> None:
		self.load_config('{ "key": "value" }')

		self.assertEqual(config.get('key'), 'value')

	def test_get_nested(self) -> None:
		self.load_config('{ "pick": { "max-attempts": 7 } }')

		self.assertEqual(config.get_int('pick/max-attempts'), 7)
		# sibling falls back to the default
		self.assertFalse(config.get_bool('pick/fallback-scan'))

	def test_get_fallback(self) -> None:
		self.load_config('{ "nothing": "useful" }')

		self.assertEqual(config.get('pick/max-attempts'), 50)
		self.assertEqual(config.get('num-backups'), 10)
		self.assertIsNone(config.get('no/such/key'))
		self.assertEqual(config.get('no/such/key', 'x'), 'x')

	def test_set_override(self) -> None:
		self.load_config('{ "nothing": "useful" }')
		self.assertEqual(config.get('pick/max-attempts'), 50)

		config.set('pick/max-attempts', 42, store=config.Store.Memory)
		self.assertFalse(config.save())

	def test_get_override(self) -> None:
		self.load_config('{ "pick": { "max-attempts": 7 } }')

		config.set('pick/max-attempts', 42, store=config.Store.Memory)

		val = config.get_int('pick/max-attempts')
		self.assertEqual(val, 42)

	def test_data_db_path(self) -> None:
		self.load_config('{ "paths": { "data-db": "/somewhere/data" } }')

		self.assertEqual(config.get('paths/data-db'), '/somewhere/data')
		self.assertTrue(config.get('paths/debug-log'))

	def test_data_db_path_env(self) -> None:
		os.environ[config.env_data_db_path] = '/from/env/data'
		try:
			self.load_config('{ "paths": { "data-db": "/somewhere/data" } }')
		finally:
			del os.environ[config.env_data_db_path]

		self.assertEqual(config.get('paths/data-db'), '/from/env/data')

	def test_set_bad_path(self) -> None:
		self.load_config('{ "key": "value" }')

		with self.assertRaises(RuntimeError):
			config.set('key/sub', 1)


	def tearDown(self) -> None:
		try:
			os.remove(test_config_file)
		except FileNotFoundError:
			pass
		config.forget_all(config.Store.Memory)
		config.forget_all(config.Store.Persistent)

	def load_config(self, content):
		with open(test_config_file, 'w') as fp:
			print(content, file=fp)
		config.app_config_file = test_config_file
		return config.load()
