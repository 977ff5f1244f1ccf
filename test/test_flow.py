import random
import unittest

from random_episode import config
from random_episode.db import StoreError
from random_episode.episodes import Show, ExhaustionError
from random_episode.flow import FlowController, Stage


class FakeStore:
	"""In-memory stand-in for db.WatchStore."""

	def __init__(self, shows:list[Show]|None=None):
		self.shows = [ Show(s.name, s.season_lengths, s.deleted) for s in shows or [] ]
		self.watched:set[tuple[str, int]] = set()
		self.created:list[Show] = []
		self.fail = False

	def _check(self) -> None:
		if self.fail:
			raise StoreError('store failure')

	def list_shows(self) -> list[Show]:
		return [ Show(s.name, s.season_lengths, s.deleted) for s in self.shows ]

	def has_show(self, name:str) -> bool:
		return any(s.name == name for s in self.shows)

	def create_show(self, show:Show) -> None:
		self._check()
		self.created.append(show)
		self.shows.append(Show(show.name, show.season_lengths))

	def soft_delete_show(self, name:str) -> None:
		self._check()
		self._find(name).deleted = True

	def restore_show(self, name:str) -> None:
		self._check()
		self._find(name).deleted = False

	def is_watched(self, name:str, number:int) -> bool:
		self._check()
		return (name, number) in self.watched

	def mark_watched(self, name:str, number:int) -> None:
		self._check()
		self.watched.add((name, number))

	def _find(self, name:str) -> Show:
		return next(s for s in self.shows if s.name == name)


class FlowTestCase(unittest.TestCase):
	shows:list[Show] = [ Show('A', [3, 2]), Show('B', [4]) ]

	def setUp(self) -> None:
		self.store = FakeStore(self.shows)
		self.flow = FlowController(self.store, rng=random.Random(42))

	def press(self, *keys:str) -> bool:
		running = True
		for key in keys:
			running = self.flow.handle(key)
		return running

	def type_line(self, text:str) -> None:
		self.press(*text, 'enter')

	def choice_labels(self) -> list[str]:
		return [ choice.label for choice in self.flow.menu.choices ]


class TestMenu(FlowTestCase):
	def test_initial(self) -> None:
		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertIs(self.flow.state, self.flow.menu)
		self.assertEqual(self.choice_labels(), ['Add show', 'A', 'B'])
		self.assertEqual(self.flow.menu.cursor, 1)

	def test_empty(self) -> None:
		flow = FlowController(FakeStore())
		self.assertEqual(flow.menu.cursor, 0)
		self.assertEqual(len(flow.menu.choices), 1)

	def test_previous_wraps(self) -> None:
		self.press('up')
		self.assertEqual(self.flow.menu.cursor, 0)
		self.press('k')
		self.assertEqual(self.flow.menu.cursor, 2)

	def test_next_wraps(self) -> None:
		self.press('down', 'j')
		self.assertEqual(self.flow.menu.cursor, 0)
		self.press('j')
		self.assertEqual(self.flow.menu.cursor, 1)

	def test_deleted_hidden(self) -> None:
		store = FakeStore([ Show('A', [1]), Show('Gone', [1], deleted=True) ])
		self.assertEqual([c.label for c in FlowController(store).menu.choices], ['Add show', 'A'])

		flow = FlowController(store, show_deleted=True)
		self.assertEqual([c.label for c in flow.menu.choices], ['Add show', 'A', 'Gone'])
		self.assertTrue(flow.menu.choices[2].deleted)

	def test_unknown_key_ignored(self) -> None:
		self.assertTrue(self.press('x', 'left', 'esc'))
		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertEqual(self.flow.menu.cursor, 1)

	def test_quit(self) -> None:
		self.assertFalse(self.press('q'))
		self.assertFalse(self.flow.running)

	def test_cancel(self) -> None:
		self.assertFalse(self.press('ctrl+c'))
		# no more input accepted
		self.assertFalse(self.press('enter'))
		self.assertEqual(self.flow.stage, Stage.MENU)


class TestDeleteRestore(FlowTestCase):
	def test_delete_restore(self) -> None:
		self.press('d')
		self.assertTrue(self.flow.menu.current.deleted)
		self.assertTrue(self.store.shows[0].deleted)
		# still listed
		self.assertEqual(self.choice_labels(), ['Add show', 'A', 'B'])

		self.press('u')
		self.assertFalse(self.flow.menu.current.deleted)
		self.assertFalse(self.store.shows[0].deleted)

	def test_deleted_not_selectable(self) -> None:
		self.press('d', 'enter')
		self.assertEqual(self.flow.stage, Stage.MENU)

	def test_delete_add_show_entry(self) -> None:
		self.press('up', 'd')
		self.assertFalse(any(s.deleted for s in self.store.shows))

	def test_delete_failure(self) -> None:
		self.store.fail = True
		self.press('d')

		self.assertFalse(self.flow.menu.current.deleted)
		self.assertEqual(self.flow.menu.message, 'store failure')
		self.assertEqual(self.flow.stage, Stage.MENU)


class TestAddShow(FlowTestCase):
	def test_add(self) -> None:
		self.press('up', 'enter')
		self.assertEqual(self.flow.stage, Stage.ADD_SHOW)
		self.assertEqual(self.flow.state.prompt, 'Show name: ')

		self.type_line('Foo')
		self.assertEqual(self.flow.state.prompt, 'Season count: ')
		self.type_line('2')
		self.assertEqual(self.flow.state.prompt, 'Season 1 length: ')
		self.type_line('3')
		self.assertEqual(self.flow.state.prompt, 'Season 2 length: ')
		self.type_line('2')

		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertEqual(self.store.created, [Show('Foo', [3, 2])])
		self.assertEqual(self.choice_labels(), ['Add show', 'A', 'B', 'Foo'])
		self.assertEqual(self.flow.menu.message, 'Show Foo added!')
		self.assertEqual(self.flow.menu.cursor, 1)

	def test_editing(self) -> None:
		self.press('up', 'enter')
		self.press('q', 'x', 'backspace', 'j', 'k')
		self.assertEqual(self.flow.state.text, 'qjk')
		self.assertEqual(self.flow.stage, Stage.ADD_SHOW)

	def test_rejected(self) -> None:
		self.press('up', 'enter')
		self.press('enter')
		self.assertEqual(self.flow.stage, Stage.ADD_SHOW)
		self.assertEqual(self.flow.state.prompt, 'Show name: ')
		self.assertTrue(self.flow.state.rejected)

		self.type_line('Foo')
		self.assertIsNone(self.flow.state.rejected)
		self.type_line('many')
		self.assertEqual(self.flow.state.prompt, 'Season count: ')
		self.assertEqual(self.flow.state.text, '')
		self.assertTrue(self.flow.state.rejected)

	def test_existing_name(self) -> None:
		self.press('up', 'enter')
		self.type_line('A')
		self.assertEqual(self.flow.state.prompt, 'Show name: ')
		self.assertTrue(self.flow.state.rejected)

	def test_store_failure(self) -> None:
		self.press('up', 'enter')
		self.type_line('Foo')
		self.type_line('1')
		self.store.fail = True
		self.type_line('5')

		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertIn('store failure', self.flow.menu.message)
		self.assertEqual(self.choice_labels(), ['Add show', 'A', 'B'])

	def test_cancel(self) -> None:
		self.press('up', 'enter')
		self.assertFalse(self.press('ctrl+c'))


class TestResult(FlowTestCase):
	def test_watched(self) -> None:
		self.press('enter')
		self.assertEqual(self.flow.stage, Stage.RESULT)
		episode = self.flow.state.episode
		self.assertEqual(episode.show.name, 'A')
		self.assertIsNone(self.flow.state.error)

		self.press('enter')
		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertEqual(self.store.watched, {('A', episode.number)})

	def test_later(self) -> None:
		self.press('down', 'enter')
		self.assertEqual(self.flow.state.show.name, 'B')

		self.press('j')
		self.assertEqual(self.flow.state.cursor, 1)
		self.press('enter')

		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertEqual(self.store.watched, set())
		# cursor kept
		self.assertEqual(self.flow.menu.cursor, 2)

	def test_toggle(self) -> None:
		self.press('enter')
		self.press('k')
		self.assertEqual(self.flow.state.cursor, 1)
		self.press('up')
		self.assertEqual(self.flow.state.cursor, 0)
		self.press('down', 'down')
		self.assertEqual(self.flow.state.cursor, 0)

	def test_never_picks_watched(self) -> None:
		config.set('pick/fallback-scan', True, store=config.Store.Memory)
		self.addCleanup(config.forget_all, config.Store.Memory)

		self.store.watched = {('A', n) for n in (0, 1, 2, 4)}
		for _ in range(20):
			self.press('enter')
			self.assertEqual(self.flow.state.episode.number, 3)
			self.press('j', 'enter')

	def test_exhausted(self) -> None:
		self.store.watched = {('A', n) for n in range(5)}
		self.press('enter')

		self.assertEqual(self.flow.stage, Stage.RESULT)
		self.assertIsNone(self.flow.state.episode)
		self.assertIsInstance(self.flow.state.error, ExhaustionError)

		self.press('enter')
		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertEqual(len(self.store.watched), 5)

	def test_pick_store_failure(self) -> None:
		self.store.fail = True
		self.press('enter')

		self.assertEqual(self.flow.stage, Stage.RESULT)
		self.assertIsInstance(self.flow.state.error, StoreError)

	def test_mark_failure(self) -> None:
		self.press('enter')
		self.store.fail = True
		self.press('enter')

		self.assertEqual(self.flow.stage, Stage.MENU)
		self.assertIn('store failure', self.flow.menu.message)

	def test_quit(self) -> None:
		self.press('enter')
		self.assertFalse(self.press('q'))
