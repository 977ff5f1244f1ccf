import enum
import random

from . import episodes
from .builder import ShowBuilder, NeedsMore, Complete, Rejected
from .config import debug
from .db import StoreError
from .episodes import Show, Episode, ExhaustionError

from typing import Any


class Stage(enum.Enum):
	MENU = 'menu'
	ADD_SHOW = 'add-show'
	RESULT = 'result'


add_show_label = 'Add show'
menu_title = 'What do you want to do?'
watch_choices = ('Watched', 'Later')

# key names, as produced by terminal.read_key()
CANCEL = 'ctrl+c'
CONFIRM = 'enter'
BACKSPACE = 'backspace'
QUIT = 'q'
DELETE = 'd'
RESTORE = 'u'
NEXT = ('j', 'down')
PREVIOUS = ('k', 'up')


class MenuChoice:
	def __init__(self, label:str, show:Show|None=None):
		self.label = label
		self.show = show
		self.deleted = show.deleted if show is not None else False


class MenuState:
	def __init__(self, shows:list[Show], show_deleted:bool=False):
		self.choices = [ MenuChoice(add_show_label) ]
		self.choices.extend(
			MenuChoice(show.name, show)
			for show in shows
			if show_deleted or not show.deleted
		)
		self.cursor = 1 if len(self.choices) > 1 else 0
		self.message:str|None = None

	@property
	def current(self) -> MenuChoice:
		return self.choices[self.cursor]


class AddShowState:
	def __init__(self, builder:ShowBuilder):
		self.builder = builder
		self.prompt = builder.prompt
		self.text = ''
		self.rejected:str|None = None


class ResultState:
	def __init__(self, show:Show, episode:Episode|None, error:Exception|None=None):
		self.show = show
		self.episode = episode
		self.error = error
		self.cursor = 0


class FlowController:
	"""Drives the interactive session: Menu -> (AddShow | Result) -> Menu.

	Exactly one stage is active; 'state' holds that stage's data. The
	menu's data is kept while another stage is active, so the cursor
	position survives a pick. Feed keys to handle(); it returns False
	once the program should exit.
	"""

	def __init__(self, store, rng:random.Random|None=None, show_deleted:bool=False):
		self.store = store
		self.rng = rng or random.Random()
		self.show_deleted = show_deleted

		self.menu = MenuState(store.list_shows(), show_deleted=show_deleted)
		self.stage = Stage.MENU
		self.state:Any = self.menu
		self.running = True


	def handle(self, key:str) -> bool:
		if not self.running:
			return False

		if key == CANCEL:
			debug('flow: cancelled in', self.stage.value)
			self.running = False
			return False

		if self.stage == Stage.MENU:
			self._menu_key(self.state, key)
		elif self.stage == Stage.ADD_SHOW:
			self._add_show_key(self.state, key)
		elif self.stage == Stage.RESULT:
			self._result_key(self.state, key)

		return self.running


	def _enter(self, stage:Stage, state:Any) -> None:
		debug('flow: %s -> %s' % (self.stage.value, stage.value))
		self.stage = stage
		self.state = state

	def _to_menu(self, message:str|None=None, reload:bool=False) -> None:
		if reload:
			self.menu = MenuState(self.store.list_shows(), show_deleted=self.show_deleted)
		self.menu.message = message
		self._enter(Stage.MENU, self.menu)


	def _menu_key(self, menu:MenuState, key:str) -> None:
		if key == QUIT:
			self.running = False

		elif key in NEXT:
			menu.cursor = (menu.cursor + 1) % len(menu.choices)

		elif key in PREVIOUS:
			menu.cursor = (menu.cursor - 1) % len(menu.choices)

		elif key == CONFIRM:
			if menu.cursor == 0:
				menu.message = None
				builder = ShowBuilder(self.store.create_show, self.store.has_show)
				self._enter(Stage.ADD_SHOW, AddShowState(builder))

			elif not menu.current.deleted:
				menu.message = None
				self._select_show(menu.current.show)

		elif key in (DELETE, RESTORE) and menu.cursor > 0:
			self._set_deleted(menu, menu.current, key == DELETE)


	def _select_show(self, show:Show) -> None:
		episode = None
		error:Exception|None = None
		try:
			episode = episodes.pick(show, self.store.is_watched, rng=self.rng)
		except (ExhaustionError, StoreError) as err:
			debug('flow: pick failed for "%s": %s' % (show.name, err))
			error = err

		self._enter(Stage.RESULT, ResultState(show, episode, error))


	def _set_deleted(self, menu:MenuState, choice:MenuChoice, deleted:bool) -> None:
		try:
			if deleted:
				self.store.soft_delete_show(choice.label)
			else:
				self.store.restore_show(choice.label)

		except StoreError as err:
			menu.message = str(err)
			return

		choice.deleted = deleted
		menu.message = None


	def _add_show_key(self, add:AddShowState, key:str) -> None:
		if key == CONFIRM:
			try:
				result = add.builder.submit(add.text)
			except StoreError as err:
				self._to_menu(message='Failed adding show: %s' % err)
				return

			if isinstance(result, Complete):
				self._to_menu(message='Show %s added!' % result.show.name, reload=True)
				return

			if isinstance(result, NeedsMore):
				add.prompt = result.prompt
				add.rejected = None
			elif isinstance(result, Rejected):
				add.rejected = result.reason

			add.text = ''

		elif key == BACKSPACE:
			add.text = add.text[:-1]

		elif len(key) == 1 and key.isprintable():
			add.text += key


	def _result_key(self, result:ResultState, key:str) -> None:
		if key == QUIT:
			self.running = False

		elif key in NEXT or key in PREVIOUS:
			result.cursor = (result.cursor + 1) % len(watch_choices)

		elif key == CONFIRM:
			if result.episode is None or result.cursor != 0:
				self._to_menu()
				return

			try:
				self.store.mark_watched(result.show.name, result.episode.number)
			except StoreError as err:
				self._to_menu(message='Failed marking episode watched: %s' % err)
				return

			self._to_menu(message='%s: %s watched' % (result.show.name, str(result.episode).lower()))
