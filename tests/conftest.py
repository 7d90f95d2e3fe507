import logging

import pytest

from lastjump import config, core
from lastjump.content import Content
from lastjump.game import Game
from lastjump.handlers import HandlerRegistry, default_registry
from lastjump.serialization.save_game import GameSaver
from . import RecordingPresenter, make_content, make_gamestate

# some logging to turn on if we like
#logging.getLogger("lastjump.events").level = logging.DEBUG

@pytest.fixture
def handlers() -> HandlerRegistry:
    return default_registry()

@pytest.fixture
def content(handlers:HandlerRegistry) -> Content:
    """ the content the game ships with """
    return Content.load(handlers)

@pytest.fixture
def small_content(handlers:HandlerRegistry) -> Content:
    return make_content(handlers)

@pytest.fixture
def gamestate(small_content:Content) -> core.Gamestate:
    return make_gamestate(small_content)

@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()

@pytest.fixture
def saver(tmp_path) -> GameSaver:
    return GameSaver(str(tmp_path), slot_count=3)

@pytest.fixture
def game(content:Content, presenter:RecordingPresenter, handlers:HandlerRegistry, saver:GameSaver) -> Game:
    return Game(content, presenter, handlers=handlers, seed=0, saver=saver)

@pytest.fixture
def restore_config():
    yield
    config.load_config()
