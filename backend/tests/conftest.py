import os
import random
import sys
import pytest

# Ensure the backend root (containing the `skyjo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from skyjo import create_app, socketio
from skyjo.channels import ChannelHub
from skyjo.game.hand import Hand
from skyjo.game.session import GameSession


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_NAMESPACE = '/ws'
    MIN_PLAYERS = 2
    MAX_PLAYERS = 8
    GAME_END_THRESHOLD = 100
    SHUFFLE_SEED = '1234'
    LOG_LEVEL = 'DEBUG'


class Recorder:
    """Stands in for ``socketio.emit`` and keeps everything sent."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, to=None, namespace=None):
        self.sent.append((event, payload, to))

    def events(self, name):
        return [payload for event, payload, _ in self.sent if event == name]

    def views(self):
        return self.events('game-update')

    def messages(self):
        return self.events('message')


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def hub(recorder):
    channel_hub = ChannelHub(emit=recorder)
    for actor_id, name in (('a', 'Alice'), ('b', 'Bob')):
        channel_hub.connect(actor_id)
        channel_hub.join(actor_id, 'table', name=name)
    return channel_hub


@pytest.fixture()
def new_session(hub):
    """Build (but do not start) a two-player session on the ``table`` session."""

    def _build(**kwargs):
        kwargs.setdefault('names', {'a': 'Alice', 'b': 'Bob'})
        kwargs.setdefault('rng', random.Random(7))
        return GameSession('table', ['a', 'b'], hub, **kwargs)

    return _build


@pytest.fixture()
def rig_hand():
    """Replace a player's hand with fixed cards; ``known_cells`` are (column, row) pairs."""

    def _rig(session, index, columns, known_cells=()):
        hand = Hand([list(column) for column in columns])
        for column, row in known_cells:
            hand.reveal(column, row)
        session.players[index].hand = hand
        return hand

    return _rig
