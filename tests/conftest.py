import os
import random
import sys
import pytest

# Ensure the project root (containing the `matrixgame` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from config import Config
from matrixgame import create_app, socketio
from matrixgame.models import Identity
from matrixgame.services.games import (
    BoardGenerator,
    FairnessSettings,
    GameCoordinator,
    ManualScheduler,
    RoomRegistry,
)

NAMESPACE = '/ws'


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CREATE_COOLDOWN_SEC = 0
    FAIR_CANDIDATES = 40
    ROUND_DELAY_SEC = 0.7
    DISCONNECT_GRACE_SEC = 60
    SOCKETIO_NAMESPACE = NAMESPACE


class RecordingBroadcaster:
    """Collects outbound events instead of sending them."""

    def __init__(self):
        self.sent = []
        self.members = {}

    def to_room(self, room_id, event, data):
        self.sent.append(('room', room_id, event, data))

    def to_identity(self, identity, event, data):
        self.sent.append(('identity', identity.key, event, data))

    def attach(self, identity, room_id):
        self.members.setdefault(room_id, set()).add(identity.key)

    def detach(self, identity, room_id):
        self.members.get(room_id, set()).discard(identity.key)

    def names(self, target=None):
        return [e[2] for e in self.sent if target is None or e[1] == target]

    def last(self, event):
        for entry in reversed(self.sent):
            if entry[2] == event:
                return entry
        return None

    def clear(self):
        self.sent.clear()


class FixedBoardGenerator:
    """Deals the same board every time and records the scores it was given."""

    def __init__(self, board):
        self.board = board
        self.calls = []

    def generate(self, scores=None):
        self.calls.append(dict(scores) if scores else None)
        return [[dict(cell) for cell in row] for row in self.board]


def uniform_board(a, b):
    return [[{'a': a, 'b': b} for _ in range(3)] for _ in range(3)]


@pytest.fixture()
def alice():
    return Identity('sid-alice')


@pytest.fixture()
def bob():
    return Identity('sid-bob')


@pytest.fixture()
def carol():
    return Identity('sid-carol')


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def registry(scheduler):
    return RoomRegistry(cooldown_sec=0, clock=scheduler.now)


@pytest.fixture()
def generator():
    return BoardGenerator(FairnessSettings(candidates=30), rng=random.Random(7))


@pytest.fixture()
def coordinator(registry, generator, scheduler, broadcaster):
    return GameCoordinator(registry, generator, scheduler, broadcaster, round_delay=0.7, grace_period=60)


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
        namespace=NAMESPACE
    )
    yield test_client
    try:
        test_client.disconnect(namespace=NAMESPACE)
    except Exception:
        pass
