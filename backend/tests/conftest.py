import os
import sys
import pytest

# Ensure the backend root (containing the `partyroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from partyroom import create_app, db, socketio, clock


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    ROOM_CODE_LENGTH = 6
    ROOM_CODE_MAX_ATTEMPTS = 10
    ROOM_CLEANUP_GRACE_SEC = 60
    MAX_PLAYERS = 10
    STALE_PLAYER_SEC = 120
    HOST_FAILOVER_SEC = 150
    DEFAULT_TOTAL_ROUNDS = 5
    CONTENT_CACHE_TTL_SEC = 600
    UPSTREAM_TIMEOUT_SEC = 1


class FrozenClock:
    """Stands in for ``partyroom.clock.now_ms`` so timers can be stepped."""

    def __init__(self, start_ms=1_700_000_000_000.0):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds=0, ms=0):
        self.now += seconds * 1000 + ms
        return self.now


@pytest.fixture()
def frozen_clock(monkeypatch):
    fake = FrozenClock()
    monkeypatch.setattr(clock, 'now_ms', fake)
    return fake


@pytest.fixture()
def flask_app(frozen_clock):
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import partyroom.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


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
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


FLAGS = [
    {'name': 'France', 'officialName': 'French Republic', 'acceptedAnswers': ['République française']},
    {'name': 'Japan', 'acceptedAnswers': ['Japon']},
    {'name': 'Peru', 'acceptedAnswers': ['Pérou']},
]

PRICES = [
    {'id': 1, 'title': 'Kettle', 'price': 100.0},
    {'id': 2, 'title': 'Lamp', 'price': 40.0},
]


def create_room(client, name='Alice', game_type='flag', settings=None):
    res = client.post('/api/rooms/create', json={
        'playerName': name, 'gameType': game_type, 'settings': settings or {},
    })
    assert res.status_code == 201
    return res.get_json()


def join_room(client, code, name, player_id=None):
    res = client.post('/api/rooms/join', json={'roomCode': code, 'playerName': name, 'playerId': player_id})
    assert res.status_code == 200
    return res.get_json()


def state(client, code):
    res = client.get(f'/api/rooms/{code}/state')
    assert res.status_code == 200
    return res.get_json()
