import os
import sys
import pytest
from flask import g

# Ensure the backend root (containing the `quizroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizroom import create_app, db, socketio
from quizroom.identity import StaticIdentity
from quizroom.services import LeaderboardProjector, PlayerRegistry, RoomManager, RoundEngine
from quizroom.store import MemoryStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STORE_BACKEND = 'sql'
    ROOM_CODE_LENGTH = 6
    CORS_ORIGINS = []
    BCRYPT_LOG_ROUNDS = 4


QUESTIONS = [
    {'text': 'Capital of France?', 'type': 'multiple-choice',
     'options': ['Paris', 'Lyon', 'Nice'], 'correctAnswer': 'Paris'},
    {'text': 'The sky is blue.', 'type': 'true-false', 'correctAnswer': 'true'},
    {'text': 'Name a primary colour.', 'type': 'text-input', 'correctAnswer': ['red', 'blue', 'yellow']},
]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    @application.before_request
    def reload_login_user():
        # Test clients share the fixture's app context; resolve the user from each request's own session
        g.pop('_login_user', None)

    with application.app_context():
        # Ensure models are imported so tables are created
        import quizroom.models  # noqa: F401
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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


def make_user(username, password='password', admin=False):
    from quizroom.models import User
    user = User(username=username, role='admin' if admin else 'user')
    user.set_password(password)
    if admin:
        user.grant_all()
    db.session.add(user)
    db.session.commit()
    return user


def login(test_client, username, password='password'):
    res = test_client.post('/api/auth/login', json={'username': username, 'password': password})
    assert res.status_code == 200
    return res.get_json()['user']


# ---- Service-level fixtures (in-memory store, pinned identities) ----

@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def host():
    return StaticIdentity('user:host', canCreateRooms=True, canJoinRooms=True)


@pytest.fixture()
def admin():
    return StaticIdentity(
        'user:admin', canCreateRooms=True, canJoinRooms=True, canManageUsers=True, canDeleteRooms=True
    )


@pytest.fixture()
def rooms(store, host):
    return RoomManager(store, host)


@pytest.fixture()
def engine(store, host):
    return RoundEngine(store, host)


@pytest.fixture()
def projector(store, host):
    return LeaderboardProjector(store, host)


def registry_for(store, user_id):
    return PlayerRegistry(store, StaticIdentity(user_id, canJoinRooms=True))


def engine_for(store, user_id):
    return RoundEngine(store, StaticIdentity(user_id, canJoinRooms=True))


@pytest.fixture()
def published_room(rooms):
    room = rooms.create_room('Friday Quiz', 4, owner_name='Host')
    for q in QUESTIONS:
        rooms.add_question(room['id'], q)
    return rooms.publish_room(room['id'])


@pytest.fixture()
def started_room(rooms, published_room):
    """Published room with two joined players, quiz started."""
    store = rooms.store
    alice = registry_for(store, 'guest:alice').join_room(published_room['code'], 'Alice')
    bob = registry_for(store, 'guest:bob').join_room(published_room['code'], 'Bob')
    room = rooms.start_quiz(published_room['id'])
    return {'room': room, 'alice': alice, 'bob': bob}
