import os
import sys
import pytest
from flask import g

# Ensure the backend root (containing the `flappy` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from flappy import create_app, db, socketio
from fakes import Recorder


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ALLOWED_ORIGINS = ['http://localhost']
    SOCKETIO_NAMESPACE = '/'
    GOOGLE_CLIENT_ID = 'test-client'
    GOOGLE_AUTHORIZE_URL = 'https://idp.example/authorize'
    PENDING_GAME_TTL_SEC = 120
    PENDING_SWEEP_INTERVAL_SEC = 0
    LEADERBOARD_LIMIT = 10
    USERNAME_MIN_LENGTH = 3
    USERNAME_MAX_LENGTH = 64


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import flappy.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def hub(flask_app):
    return flask_app.extensions['flappy']


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def make_account(flask_app):
    from flappy.models import User

    def _make(name, wins=0):
        user = User(google_id=f'g-{name}', display_name=name, custom_username=name, wins=wins)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture()
def connect_as(flask_app):
    """Open a Socket.IO test client, logged in as ``account`` when given."""
    opened = []

    def _connect(account=None):
        http = flask_app.test_client()
        if account is not None:
            with http.session_transaction() as sess:
                sess['_user_id'] = str(account.id)
                sess['_fresh'] = True
        # The fixture app context is shared by every handshake; drop the
        # principal Flask-Login cached for the previous client
        g.pop('_login_user', None)
        sio = socketio.test_client(flask_app, flask_test_client=http)
        assert sio.is_connected()
        sio.get_received()
        opened.append(sio)
        return sio

    yield _connect
    for sio in opened:
        try:
            if sio.is_connected():
                sio.disconnect()
        except Exception:
            pass


@pytest.fixture()
def sio_client(connect_as):
    return connect_as()
