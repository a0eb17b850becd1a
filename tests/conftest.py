import os
import sys
import pytest

# Ensure the project root (containing the `duelserver` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from duelserver import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOG_LEVEL = 'DEBUG'
    CORS_ALLOWED_ORIGINS = '*'
    STATIC_DIR = None
    SOCKETIO_NAMESPACE = '/'
    COUNTDOWN_START = 3
    COUNTDOWN_TICK_SEC = 0
    HIT_DAMAGE = 15


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def lobby(flask_app):
    return flask_app.extensions['duelserver']


def _sio_client(flask_app):
    return socketio.test_client(flask_app, flask_test_client=flask_app.test_client())


@pytest.fixture()
def sio_client(flask_app):
    test_client = _sio_client(flask_app)
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for extra connections; all are disconnected at teardown."""
    created = []

    def _make():
        test_client = _sio_client(flask_app)
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            test_client.disconnect()
        except Exception:
            pass
