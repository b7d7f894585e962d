import os
import random
import sys
import pytest

# Ensure the backend root (containing the `courtroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from courtroom import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    SHOW_SOLUTION_PENALTY = 10
    SUCCESS_MESSAGE_SEC = 2


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import courtroom.models  # noqa: F401
        db.create_all()
        yield application
        from courtroom.services import runner
        from courtroom import socketio_events
        runner.teardown_all()
        socketio_events._sid_to_ctx.clear()
        socketio_events._owner_count.clear()
        socketio_events._end_deadline.clear()
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


@pytest.fixture()
def seeded(flask_app):
    from courtroom.seed import seed_tasks, seed_users
    seed_users()
    seed_tasks()
    return flask_app


class FakeSpawner:
    """Collects timer workers instead of running them; tests run them by hand."""

    def __init__(self):
        self.workers = []

    def __call__(self, target, *args):
        self.workers.append((target, args))

    def run_last(self):
        target, args = self.workers[-1]
        target(*args)


@pytest.fixture()
def spawner():
    return FakeSpawner()


@pytest.fixture()
def rng():
    return random.Random(1234)
