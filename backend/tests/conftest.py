import heapq
import itertools
import os
import sys
import pytest

# Ensure the backend root (containing the `fingerpicker` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from fingerpicker import create_app, socketio
from fingerpicker.services.picker.scheduler import TimerHandle


class ManualScheduler:
    """Virtual clock: timers fire only when a test calls advance()."""

    def __init__(self, start=1000.0):
        self.clock = start
        self._queue = []
        self._seq = itertools.count()

    def now(self):
        return self.clock

    def call_later(self, delay, callback):
        handle = TimerHandle(callback, delay)
        heapq.heappush(self._queue, (self.clock + delay, next(self._seq), handle))
        return handle

    def advance(self, seconds):
        target = self.clock + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle = heapq.heappop(self._queue)
            self.clock = max(self.clock, due)
            handle.fire()
        self.clock = target

    @property
    def pending(self):
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    COUNTDOWN_MS = 2000
    SPIN_MS = 2000
    ELIMINATION_MS = 500
    DEFAULT_WINNER_COUNT = 1
    WINNER_COUNT_FALLBACK_MAX = 10
    FREEZE_POLICY = 'stable_delay'
    RANDOM_SEED = 7


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def flask_app(scheduler):
    application = create_app(TestConfig, scheduler=scheduler)
    with application.app_context():
        yield application
        application.extensions['fingerpicker.tables'].close_all()


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
