import os
import sys
import pytest

# Ensure the backend root (containing the `subathon` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from subathon import create_app, get_runtime, socketio
from subathon.services.timer.engine import TimerEngine
from subathon.services.timer.scheduler import TaskHandle

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ManualScheduler:
    """Collects scheduled work; tests decide when it runs."""

    def __init__(self):
        self.timers = []
        self.spawned = []
        self.slept = []

    def call_later(self, delay, fn):
        handle = TaskHandle()
        self.timers.append((delay, fn, handle))
        return handle

    def spawn(self, fn):
        self.spawned.append(fn)

    def sleep(self, seconds):
        self.slept.append(seconds)

    def fire_timers(self):
        pending, self.timers = self.timers, []
        for _delay, fn, handle in pending:
            if not handle.cancelled:
                fn()

    def run_spawned(self):
        pending, self.spawned = self.spawned, []
        for fn in pending:
            fn()

    def run_all(self):
        while self.timers or self.spawned:
            self.fire_timers()
            self.run_spawned()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def engine(clock):
    return TimerEngine(clock=clock)


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def state_file(tmp_path):
    return str(tmp_path / 'timer-state.json')


@pytest.fixture()
def flask_app(state_file, scheduler):
    class TestConfig:
        TESTING = True
        SECRET_KEY = 'test-secret'
        CORS_ORIGINS = '*'
        STATE_FILE = state_file
        PERSIST_DEBOUNCE_MS = 120
        DEFAULT_SECONDS_PER_SUB = 300
        TICK_INTERVAL_SEC = 1.0
        STREAMLABS_TOKEN = None
        STREAMLABS_ACCOUNT = 'twitch_account'
        AUTOSTART_RUNTIME = False

    application = create_app(TestConfig, scheduler=scheduler)
    with application.app_context():
        yield application


@pytest.fixture()
def runtime(flask_app):
    return get_runtime(flask_app)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass


def sub_event(sub_type='resub', plan='1000', event_id=None, **message):
    body = {'sub_type': sub_type, 'sub_plan': plan}
    body.update(message)
    if event_id:
        body['_id'] = event_id
    return {'type': 'subscription', 'for': 'twitch_account', 'message': [body]}


def bits_event(amount, name='cheerer', event_id=None):
    body = {'name': name, 'amount': amount}
    if event_id:
        body['_id'] = event_id
    return {'type': 'bits', 'for': 'twitch_account', 'message': [body]}


def bulk_gift_event(gifter, count, plan='1000', event_id=None):
    body = {'gifter': gifter, 'amount': count, 'sub_plan': plan}
    if event_id:
        body['_id'] = event_id
    return {'type': 'subMysteryGift', 'for': 'twitch_account', 'message': [body]}
