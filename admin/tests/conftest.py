"""
Shared pytest fixtures.

Key design decisions:
- TestConfig pins every setting to a constant (no os.environ lookups at import time).
- TESTING env var prevents the background status poller from starting.
- FakeSupervisor replaces Docker for session and route tests; the Docker
  supervisor itself is tested against a patched docker.from_env.
- Command dispatch and restart delays run synchronously in tests.
"""
import os
from unittest.mock import MagicMock, patch

import pytest

from serverwave_console.services.device_code import DEFAULT_PATTERN
from serverwave_console.services.status import SessionStatus
from serverwave_console.services.supervisor import LineEvent, Supervisor, SupervisorError


ADMIN_TOKEN = 'test-secret-token'


class TestConfig:
    SECRET_KEY = 'pytest-secret'
    SESSION_COOKIE_HTTPONLY = True
    PERMANENT_SESSION_LIFETIME = 3600

    ADMIN_TOKEN = ADMIN_TOKEN
    LOG_LEVEL = 'DEBUG'
    CONTAINER_NAME_TEMPLATE = 'serverwave-{session_id}'
    COMMAND_FALLBACK_EXEC = 'mc-send-to-console'

    LOG_FETCH_LIMIT = 500
    STREAM_TAIL = 0
    STREAM_MAX_RECONNECTS = 1
    STREAM_RECONNECT_DELAY = 0

    DEVICE_CODE_WINDOW = 30
    DEVICE_CODE_PATTERN = DEFAULT_PATTERN
    SCROLL_TOLERANCE = 50
    HISTORY_LIMIT = 100
    MAX_NOTICES = 20

    STATUS_POLL_SECONDS = 0
    RESTART_DELAY = 0


class FakeSupervisor(Supervisor):
    """In-memory supervisor recording every call."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.recent = {}
        self.statuses = {}
        self.subscriptions = []   # dicts: session_id, callback, cancelled
        self.submitted = []
        self.actions = []
        self.fail_fetch = False
        self.fail_subscribe = False
        self.fail_submit = False
        self.fail_status = False
        self.fail_action = False

    def fetch_recent_lines(self, session_id, limit):
        if self.fail_fetch:
            raise SupervisorError('fetch failed')
        return list(self.recent.get(session_id, []))[-limit:]

    def subscribe_to_lines(self, session_id, callback):
        if self.fail_subscribe:
            raise SupervisorError('subscribe failed')
        sub = {'session_id': session_id, 'callback': callback, 'cancelled': False}
        self.subscriptions.append(sub)

        def cancel():
            sub['cancelled'] = True
        return cancel

    def active(self, session_id):
        return [s for s in self.subscriptions
                if s['session_id'] == session_id and not s['cancelled']]

    def emit(self, session_id, *lines):
        for line in lines:
            for sub in self.active(session_id):
                sub['callback'](LineEvent(session_id, line))

    def submit_command(self, session_id, text):
        if self.fail_submit:
            raise SupervisorError('stdin closed')
        self.submitted.append((session_id, text))

    def get_status(self, session_id):
        if self.fail_status:
            raise SupervisorError('docker unavailable')
        return self.statuses.get(session_id, SessionStatus.RUNNING)

    def start_server(self, session_id):
        if self.fail_action:
            raise SupervisorError('cannot start')
        self.actions.append(('start', session_id))
        self.statuses[session_id] = SessionStatus.RUNNING

    def stop_server(self, session_id):
        if self.fail_action:
            raise SupervisorError('cannot stop')
        self.actions.append(('stop', session_id))
        self.statuses[session_id] = SessionStatus.STOPPED


def run_now(fn, *args):
    fn(*args)


def no_sleep(seconds):
    pass


@pytest.fixture()
def cfg():
    return TestConfig()


@pytest.fixture(scope='session')
def fake_supervisor():
    return FakeSupervisor()


@pytest.fixture(autouse=True)
def _reset_fake_supervisor(fake_supervisor):
    fake_supervisor.reset()
    yield


@pytest.fixture()
def supervisor(fake_supervisor):
    return fake_supervisor


@pytest.fixture()
def make_session(cfg, supervisor):
    """Factory for ConsoleSession objects wired to the fake supervisor."""
    from serverwave_console.services.session import ConsoleSession

    def _make(session_id='alpha', **kwargs):
        kwargs.setdefault('dispatch', run_now)
        kwargs.setdefault('sleep', no_sleep)
        return ConsoleSession(session_id, supervisor, cfg, **kwargs)
    return _make


@pytest.fixture(scope='session')
def app(fake_supervisor):
    """
    Session-scoped Flask test application.

    Background pollers are suppressed via TESTING env var.
    """
    os.environ['TESTING'] = '1'

    from serverwave_console import create_app
    flask_app = create_app(config_class=TestConfig, supervisor=fake_supervisor)
    flask_app.console_sessions.dispatch = run_now
    flask_app.console_sessions.sleep = no_sleep

    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture()
def client(app):
    """Flask test client (unauthenticated)."""
    yield app.test_client()
    _detach_all(app)


@pytest.fixture()
def auth_client(app):
    """Flask test client pre-authenticated as admin."""
    c = app.test_client()
    with c.session_transaction() as sess:
        sess['logged_in'] = True
    yield c
    _detach_all(app)


def _detach_all(app):
    registry = app.console_sessions
    for console in registry.sessions():
        registry.detach(console.session_id)


def _make_mock_docker():
    """Return a pre-configured docker.from_env() mock."""
    container = MagicMock()
    container.status = 'running'
    container.attrs = {'State': {'Status': 'running', 'ExitCode': 0, 'Error': '', 'OOMKilled': False}}
    container.logs.return_value = b'[Server] Starting\n[Server] Started\n'
    client = MagicMock()
    client.containers.get.return_value = container
    return client, container


@pytest.fixture()
def mock_docker():
    """Patch docker.from_env for a single test, returns (client_mock, container_mock)."""
    client, container = _make_mock_docker()
    with patch('docker.from_env', return_value=client):
        yield client, container
