import json
import os
import sys
import pytest

# Ensure the backend root (containing the `duelrelay` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from duelrelay import create_app, lobby as app_lobby, socketio
from duelrelay.lobby import Lobby

NAMESPACE = '/ws'


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_NAMESPACE = NAMESPACE
    PROTOCOL_DIALECT = 'code'
    SWEEP_INTERVAL_SEC = 0


class Outbox:
    """Records what the lobby delivers, per connection."""

    def __init__(self):
        self.sent = []

    def __call__(self, sid, message):
        self.sent.append((sid, message))

    def for_sid(self, sid):
        return [m for s, m in self.sent if s == sid]

    def types(self, sid):
        return [m['type'] for m in self.for_sid(sid)]

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def outbox():
    return Outbox()


@pytest.fixture()
def lobby(outbox):
    return Lobby(deliver=outbox)


@pytest.fixture()
def match_lobby(outbox):
    return Lobby(deliver=outbox, dialect='match')


def _make_app(tmp_path, **overrides):
    attrs = dict(STATIC_DIR=str(tmp_path))
    attrs.update(overrides)
    config_class = type('_Config', (TestConfig,), attrs)
    return create_app(config_class)


@pytest.fixture()
def flask_app(tmp_path):
    application = _make_app(tmp_path)
    with application.app_context():
        yield application


@pytest.fixture()
def match_app(tmp_path):
    application = _make_app(tmp_path, PROTOCOL_DIALECT='match')
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def shared_lobby():
    return app_lobby


def received_messages(sio_client):
    """Decoded envelopes from the `message` event, in arrival order."""
    return [
        json.loads(pkt['args'])
        for pkt in sio_client.get_received(NAMESPACE)
        if pkt['name'] == 'message'
    ]


def send_envelope(sio_client, payload):
    sio_client.send(json.dumps(payload), namespace=NAMESPACE)


def _client_factory(application):
    clients = []

    def _connect():
        test_client = socketio.test_client(application, namespace=NAMESPACE)
        test_client.get_received(NAMESPACE)  # flush 'connected'
        clients.append(test_client)
        return test_client

    return _connect, clients


def _close_all(clients):
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def connect(flask_app):
    _connect, clients = _client_factory(flask_app)
    yield _connect
    _close_all(clients)


@pytest.fixture()
def match_connect(match_app):
    _connect, clients = _client_factory(match_app)
    yield _connect
    _close_all(clients)
