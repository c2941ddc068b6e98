import os
import sys
import pytest

# Ensure the backend root (containing the `turntracker` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from turntracker import create_app, db
from turntracker.services.notifications.push import Notifier
from turntracker.services.sessions.errors import NotificationDeliveryError
from turntracker.services.sessions.turns import TurnService
from turntracker.storage import MemoryStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TURNTRACKER_STORE = 'sql'
    PUSH_ENABLED = False
    VAPID_PUBLIC_KEY = 'test-public-key'
    VAPID_PRIVATE_KEY = 'test-private-key'
    VAPID_SUBJECT = 'mailto:test@example.com'
    CORS_ORIGINS = ['http://localhost:5173']
    LOG_LEVEL = 'DEBUG'


class RecordingSender:
    """Push sender double that keeps every payload it is asked to deliver."""

    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, subscription, payload):
        if self.error is not None:
            raise self.error
        self.sent.append((subscription.steam_id, subscription.endpoint, payload))


@pytest.fixture()
def push_sender():
    return RecordingSender()


@pytest.fixture()
def flask_app(push_sender):
    application = create_app(TestConfig, push_sender=push_sender)
    with application.app_context():
        # Ensure models are imported so tables are created
        import turntracker.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def service(memory_store, push_sender):
    return TurnService(memory_store, Notifier(memory_store, push_sender))


@pytest.fixture()
def failing_sender():
    sender = RecordingSender()
    sender.error = NotificationDeliveryError('push service unavailable', status_code=503)
    return sender


@pytest.fixture()
def subscribe_payload():
    def _payload(steam_id, endpoint='https://push.example.com/abc', p256dh='p256dh-key', auth='auth-key'):
        return {
            'steamId': steam_id,
            'subscription': {
                'endpoint': endpoint,
                'expirationTime': None,
                'keys': {'p256dh': p256dh, 'auth': auth},
            },
        }
    return _payload
