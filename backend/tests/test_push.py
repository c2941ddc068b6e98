import json
from unittest import mock

import pytest
from pywebpush import WebPushException

from turntracker.models import Subscription
from turntracker.services.notifications.push import Notifier, WebPushSender
from turntracker.services.sessions.errors import NotificationDeliveryError


def _subscription():
    return Subscription(steam_id='bob', endpoint='https://push.example.com/abc', p256dh='key', auth='secret')


def test_notify_without_subscription_is_noop(memory_store, push_sender):
    Notifier(memory_store, push_sender).notify('nobody', 'T', 'B', 'tag', 1)
    assert push_sender.sent == []


def test_notify_builds_payload(memory_store, push_sender):
    memory_store.save_subscription('bob', 'https://push.example.com/abc', 'key', 'secret', None)
    Notifier(memory_store, push_sender).notify('bob', 'Title', 'Body', 'turn-complete', 7)
    assert len(push_sender.sent) == 1
    assert json.loads(push_sender.sent[0][2]) == {
        'title': 'Title', 'body': 'Body', 'tag': 'turn-complete', 'gameId': 7,
    }


def test_notify_swallows_store_errors(push_sender):
    store = mock.Mock()
    store.get_subscription.side_effect = RuntimeError('db down')
    # Must not raise
    Notifier(store, push_sender).notify('bob', 'T', 'B', 'tag', 1)


def test_webpush_sender_passes_vapid_details():
    sender = WebPushSender('private-key', 'mailto:ops@example.com', ttl=60)
    with mock.patch('turntracker.services.notifications.push.webpush') as webpush:
        sender.send(_subscription(), '{"a": 1}')
    kwargs = webpush.call_args.kwargs
    assert kwargs['subscription_info'] == {
        'endpoint': 'https://push.example.com/abc',
        'keys': {'p256dh': 'key', 'auth': 'secret'},
    }
    assert kwargs['data'] == '{"a": 1}'
    assert kwargs['vapid_private_key'] == 'private-key'
    assert kwargs['vapid_claims'] == {'sub': 'mailto:ops@example.com'}
    assert kwargs['ttl'] == 60


def test_webpush_sender_wraps_errors():
    sender = WebPushSender('private-key', 'mailto:ops@example.com')
    response = mock.Mock(status_code=410)
    with mock.patch(
        'turntracker.services.notifications.push.webpush',
        side_effect=WebPushException('Push failed: 410 Gone', response=response),
    ):
        with pytest.raises(NotificationDeliveryError) as excinfo:
            sender.send(_subscription(), '{}')
    assert excinfo.value.status_code == 410
    assert excinfo.value.endpoint_gone
