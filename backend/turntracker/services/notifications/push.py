import json
import logging

from pywebpush import WebPushException, webpush

from turntracker.services.sessions.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = 'Civilization VI Turn Tracker'


class WebPushSender:
    """Deliver a payload to a browser push endpoint using VAPID."""

    def __init__(self, vapid_private_key, vapid_subject, ttl=86400, timeout=10):
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl
        self.timeout = timeout

    def send(self, subscription, payload: str) -> None:
        try:
            webpush(
                subscription_info=subscription.to_push_info(),
                data=payload,
                vapid_private_key=self.vapid_private_key,
                # pywebpush fills in aud/exp on the dict it is given
                vapid_claims={'sub': self.vapid_subject},
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as exc:
            response = getattr(exc, 'response', None)
            status_code = response.status_code if response is not None else None
            raise NotificationDeliveryError(str(exc), status_code=status_code) from exc


class NullPushSender:
    """Used when push is disabled; drops every message."""

    def send(self, subscription, payload: str) -> None:
        logger.debug(f"[push-disabled] steam_id={subscription.steam_id}")


class Notifier:
    def __init__(self, store, sender):
        self.store = store
        self.sender = sender

    def notify(self, steam_id, title, body, tag, game_id) -> None:
        """Send an alert to a player if they registered a push target.

        Fire and forget: a missing subscription is a no-op and any failure
        while looking it up or delivering is logged and dropped, so callers
        cannot tell a sent notification from a failed one.
        """
        try:
            subscription = self.store.get_subscription(steam_id)
            if subscription is None:
                logger.debug(f"[push-skip] steam_id={steam_id} no subscription")
                return
            payload = json.dumps({'title': title, 'body': body, 'tag': tag, 'gameId': game_id})
            self.sender.send(subscription, payload)
            logger.info(f"[push-sent] steam_id={steam_id} tag={tag} game={game_id}")
        except NotificationDeliveryError as exc:
            if exc.endpoint_gone:
                logger.warning(f"[push-expired] steam_id={steam_id} status={exc.status_code}")
            else:
                logger.warning(f"[push-fail] steam_id={steam_id} error={exc}")
        except Exception as exc:
            logger.warning(f"[push-fail] steam_id={steam_id} error={exc!r}")
