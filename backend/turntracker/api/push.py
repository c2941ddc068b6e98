from flask import Blueprint, jsonify, current_app

from turntracker import get_turn_service
from turntracker.api.games import json_body
from turntracker.services.sessions.errors import ValidationError


push = Blueprint('push', __name__)


@push.route('/vapid-public-key', methods=['GET'])
def vapid_public_key():
    return jsonify({'publicKey': current_app.config.get('VAPID_PUBLIC_KEY')})


@push.route('/subscribe', methods=['POST'])
def subscribe():
    data = json_body()
    steam_id = data.get('steamId')
    subscription = data.get('subscription')
    if not steam_id or not subscription:
        raise ValidationError('Missing required fields')

    # Browser PushSubscription.toJSON(): {endpoint, expirationTime, keys: {p256dh, auth}}
    keys = subscription.get('keys') if isinstance(subscription, dict) else None
    if not isinstance(keys, dict) or not subscription.get('endpoint') or not keys.get('p256dh') or not keys.get('auth'):
        raise ValidationError('Invalid subscription format')

    get_turn_service().save_subscription(steam_id, subscription['endpoint'], keys['p256dh'], keys['auth'])
    return jsonify({'message': 'Subscription saved'}), 201
