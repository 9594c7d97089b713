import json
import logging
from dataclasses import dataclass
from datetime import datetime

import requests
from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid
from py_vapid.utils import b64urlencode
from pywebpush import webpush, WebPushException

import lifecycle
import safe_db
from errors import NotificationSendFailed
from timeutils import parse_hhmm

GONE_STATUSES = (404, 410)

REMINDER_PAYLOAD = {
    'title': 'Time Tracker Reminder',
    'body': 'Did you forget to clock out?',
    'icon': '/icon-192.png',
}


@dataclass
class PushResult:
    endpoint: str
    ok: bool
    gone: bool = False
    error: str = None


def generate_vapid_keys():
    """(public, private) as base64url strings, the form browsers and pywebpush accept."""
    vapid = Vapid()
    vapid.generate_keys()
    private_value = vapid.private_key.private_numbers().private_value.to_bytes(32, 'big')
    public_point = vapid.public_key.public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )
    return b64urlencode(public_point), b64urlencode(private_value)


def ensure_vapid_keys(public_key=None, private_key=None):
    if public_key and private_key:
        return public_key, private_key
    public_key, private_key = safe_db.get_vapid_keys()
    if not public_key or not private_key:
        public_key, private_key = generate_vapid_keys()
        safe_db.store_vapid_keys(public_key, private_key)
        logging.info("Generated new VAPID keys")
    return public_key, private_key


class PushSender:
    def __init__(self, public_key, private_key, subject, timeout=10):
        self.public_key = public_key
        self.private_key = private_key
        self.subject = subject
        self.timeout = timeout

    def send(self, subscription, payload):
        subscription_info = {'endpoint': subscription.endpoint, 'keys': json.loads(subscription.keys)}
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self.private_key,
                vapid_claims={'sub': self.subject},
                timeout=self.timeout,
            )
            return PushResult(endpoint=subscription.endpoint, ok=True)
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            if status in GONE_STATUSES:
                return PushResult(endpoint=subscription.endpoint, ok=False, gone=True, error=str(e))
            return self._failed(subscription, e)
        except requests.RequestException as e:
            return self._failed(subscription, e)

    def _failed(self, subscription, error):
        failure = NotificationSendFailed(f"Push error: {error}")
        logging.warning(f"{failure.code} for {subscription.endpoint}: {error}")
        return PushResult(endpoint=subscription.endpoint, ok=False, error=failure.message)

    def notify_user(self, user_id, payload):
        results = []
        for subscription in safe_db.get_subscriptions(user_id):
            result = self.send(subscription, payload)
            if result.gone:
                logging.info(f"Push endpoint gone, removing subscription {result.endpoint}")
                safe_db.delete_subscription(result.endpoint)
            results.append(result)
        return results


def reminder_due(reminder_time, now, catchup_minutes=30):
    """Due from the reminder minute until the catch-up window closes."""
    start = parse_hhmm(reminder_time, 'reminder_time')
    current = now.hour * 60 + now.minute
    return start <= current < start + max(catchup_minutes, 1)


def check_reminders(sender, now=None, catchup_minutes=30):
    now = now or datetime.now()
    today = now.strftime('%Y-%m-%d')
    results = []

    for user, reminder_time in safe_db.users_with_reminders():
        try:
            if not reminder_due(reminder_time, now, catchup_minutes):
                continue
            if lifecycle.current_state(user.id, today) != lifecycle.OPEN:
                continue
            if not safe_db.get_subscriptions(user.id):
                continue
            if not safe_db.claim_trigger_mark('reminder', today, user.id):
                continue
            results.extend(sender.notify_user(user.id, REMINDER_PAYLOAD))
        except Exception:
            logging.exception(f"Reminder check failed for user {user.id}")

    if results:
        logging.info(f"Reminders: {sum(r.ok for r in results)} delivered, {sum(not r.ok for r in results)} failed")
    return results
