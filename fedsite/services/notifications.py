"""Owner notifications delivered through the federation's Notification Service."""

from __future__ import annotations

from typing import Any

import redis
import requests
from flask import current_app
from rq import Queue

NOTIFICATION_QUEUE = 'notifications'


def get_notification_queue() -> Queue | None:
    """Return the RQ queue for notifications, or None when Redis is not configured."""
    redis_url = current_app.config.get('REDIS_URL')
    if not redis_url:
        return None
    return Queue(NOTIFICATION_QUEUE, connection=redis.from_url(redis_url))


def build_notification(
    owner_id: str,
    title: str,
    message: str,
    action_url: str | None = None,
    category: str = 'success',
) -> dict[str, Any]:
    return {
        'userId': str(owner_id),
        'type': 'system',
        'category': category,
        'title': title,
        'message': message,
        'actionUrl': action_url,
        'channels': {'inApp': True, 'email': True, 'sms': False, 'push': True},
    }


def notify_owner(
    owner_id: str,
    title: str,
    message: str,
    action_url: str | None = None,
    category: str = 'success',
):
    """
    Queue a notification for a microsite owner.

    Returns the RQ job, or None when delivery was only logged. Queue failures
    never propagate to the caller.
    """
    payload = build_notification(owner_id, title, message, action_url, category)
    queue = get_notification_queue()
    if queue is None:
        current_app.logger.info(f"Notification for {owner_id}: {title} - {message}")
        return None

    from fedsite.services.jobs import deliver_notification_job

    try:
        return queue.enqueue(deliver_notification_job, payload)
    except redis.exceptions.RedisError as e:
        current_app.logger.error(f"Failed to queue notification for {owner_id}: {e}")
        return None


def send_notification(payload: dict[str, Any]) -> bool:
    """POST a notification payload to the Notification Service."""
    url = current_app.config.get('NOTIFICATION_SERVICE_URL')
    if not url:
        current_app.logger.warning("NOTIFICATION_SERVICE_URL not set; dropping notification")
        return False

    response = requests.post(
        url,
        json=payload,
        timeout=current_app.config.get('NOTIFICATION_TIMEOUT', 10),
    )
    response.raise_for_status()
    return True


__all__ = ['NOTIFICATION_QUEUE', 'get_notification_queue', 'notify_owner', 'send_notification', 'build_notification']
