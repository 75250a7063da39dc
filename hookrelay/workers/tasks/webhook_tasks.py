from __future__ import annotations

import uuid

from hookrelay.utils.exceptions import WebhookNotFoundError
from hookrelay.utils.logging import get_logger
from hookrelay.workers.celery_app import celery_app
from hookrelay.workers.helpers import get_webhook_service

logger = get_logger(__name__)


@celery_app.task(name="webhooks.deliver")
def deliver_webhook(webhook_id: str) -> dict | None:
    """Drain one webhook's queue and POST it to the subscriber.

    Args:
        webhook_id: The subscription id as a string.

    Returns:
        The delivery result, or None if the subscription no longer exists.
    """
    service = get_webhook_service()
    try:
        result = service.deliver_by_id(uuid.UUID(webhook_id))
    except WebhookNotFoundError:
        logger.warning("Webhook removed before delivery", webhook_id=webhook_id)
        return None
    return result.model_dump(mode="json")


@celery_app.task(name="webhooks.process_queues")
def process_webhook_queues() -> dict:
    """Deliver pending payloads for every webhook with a non-empty queue."""
    deliveries = get_webhook_service().process_pending()
    return {
        "delivered": len(deliveries),
        "succeeded": sum(1 for d in deliveries if d.success),
    }
