from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from hookrelay.events import build_registry
from hookrelay.schemas.webhooks import DispatchResult
from hookrelay.services.webhook_service import WebhookService
from hookrelay.utils.exceptions import DispatchError
from hookrelay.utils.logging import get_logger

logger = get_logger(__name__)

_webhook_service: WebhookService | None = None


def get_webhook_service() -> WebhookService:
    """Return the process-wide webhook service, creating it on first use."""
    global _webhook_service
    if _webhook_service is None:
        _webhook_service = WebhookService(build_registry())
    return _webhook_service


def set_webhook_service(service: WebhookService | None) -> None:
    global _webhook_service
    _webhook_service = service


def reset_webhook_service() -> None:
    global _webhook_service
    if _webhook_service is not None:
        _webhook_service.close()
    _webhook_service = None


def dispatch_event(
    event_types: Iterable[str] | str,
    payload: Any,
    deliver_immediately: bool = False,
    schedule: bool = False,
) -> DispatchResult:
    """Queue an event for matching webhooks.

    By default the payload only waits in the queue and is delivered with the
    rest of the batch by ``webhooks.process_queues``. ``deliver_immediately``
    delivers in-process before returning; ``schedule`` instead sends one
    ``webhooks.deliver`` task per queued webhook.
    """
    service = get_webhook_service()
    try:
        result = service.dispatch(
            event_types, payload, deliver_immediately=deliver_immediately
        )
    except DispatchError as e:
        if schedule and not deliver_immediately:
            schedule_deliveries(e.result)
        raise

    if schedule and not deliver_immediately:
        schedule_deliveries(result)
    return result


def schedule_deliveries(result: DispatchResult) -> int:
    """Send one Celery delivery task per queued webhook."""
    from hookrelay.workers.tasks.webhook_tasks import deliver_webhook

    for webhook_id in result.queued:
        deliver_webhook.delay(str(webhook_id))

    if result.queued:
        logger.info(
            "Webhook deliveries scheduled",
            event_types=result.event_types,
            count=len(result.queued),
        )
    return len(result.queued)
