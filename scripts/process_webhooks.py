"""Deliver every pending webhook queue once.

Useful from cron when no Celery beat is running:

    python scripts/process_webhooks.py
"""
from __future__ import annotations

from hookrelay.config import get_settings
from hookrelay.db.sync_session import close_sync_db, init_sync_db
from hookrelay.events import build_registry
from hookrelay.services.webhook_service import WebhookService
from hookrelay.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def process_webhooks() -> int:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    init_sync_db()

    service = WebhookService(build_registry(settings), settings=settings)
    try:
        deliveries = service.process_pending()
    finally:
        service.close()
        close_sync_db()

    failed = [d for d in deliveries if not d.success]
    logger.info(
        "Webhook processing finished",
        delivered=len(deliveries),
        failed=len(failed),
    )
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(process_webhooks())
