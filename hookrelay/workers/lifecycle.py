from __future__ import annotations

from celery.signals import worker_process_init, worker_process_shutdown

from hookrelay.utils.logging import get_logger

logger = get_logger(__name__)


@worker_process_init.connect
def init_worker_process(**kwargs):
    """Configure logging and the database engine when a worker process starts."""
    from hookrelay.config import get_settings
    from hookrelay.db.sync_session import init_sync_db
    from hookrelay.utils.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    init_sync_db()
    logger.info("Worker: process initialized")


@worker_process_shutdown.connect
def shutdown_worker_process(**kwargs):
    """Release the HTTP client and database engine on worker shutdown."""
    from hookrelay.db.sync_session import close_sync_db
    from hookrelay.workers.helpers import reset_webhook_service

    reset_webhook_service()
    close_sync_db()
    logger.info("Worker: process shut down")
