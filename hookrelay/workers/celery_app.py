from __future__ import annotations

from celery import Celery

from hookrelay.config import get_settings

settings = get_settings()

celery_app = Celery(
    "hookrelay",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["hookrelay.workers.tasks.webhook_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    beat_schedule={
        "process-webhook-queues": {
            "task": "webhooks.process_queues",
            "schedule": float(settings.WEBHOOK_PROCESS_INTERVAL),
        },
    },
)

# Register worker startup signals (sync DB init, logging)
import hookrelay.workers.lifecycle  # noqa: F401, E402
