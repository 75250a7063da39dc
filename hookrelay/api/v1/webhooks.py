from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, Request

from hookrelay.db.repositories.log_repo import WebhookLogRepository
from hookrelay.db.repositories.queue_repo import WebhookQueueRepository
from hookrelay.db.repositories.webhook_repo import WebhookRepository
from hookrelay.db.sync_session import get_sync_session
from hookrelay.schemas.common import APIResponse
from hookrelay.schemas.webhooks import (
    QueueStatusResponse,
    WebhookLogListResponse,
    WebhookLogResponse,
)
from hookrelay.utils.exceptions import WebhookNotFoundError

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.get("/{webhook_id}/queue", response_model=APIResponse)
def get_queue_status(request: Request, webhook_id: uuid.UUID) -> APIResponse:
    """Number of payloads waiting to be delivered to a webhook."""
    with get_sync_session() as session:
        if WebhookRepository(session).get(webhook_id) is None:
            raise WebhookNotFoundError(webhook_id)
        queue_repo = WebhookQueueRepository(session)
        oldest = queue_repo.find_by_webhook_id(webhook_id, 0, 1)
        data = QueueStatusResponse(
            webhook_id=webhook_id,
            pending=queue_repo.count_pending(webhook_id),
            oldest=oldest[0].date_added if oldest else None,
        )

    return APIResponse(
        success=True,
        request_id=getattr(request.state, "request_id", ""),
        data=data.model_dump(mode="json"),
    )


@router.get("/{webhook_id}/logs", response_model=APIResponse)
def list_delivery_logs(
    request: Request,
    webhook_id: uuid.UUID,
    limit: int = Query(default=100, ge=1, le=1000),
) -> APIResponse:
    """Most recent delivery attempts for a webhook, newest first."""
    with get_sync_session() as session:
        if WebhookRepository(session).get(webhook_id) is None:
            raise WebhookNotFoundError(webhook_id)
        logs = WebhookLogRepository(session).find_by_webhook_id(webhook_id, limit)

    data = WebhookLogListResponse(
        webhook_id=webhook_id,
        logs=[
            WebhookLogResponse(
                id=log.id,
                status_code=log.status_code,
                error=log.error,
                runtime=log.runtime,
                date_added=log.date_added,
            )
            for log in logs
        ],
        total=len(logs),
    )
    return APIResponse(
        success=True,
        request_id=getattr(request.state, "request_id", ""),
        data=data.model_dump(mode="json"),
    )


@router.post("/{webhook_id}/deliver", response_model=APIResponse, status_code=202)
def schedule_delivery(request: Request, webhook_id: uuid.UUID) -> APIResponse:
    """Schedule a delivery of the webhook's pending queue."""
    from hookrelay.workers.tasks.webhook_tasks import deliver_webhook

    with get_sync_session() as session:
        if WebhookRepository(session).get(webhook_id) is None:
            raise WebhookNotFoundError(webhook_id)

    task = deliver_webhook.delay(str(webhook_id))
    return APIResponse(
        success=True,
        request_id=getattr(request.state, "request_id", ""),
        data={"webhook_id": str(webhook_id), "task_id": task.id},
    )
