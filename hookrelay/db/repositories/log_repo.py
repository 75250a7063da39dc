from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from hookrelay.db.models import WebhookLog, utcnow


class WebhookLogRepository:
    """Delivery history. Rows are never updated or deleted."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(
        self,
        webhook_id: uuid.UUID,
        status_code: int,
        error: str | None = None,
        runtime: float | None = None,
    ) -> WebhookLog:
        log = WebhookLog(
            webhook_id=webhook_id,
            status_code=status_code,
            error=error,
            runtime=runtime,
            date_added=utcnow(),
        )
        self.session.add(log)
        self.session.flush()
        return log

    def find_by_webhook_id(
        self, webhook_id: uuid.UUID, limit: int = 100
    ) -> list[WebhookLog]:
        """Return the most recent delivery attempts, newest first."""
        result = self.session.execute(
            select(WebhookLog)
            .where(WebhookLog.webhook_id == webhook_id)
            .order_by(WebhookLog.date_added.desc(), WebhookLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
