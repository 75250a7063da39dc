from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from hookrelay.db.models import WebhookQueueEntry, utcnow


class WebhookQueueRepository:
    """Append-only queue of serialized payloads awaiting delivery."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(
        self,
        webhook_id: uuid.UUID,
        payload: str,
        date_added: datetime | None = None,
    ) -> WebhookQueueEntry:
        entry = WebhookQueueEntry(
            webhook_id=webhook_id,
            payload=payload,
            date_added=date_added or utcnow(),
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def find_by_webhook_id(
        self, webhook_id: uuid.UUID, start: int = 0, limit: int = 1000
    ) -> list[WebhookQueueEntry]:
        """Return queued entries oldest first, ties broken by insertion order."""
        result = self.session.execute(
            select(WebhookQueueEntry)
            .where(WebhookQueueEntry.webhook_id == webhook_id)
            .order_by(WebhookQueueEntry.date_added, WebhookQueueEntry.id)
            .offset(start)
            .limit(limit)
        )
        return list(result.scalars().all())

    def count_pending(self, webhook_id: uuid.UUID) -> int:
        result = self.session.execute(
            select(func.count())
            .select_from(WebhookQueueEntry)
            .where(WebhookQueueEntry.webhook_id == webhook_id)
        )
        return result.scalar_one()

    def delete_entries(self, entry_ids: Sequence[int]) -> int:
        if not entry_ids:
            return 0
        result = self.session.execute(
            delete(WebhookQueueEntry).where(WebhookQueueEntry.id.in_(entry_ids))
        )
        self.session.flush()
        return result.rowcount
