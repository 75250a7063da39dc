from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from hookrelay.db.models import WebhookQueueEntry, WebhookSubscription


class WebhookRepository:
    """Read-only access to webhook subscriptions for the dispatch engine."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, webhook_id: uuid.UUID) -> WebhookSubscription | None:
        result = self.session.execute(
            select(WebhookSubscription).where(WebhookSubscription.id == webhook_id)
        )
        return result.scalar_one_or_none()

    def get_for_update(self, webhook_id: uuid.UUID) -> WebhookSubscription | None:
        """Load a subscription and lock its row until the transaction ends.

        The lock is FOR NO KEY UPDATE so queue inserts, whose foreign key check
        takes FOR KEY SHARE on this row, are not blocked by a running delivery.
        """
        result = self.session.execute(lock_subscription_query(webhook_id))
        return result.scalar_one_or_none()

    def find_by_event_types(
        self, event_types: Iterable[str]
    ) -> list[WebhookSubscription]:
        wanted = set(event_types)
        if not wanted:
            return []
        result = self.session.execute(
            select(WebhookSubscription)
            .where(WebhookSubscription.active.is_(True))
            .order_by(WebhookSubscription.created_at, WebhookSubscription.id)
        )
        return [
            wh for wh in result.scalars().all() if wanted.intersection(wh.events or [])
        ]

    def list_with_pending(self) -> list[WebhookSubscription]:
        """Active subscriptions that have at least one queued payload."""
        pending = select(WebhookQueueEntry.webhook_id).distinct()
        result = self.session.execute(
            select(WebhookSubscription)
            .where(
                WebhookSubscription.active.is_(True),
                WebhookSubscription.id.in_(pending),
            )
            .order_by(WebhookSubscription.created_at, WebhookSubscription.id)
        )
        return list(result.scalars().all())


def lock_subscription_query(webhook_id: uuid.UUID) -> Select:
    return (
        select(WebhookSubscription)
        .where(WebhookSubscription.id == webhook_id)
        .with_for_update(key_share=True)
    )
