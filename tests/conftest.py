from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

import httpx
import pytest

from hookrelay.config import Settings
from hookrelay.db.models import Base, WebhookSubscription
from hookrelay.db.sync_session import (
    close_sync_db,
    get_engine,
    get_sync_session,
    init_sync_db,
)
from hookrelay.events import EventTypeRegistry
from hookrelay.services.webhook_service import WebhookService
from tests.helpers import HttpRecorder


@pytest.fixture
def settings() -> Settings:
    return Settings(
        WEBHOOK_TIMEOUT=2.0,
        WEBHOOK_MAX_WORKERS=4,
        WEBHOOK_REGISTRY_RETRIES=2,
    )


@pytest.fixture
def db(tmp_path):
    """File-backed SQLite database with the webhook tables."""
    close_sync_db()
    init_sync_db(f"sqlite:///{tmp_path / 'hookrelay.db'}")
    Base.metadata.create_all(get_engine())
    yield
    close_sync_db()


@pytest.fixture
def registry() -> EventTypeRegistry:
    return EventTypeRegistry.from_mapping(
        {
            "form.submitted": "Form submitted",
            "contact.created": "Contact created",
            "email.opened": "Email opened",
        }
    )


@pytest.fixture
def http_recorder() -> HttpRecorder:
    return HttpRecorder()


@pytest.fixture
def service(db, registry, http_recorder, settings):
    client = httpx.Client(transport=httpx.MockTransport(http_recorder.handler))
    svc = WebhookService(registry, http_client=client, settings=settings)
    yield svc
    svc.close()
    client.close()


@pytest.fixture
def make_webhook(db):
    """Create and commit a webhook subscription."""

    def _make(
        url: str = "https://hooks.example.com/endpoint",
        events: Iterable[str] = ("form.submitted",),
        active: bool = True,
    ) -> WebhookSubscription:
        with get_sync_session() as session:
            webhook = WebhookSubscription(
                url=url,
                events=list(events),
                active=active,
                created_at=datetime.now(UTC),
            )
            session.add(webhook)
            session.flush()
        return webhook

    return _make
