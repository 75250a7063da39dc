"""Tests for the health and webhook inspection endpoints."""
from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from hookrelay.db.repositories.log_repo import WebhookLogRepository
from hookrelay.db.repositories.queue_repo import WebhookQueueRepository
from hookrelay.db.sync_session import get_sync_session
from hookrelay.main import create_app
from hookrelay.workers.tasks.webhook_tasks import deliver_webhook


@pytest.fixture
def client(db):
    with TestClient(create_app()) as c:
        yield c


class TestHealth:
    def test_liveness(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readiness(self, client):
        response = client.get("/api/v1/health/ready")
        body = response.json()
        assert body["success"] is True
        assert body["data"]["database"] is True
        assert body["data"]["event_types"] > 0


class TestWebhookEndpoints:
    def test_queue_status(self, client, make_webhook):
        webhook = make_webhook()
        with get_sync_session() as session:
            repo = WebhookQueueRepository(session)
            repo.add(webhook.id, '{"id": 1}')
            repo.add(webhook.id, '{"id": 2}')

        response = client.get(f"/api/v1/webhooks/{webhook.id}/queue")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["pending"] == 2
        assert data["oldest"] is not None

    def test_delivery_logs(self, client, make_webhook):
        webhook = make_webhook()
        with get_sync_session() as session:
            repo = WebhookLogRepository(session)
            repo.add(webhook.id, 200, runtime=0.1)
            repo.add(webhook.id, 0, error="ConnectError: refused")

        response = client.get(f"/api/v1/webhooks/{webhook.id}/logs", params={"limit": 10})

        data = response.json()["data"]
        assert data["total"] == 2
        assert [log["status_code"] for log in data["logs"]] == [0, 200]

    def test_unknown_webhook_is_404(self, client):
        response = client.get(f"/api/v1/webhooks/{uuid.uuid4()}/logs")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "WebhookNotFoundError"

    def test_schedule_delivery(self, client, make_webhook, monkeypatch):
        webhook = make_webhook()
        scheduled = []

        class FakeResult:
            id = "task-123"

        def fake_delay(webhook_id):
            scheduled.append(webhook_id)
            return FakeResult()

        monkeypatch.setattr(deliver_webhook, "delay", fake_delay)

        response = client.post(f"/api/v1/webhooks/{webhook.id}/deliver")

        assert response.status_code == 202
        assert response.json()["data"]["task_id"] == "task-123"
        assert scheduled == [str(webhook.id)]

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/v1/health", headers={"X-Request-ID": "abc"})
        assert response.headers["X-Request-ID"] == "abc"
