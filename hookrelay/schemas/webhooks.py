from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class DeliveryResult(BaseModel):
    webhook_id: UUID
    status_code: int
    # payloads sent in the request body
    batch_size: int
    # payloads the subscriber accepted (0 unless the response was 2xx)
    delivered_count: int
    success: bool
    error: str | None = None
    runtime: float | None = None


class DispatchResult(BaseModel):
    event_types: list[str] = Field(default_factory=list)
    matched: list[UUID] = Field(default_factory=list)
    queued: dict[UUID, int] = Field(default_factory=dict)
    deliveries: list[DeliveryResult] = Field(default_factory=list)
    # still delivering when the dispatch deadline passed
    pending: list[UUID] = Field(default_factory=list)


class QueueStatusResponse(BaseModel):
    webhook_id: UUID
    pending: int
    oldest: datetime | None = None


class WebhookLogResponse(BaseModel):
    id: int
    status_code: int
    error: str | None = None
    runtime: float | None = None
    date_added: datetime


class WebhookLogListResponse(BaseModel):
    webhook_id: UUID
    logs: list[WebhookLogResponse]
    total: int
