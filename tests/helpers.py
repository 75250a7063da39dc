from __future__ import annotations

import json

import httpx
from sqlalchemy import func, select

from hookrelay.db.sync_session import get_sync_session


class HttpRecorder:
    """httpx.MockTransport handler that records every outbound request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text="ignored")

    def bodies(self) -> list:
        return [json.loads(r.content) for r in self.requests]


def count_rows(model, **filters) -> int:
    with get_sync_session() as session:
        query = select(func.count()).select_from(model)
        for column, value in filters.items():
            query = query.where(getattr(model, column) == value)
        return session.execute(query).scalar_one()
