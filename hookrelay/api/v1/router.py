from __future__ import annotations

from fastapi import APIRouter

from hookrelay.api.v1.health import router as health_router
from hookrelay.api.v1.webhooks import router as webhooks_router

v1_router = APIRouter()

v1_router.include_router(health_router)
v1_router.include_router(webhooks_router)
