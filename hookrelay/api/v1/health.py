from __future__ import annotations

from fastapi import APIRouter, Request

from hookrelay.db.sync_session import check_db_health
from hookrelay.schemas.common import APIResponse, HealthResponse, ReadinessResponse

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", response_model=HealthResponse)
def liveness(request: Request) -> HealthResponse:
    """Liveness probe. Returns 200 if the process is alive."""
    settings = request.app.state.settings
    return HealthResponse(
        status="alive",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )


@router.get("/ready", response_model=APIResponse)
def readiness(request: Request) -> APIResponse:
    """Readiness probe. Checks that the database is reachable."""
    checks = ReadinessResponse(
        database=check_db_health(),
        event_types=len(request.app.state.event_types),
    )
    return APIResponse(
        success=checks.database,
        request_id="healthcheck",
        data=checks.model_dump(),
    )
