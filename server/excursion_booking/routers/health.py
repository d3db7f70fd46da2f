"""RPC ping with database and completion sweep checks."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import check_database
from ..core.dependencies import DatabaseSession
from ..core.observability import SERVICE_NAME
from ..core.timeutils import utc_now
from ..schemas.health import HealthResponse, HealthStatus
from ..workers.manager import worker_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


def _sweep_state() -> str:
    if not settings.workers_enabled:
        return "disabled"
    running = worker_manager.get_worker_status().get("completion_sweep", False)
    return "running" if running else "stopped"


@router.post("/ping", response_model=HealthResponse)
async def health_ping(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Report service status.

    The service is degraded when the database does not answer. The completion
    sweep state is informational only.
    """
    database_ok = await check_database(db)
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY if database_ok else HealthStatus.DEGRADED,
        service=SERVICE_NAME,
        timestamp=utc_now(),
        checks={
            "database": "ok" if database_ok else "unavailable",
            "completion_sweep": _sweep_state(),
        },
    )

    logger.debug(
        "Health ping",
        extra={"status": response_data.status.value, "checks": response_data.checks}
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
