"""Health-related Pydantic schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Overall service status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Ping response with per-dependency checks."""

    status: HealthStatus = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    timestamp: datetime = Field(..., description="Current server time (UTC, ISO 8601)")
    version: str = Field("1.0.0", description="API version")
    checks: dict[str, str] = Field(
        default_factory=dict,
        description="Dependency results, e.g. {'database': 'ok', 'completion_sweep': 'running'}"
    )
