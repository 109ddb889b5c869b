"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ============================================================
# Assistant Schemas
# ============================================================

class IntentRequest(BaseModel):
    """Schema for a tagged intent request."""

    intent: str = Field(..., min_length=1, max_length=100)
    payload: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Schema for the uniform failure envelope."""

    success: bool = False
    error: dict[str, Any] = Field(
        ...,
        json_schema_extra={
            "example": {"kind": "not-found", "message": "Expense not found", "details": {}}
        },
    )


# ============================================================
# Health Check Schemas
# ============================================================

class ServiceHealth(BaseModel):
    """Schema for individual service health."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime
    version: str
    services: dict[str, ServiceHealth]
