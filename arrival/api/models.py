"""
Pydantic models for health proxy responses.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class HealthResponse(BaseModel):
    """Liveness of the proxy itself."""

    ok: bool = True


class UpstreamErrorResponse(BaseModel):
    """Body returned when the backend health check cannot be relayed."""

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"status": "error", "message": "Upstream error: 503"}]}
    )

    status: str = Field(default="error")
    message: str = Field(..., description="Upstream status or failure reason")
