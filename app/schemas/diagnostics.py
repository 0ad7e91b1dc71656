"""Pydantic schemas for the upstream diagnostics endpoint."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class UpstreamProbeResult(BaseModel):
    """Outcome of one test request against a candidate model."""

    model: str = Field(..., description="Model name that was tried.")
    status: Literal["success", "failed"]
    response: str | None = Field(
        default=None, description="Completion text (or 'No content') on success."
    )
    error: str | None = Field(default=None, description="Failure reason on error.")


class UpstreamDiagnosticsResponse(BaseModel):
    """Report of which configured models the upstream API accepts.

    Probing stops at the first successful model.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key_configured: bool = Field(..., alias="apiKeyConfigured")
    api_key_length: int = Field(..., alias="apiKeyLength")
    results: List[UpstreamProbeResult] = Field(default_factory=list)
