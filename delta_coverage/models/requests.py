"""Request models for the checks API."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class ChecksRequest(BaseModel):
    repository: str = Field(pattern=r"^[\w.-]+/[\w.-]+$")
    head_sha: str = Field(min_length=1)
    diff: str
    coverage: Dict[str, Any]
    minimum_delta: float | None = Field(default=None, ge=0, le=100)
    details_url: str | None = None


class ChecksResponse(BaseModel):
    status: str = "completed"
    conclusion: str
    delta: float
    total_coverage: float
    check_run_id: int | None = None
