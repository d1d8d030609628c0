"""API response bodies."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from companydata_shared.constants import ATTRIBUTION
from companydata_shared.models import CompanyDataWithLocation


class SearchResponse(BaseModel):
    results: list[CompanyDataWithLocation]
    attribution: list[str] = Field(default_factory=lambda: list(ATTRIBUTION))
    last_updated: datetime | None = None


class GroupedSearchResponse(BaseModel):
    results: dict[str, list[CompanyDataWithLocation]]
    attribution: list[str] = Field(default_factory=lambda: list(ATTRIBUTION))
    last_updated: datetime | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ApiError(BaseModel):
    error: ErrorDetail


def error_response(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a standardized error response dict."""
    err: dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return {"error": err}
