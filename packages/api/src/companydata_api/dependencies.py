"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from companydata_api.services.search_service import CompanySearch


def get_search_repository(request: Request) -> CompanySearch:
    """The repository opened by the application lifespan (or injected in tests)."""
    return request.app.state.search_repository
