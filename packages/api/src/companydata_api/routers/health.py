"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from companydata_api import __version__
from companydata_api.dependencies import get_search_repository
from companydata_api.services.search_service import CompanySearch

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@router.get("/ready")
def ready(repo: CompanySearch = Depends(get_search_repository)):
    if not repo.ping():
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}
