"""Company search by British National Grid bounding box."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from companydata_shared.config import settings

from companydata_api.dependencies import get_search_repository
from companydata_api.responses import ApiError, GroupedSearchResponse, SearchResponse
from companydata_api.services.search_service import (
    CompanySearch,
    collect_list,
    group_by_postcode,
)
from companydata_api.utils.bbox import parse_bbox

router = APIRouter(prefix="/company-data", tags=["company-data"])

_BBOX_DESCRIPTION = "left,bottom,right,top as BNG eastings/northings in metres"
_ERROR_RESPONSES = {400: {"model": ApiError}, 500: {"model": ApiError}}


def _cache_headers(response: Response) -> None:
    # Data only changes when an import replaces the store
    response.headers["Cache-Control"] = f"public, max-age={settings.cache_max_age_s}, immutable"


@router.get("/search", response_model=SearchResponse, responses=_ERROR_RESPONSES)
def search(
    response: Response,
    bbox: str = Query("", description=_BBOX_DESCRIPTION),
    repo: CompanySearch = Depends(get_search_repository),
):
    """Every company registered at a postcode inside the bounding box."""
    box = parse_bbox(bbox, max_span=settings.max_bbox_span_m)
    results = collect_list(repo, box)
    _cache_headers(response)
    return SearchResponse(results=results, last_updated=repo.last_updated())


@router.get("/search/by-postcode", response_model=GroupedSearchResponse, responses=_ERROR_RESPONSES)
def search_by_postcode(
    response: Response,
    bbox: str = Query("", description=_BBOX_DESCRIPTION),
    repo: CompanySearch = Depends(get_search_repository),
):
    """Same matches as /search, keyed by registered postcode."""
    box = parse_bbox(bbox, max_span=settings.max_bbox_span_m)
    results = group_by_postcode(repo, box)
    _cache_headers(response)
    return GroupedSearchResponse(results=results, last_updated=repo.last_updated())
