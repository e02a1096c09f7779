"""
Search API router.
Implements GET /v1/listings/search over loosely-typed query parameters.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from listing_engine.api.dependencies import get_search_service
from listing_engine.models.schemas import ErrorResponse, SearchResponse
from listing_engine.services.search import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/listings", tags=["search"])


def collect_query_params(request: Request) -> Dict[str, Any]:
    """Query string as a dict; repeated keys become lists."""
    params: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        params[key] = values if len(values) > 1 else values[0]
    return params


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search Listings",
    description="""
    Filter, sort and page listings.

    Every filter is a query parameter in camelCase (snake_case is accepted).
    Repeat `categoryId`, `tagId` or `languages` to pass several values.
    `hasPortfolio`, `languages` and the author rating bounds filter on the
    profiles joined to each listing.
    """,
    responses={
        200: {"description": "Page of matching listings"},
        400: {"model": ErrorResponse, "description": "Malformed filter parameters"},
        502: {"model": ErrorResponse, "description": "Listing store failure"},
    },
)
async def search_listings(
    request: Request,
    search_service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    return await search_service.search(options=collect_query_params(request))
