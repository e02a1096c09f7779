"""
Recommendations API router.
Personalised recommendations, cache invalidation and interaction recording.
"""
import logging

from fastapi import APIRouter, Depends, Query, Request, status

from listing_engine.api.dependencies import get_recommendation_service
from listing_engine.api.routers.search import collect_query_params
from listing_engine.models.schemas import (
    CacheInvalidationResponse,
    ErrorResponse,
    InteractionRecord,
    InteractionRequest,
    RecommendationResponse,
)
from listing_engine.services.recommendations import RecommendationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/recommendations", tags=["recommendations"])


@router.get(
    "",
    response_model=RecommendationResponse,
    summary="Get Recommendations",
    description="""
    Ranked listings for a viewer.

    Scoring combines the viewer's stated preferences (category, type, tags,
    location, rating), similarity to recent interactions and listing
    freshness. Viewers without preferences get the newest listings
    (`filters.type == "general"`) unless `fallbackToGeneral=false`.

    Pages are cached per viewer and options for 10 minutes.
    """,
    responses={
        200: {"description": "Ranked page returned"},
        400: {"model": ErrorResponse, "description": "Malformed options"},
        502: {"model": ErrorResponse, "description": "Listing store failure"},
    },
)
async def get_recommendations(
    request: Request,
    viewer_id: str = Query(..., min_length=1, description="Viewer identifier"),
    recommendation_service: RecommendationService = Depends(get_recommendation_service),
) -> RecommendationResponse:
    options = collect_query_params(request)
    options.pop("viewer_id", None)
    return await recommendation_service.get_recommendations(viewer_id, options)


@router.delete(
    "/cache/{viewer_id}",
    response_model=CacheInvalidationResponse,
    summary="Invalidate Viewer Cache",
)
async def invalidate_viewer_cache(
    viewer_id: str,
    recommendation_service: RecommendationService = Depends(get_recommendation_service),
) -> CacheInvalidationResponse:
    removed = recommendation_service.invalidate_viewer_cache(viewer_id)
    return CacheInvalidationResponse(viewer_id=viewer_id, removed=removed)


@router.post(
    "/interactions",
    response_model=InteractionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Record Interaction",
    responses={404: {"model": ErrorResponse, "description": "Unknown listing"}},
)
async def record_interaction(
    body: InteractionRequest,
    recommendation_service: RecommendationService = Depends(get_recommendation_service),
) -> InteractionRecord:
    return await recommendation_service.record_interaction(
        body.viewer_id,
        body.listing_id,
        body.interaction_type,
        body.extra,
    )
