"""
Preferences API router.
A successful update guarantees the viewer's cached rankings are gone.
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from listing_engine.api.dependencies import get_preference_service
from listing_engine.models.schemas import ErrorResponse, ViewerPreference
from listing_engine.services.preferences import PreferenceService

router = APIRouter(prefix="/v1/preferences", tags=["preferences"])


@router.put(
    "/{viewer_id}",
    response_model=ViewerPreference,
    summary="Update Viewer Preferences",
    responses={400: {"model": ErrorResponse, "description": "Invalid preferences"}},
)
async def update_preferences(
    viewer_id: str,
    changes: Dict[str, Any] = Body(..., description="Preference fields to replace"),
    preference_service: PreferenceService = Depends(get_preference_service),
) -> ViewerPreference:
    return await preference_service.update_preferences(viewer_id, changes)
