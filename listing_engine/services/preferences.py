"""
Preference service.
Persists viewer preference changes and invalidates cached rankings before
reporting success.
"""
import logging
from typing import Any, Dict, Mapping

from pydantic import ValidationError as PydanticValidationError

from listing_engine.core.exceptions import ValidationError
from listing_engine.models.interfaces import PreferenceStore
from listing_engine.models.schemas import ViewerPreference

logger = logging.getLogger(__name__)

# Both spellings of every field, e.g. "preferredTags" and "preferred_tags"
_FIELD_NAMES: Dict[str, str] = {
    **{name: name for name in ViewerPreference.model_fields},
    **{field.alias: name for name, field in ViewerPreference.model_fields.items() if field.alias},
}


def _by_field_name(changes: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = [key for key in changes if key not in _FIELD_NAMES]
    if unknown:
        raise ValidationError(
            "Invalid preferences",
            errors=[
                {"field": key, "message": "Unknown preference", "type": "extra_forbidden"}
                for key in unknown
            ],
        )
    return {_FIELD_NAMES[key]: value for key, value in changes.items()}


class PreferenceService:
    def __init__(self, preference_store: PreferenceStore, recommendation_service) -> None:
        self._store = preference_store
        self._recommendations = recommendation_service

    async def update_preferences(
        self,
        viewer_id: str,
        changes: Mapping[str, Any],
    ) -> ViewerPreference:
        """
        Merge changes into the viewer's preferences and persist them.

        Args:
            viewer_id: Viewer whose preferences change
            changes: Fields to replace (camelCase or snake_case)

        Returns:
            The stored preferences

        Raises:
            ValidationError: If the merged preferences are invalid
            CacheError: If cached rankings could not be invalidated
        """
        existing = await self._store.get_preference(viewer_id)
        base = existing.model_dump() if existing is not None else {}

        try:
            update = ViewerPreference.model_validate(
                {**base, **_by_field_name(changes), "viewer_id": viewer_id}
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, "Invalid preferences") from e

        await self._store.save_preference(update)
        removed = self._recommendations.invalidate_viewer_cache(viewer_id)
        logger.info(
            f"Preferences updated, {removed} cached pages dropped",
            extra={"viewer_id": viewer_id},
        )
        return update
