"""
Collaborator interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
These define the contracts that data access implementations must follow.
"""
from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence, runtime_checkable

from listing_engine.models.filters import ListingPredicate, SortSpec
from listing_engine.models.schemas import (
    InteractionRecord,
    InteractionType,
    Listing,
    Profile,
    ViewerPreference,
)


@runtime_checkable
class ListingStore(Protocol):
    """
    Queryable store of listings.
    Supports equality, range, set-membership and substring predicates.
    """

    async def find_listings(
        self,
        predicates: Sequence[ListingPredicate],
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Listing]:
        """
        Fetch listings matching every predicate.

        Args:
            predicates: Listing-local predicates, combined with AND
            sort: Ordering; store order when None
            skip: Number of leading matches to drop
            limit: Maximum number of listings returned, unbounded when None

        Returns:
            Matching listings (may be empty)
        """
        ...

    async def count_listings(self, predicates: Sequence[ListingPredicate]) -> int:
        """Count listings matching every predicate, ignoring paging."""
        ...

    async def find_listings_by_id(self, listing_ids: Sequence[str]) -> List[Listing]:
        """Fetch listings by id; unknown ids are skipped."""
        ...


@runtime_checkable
class ProfileStore(Protocol):
    """Read access to profiles for joined-mode predicates."""

    async def find_profile_by_field(
        self,
        field: Literal["id", "user_id"],
        value: str,
    ) -> Optional[Profile]:
        """
        Fetch the profile whose `field` equals `value`.

        Returns:
            Profile if found, None otherwise
        """
        ...


@runtime_checkable
class CategoryStore(Protocol):
    """Parent -> children edges of the category tree."""

    async def get_children(self, category_id: str) -> List[str]:
        """Return the ids of the direct children of a category."""
        ...


@runtime_checkable
class PreferenceStore(Protocol):
    """
    Viewer preferences, written by the profile-preferences collaborator.
    Read-only to ranking.
    """

    async def get_preference(self, viewer_id: str) -> Optional[ViewerPreference]:
        """
        Fetch stored preferences.

        Returns:
            ViewerPreference if stored, None for viewers without preferences
        """
        ...

    async def save_preference(self, preference: ViewerPreference) -> None:
        ...


@runtime_checkable
class InteractionStore(Protocol):
    """Append-only interaction history."""

    async def get_history(
        self,
        viewer_id: str,
        types: Sequence[InteractionType],
        lookback_days: int,
        limit: int,
    ) -> List[InteractionRecord]:
        """
        Fetch recent interactions, newest first.

        Args:
            viewer_id: Viewer whose history is read
            types: Interaction types to include
            lookback_days: Only records newer than this many days
            limit: Maximum number of records

        Returns:
            Interaction records (may be empty)
        """
        ...

    async def get_interacted_listing_ids(self, viewer_id: str) -> List[str]:
        """Ids of every listing the viewer ever interacted with."""
        ...

    async def record_interaction(
        self,
        viewer_id: str,
        listing: Listing,
        interaction_type: InteractionType,
        extra: Optional[Dict[str, Any]] = None,
    ) -> InteractionRecord:
        """Append a record carrying a snapshot of the listing."""
        ...
