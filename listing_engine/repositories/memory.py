"""
In-memory repository implementations.
Used for prototyping and testing.
Production would replace these with database-backed implementations of the
same interfaces.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence

from listing_engine.models.filters import (
    CategoryPredicate,
    DateRangePredicate,
    ExcludeIdsPredicate,
    FlagPredicate,
    ListingPredicate,
    LocationPredicate,
    NumericRangePredicate,
    OwnerPredicate,
    ProfilePredicate,
    SortOrder,
    SortSpec,
    TagMode,
    TagPredicate,
    TextPredicate,
    TypePredicate,
    resolve_field,
)
from listing_engine.models.schemas import (
    Category,
    InteractionRecord,
    InteractionType,
    Listing,
    ListingSnapshot,
    Profile,
    ViewerPreference,
)
from listing_engine.services.search import recompute_search_blob


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


def matches(listing: Listing, predicate: ListingPredicate) -> bool:
    """Evaluate one listing-local predicate against a listing."""
    if isinstance(predicate, TextPredicate):
        fields = (
            listing.title,
            listing.description,
            listing.exchange_preferences,
            listing.location,
            listing.search_text,
        )
        return any(_contains(text, predicate.query) for text in fields)

    if isinstance(predicate, TypePredicate):
        return listing.type in predicate.types

    if isinstance(predicate, CategoryPredicate):
        return listing.category_id in predicate.category_ids

    if isinstance(predicate, TagPredicate):
        wanted = set(predicate.tag_ids)
        if predicate.mode is TagMode.ALL:
            return wanted.issubset(listing.tags)
        return not wanted.isdisjoint(listing.tags)

    if isinstance(predicate, LocationPredicate):
        return any(_contains(listing.location, s) for s in predicate.substrings)

    if isinstance(predicate, FlagPredicate):
        return resolve_field(listing, predicate.field) == predicate.value

    if isinstance(predicate, OwnerPredicate):
        return listing.owner_id == predicate.owner_id

    if isinstance(predicate, ProfilePredicate):
        return listing.profile_id == predicate.profile_id

    if isinstance(predicate, NumericRangePredicate):
        value = resolve_field(listing, predicate.field)
        if predicate.minimum is not None and value < predicate.minimum:
            return False
        if predicate.maximum is not None and value > predicate.maximum:
            return False
        return True

    if isinstance(predicate, DateRangePredicate):
        value = resolve_field(listing, predicate.field)
        if value is None:
            return False
        if predicate.after is not None and value < predicate.after:
            return False
        if predicate.before is not None and value > predicate.before:
            return False
        return True

    if isinstance(predicate, ExcludeIdsPredicate):
        return listing.id not in predicate.listing_ids

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def sort_listings(listings: List[Listing], sort: SortSpec) -> List[Listing]:
    """Stable sort on one field; listings missing the field go last."""
    present = [l for l in listings if resolve_field(l, sort.field) is not None]
    missing = [l for l in listings if resolve_field(l, sort.field) is None]
    present.sort(
        key=lambda l: resolve_field(l, sort.field),
        reverse=sort.order is SortOrder.DESC,
    )
    return present + missing


class InMemoryListingStore:
    """
    In-memory implementation of ListingStore.
    Keeps the denormalised search text in sync on every save.
    """

    def __init__(
        self,
        listings: Optional[Iterable[Listing]] = None,
        tag_names: Optional[Dict[str, str]] = None,
    ) -> None:
        self._listings: Dict[str, Listing] = {}
        self._tag_names: Dict[str, str] = dict(tag_names or {})
        for listing in listings or []:
            self.save_listing(listing)

    def save_listing(self, listing: Listing) -> Listing:
        """Insert or replace a listing, recomputing its search text."""
        names = [self._tag_names.get(tag_id, "") for tag_id in listing.tags]
        stored = listing.model_copy(
            update={"search_text": recompute_search_blob(listing, names)}
        )
        self._listings[stored.id] = stored
        return stored

    def set_tag_name(self, tag_id: str, name: str) -> None:
        """Rename a tag and refresh every listing carrying it."""
        self._tag_names[tag_id] = name
        for listing in list(self._listings.values()):
            if tag_id in listing.tags:
                self.save_listing(listing)

    async def find_listings(
        self,
        predicates: Sequence[ListingPredicate],
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Listing]:
        """Fetch listings matching every predicate."""
        found = self._filter(predicates)
        if sort is not None:
            found = sort_listings(found, sort)
        end = None if limit is None else skip + limit
        return found[skip:end]

    async def count_listings(self, predicates: Sequence[ListingPredicate]) -> int:
        """Count listings matching every predicate."""
        return len(self._filter(predicates))

    async def find_listings_by_id(self, listing_ids: Sequence[str]) -> List[Listing]:
        """Fetch listings by id."""
        return [self._listings[i] for i in listing_ids if i in self._listings]

    def _filter(self, predicates: Sequence[ListingPredicate]) -> List[Listing]:
        return [
            listing
            for listing in self._listings.values()
            if all(matches(listing, p) for p in predicates)
        ]


class InMemoryProfileStore:
    """In-memory implementation of ProfileStore."""

    def __init__(self, profiles: Optional[Iterable[Profile]] = None) -> None:
        self._profiles: List[Profile] = list(profiles or [])

    def save_profile(self, profile: Profile) -> None:
        self._profiles = [p for p in self._profiles if p.id != profile.id]
        self._profiles.append(profile)

    async def find_profile_by_field(
        self,
        field: Literal["id", "user_id"],
        value: str,
    ) -> Optional[Profile]:
        """Fetch the first profile whose field equals value."""
        for profile in self._profiles:
            if getattr(profile, field) == value:
                return profile
        return None


class InMemoryCategoryStore:
    """In-memory implementation of CategoryStore."""

    def __init__(self, categories: Optional[Iterable[Category]] = None) -> None:
        self._categories: Dict[str, Category] = {c.id: c for c in categories or []}

    async def get_children(self, category_id: str) -> List[str]:
        """Return the ids of the direct children of a category."""
        return [
            c.id for c in self._categories.values() if c.parent_id == category_id
        ]


class InMemoryPreferenceStore:
    """In-memory implementation of PreferenceStore."""

    def __init__(self, preferences: Optional[Iterable[ViewerPreference]] = None) -> None:
        self._preferences: Dict[str, ViewerPreference] = {
            p.viewer_id: p for p in preferences or []
        }

    async def get_preference(self, viewer_id: str) -> Optional[ViewerPreference]:
        """Fetch stored preferences."""
        return self._preferences.get(viewer_id)

    async def save_preference(self, preference: ViewerPreference) -> None:
        """Persist preferences."""
        self._preferences[preference.viewer_id] = preference


class InMemoryInteractionStore:
    """In-memory implementation of InteractionStore."""

    def __init__(
        self,
        records: Optional[Iterable[InteractionRecord]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._records: List[InteractionRecord] = list(records or [])
        self._clock = clock

    async def get_history(
        self,
        viewer_id: str,
        types: Sequence[InteractionType],
        lookback_days: int,
        limit: int,
    ) -> List[InteractionRecord]:
        """Fetch recent interactions, newest first."""
        cutoff = self._clock() - timedelta(days=lookback_days)
        recent = [
            r
            for r in self._records
            if r.viewer_id == viewer_id
            and r.interaction_type in types
            and r.timestamp >= cutoff
        ]
        recent.sort(key=lambda r: r.timestamp, reverse=True)
        return recent[:limit]

    async def get_interacted_listing_ids(self, viewer_id: str) -> List[str]:
        """Ids of every listing the viewer interacted with, first seen first."""
        seen: Dict[str, None] = {}
        for record in self._records:
            if record.viewer_id == viewer_id:
                seen.setdefault(record.listing_id, None)
        return list(seen)

    async def record_interaction(
        self,
        viewer_id: str,
        listing: Listing,
        interaction_type: InteractionType,
        extra: Optional[Dict[str, Any]] = None,
    ) -> InteractionRecord:
        """Append a record carrying a snapshot of the listing."""
        record = InteractionRecord(
            viewer_id=viewer_id,
            listing_id=listing.id,
            interaction_type=interaction_type,
            timestamp=self._clock(),
            listing=ListingSnapshot(
                category_id=listing.category_id,
                type=listing.type,
                tags=list(listing.tags),
                location=listing.location,
            ),
            extra=dict(extra or {}),
        )
        self._records.append(record)
        return record
