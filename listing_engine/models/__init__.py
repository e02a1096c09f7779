"""Models package - domain entities, filter plans and interfaces."""
from .filters import (
    JoinSpec,
    PlanMode,
    QueryPlan,
    SearchParams,
    SortOrder,
    SortSpec,
    TagMode,
    TriState,
)
from .interfaces import (
    CategoryStore,
    InteractionStore,
    ListingStore,
    PreferenceStore,
    ProfileStore,
)
from .schemas import (
    CacheInvalidationResponse,
    Category,
    ErrorResponse,
    InteractionRecord,
    InteractionRequest,
    InteractionType,
    Listing,
    ListingSnapshot,
    ListingType,
    Pagination,
    Profile,
    RankedListing,
    Rating,
    RecommendationOptions,
    RecommendationResponse,
    ScoredListing,
    ScoreWeights,
    SearchResponse,
    ViewerPreference,
)

__all__ = [
    # Interfaces
    "CategoryStore",
    "InteractionStore",
    "ListingStore",
    "PreferenceStore",
    "ProfileStore",
    # Filters
    "JoinSpec",
    "PlanMode",
    "QueryPlan",
    "SearchParams",
    "SortOrder",
    "SortSpec",
    "TagMode",
    "TriState",
    # Schemas
    "CacheInvalidationResponse",
    "Category",
    "ErrorResponse",
    "InteractionRecord",
    "InteractionRequest",
    "InteractionType",
    "Listing",
    "ListingSnapshot",
    "ListingType",
    "Pagination",
    "Profile",
    "RankedListing",
    "Rating",
    "RecommendationOptions",
    "RecommendationResponse",
    "ScoredListing",
    "ScoreWeights",
    "SearchResponse",
    "ViewerPreference",
]
