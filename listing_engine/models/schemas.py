"""
Domain models using Pydantic.
Listings, profiles, viewer preferences, interaction records and API envelopes.
JSON field names are the camelCase form of the attribute names.
"""
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so every comparison is between aware values."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ListingType(str, Enum):
    """Kind of offering a listing advertises."""

    SERVICE = "service"
    GOODS = "goods"
    SKILL = "skill"
    EXPERIENCE = "experience"


class InteractionType(str, Enum):
    VIEW = "view"
    APPLY = "apply"
    FAVORITE = "favorite"
    ACCEPT = "accept"
    REJECT = "reject"


# =============================================================================
# Domain Models (Internal)
# =============================================================================


class Rating(CamelModel):
    average: float = Field(default=0.0, ge=0, le=5)
    count: int = Field(default=0, ge=0)


class Listing(CamelModel):
    """
    A catalog entry eligible for discovery.
    Owned by listing management; never mutated by this engine.
    """

    id: str = Field(..., description="Opaque listing identifier")
    title: str
    description: str = ""
    exchange_preferences: Optional[str] = None
    type: ListingType
    category_id: str
    tags: List[str] = Field(default_factory=list, description="Tag identifiers")
    location: Optional[str] = None
    rating: Rating = Field(default_factory=Rating)
    views: int = Field(default=0, ge=0)
    application_count: int = Field(default=0, ge=0)
    is_urgent: bool = False
    is_active: bool = True
    is_archived: bool = False
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None
    expires_at: Optional[UtcDatetime] = None
    owner_id: str = Field(..., description="User who owns the listing")
    profile_id: Optional[str] = Field(default=None, description="Profile shown on the listing")
    search_text: Optional[str] = Field(
        default=None,
        description="Denormalised title/description/exchange/location/tag-name blob",
    )


class RankedListing(Listing):
    """A listing with its computed relevance. Rebuilt on every cache miss."""

    relevance_score: float = Field(..., ge=0, le=1)


class ScoredListing(BaseModel):
    """Internal model for a candidate with its score components."""

    listing: Listing
    relevance_score: float
    score_breakdown: Dict[str, float] = Field(default_factory=dict)

    def to_ranked(self) -> RankedListing:
        return RankedListing(
            **self.listing.model_dump(),
            relevance_score=self.relevance_score,
        )


class ProfileLanguage(CamelModel):
    language: str
    level: str = "intermediate"


class PortfolioItem(CamelModel):
    title: str
    description: Optional[str] = None
    url: Optional[str] = None


class Profile(CamelModel):
    """Public profile of a user; joined onto listings by id or by user_id."""

    id: str
    user_id: str
    languages: List[ProfileLanguage] = Field(default_factory=list)
    portfolio: List[PortfolioItem] = Field(default_factory=list)
    rating: Rating = Field(default_factory=Rating)


class Category(CamelModel):
    id: str
    name: str
    parent_id: Optional[str] = None


class ScoreWeights(CamelModel):
    """Per-viewer weights of the preference match components."""

    category_match: float = Field(default=0.3, ge=0, le=1)
    type_match: float = Field(default=0.2, ge=0, le=1)
    tag_match: float = Field(default=0.2, ge=0, le=1)
    location_match: float = Field(default=0.15, ge=0, le=1)
    rating_match: float = Field(default=0.15, ge=0, le=1)


class ViewerPreference(CamelModel):
    """
    Stated discovery preferences of one viewer.
    Absence is valid and triggers fallback ranking.
    """

    viewer_id: str
    preferred_categories: List[str] = Field(default_factory=list)
    preferred_types: List[ListingType] = Field(default_factory=list)
    preferred_tags: List[str] = Field(default_factory=list)
    preferred_locations: List[str] = Field(default_factory=list)
    min_rating: float = Field(default=0.0, ge=0, le=5)
    min_author_rating: float = Field(default=0.0, ge=0, le=5)
    exclude_inactive_users: bool = True
    exclude_low_rating_users: bool = False
    score_weights: ScoreWeights = Field(default_factory=ScoreWeights)


class ListingSnapshot(CamelModel):
    """Listing attributes copied onto an interaction when it happened."""

    category_id: Optional[str] = None
    type: Optional[ListingType] = None
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None


class InteractionRecord(CamelModel):
    """Append-only record of a viewer acting on a listing."""

    viewer_id: str
    listing_id: str
    interaction_type: InteractionType
    timestamp: UtcDatetime
    listing: Optional[ListingSnapshot] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# API Models (External)
# =============================================================================


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit),
            has_next=page * limit < total,
            has_prev=page > 1,
        )


class SearchResponse(CamelModel):
    items: List[Listing]
    pagination: Pagination


class RecommendationFilters(CamelModel):
    type: Literal["recommended", "general"]
    page: int
    limit: int


class RecommendationResponse(CamelModel):
    items: List[RankedListing]
    pagination: Pagination
    filters: RecommendationFilters


class RecommendationOptions(CamelModel):
    """Request options for personalised recommendations."""

    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    min_relevance_score: float = Field(default=0.1, ge=0, le=1)
    exclude_interacted: bool = True
    fallback_to_general: bool = True


class InteractionRequest(CamelModel):
    viewer_id: str = Field(..., min_length=1)
    listing_id: str = Field(..., min_length=1)
    interaction_type: InteractionType
    extra: Dict[str, Any] = Field(default_factory=dict)


class CacheInvalidationResponse(CamelModel):
    viewer_id: str
    removed: int


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: Dict[str, Any] = Field(..., description="Error details")
