"""
Filter parameters, predicates and query plans.

Raw search options are validated into SearchParams, then compiled into a
QueryPlan: a list of listing-local predicates plus, for cross-entity
constraints, declared profile joins and the predicates evaluated on them.
Predicates form a closed, discriminated union keyed by `kind`.
"""
from enum import Enum
from typing import Annotated, Any, Callable, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from listing_engine.models.schemas import CamelModel, Listing, ListingType, UtcDatetime


class TagMode(str, Enum):
    ALL = "all"
    ANY = "any"


class TriState(str, Enum):
    TRUE = "true"
    FALSE = "false"
    ANY = "any"

    def as_bool(self) -> Optional[bool]:
        if self is TriState.ANY:
            return None
        return self is TriState.TRUE


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PlanMode(str, Enum):
    DIRECT = "direct"
    JOINED = "joined"


SortField = Literal[
    "createdAt",
    "updatedAt",
    "title",
    "views",
    "expiresAt",
    "rating.average",
    "applicationCount",
]
NumericField = Literal["rating.average", "views", "applicationCount"]
DateField = Literal["createdAt", "expiresAt"]
FlagField = Literal["isActive", "isArchived", "isUrgent"]

_FIELD_GETTERS: Dict[str, Callable[[Listing], Any]] = {
    "createdAt": lambda listing: listing.created_at,
    "updatedAt": lambda listing: listing.updated_at,
    "expiresAt": lambda listing: listing.expires_at,
    "title": lambda listing: listing.title,
    "views": lambda listing: listing.views,
    "rating.average": lambda listing: listing.rating.average,
    "applicationCount": lambda listing: listing.application_count,
    "isActive": lambda listing: listing.is_active,
    "isArchived": lambda listing: listing.is_archived,
    "isUrgent": lambda listing: listing.is_urgent,
}


def resolve_field(listing: Listing, field: str) -> Any:
    """Read a plan field name (API spelling) off a listing."""
    return _FIELD_GETTERS[field](listing)


# =============================================================================
# Listing-local predicates
# =============================================================================


class TextPredicate(BaseModel):
    """Case-insensitive substring over title, description, exchange, location, search text."""

    kind: Literal["text"] = "text"
    query: str


class TypePredicate(BaseModel):
    kind: Literal["type"] = "type"
    types: List[ListingType]


class CategoryPredicate(BaseModel):
    """Category membership; ids are already expanded to subcategories when requested."""

    kind: Literal["category"] = "category"
    category_ids: List[str]


class TagPredicate(BaseModel):
    kind: Literal["tags"] = "tags"
    tag_ids: List[str]
    mode: TagMode = TagMode.ANY


class LocationPredicate(BaseModel):
    """Matches when any substring occurs in the listing location, ignoring case."""

    kind: Literal["location"] = "location"
    substrings: List[str]


class FlagPredicate(BaseModel):
    kind: Literal["flag"] = "flag"
    field: FlagField
    value: bool


class OwnerPredicate(BaseModel):
    kind: Literal["owner"] = "owner"
    owner_id: str


class ProfilePredicate(BaseModel):
    kind: Literal["profile"] = "profile"
    profile_id: str


class NumericRangePredicate(BaseModel):
    kind: Literal["numeric_range"] = "numeric_range"
    field: NumericField
    minimum: Optional[float] = None
    maximum: Optional[float] = None


class DateRangePredicate(BaseModel):
    """Inclusive bounds; a listing without the date never matches."""

    kind: Literal["date_range"] = "date_range"
    field: DateField
    after: Optional[UtcDatetime] = None
    before: Optional[UtcDatetime] = None


class ExcludeIdsPredicate(BaseModel):
    kind: Literal["exclude_ids"] = "exclude_ids"
    listing_ids: List[str]


ListingPredicate = Annotated[
    Union[
        TextPredicate,
        TypePredicate,
        CategoryPredicate,
        TagPredicate,
        LocationPredicate,
        FlagPredicate,
        OwnerPredicate,
        ProfilePredicate,
        NumericRangePredicate,
        DateRangePredicate,
        ExcludeIdsPredicate,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Joins and cross-entity predicates
# =============================================================================


class JoinSpec(BaseModel):
    """Declared lookup of a profile for every listing, by an explicit key pair."""

    alias: Literal["listing_profile", "owner_profile"]
    local_field: Literal["profile_id", "owner_id"]
    foreign_field: Literal["id", "user_id"]


# Portfolio and language constraints read the profile shown on the listing;
# author rating reads the profile of the user owning it.
PROFILE_JOIN = JoinSpec(alias="listing_profile", local_field="profile_id", foreign_field="id")
OWNER_JOIN = JoinSpec(alias="owner_profile", local_field="owner_id", foreign_field="user_id")


class PortfolioPredicate(BaseModel):
    join: ClassVar[JoinSpec] = PROFILE_JOIN

    kind: Literal["portfolio"] = "portfolio"
    has_portfolio: bool


class LanguagePredicate(BaseModel):
    join: ClassVar[JoinSpec] = PROFILE_JOIN

    kind: Literal["languages"] = "languages"
    languages: List[str]


class AuthorRatingPredicate(BaseModel):
    join: ClassVar[JoinSpec] = OWNER_JOIN

    kind: Literal["author_rating"] = "author_rating"
    minimum: Optional[float] = None
    maximum: Optional[float] = None


JoinedPredicate = Annotated[
    Union[PortfolioPredicate, LanguagePredicate, AuthorRatingPredicate],
    Field(discriminator="kind"),
]


class SortSpec(BaseModel):
    field: SortField = "createdAt"
    order: SortOrder = SortOrder.DESC


class QueryPlan(BaseModel):
    """Executable retrieval plan handed to the Candidate Retriever."""

    predicates: List[ListingPredicate] = Field(default_factory=list)
    joins: List[JoinSpec] = Field(default_factory=list)
    join_predicates: List[JoinedPredicate] = Field(default_factory=list)
    sort: Optional[SortSpec] = Field(default_factory=SortSpec)
    skip: int = Field(default=0, ge=0)
    limit: Optional[int] = Field(default=None, ge=1)

    @property
    def mode(self) -> PlanMode:
        return PlanMode.JOINED if self.joins else PlanMode.DIRECT


# =============================================================================
# Search parameters (validated boundary model)
# =============================================================================


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        return [value]
    return value


class SearchParams(CamelModel):
    """
    Loosely-typed search options after validation.
    Unknown keys are rejected; numbers and dates arrive as strings from HTTP.
    """

    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    query: Optional[str] = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("query", "search"),
    )
    type: Optional[ListingType] = None
    category_id: List[str] = Field(default_factory=list)
    include_subcategories: bool = False
    tag_id: List[str] = Field(default_factory=list)
    tag_mode: TagMode = Field(
        default=TagMode.ANY,
        validation_alias=AliasChoices("tagMode", "tag_mode", "tagOperator"),
    )
    location: Optional[str] = Field(default=None, max_length=100)
    is_urgent: Optional[bool] = None
    is_active: TriState = TriState.TRUE
    is_archived: TriState = TriState.FALSE
    owner_id: Optional[str] = None
    profile_id: Optional[str] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    max_rating: Optional[float] = Field(default=None, ge=0, le=5)
    min_views: Optional[int] = Field(default=None, ge=0)
    max_views: Optional[int] = Field(default=None, ge=0)
    min_applications: Optional[int] = Field(default=None, ge=0)
    max_applications: Optional[int] = Field(default=None, ge=0)
    min_created_at: Optional[UtcDatetime] = None
    max_created_at: Optional[UtcDatetime] = None
    expires_after: Optional[UtcDatetime] = None
    expires_before: Optional[UtcDatetime] = None
    has_portfolio: TriState = TriState.ANY
    languages: List[str] = Field(default_factory=list)
    min_author_rating: Optional[float] = Field(default=None, ge=0, le=5)
    max_author_rating: Optional[float] = Field(default=None, ge=0, le=5)
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("category_id", "tag_id", "languages", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("languages")
    @classmethod
    def _strip_languages(cls, value: List[str]) -> List[str]:
        return [language.strip() for language in value if language.strip()]

    @field_validator("tag_mode", mode="before")
    @classmethod
    def _accept_operator_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"and": "all", "or": "any"}.get(value.lower(), value.lower())
        return value

    @field_validator("is_active", "is_archived", "has_portfolio", mode="before")
    @classmethod
    def _accept_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return value.lower()
        return value

    @field_validator("query", "location")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> "SearchParams":
        bounds = [
            ("min_rating", "max_rating"),
            ("min_views", "max_views"),
            ("min_applications", "max_applications"),
            ("min_created_at", "max_created_at"),
            ("expires_after", "expires_before"),
            ("min_author_rating", "max_author_rating"),
        ]
        for low_name, high_name in bounds:
            low, high = getattr(self, low_name), getattr(self, high_name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{low_name} must not exceed {high_name}")
        return self

    @property
    def has_cross_entity_filters(self) -> bool:
        return (
            self.has_portfolio is not TriState.ANY
            or bool(self.languages)
            or self.min_author_rating is not None
            or self.max_author_rating is not None
        )
