"""
Filter compiler.
Turns loosely-typed search options into a validated SearchParams and then
into an executable QueryPlan. Listing-local constraints become predicates the
store evaluates; profile constraints become join predicates with declared
join keys, which switches the plan to joined mode.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from pydantic import ValidationError as PydanticValidationError

from listing_engine.core.exceptions import AppException, StoreError, ValidationError
from listing_engine.models.filters import (
    PROFILE_JOIN,
    AuthorRatingPredicate,
    CategoryPredicate,
    DateRangePredicate,
    ExcludeIdsPredicate,
    FlagPredicate,
    JoinSpec,
    LanguagePredicate,
    LocationPredicate,
    NumericRangePredicate,
    OwnerPredicate,
    PortfolioPredicate,
    ProfilePredicate,
    QueryPlan,
    SearchParams,
    SortOrder,
    SortSpec,
    TagMode,
    TagPredicate,
    TextPredicate,
    TriState,
    TypePredicate,
)
from listing_engine.models.schemas import ViewerPreference
from listing_engine.services.categories import CategoryHierarchyResolver

logger = logging.getLogger(__name__)


def _eligible_only() -> List[Any]:
    return [
        FlagPredicate(field="isActive", value=True),
        FlagPredicate(field="isArchived", value=False),
    ]


class FilterCompiler:
    """
    Compiles search options and viewer preferences into query plans.

    Validation happens entirely in `parse`, so a malformed option fails the
    request before any store is touched.
    """

    def __init__(self, category_resolver: CategoryHierarchyResolver) -> None:
        self._categories = category_resolver

    def parse(
        self,
        query: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> SearchParams:
        """
        Validate raw search options.

        Args:
            query: Free-text query; overrides any query carried in options
            options: Loosely-typed options (camelCase or snake_case keys)

        Returns:
            Validated SearchParams

        Raises:
            ValidationError: On unknown keys, unparsable or out-of-range
                values and inverted ranges
        """
        raw: Dict[str, Any] = dict(options or {})
        if query is not None:
            raw.pop("search", None)
            raw["query"] = query

        try:
            return SearchParams.model_validate(raw)
        except PydanticValidationError as e:
            logger.info(f"Rejected search options: {e.error_count()} error(s)")
            raise ValidationError.from_pydantic(e, "Invalid search parameters") from e

    async def compile(self, params: SearchParams, force_joined: bool = False) -> QueryPlan:
        """
        Build the retrieval plan for a search.

        Args:
            params: Validated search parameters
            force_joined: Declare the profile join even without profile
                predicates (used to check joined/direct consistency)

        Returns:
            QueryPlan in direct mode, or joined mode when any profile
            constraint is present

        Raises:
            StoreError: If the category store fails during subcategory expansion
        """
        predicates = await self._local_predicates(params)
        join_predicates = self._join_predicates(params)

        joins: List[JoinSpec] = []
        for predicate in join_predicates:
            if predicate.join not in joins:
                joins.append(predicate.join)
        if force_joined and not joins:
            joins.append(PROFILE_JOIN)

        plan = QueryPlan(
            predicates=predicates,
            joins=joins,
            join_predicates=join_predicates,
            sort=SortSpec(field=params.sort_by, order=params.sort_order),
            skip=(params.page - 1) * params.limit,
            limit=params.limit,
        )
        logger.debug(
            f"Compiled plan: mode={plan.mode.value}, predicates={len(plan.predicates)}, "
            f"join_predicates={len(plan.join_predicates)}"
        )
        return plan

    def compile_preferences(
        self,
        preference: ViewerPreference,
        excluded_ids: Sequence[str] = (),
    ) -> QueryPlan:
        """
        Build the coarse candidate filter from stated preferences.
        Unsorted and unbounded; the ranking engine pre-sorts and truncates.
        """
        predicates: List[Any] = _eligible_only()

        if preference.preferred_categories:
            predicates.append(CategoryPredicate(category_ids=preference.preferred_categories))
        if preference.preferred_types:
            predicates.append(TypePredicate(types=preference.preferred_types))
        if preference.preferred_tags:
            predicates.append(
                TagPredicate(tag_ids=preference.preferred_tags, mode=TagMode.ANY)
            )
        if preference.preferred_locations:
            predicates.append(LocationPredicate(substrings=preference.preferred_locations))
        if preference.min_rating > 0:
            predicates.append(
                NumericRangePredicate(field="rating.average", minimum=preference.min_rating)
            )
        if excluded_ids:
            predicates.append(ExcludeIdsPredicate(listing_ids=list(excluded_ids)))

        return QueryPlan(predicates=predicates, sort=None)

    def compile_general(self, page: int, limit: int) -> QueryPlan:
        """Non-personalised listing set: eligible listings, newest first."""
        return QueryPlan(
            predicates=_eligible_only(),
            sort=SortSpec(field="createdAt", order=SortOrder.DESC),
            skip=(page - 1) * limit,
            limit=limit,
        )

    async def _expand_categories(self, category_ids: List[str]) -> Set[str]:
        try:
            return await self._categories.expand(category_ids)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Category expansion failed: {e}")
            raise StoreError("expand_categories", str(e)) from e

    async def _local_predicates(self, params: SearchParams) -> List[Any]:
        predicates: List[Any] = []

        if params.query:
            predicates.append(TextPredicate(query=params.query.strip()))
        if params.type is not None:
            predicates.append(TypePredicate(types=[params.type]))

        if params.category_id:
            category_ids = set(params.category_id)
            if params.include_subcategories:
                category_ids = await self._expand_categories(params.category_id)
            predicates.append(CategoryPredicate(category_ids=sorted(category_ids)))

        if params.tag_id:
            predicates.append(TagPredicate(tag_ids=params.tag_id, mode=params.tag_mode))
        if params.location:
            predicates.append(LocationPredicate(substrings=[params.location.strip()]))

        if params.is_urgent is not None:
            predicates.append(FlagPredicate(field="isUrgent", value=params.is_urgent))
        for field, state in (("isActive", params.is_active), ("isArchived", params.is_archived)):
            if state is not TriState.ANY:
                predicates.append(FlagPredicate(field=field, value=state.as_bool()))

        if params.owner_id:
            predicates.append(OwnerPredicate(owner_id=params.owner_id))
        if params.profile_id:
            predicates.append(ProfilePredicate(profile_id=params.profile_id))

        numeric_ranges = (
            ("rating.average", params.min_rating, params.max_rating),
            ("views", params.min_views, params.max_views),
            ("applicationCount", params.min_applications, params.max_applications),
        )
        for field, low, high in numeric_ranges:
            if low is not None or high is not None:
                predicates.append(NumericRangePredicate(field=field, minimum=low, maximum=high))

        date_ranges = (
            ("createdAt", params.min_created_at, params.max_created_at),
            ("expiresAt", params.expires_after, params.expires_before),
        )
        for field, after, before in date_ranges:
            if after is not None or before is not None:
                predicates.append(DateRangePredicate(field=field, after=after, before=before))

        return predicates

    @staticmethod
    def _join_predicates(params: SearchParams) -> List[Any]:
        join_predicates: List[Any] = []
        if params.has_portfolio is not TriState.ANY:
            join_predicates.append(
                PortfolioPredicate(has_portfolio=params.has_portfolio.as_bool())
            )
        if params.languages:
            join_predicates.append(LanguagePredicate(languages=params.languages))
        if params.min_author_rating is not None or params.max_author_rating is not None:
            join_predicates.append(
                AuthorRatingPredicate(
                    minimum=params.min_author_rating,
                    maximum=params.max_author_rating,
                )
            )
        return join_predicates
