"""
Recommendation service - personalised ranking orchestrator.
Coordinates the result cache, preference lookup, coarse candidate retrieval,
interaction history and the ranking engine.
Cache and history faults degrade the response; store faults propagate.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from listing_engine.core.circuit_breaker import CircuitBreaker
from listing_engine.core.exceptions import AppException, NotFoundError, StoreError, ValidationError
from listing_engine.models.interfaces import InteractionStore, PreferenceStore
from listing_engine.models.schemas import (
    InteractionRecord,
    InteractionType,
    Pagination,
    RankedListing,
    RecommendationFilters,
    RecommendationOptions,
    RecommendationResponse,
    ViewerPreference,
)
from listing_engine.services.filters import FilterCompiler
from listing_engine.services.ranking import RelevanceRankingEngine, default_relevance
from listing_engine.services.result_cache import RecommendationCache, ResultCacheKey
from listing_engine.services.retrieval import CandidateRetriever

logger = logging.getLogger(__name__)

HISTORY_TYPES = list(InteractionType)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationService:
    """
    Personalised recommendations for one viewer.

    Responsibilities:
    - Serve cached pages within the TTL
    - Fall back to the general listing set for viewers without preferences
    - Retrieve, score and page candidates on a miss
    - Invalidate a viewer's cached pages on preference change
    """

    def __init__(
        self,
        preference_store: PreferenceStore,
        interaction_store: InteractionStore,
        filter_compiler: FilterCompiler,
        candidate_retriever: CandidateRetriever,
        ranking_engine: RelevanceRankingEngine,
        result_cache: RecommendationCache,
        history_breaker: Optional[CircuitBreaker] = None,
        history_lookback_days: int = 90,
        history_limit: int = 50,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize recommendation service with dependencies.

        Args:
            preference_store: Source of viewer preferences
            interaction_store: Interaction history reader and writer
            filter_compiler: Builds coarse and general query plans
            candidate_retriever: Executes query plans
            ranking_engine: Scores and pages candidates
            result_cache: Per-viewer page cache
            history_breaker: Optional circuit breaker for history reads
            history_lookback_days: Only interactions newer than this are read
            history_limit: Maximum interactions read per request
            clock: Reference time for freshness and recency
        """
        self._preferences = preference_store
        self._interactions = interaction_store
        self._compiler = filter_compiler
        self._retriever = candidate_retriever
        self._engine = ranking_engine
        self._cache = result_cache
        self._history_breaker = history_breaker or CircuitBreaker(
            name="interaction_history",
            failure_threshold=5,
            recovery_timeout_sec=30,
        )
        self._history_lookback_days = history_lookback_days
        self._history_limit = history_limit
        self._clock = clock

    @property
    def history_breaker(self) -> CircuitBreaker:
        return self._history_breaker

    async def get_recommendations(
        self,
        viewer_id: str,
        options: Union[RecommendationOptions, Mapping[str, Any], None] = None,
    ) -> RecommendationResponse:
        """
        Get recommended listings for a viewer.

        Args:
            viewer_id: Viewer the ranking is computed for
            options: Paging, threshold, exclusion and fallback options

        Returns:
            RecommendationResponse of type "recommended", or "general" when
            the viewer has no preferences and fallback is enabled

        Raises:
            ValidationError: On malformed options
            StoreError: If candidate retrieval fails
        """
        start_time = time.time()
        opts = self._parse_options(options)
        key = ResultCacheKey(
            viewer_id=viewer_id,
            page=opts.page,
            page_size=opts.limit,
            min_relevance_score=opts.min_relevance_score,
            exclude_interacted=opts.exclude_interacted,
        )

        cached = self._cache.get(key)
        # The key does not carry the fallback flag; a general page never
        # answers a request that disabled fallback
        if cached is not None and (opts.fallback_to_general or cached.filters.type != "general"):
            return cached

        preference = await self._preferences.get_preference(viewer_id)
        if preference is None:
            if not opts.fallback_to_general:
                return self._build_response([], 0, "recommended", opts.page, opts.limit)
            logger.info("No preferences, serving general listings", extra={"viewer_id": viewer_id})
            response = await self.get_general_listings(opts.page, opts.limit)
            self._cache.set(key, response)
            return response

        items, total = await self._rank(viewer_id, preference, opts)
        response = self._build_response(items, total, "recommended", opts.page, opts.limit)
        self._cache.set(key, response)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Recommendations served: items={len(items)}, total={total}, "
            f"elapsed_ms={elapsed_ms:.2f}",
            extra={"viewer_id": viewer_id},
        )
        return response

    async def get_general_listings(self, page: int = 1, limit: int = 10) -> RecommendationResponse:
        """
        Non-personalised listing set, newest first.
        Items carry the default relevance score.
        """
        items, total = await self._retriever.retrieve(self._compiler.compile_general(page, limit))
        now = self._clock()
        ranked = [
            RankedListing(
                **listing.model_dump(),
                relevance_score=default_relevance(listing, now),
            )
            for listing in items
        ]
        return self._build_response(ranked, total, "general", page, limit)

    async def record_interaction(
        self,
        viewer_id: str,
        listing_id: str,
        interaction_type: InteractionType,
        extra: Optional[Dict[str, Any]] = None,
    ) -> InteractionRecord:
        """
        Record a viewer interaction for future behavioral scoring.
        Cached pages are left alone; interactions are a signal, not a preference.

        Raises:
            NotFoundError: If the listing does not exist
        """
        listing = await self._retriever.get_listing(listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)

        record = await self._interactions.record_interaction(
            viewer_id, listing, interaction_type, extra
        )
        logger.info(
            f"Recorded {interaction_type.value} on {listing_id}",
            extra={"viewer_id": viewer_id},
        )
        return record

    def invalidate_viewer_cache(self, viewer_id: str) -> int:
        """
        Drop every cached page of a viewer.

        Raises:
            CacheError: If the cache could not be invalidated
        """
        return self._cache.invalidate_all(viewer_id)

    async def _rank(
        self,
        viewer_id: str,
        preference: ViewerPreference,
        opts: RecommendationOptions,
    ):
        excluded: List[str] = []
        if opts.exclude_interacted:
            excluded = await self._load_interacted_ids(viewer_id)

        plan = self._compiler.compile_preferences(preference, excluded)
        candidates, history = await asyncio.gather(
            self._retriever.find_all(plan),
            self._load_history(viewer_id),
        )

        return self._engine.rank(
            candidates=candidates,
            preference=preference,
            history=history,
            page=opts.page,
            limit=opts.limit,
            min_relevance_score=opts.min_relevance_score,
            now=self._clock(),
        )

    async def _load_interacted_ids(self, viewer_id: str) -> List[str]:
        try:
            return await self._interactions.get_interacted_listing_ids(viewer_id)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Interacted listing lookup failed: {e}", extra={"viewer_id": viewer_id})
            raise StoreError("interacted_listing_ids", str(e)) from e

    async def _load_history(self, viewer_id: str) -> List[InteractionRecord]:
        """Recent history; any failure degrades behavioral scoring to zero."""
        return await self._history_breaker.call_async(
            lambda: self._interactions.get_history(
                viewer_id,
                HISTORY_TYPES,
                self._history_lookback_days,
                self._history_limit,
            ),
            fallback=list,
        )

    @staticmethod
    def _parse_options(
        options: Union[RecommendationOptions, Mapping[str, Any], None],
    ) -> RecommendationOptions:
        if isinstance(options, RecommendationOptions):
            return options
        try:
            return RecommendationOptions.model_validate(dict(options or {}))
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, "Invalid recommendation options") from e

    @staticmethod
    def _build_response(
        items: List[RankedListing],
        total: int,
        result_type: str,
        page: int,
        limit: int,
    ) -> RecommendationResponse:
        return RecommendationResponse(
            items=items,
            pagination=Pagination.build(page, limit, total),
            filters=RecommendationFilters(type=result_type, page=page, limit=limit),
        )
