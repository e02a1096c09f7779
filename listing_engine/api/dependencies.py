"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
from datetime import datetime, timezone
from functools import lru_cache

from listing_engine.config import get_settings
from listing_engine.core.cache import InMemoryCache
from listing_engine.core.circuit_breaker import CircuitBreaker
from listing_engine.repositories.memory import (
    InMemoryCategoryStore,
    InMemoryInteractionStore,
    InMemoryListingStore,
    InMemoryPreferenceStore,
    InMemoryProfileStore,
)
from listing_engine.repositories.seed import DemoCatalog, build_demo_catalog
from listing_engine.services.categories import CategoryHierarchyResolver
from listing_engine.services.filters import FilterCompiler
from listing_engine.services.preferences import PreferenceService
from listing_engine.services.ranking import RelevanceRankingEngine
from listing_engine.services.recommendations import RecommendationService
from listing_engine.services.result_cache import RecommendationCache
from listing_engine.services.retrieval import CandidateRetriever
from listing_engine.services.search import SearchService


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def get_demo_catalog() -> DemoCatalog:
    """Mock data loaded once at startup."""
    return build_demo_catalog(datetime.now(timezone.utc))


@lru_cache()
def get_listing_store() -> InMemoryListingStore:
    """Get singleton listing store."""
    catalog = get_demo_catalog()
    return InMemoryListingStore(catalog.listings, tag_names=catalog.tag_names)


@lru_cache()
def get_profile_store() -> InMemoryProfileStore:
    """Get singleton profile store."""
    return InMemoryProfileStore(get_demo_catalog().profiles)


@lru_cache()
def get_category_store() -> InMemoryCategoryStore:
    """Get singleton category store."""
    return InMemoryCategoryStore(get_demo_catalog().categories)


@lru_cache()
def get_preference_store() -> InMemoryPreferenceStore:
    """Get singleton preference store."""
    return InMemoryPreferenceStore(get_demo_catalog().preferences)


@lru_cache()
def get_interaction_store() -> InMemoryInteractionStore:
    """Get singleton interaction history."""
    return InMemoryInteractionStore(get_demo_catalog().interactions)


@lru_cache()
def get_cache_circuit_breaker() -> CircuitBreaker:
    """Get singleton circuit breaker for the result cache backend."""
    settings = get_settings()
    return CircuitBreaker(
        name="result_cache",
        failure_threshold=settings.CACHE_BREAKER_FAILURE_THRESHOLD,
        recovery_timeout_sec=settings.CACHE_BREAKER_RECOVERY_TIMEOUT_SEC,
    )


@lru_cache()
def get_history_circuit_breaker() -> CircuitBreaker:
    """Get singleton circuit breaker for interaction history reads."""
    settings = get_settings()
    return CircuitBreaker(
        name="interaction_history",
        failure_threshold=settings.HISTORY_BREAKER_FAILURE_THRESHOLD,
        recovery_timeout_sec=settings.HISTORY_BREAKER_RECOVERY_TIMEOUT_SEC,
    )


@lru_cache()
def get_result_cache() -> RecommendationCache:
    """Get singleton result cache; shared by every request."""
    settings = get_settings()
    return RecommendationCache(
        backend=InMemoryCache(default_ttl_seconds=settings.RECOMMENDATION_CACHE_TTL_SEC),
        ttl_seconds=settings.RECOMMENDATION_CACHE_TTL_SEC,
        circuit_breaker=get_cache_circuit_breaker(),
    )


@lru_cache()
def get_ranking_engine() -> RelevanceRankingEngine:
    """Get singleton ranking engine."""
    settings = get_settings()
    return RelevanceRankingEngine(
        candidate_pool_multiplier=settings.CANDIDATE_POOL_MULTIPLIER,
        freshness_window_days=settings.FRESHNESS_WINDOW_DAYS,
        behavioral_weight=settings.BEHAVIORAL_WEIGHT,
    )


# =============================================================================
# Request-Scoped Dependencies (Per-Request Lifetime)
# =============================================================================


def get_filter_compiler() -> FilterCompiler:
    return FilterCompiler(CategoryHierarchyResolver(get_category_store()))


def get_candidate_retriever() -> CandidateRetriever:
    return CandidateRetriever(get_listing_store(), get_profile_store())


def get_search_service() -> SearchService:
    """Get search service with all dependencies wired."""
    return SearchService(get_filter_compiler(), get_candidate_retriever())


def get_recommendation_service() -> RecommendationService:
    """
    Get recommendation service with all dependencies wired.
    This is the main entry point for the recommendation endpoints.
    """
    settings = get_settings()
    return RecommendationService(
        preference_store=get_preference_store(),
        interaction_store=get_interaction_store(),
        filter_compiler=get_filter_compiler(),
        candidate_retriever=get_candidate_retriever(),
        ranking_engine=get_ranking_engine(),
        result_cache=get_result_cache(),
        history_breaker=get_history_circuit_breaker(),
        history_lookback_days=settings.HISTORY_LOOKBACK_DAYS,
        history_limit=settings.HISTORY_LIMIT,
    )


def get_preference_service() -> PreferenceService:
    """Get preference service; invalidates through the recommendation service."""
    return PreferenceService(get_preference_store(), get_recommendation_service())


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    get_demo_catalog.cache_clear()
    get_listing_store.cache_clear()
    get_profile_store.cache_clear()
    get_category_store.cache_clear()
    get_preference_store.cache_clear()
    get_interaction_store.cache_clear()
    get_cache_circuit_breaker.cache_clear()
    get_history_circuit_breaker.cache_clear()
    get_result_cache.cache_clear()
    get_ranking_engine.cache_clear()
