"""Services package - business logic layer."""
from .categories import CategoryHierarchyResolver
from .filters import FilterCompiler
from .preferences import PreferenceService
from .ranking import (
    CategoryMatch,
    LocationMatch,
    RatingMatch,
    RelevanceRankingEngine,
    ScoringStrategy,
    TagMatch,
    TypeMatch,
)
from .recommendations import RecommendationService
from .result_cache import RecommendationCache, ResultCacheKey
from .retrieval import CandidateRetriever
from .search import SearchService, recompute_search_blob

__all__ = [
    "CandidateRetriever",
    "CategoryHierarchyResolver",
    "CategoryMatch",
    "FilterCompiler",
    "LocationMatch",
    "PreferenceService",
    "RatingMatch",
    "RecommendationCache",
    "RecommendationService",
    "RelevanceRankingEngine",
    "ResultCacheKey",
    "ScoringStrategy",
    "SearchService",
    "TagMatch",
    "TypeMatch",
    "recompute_search_blob",
]
