"""
Result cache for ranked recommendation pages.
Wraps a CacheInterface backend behind a circuit breaker so a failing backend
degrades to uncached computation instead of failing the request.
"""
import logging
from typing import NamedTuple, Optional

from listing_engine.core.cache import CacheInterface
from listing_engine.core.circuit_breaker import CircuitBreaker
from listing_engine.core.exceptions import CacheError
from listing_engine.models.schemas import RecommendationResponse

logger = logging.getLogger(__name__)


class ResultCacheKey(NamedTuple):
    """Exact request tuple; any differing field is a different entry."""

    viewer_id: str
    page: int
    page_size: int
    min_relevance_score: float
    exclude_interacted: bool


class RecommendationCache:
    """
    Memoizes recommendation pages per ResultCacheKey for a fixed TTL.

    Reads and writes never raise: backend faults are logged and treated as a
    miss or a skipped write. Invalidation does raise, so the preference update
    calling it cannot report success over stale rankings.
    """

    def __init__(
        self,
        backend: CacheInterface[ResultCacheKey, RecommendationResponse],
        ttl_seconds: float = 600,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self._backend = backend
        self._ttl_seconds = ttl_seconds
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name="result_cache",
            failure_threshold=3,
            recovery_timeout_sec=30,
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def get(self, key: ResultCacheKey) -> Optional[RecommendationResponse]:
        """Return a copy of the cached page, or None on miss or backend fault."""
        cached = self._circuit_breaker.call(
            lambda: self._backend.get(key),
            fallback=lambda: None,
        )
        if cached is None:
            logger.info(
                "Recommendation cache miss",
                extra={"viewer_id": key.viewer_id, "cache_key": repr(key)},
            )
            return None

        logger.info(
            "Recommendation cache hit",
            extra={"viewer_id": key.viewer_id, "cache_key": repr(key)},
        )
        return cached.model_copy(deep=True)

    def set(self, key: ResultCacheKey, value: RecommendationResponse) -> None:
        """Store a copy of the page; last write for a key wins."""
        stored = value.model_copy(deep=True)
        self._circuit_breaker.call(
            lambda: self._backend.set(key, stored, ttl_seconds=self._ttl_seconds),
            fallback=lambda: None,
        )

    def invalidate_all(self, viewer_id: str) -> int:
        """
        Drop every entry whose key belongs to the viewer.

        Returns:
            Number of entries removed

        Raises:
            CacheError: If the backend could not delete the entries
        """
        try:
            removed = self._backend.delete_where(lambda key: key.viewer_id == viewer_id)
        except Exception as e:
            logger.error(
                f"Recommendation cache invalidation failed: {e}",
                extra={"viewer_id": viewer_id},
            )
            raise CacheError("invalidate", str(e)) from e

        logger.info(
            f"Invalidated {removed} recommendation cache entries",
            extra={"viewer_id": viewer_id},
        )
        return removed
