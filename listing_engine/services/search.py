"""
Plain listing search.
Filter Compiler -> Candidate Retriever, no ranking.
"""
import logging
from typing import Any, Iterable, Mapping, Optional

from listing_engine.models.schemas import Listing, Pagination, SearchResponse

logger = logging.getLogger(__name__)


def recompute_search_blob(listing: Listing, tag_names: Iterable[str] = ()) -> str:
    """
    Build the denormalised search text of a listing.

    Must be recomputed whenever the listing's text fields or tags change.

    Args:
        listing: Listing whose text fields are indexed
        tag_names: Display names of the listing's tags

    Returns:
        Space-joined title, description, exchange preferences, location and
        tag names, skipping empty parts
    """
    parts = [
        listing.title,
        listing.description,
        listing.exchange_preferences,
        listing.location,
        *tag_names,
    ]
    return " ".join(part.strip() for part in parts if part and part.strip())


class SearchService:
    """Filtered, sorted and paged listing search."""

    def __init__(self, filter_compiler, candidate_retriever) -> None:
        """
        Args:
            filter_compiler: FilterCompiler validating and compiling options
            candidate_retriever: CandidateRetriever executing the plan
        """
        self._compiler = filter_compiler
        self._retriever = candidate_retriever

    async def search(
        self,
        query: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> SearchResponse:
        """
        Search listings.

        Raises:
            ValidationError: Before any store access, on malformed options
            StoreError: If retrieval fails
        """
        params = self._compiler.parse(query, options)
        plan = await self._compiler.compile(params)
        items, total = await self._retriever.retrieve(plan)

        logger.info(
            f"Search served: items={len(items)}, total={total}",
            extra={"plan_mode": plan.mode.value},
        )
        return SearchResponse(
            items=items,
            pagination=Pagination.build(params.page, params.limit, total),
        )
