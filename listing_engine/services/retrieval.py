"""
Candidate retriever.
Executes a QueryPlan against the listing store. Direct plans are a single
filtered, sorted and paged store query plus a count. Joined plans fetch the
sorted local matches, resolve each declared join key to a profile, apply the
post-join predicates and page the survivors.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from listing_engine.core.exceptions import AppException, StoreError
from listing_engine.models.filters import (
    AuthorRatingPredicate,
    JoinSpec,
    LanguagePredicate,
    PlanMode,
    PortfolioPredicate,
    QueryPlan,
)
from listing_engine.models.interfaces import ListingStore, ProfileStore
from listing_engine.models.schemas import Listing, Profile

logger = logging.getLogger(__name__)

# Profiles resolved for one listing, keyed by join alias
JoinedProfiles = Dict[str, Optional[Profile]]


def satisfies_join_predicate(predicate, profiles: JoinedProfiles) -> bool:
    """Evaluate a cross-entity predicate against the profiles joined to one listing."""
    profile = profiles.get(predicate.join.alias)

    if isinstance(predicate, PortfolioPredicate):
        has_portfolio = profile is not None and len(profile.portfolio) > 0
        return has_portfolio == predicate.has_portfolio

    if profile is None:
        return False

    if isinstance(predicate, LanguagePredicate):
        spoken = {entry.language.lower() for entry in profile.languages}
        return any(language.lower() in spoken for language in predicate.languages)

    if isinstance(predicate, AuthorRatingPredicate):
        average = profile.rating.average
        if predicate.minimum is not None and average < predicate.minimum:
            return False
        if predicate.maximum is not None and average > predicate.maximum:
            return False
        return True

    raise TypeError(f"Unsupported join predicate: {predicate!r}")


class CandidateRetriever:
    """
    Runs query plans in direct or joined mode.
    Both modes return identical items and ordering for the same local predicates.
    """

    def __init__(self, listing_store: ListingStore, profile_store: ProfileStore) -> None:
        self._listings = listing_store
        self._profiles = profile_store

    async def retrieve(self, plan: QueryPlan) -> Tuple[List[Listing], int]:
        """
        Execute a plan.

        Returns:
            Tuple of (page of listings, total matches ignoring paging)

        Raises:
            StoreError: If the store or a profile lookup fails
        """
        try:
            if plan.mode is PlanMode.JOINED:
                return await self._retrieve_joined(plan)
            return await self._retrieve_direct(plan)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Store retrieval failed: mode={plan.mode.value}, error={e}")
            raise StoreError(f"retrieve ({plan.mode.value})", str(e)) from e

    async def find_all(self, plan: QueryPlan) -> List[Listing]:
        """Every listing matching the plan's local predicates, in plan order."""
        try:
            return await self._listings.find_listings(plan.predicates, sort=plan.sort)
        except Exception as e:
            logger.error(f"Store candidate query failed: {e}")
            raise StoreError("find_listings", str(e)) from e

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        try:
            found = await self._listings.find_listings_by_id([listing_id])
        except Exception as e:
            logger.error(f"Store lookup failed: listing_id={listing_id}, error={e}")
            raise StoreError("find_listings_by_id", str(e)) from e
        return found[0] if found else None

    async def _retrieve_direct(self, plan: QueryPlan) -> Tuple[List[Listing], int]:
        items, total = await asyncio.gather(
            self._listings.find_listings(
                plan.predicates,
                sort=plan.sort,
                skip=plan.skip,
                limit=plan.limit,
            ),
            self._listings.count_listings(plan.predicates),
        )
        return items, total

    async def _retrieve_joined(self, plan: QueryPlan) -> Tuple[List[Listing], int]:
        # Phase 1: local predicates, sorted the same way as direct mode
        local = await self._listings.find_listings(plan.predicates, sort=plan.sort)

        # Phase 2: resolve every declared join once per distinct key
        resolved = {
            join.alias: await self._resolve_join(join, local) for join in plan.joins
        }

        survivors = []
        for listing in local:
            profiles = {
                join.alias: resolved[join.alias].get(getattr(listing, join.local_field))
                for join in plan.joins
            }
            if all(satisfies_join_predicate(p, profiles) for p in plan.join_predicates):
                survivors.append(listing)

        end = None if plan.limit is None else plan.skip + plan.limit
        logger.debug(
            f"Joined retrieval: local={len(local)}, survivors={len(survivors)}, "
            f"joins={[join.alias for join in plan.joins]}"
        )
        return survivors[plan.skip:end], len(survivors)

    async def _resolve_join(
        self,
        join: JoinSpec,
        listings: Sequence[Listing],
    ) -> Dict[str, Optional[Profile]]:
        keys = list(
            dict.fromkeys(
                key
                for key in (getattr(listing, join.local_field) for listing in listings)
                if key is not None
            )
        )
        profiles = await asyncio.gather(
            *(self._profiles.find_profile_by_field(join.foreign_field, key) for key in keys)
        )
        return dict(zip(keys, profiles))
