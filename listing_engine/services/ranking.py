"""
Relevance ranking engine.
Popularity pre-sort, per-candidate preference scoring with a behavioral
component and freshness decay, threshold, sort and page.
"""
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from listing_engine.models.schemas import (
    InteractionRecord,
    Listing,
    RankedListing,
    ScoredListing,
    ViewerPreference,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# Popularity pre-score weights
POPULARITY_RATING_WEIGHT = 0.4
POPULARITY_VIEWS_WEIGHT = 0.3
POPULARITY_URGENT_WEIGHT = 0.3

# Default relevance for viewers without preferences
DEFAULT_BASE_SCORE = 0.5
DEFAULT_RATING_BOOST = 0.2
DEFAULT_VIEWS_BOOST_CAP = 0.15
DEFAULT_NEW_LISTING_DAYS = 7
DEFAULT_NEW_LISTING_BOOST = 0.1
DEFAULT_URGENT_BOOST = 0.05


def clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def popularity_score(listing: Listing) -> float:
    """Cheap pre-score used to bound the candidate pool before relevance scoring."""
    return (
        POPULARITY_RATING_WEIGHT * listing.rating.average
        + POPULARITY_VIEWS_WEIGHT * (math.log(listing.views + 1) / 10)
        + POPULARITY_URGENT_WEIGHT * (1 if listing.is_urgent else 0)
    )


def default_relevance(listing: Listing, now: datetime) -> float:
    """Quality-based relevance for viewers who have not stated preferences."""
    score = DEFAULT_BASE_SCORE
    score += DEFAULT_RATING_BOOST * (listing.rating.average / 5)
    if listing.views > 10:
        score += min(DEFAULT_VIEWS_BOOST_CAP, 0.1 * math.log(listing.views / 10))
    if days_between(listing.created_at, now) < DEFAULT_NEW_LISTING_DAYS:
        score += DEFAULT_NEW_LISTING_BOOST
    if listing.is_urgent:
        score += DEFAULT_URGENT_BOOST
    return clamp01(score)


def behavioral_score(listing: Listing, history: Sequence[InteractionRecord]) -> float:
    """
    Similarity of a listing to what the viewer interacted with before.

    Each record contributes one match for the same category, one for the same
    type and one per shared tag; the total is normalised by twice the history
    length and capped at 1.
    """
    if not history:
        return 0.0

    matches = 0
    listing_tags = set(listing.tags)
    for record in history:
        snapshot = record.listing
        if snapshot is None:
            continue
        if snapshot.category_id is not None and snapshot.category_id == listing.category_id:
            matches += 1
        if snapshot.type is not None and snapshot.type == listing.type:
            matches += 1
        matches += len(listing_tags.intersection(snapshot.tags))

    return min(matches / (len(history) * 2), 1.0)


# =============================================================================
# Preference Match Components (Strategy Pattern)
# =============================================================================


class ScoringStrategy(ABC):
    """One weighted component of the preference match."""

    weight_key: str

    @abstractmethod
    def calculate(self, listing: Listing, preference: ViewerPreference) -> float:
        """Return the unweighted component value in [0, 1]."""
        pass

    def weight(self, preference: ViewerPreference) -> float:
        return getattr(preference.score_weights, self.weight_key)


class CategoryMatch(ScoringStrategy):
    weight_key = "category_match"

    def calculate(self, listing: Listing, preference: ViewerPreference) -> float:
        return 1.0 if listing.category_id in preference.preferred_categories else 0.0


class TypeMatch(ScoringStrategy):
    weight_key = "type_match"

    def calculate(self, listing: Listing, preference: ViewerPreference) -> float:
        return 1.0 if listing.type in preference.preferred_types else 0.0


class TagMatch(ScoringStrategy):
    """Share of preferred tags carried by the listing."""

    weight_key = "tag_match"

    def calculate(self, listing: Listing, preference: ViewerPreference) -> float:
        if not preference.preferred_tags:
            return 0.0
        preferred = set(preference.preferred_tags)
        matched = sum(1 for tag in listing.tags if tag in preferred)
        return min(matched / len(preference.preferred_tags), 1.0)


class LocationMatch(ScoringStrategy):
    weight_key = "location_match"

    def calculate(self, listing: Listing, preference: ViewerPreference) -> float:
        if not listing.location:
            return 0.0
        location = listing.location.lower()
        return 1.0 if any(p.lower() in location for p in preference.preferred_locations) else 0.0


class RatingMatch(ScoringStrategy):
    weight_key = "rating_match"

    def calculate(self, listing: Listing, preference: ViewerPreference) -> float:
        # No stated minimum means no rating preference
        if preference.min_rating <= 0:
            return 0.0
        average = listing.rating.average
        if average >= preference.min_rating:
            return average / 5
        return 0.0


# =============================================================================
# Ranking Engine
# =============================================================================


class RelevanceRankingEngine:
    """
    Scores and orders candidates for one viewer.
    Pure computation: the caller supplies candidates, history and the clock.
    """

    def __init__(
        self,
        scoring_strategies: Optional[List[ScoringStrategy]] = None,
        candidate_pool_multiplier: int = 5,
        freshness_window_days: float = 30,
        behavioral_weight: float = 0.3,
    ) -> None:
        """
        Args:
            scoring_strategies: Weighted preference components (default: all five)
            candidate_pool_multiplier: Candidates kept per requested item after
                the popularity pre-sort
            freshness_window_days: Age at which the freshness factor reaches 0
            behavioral_weight: Multiplier of the behavioral score
        """
        self._strategies = scoring_strategies or [
            CategoryMatch(),
            TypeMatch(),
            TagMatch(),
            LocationMatch(),
            RatingMatch(),
        ]
        self._pool_multiplier = candidate_pool_multiplier
        self._freshness_window_days = freshness_window_days
        self._behavioral_weight = behavioral_weight

    def preselect(self, candidates: Sequence[Listing], limit: int) -> List[Listing]:
        """Sort by popularity, descending, and keep multiplier x limit candidates."""
        ordered = sorted(candidates, key=popularity_score, reverse=True)
        return ordered[: self._pool_multiplier * limit]

    def freshness_factor(self, listing: Listing, now: datetime) -> float:
        age_days = days_between(listing.created_at, now)
        return max(0.0, 1 - age_days / self._freshness_window_days)

    def score(
        self,
        listing: Listing,
        preference: Optional[ViewerPreference],
        history: Sequence[InteractionRecord],
        now: datetime,
    ) -> ScoredListing:
        """Compute the relevance of one candidate with its component breakdown."""
        if preference is None:
            relevance = default_relevance(listing, now)
            return ScoredListing(
                listing=listing,
                relevance_score=relevance,
                score_breakdown={"default": relevance},
            )

        breakdown = {}
        weighted_sum = 0.0
        for strategy in self._strategies:
            component = strategy.calculate(listing, preference)
            breakdown[strategy.weight_key] = component
            weighted_sum += component * strategy.weight(preference)

        behavior = behavioral_score(listing, history)
        freshness = self.freshness_factor(listing, now)
        relevance = clamp01((weighted_sum + self._behavioral_weight * behavior) * freshness)

        breakdown["weighted_sum"] = weighted_sum
        breakdown["behavioral"] = behavior
        breakdown["freshness"] = freshness
        return ScoredListing(
            listing=listing,
            relevance_score=relevance,
            score_breakdown=breakdown,
        )

    def rank(
        self,
        candidates: Sequence[Listing],
        preference: Optional[ViewerPreference],
        history: Sequence[InteractionRecord],
        page: int,
        limit: int,
        min_relevance_score: float,
        now: datetime,
    ) -> Tuple[List[RankedListing], int]:
        """
        Rank candidates for a viewer.

        Args:
            candidates: Coarse-filtered candidates
            preference: Viewer preferences, None for default relevance
            history: Recent interactions, newest first
            page: 1-based page number
            limit: Page size
            min_relevance_score: Candidates scoring below are dropped
            now: Reference time for freshness

        Returns:
            Tuple of (page of ranked listings, total above the threshold)
        """
        pool = self.preselect(candidates, limit)
        scored = [self.score(listing, preference, history, now) for listing in pool]
        kept = [s for s in scored if s.relevance_score >= min_relevance_score]

        # Equal scores are ordered by listing id
        kept.sort(key=lambda s: (-s.relevance_score, s.listing.id))

        start = (page - 1) * limit
        page_items = [s.to_ranked() for s in kept[start : start + limit]]

        logger.debug(
            f"Ranked {len(candidates)} candidates -> {len(pool)} preselected -> "
            f"{len(kept)} above {min_relevance_score} -> returning {len(page_items)} items"
        )
        return page_items, len(kept)
