"""
Unit tests for RelevanceRankingEngine service.
"""
import math
from datetime import timedelta

import pytest

from listing_engine.models.schemas import (
    InteractionRecord,
    InteractionType,
    ListingSnapshot,
    ListingType,
    Pagination,
    Rating,
    ScoreWeights,
    ViewerPreference,
)
from listing_engine.services.ranking import (
    LocationMatch,
    RatingMatch,
    RelevanceRankingEngine,
    TagMatch,
    behavioral_score,
    default_relevance,
    popularity_score,
)


def _history(now, *snapshots):
    return [
        InteractionRecord(
            viewer_id="viewer_1",
            listing_id=f"h{i}",
            interaction_type=InteractionType.VIEW,
            timestamp=now,
            listing=snapshot,
        )
        for i, snapshot in enumerate(snapshots)
    ]


class TestScoringFunctions:
    def test_popularity_score(self, listing_factory):
        listing = listing_factory("x", rating=Rating(average=4.0), views=99, is_urgent=True)
        expected = 0.4 * 4.0 + 0.3 * (math.log(100) / 10) + 0.3
        assert popularity_score(listing) == pytest.approx(expected)

    def test_default_relevance_plain(self, listing_factory, now):
        listing = listing_factory("x", created_at=now - timedelta(days=10))
        assert default_relevance(listing, now) == pytest.approx(0.5)

    def test_default_relevance_boosts(self, listing_factory, now):
        listing = listing_factory(
            "x",
            rating=Rating(average=5.0),
            views=100,
            is_urgent=True,
            created_at=now - timedelta(days=1),
        )
        # 0.5 + 0.2 + min(0.15, 0.1 * ln 10) + 0.1 + 0.05, clamped
        assert default_relevance(listing, now) == pytest.approx(1.0)

    def test_default_relevance_small_view_boost(self, listing_factory, now):
        listing = listing_factory("x", views=20, created_at=now - timedelta(days=8))
        assert default_relevance(listing, now) == pytest.approx(0.5 + 0.1 * math.log(2))

    def test_behavioral_score(self, listing_factory, now):
        listing = listing_factory(
            "x", category_id="cat_a", type=ListingType.GOODS, tags=["t1", "t2"]
        )
        history = _history(
            now,
            ListingSnapshot(category_id="cat_a", type=ListingType.GOODS, tags=["t1"]),
            ListingSnapshot(category_id="cat_b", type=ListingType.SKILL, tags=["t2"]),
        )
        # (1 + 1 + 1) + (0 + 0 + 1) over 2 * 2
        assert behavioral_score(listing, history) == pytest.approx(1.0)

        sparse = history + _history(now, None, ListingSnapshot())
        assert behavioral_score(listing, sparse) == pytest.approx(0.5)

    def test_behavioral_score_without_history(self, listing_factory):
        assert behavioral_score(listing_factory("x"), []) == 0.0

    def test_behavioral_score_is_capped(self, listing_factory, now):
        listing = listing_factory("x", tags=["t1", "t2", "t3", "t4"])
        history = _history(now, ListingSnapshot(tags=["t1", "t2", "t3", "t4"]))
        assert behavioral_score(listing, history) == 1.0


class TestComponents:
    def test_tag_match_fraction(self, listing_factory):
        preference = ViewerPreference(viewer_id="v", preferred_tags=["a", "b", "c", "d"])
        assert TagMatch().calculate(listing_factory("x", tags=["a", "c", "z"]), preference) == 0.5

    def test_location_match_is_case_insensitive_substring(self, listing_factory):
        preference = ViewerPreference(viewer_id="v", preferred_locations=["BERLIN"])
        assert LocationMatch().calculate(listing_factory("x", location="Berlin Mitte"), preference) == 1.0
        assert LocationMatch().calculate(listing_factory("x", location=None), preference) == 0.0

    def test_rating_match_threshold(self, listing_factory):
        preference = ViewerPreference(viewer_id="v", min_rating=4)
        assert RatingMatch().calculate(listing_factory("x", rating=Rating(average=4.5)), preference) == 0.9
        assert RatingMatch().calculate(listing_factory("x", rating=Rating(average=3.9)), preference) == 0.0

    def test_rating_ignored_without_minimum(self, listing_factory):
        preference = ViewerPreference(viewer_id="v")
        assert RatingMatch().calculate(listing_factory("x", rating=Rating(average=4.5)), preference) == 0.0


class TestRelevanceRankingEngine:
    def test_category_and_type_match_created_today(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        listing = listing_factory("x", category_id="cat_plumbing", created_at=now)

        scored = engine.score(listing, sample_preference, [], now)

        assert scored.score_breakdown["weighted_sum"] == pytest.approx(0.5)
        assert scored.score_breakdown["freshness"] == pytest.approx(1.0)
        assert scored.relevance_score == pytest.approx(0.5)

    def test_rated_category_and_type_match_created_today(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        listing = listing_factory(
            "x", category_id="cat_plumbing", rating=Rating(average=4.0), created_at=now
        )

        scored = engine.score(listing, sample_preference, [], now)

        assert scored.score_breakdown["rating_match"] == 0.0
        assert scored.relevance_score == pytest.approx(0.5)

    def test_old_listing_scores_zero(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        listing = listing_factory(
            "x",
            category_id="cat_plumbing",
            rating=Rating(average=5.0),
            created_at=now - timedelta(days=31),
        )

        assert engine.score(listing, sample_preference, [], now).relevance_score == 0.0

    def test_behavior_is_added_before_freshness(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        listing = listing_factory(
            "x", category_id="cat_plumbing", created_at=now - timedelta(days=15)
        )
        history = _history(now, ListingSnapshot(category_id="cat_plumbing", type=ListingType.SERVICE))

        scored = engine.score(listing, sample_preference, history, now)

        # (0.5 + 0.3 * 1.0) * 0.5
        assert scored.relevance_score == pytest.approx(0.4)

    def test_custom_weights(self, listing_factory, now):
        preference = ViewerPreference(
            viewer_id="v",
            preferred_types=[ListingType.SERVICE],
            score_weights=ScoreWeights(type_match=1.0),
        )
        scored = RelevanceRankingEngine().score(listing_factory("x"), preference, [], now)
        assert scored.relevance_score == pytest.approx(1.0)

    def test_scores_stay_in_unit_interval(self, listing_factory, now):
        preference = ViewerPreference(
            viewer_id="v",
            preferred_categories=["c"],
            preferred_types=[ListingType.SERVICE],
            preferred_tags=["t"],
            preferred_locations=["here"],
            score_weights=ScoreWeights(
                category_match=1, type_match=1, tag_match=1, location_match=1, rating_match=1
            ),
        )
        listing = listing_factory(
            "x", category_id="c", tags=["t"], location="here", rating=Rating(average=5)
        )
        history = _history(now, ListingSnapshot(category_id="c", type=ListingType.SERVICE, tags=["t"]))
        engine = RelevanceRankingEngine()

        for created_at in (now + timedelta(days=3), now, now - timedelta(days=60)):
            candidate = listing.model_copy(update={"created_at": created_at})
            assert 0.0 <= engine.score(candidate, preference, history, now).relevance_score <= 1.0

    def test_without_preferences_uses_default_relevance(self, listing_factory, now):
        listing = listing_factory("x", created_at=now - timedelta(days=10))
        scored = RelevanceRankingEngine().score(listing, None, [], now)
        assert scored.relevance_score == pytest.approx(0.5)

    def test_preselect_keeps_most_popular(self, listing_factory):
        engine = RelevanceRankingEngine(candidate_pool_multiplier=2)
        candidates = [listing_factory(f"c{i}", views=i * 10) for i in range(10)]

        pool = engine.preselect(candidates, limit=2)

        assert [c.id for c in pool] == ["c9", "c8", "c7", "c6"]

    def test_truncation_can_drop_relevant_candidates(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine(candidate_pool_multiplier=1)
        popular = listing_factory("popular", views=10000, type=ListingType.GOODS)
        relevant = listing_factory("relevant", category_id="cat_plumbing")

        items, total = engine.rank([relevant, popular], sample_preference, [], 1, 1, 0.0, now)

        assert [item.id for item in items] == ["popular"]
        assert total == 1

    def test_rank_threshold_sort_and_paging(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        candidates = [
            listing_factory("both", category_id="cat_plumbing"),          # 0.5
            listing_factory("type_only"),                                 # 0.2
            listing_factory("cat_only", category_id="cat_plumbing", type=ListingType.GOODS),  # 0.3
            listing_factory("neither", type=ListingType.GOODS),           # 0.0
        ]

        items, total = engine.rank(candidates, sample_preference, [], 1, 2, 0.1, now)

        assert total == 3
        assert [item.id for item in items] == ["both", "cat_only"]
        assert items[0].relevance_score == pytest.approx(0.5)

        page_two, _ = engine.rank(candidates, sample_preference, [], 2, 2, 0.1, now)
        assert [item.id for item in page_two] == ["type_only"]

    def test_equal_scores_ordered_by_id(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        candidates = [listing_factory(i, category_id="cat_plumbing") for i in ("b", "c", "a")]

        items, _ = engine.rank(candidates, sample_preference, [], 1, 10, 0.1, now)

        assert [item.id for item in items] == ["a", "b", "c"]

    def test_high_threshold_gives_empty_page(self, listing_factory, sample_preference, now):
        engine = RelevanceRankingEngine()
        candidates = [listing_factory("x", category_id="cat_plumbing")]

        items, total = engine.rank(candidates, sample_preference, [], 1, 10, 0.9, now)
        pagination = Pagination.build(1, 10, total)

        assert items == []
        assert total == 0
        assert pagination.pages == 0
        assert pagination.has_next is False
        assert pagination.has_prev is False


class TestPagination:
    @pytest.mark.parametrize(
        "page,limit,total,pages,has_next,has_prev",
        [
            (1, 10, 0, 0, False, False),
            (1, 10, 10, 1, False, False),
            (1, 10, 11, 2, True, False),
            (2, 10, 11, 2, False, True),
            (3, 5, 11, 3, False, True),
        ],
    )
    def test_build(self, page, limit, total, pages, has_next, has_prev):
        pagination = Pagination.build(page, limit, total)
        assert pagination.pages == pages
        assert pagination.has_next is has_next
        assert pagination.has_prev is has_prev
