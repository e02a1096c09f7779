"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from listing_engine.api.dependencies import (
    clear_caches,
    get_preference_service,
    get_recommendation_service,
    get_search_service,
)
from listing_engine.core.cache import InMemoryCache
from listing_engine.main import app
from listing_engine.models.schemas import (
    Category,
    Listing,
    ListingType,
    PortfolioItem,
    Profile,
    ProfileLanguage,
    Rating,
    ViewerPreference,
)
from listing_engine.repositories.memory import (
    InMemoryCategoryStore,
    InMemoryInteractionStore,
    InMemoryListingStore,
    InMemoryPreferenceStore,
    InMemoryProfileStore,
)
from listing_engine.services.categories import CategoryHierarchyResolver
from listing_engine.services.filters import FilterCompiler
from listing_engine.services.preferences import PreferenceService
from listing_engine.services.ranking import RelevanceRankingEngine
from listing_engine.services.recommendations import RecommendationService
from listing_engine.services.result_cache import RecommendationCache
from listing_engine.services.retrieval import CandidateRetriever
from listing_engine.services.search import SearchService

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock returning both datetimes and epoch seconds."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def epoch(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_listing(listing_id: str, **overrides) -> Listing:
    """Listing with neutral defaults: fresh, unrated, unviewed, no tags."""
    fields = dict(
        id=listing_id,
        title=f"Listing {listing_id}",
        description="",
        type=ListingType.SERVICE,
        category_id="cat_other",
        created_at=NOW,
        owner_id="user_a",
        profile_id="profile_a",
    )
    fields.update(overrides)
    return Listing(**fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def listing_factory():
    return make_listing


@pytest.fixture
def listings():
    """Fixture for a small catalog covering every filterable field."""
    return [
        make_listing(
            "l1",
            title="Fix leaking tap",
            description="Plumbing help on weekends",
            exchange_preferences="Guitar lessons",
            category_id="cat_plumbing",
            tags=["A", "B", "C"],
            location="Berlin Mitte",
            rating=Rating(average=4.5, count=10),
            views=200,
            application_count=3,
            is_urgent=True,
            created_at=NOW - timedelta(days=1),
            owner_id="user_a",
            profile_id="profile_a",
        ),
        make_listing(
            "l2",
            title="Cordless drill",
            type=ListingType.GOODS,
            category_id="cat_repair",
            tags=["B"],
            location="Hamburg",
            rating=Rating(average=3.0, count=2),
            views=20,
            created_at=NOW - timedelta(days=3),
            expires_at=NOW + timedelta(days=10),
            owner_id="user_b",
            profile_id="profile_b",
        ),
        make_listing(
            "l3",
            title="Spanish lessons",
            type=ListingType.SKILL,
            category_id="cat_languages",
            tags=["D"],
            location="Online",
            rating=Rating(average=5.0, count=30),
            views=900,
            application_count=12,
            created_at=NOW - timedelta(days=2),
            owner_id="user_c",
            profile_id=None,
        ),
        make_listing(
            "l4",
            title="Archived wardrobe",
            type=ListingType.GOODS,
            category_id="cat_home",
            is_archived=True,
            created_at=NOW - timedelta(days=5),
            owner_id="user_b",
            profile_id="profile_b",
        ),
        make_listing(
            "l5",
            title="Paused garden help",
            type=ListingType.EXPERIENCE,
            category_id="cat_home",
            is_active=False,
            created_at=NOW - timedelta(days=4),
            owner_id="user_a",
            profile_id="profile_a",
        ),
    ]


@pytest.fixture
def profiles():
    return [
        Profile(
            id="profile_a",
            user_id="user_a",
            languages=[ProfileLanguage(language="German")],
            portfolio=[PortfolioItem(title="Kitchen refit")],
            rating=Rating(average=4.8, count=9),
        ),
        Profile(
            id="profile_b",
            user_id="user_b",
            languages=[ProfileLanguage(language="English")],
            rating=Rating(average=2.5, count=2),
        ),
        Profile(
            id="profile_c",
            user_id="user_c",
            languages=[ProfileLanguage(language="Spanish")],
            rating=Rating(average=4.0, count=5),
        ),
    ]


@pytest.fixture
def categories():
    return [
        Category(id="cat_home", name="Home"),
        Category(id="cat_repair", name="Repair", parent_id="cat_home"),
        Category(id="cat_plumbing", name="Plumbing", parent_id="cat_repair"),
        Category(id="cat_languages", name="Languages"),
    ]


@pytest.fixture
def listing_store(listings):
    return InMemoryListingStore(listings, tag_names={"A": "alpha", "B": "bravo"})


@pytest.fixture
def profile_store(profiles):
    return InMemoryProfileStore(profiles)


@pytest.fixture
def category_store(categories):
    return InMemoryCategoryStore(categories)


@pytest.fixture
def preference_store():
    return InMemoryPreferenceStore()


@pytest.fixture
def interaction_store(clock):
    return InMemoryInteractionStore(clock=clock)


@pytest.fixture
def filter_compiler(category_store):
    return FilterCompiler(CategoryHierarchyResolver(category_store))


@pytest.fixture
def retriever(listing_store, profile_store):
    return CandidateRetriever(listing_store, profile_store)


@pytest.fixture
def search_service(filter_compiler, retriever):
    return SearchService(filter_compiler, retriever)


@pytest.fixture
def result_cache(clock):
    return RecommendationCache(
        backend=InMemoryCache(clock=clock.epoch),
        ttl_seconds=600,
    )


@pytest.fixture
def recommendation_service(
    preference_store,
    interaction_store,
    filter_compiler,
    retriever,
    result_cache,
    clock,
):
    return RecommendationService(
        preference_store=preference_store,
        interaction_store=interaction_store,
        filter_compiler=filter_compiler,
        candidate_retriever=retriever,
        ranking_engine=RelevanceRankingEngine(),
        result_cache=result_cache,
        clock=clock,
    )


@pytest.fixture
def preference_service(preference_store, recommendation_service):
    return PreferenceService(preference_store, recommendation_service)


@pytest.fixture
def sample_preference():
    """Fixture for a viewer who likes plumbing services with default weights."""
    return ViewerPreference(
        viewer_id="viewer_1",
        preferred_categories=["cat_plumbing"],
        preferred_types=[ListingType.SERVICE],
    )


@pytest.fixture
def test_client(search_service, recommendation_service, preference_service):
    """
    TestClient fixture with dependency overrides.
    Uses in-memory stores and a fixed clock for isolation.
    """
    app.dependency_overrides[get_search_service] = lambda: search_service
    app.dependency_overrides[get_recommendation_service] = lambda: recommendation_service
    app.dependency_overrides[get_preference_service] = lambda: preference_service

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    clear_caches()
