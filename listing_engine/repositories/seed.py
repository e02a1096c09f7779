"""
Mock catalog for local runs.
Timestamps are relative to `now` so freshness scoring stays meaningful.
"""
from datetime import datetime, timedelta
from typing import Dict, List, NamedTuple

from listing_engine.models.schemas import (
    Category,
    InteractionRecord,
    InteractionType,
    Listing,
    ListingSnapshot,
    ListingType,
    PortfolioItem,
    Profile,
    ProfileLanguage,
    Rating,
    ViewerPreference,
)


class DemoCatalog(NamedTuple):
    categories: List[Category]
    tag_names: Dict[str, str]
    listings: List[Listing]
    profiles: List[Profile]
    preferences: List[ViewerPreference]
    interactions: List[InteractionRecord]


def build_demo_catalog(now: datetime) -> DemoCatalog:
    """Small catalog: two category trees, three owners, one viewer with preferences."""
    day = timedelta(days=1)

    categories = [
        Category(id="cat_home", name="Home & Garden"),
        Category(id="cat_repair", name="Repairs", parent_id="cat_home"),
        Category(id="cat_plumbing", name="Plumbing", parent_id="cat_repair"),
        Category(id="cat_learning", name="Learning"),
        Category(id="cat_languages", name="Languages", parent_id="cat_learning"),
    ]

    tag_names = {
        "tag_diy": "diy",
        "tag_tools": "tools",
        "tag_spanish": "spanish",
        "tag_online": "online",
    }

    listings = [
        Listing(
            id="l1",
            title="Leaky tap fixed in an hour",
            description="Experienced plumber, weekends only",
            exchange_preferences="Guitar lessons",
            type=ListingType.SERVICE,
            category_id="cat_plumbing",
            tags=["tag_diy", "tag_tools"],
            location="Berlin Mitte",
            rating=Rating(average=4.6, count=12),
            views=340,
            application_count=5,
            is_urgent=True,
            created_at=now - 2 * day,
            owner_id="user_anna",
            profile_id="profile_anna",
        ),
        Listing(
            id="l2",
            title="Cordless drill to lend",
            description="Comes with a set of bits",
            type=ListingType.GOODS,
            category_id="cat_repair",
            tags=["tag_tools"],
            location="Berlin Kreuzberg",
            rating=Rating(average=4.0, count=3),
            views=45,
            created_at=now - 5 * day,
            owner_id="user_ben",
            profile_id="profile_ben",
        ),
        Listing(
            id="l3",
            title="Spanish conversation practice",
            description="Native speaker, relaxed pace",
            exchange_preferences="Help with my garden",
            type=ListingType.SKILL,
            category_id="cat_languages",
            tags=["tag_spanish", "tag_online"],
            location="Online",
            rating=Rating(average=4.9, count=30),
            views=1200,
            application_count=14,
            created_at=now - 10 * day,
            owner_id="user_carla",
            profile_id="profile_carla",
        ),
        Listing(
            id="l4",
            title="Garden shed clear-out",
            description="Need a hand for one afternoon",
            type=ListingType.EXPERIENCE,
            category_id="cat_home",
            tags=["tag_diy"],
            location="Hamburg",
            views=8,
            created_at=now - 1 * day,
            expires_at=now + 6 * day,
            owner_id="user_ben",
            profile_id="profile_ben",
        ),
        Listing(
            id="l5",
            title="Old toolbox",
            description="Archived offer",
            type=ListingType.GOODS,
            category_id="cat_repair",
            tags=["tag_tools"],
            location="Berlin",
            is_archived=True,
            created_at=now - 40 * day,
            owner_id="user_anna",
            profile_id="profile_anna",
        ),
    ]

    profiles = [
        Profile(
            id="profile_anna",
            user_id="user_anna",
            languages=[ProfileLanguage(language="German", level="native")],
            portfolio=[PortfolioItem(title="Bathroom refit")],
            rating=Rating(average=4.7, count=20),
        ),
        Profile(
            id="profile_ben",
            user_id="user_ben",
            languages=[ProfileLanguage(language="English")],
            rating=Rating(average=3.2, count=4),
        ),
        Profile(
            id="profile_carla",
            user_id="user_carla",
            languages=[
                ProfileLanguage(language="Spanish", level="native"),
                ProfileLanguage(language="English", level="fluent"),
            ],
            portfolio=[PortfolioItem(title="Course material", url="https://example.org/es")],
            rating=Rating(average=4.9, count=41),
        ),
    ]

    preferences = [
        ViewerPreference(
            viewer_id="viewer_diy",
            preferred_categories=["cat_plumbing", "cat_repair", "cat_home"],
            preferred_types=[ListingType.SERVICE, ListingType.GOODS],
            preferred_tags=["tag_diy", "tag_tools"],
            preferred_locations=["berlin"],
        ),
    ]

    interactions = [
        InteractionRecord(
            viewer_id="viewer_diy",
            listing_id="l4",
            interaction_type=InteractionType.VIEW,
            timestamp=now - 1 * day,
            listing=ListingSnapshot(
                category_id="cat_home",
                type=ListingType.EXPERIENCE,
                tags=["tag_diy"],
                location="Hamburg",
            ),
        ),
    ]

    return DemoCatalog(
        categories=categories,
        tag_names=tag_names,
        listings=listings,
        profiles=profiles,
        preferences=preferences,
        interactions=interactions,
    )
