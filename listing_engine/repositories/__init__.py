"""Repository implementations package."""
from .memory import (
    InMemoryCategoryStore,
    InMemoryInteractionStore,
    InMemoryListingStore,
    InMemoryPreferenceStore,
    InMemoryProfileStore,
)
from .seed import DemoCatalog, build_demo_catalog

__all__ = [
    "DemoCatalog",
    "InMemoryCategoryStore",
    "InMemoryInteractionStore",
    "InMemoryListingStore",
    "InMemoryPreferenceStore",
    "InMemoryProfileStore",
    "build_demo_catalog",
]
