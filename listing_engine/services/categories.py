"""
Category hierarchy resolver.
Expands a category id into itself plus every descendant.
"""
import logging
from collections import deque
from typing import Iterable, Set

from listing_engine.models.interfaces import CategoryStore

logger = logging.getLogger(__name__)


class CategoryHierarchyResolver:
    """Breadth-first walk over parent -> children edges."""

    def __init__(self, category_store: CategoryStore) -> None:
        self._store = category_store

    async def descendants(self, category_id: str) -> Set[str]:
        """
        Return the transitive closure of a category's descendants.

        Args:
            category_id: Root of the walk, always part of the result

        Returns:
            Set of category ids. Terminates on cyclic hierarchies.
        """
        visited: Set[str] = {category_id}
        queue = deque([category_id])

        while queue:
            current = queue.popleft()
            for child in await self._store.get_children(current):
                if child in visited:
                    continue
                visited.add(child)
                queue.append(child)

        logger.debug(f"Category {category_id} expands to {len(visited)} ids")
        return visited

    async def expand(self, category_ids: Iterable[str]) -> Set[str]:
        """Union of descendants over several roots."""
        expanded: Set[str] = set()
        for category_id in category_ids:
            if category_id in expanded:
                continue
            expanded |= await self.descendants(category_id)
        return expanded
