"""
Catalog Lookup - read-only indexed access to catalog items.

A Catalog is an immutable snapshot: it is safe to share one instance
across any number of calculations. Lookups for unknown ids return None
(a missing reference), never raise, because items can be deactivated or
deleted after a trip references them.
"""
import logging
from typing import Iterable, Iterator, Optional, Union

from .models import CatalogItem, Category

logger = logging.getLogger(__name__)


class Catalog:
    """Indexed, read-only view over a list of catalog items."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items: list[CatalogItem] = []
        self._by_id: dict[str, CatalogItem] = {}
        self.warnings: list[str] = []

        for item in items:
            if item.id in self._by_id:
                # Keep the first occurrence; collision resolution is the catalog source's job
                msg = f"Duplicate catalog id '{item.id}' ignored"
                self.warnings.append(msg)
                logger.warning(msg)
                continue
            self._by_id[item.id] = item
            self._items.append(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    @property
    def items(self) -> tuple[CatalogItem, ...]:
        return tuple(self._items)

    def find_by_id(self, item_id: Optional[str]) -> Optional[CatalogItem]:
        """Get an item by id, including inactive items. None when missing."""
        if not item_id:
            return None
        return self._by_id.get(item_id)

    def find_active(self, item_id: Optional[str]) -> Optional[CatalogItem]:
        """Get an item by id only if it is still active."""
        item = self.find_by_id(item_id)
        if item is None or not item.active:
            return None
        return item

    def find_by_category_and_park(
        self,
        category: Union[Category, str],
        park_id: Optional[str],
    ) -> list[CatalogItem]:
        """Items of a category whose scope is exactly park_id (None means global items)."""
        cat = Category.parse(category)
        return [
            item for item in self._items
            if item.category == cat and item.park_id == (park_id or None)
        ]

    def applicable_to_park(
        self,
        category: Union[Category, str],
        park_id: Optional[str],
    ) -> list[CatalogItem]:
        """
        Active items of a category usable at a park: global items plus items
        scoped to that park. With no park, only global items are returned.
        """
        cat = Category.parse(category)
        result = []
        for item in self._items:
            if not item.active or item.category != cat:
                continue
            if item.park_id is None or (park_id and item.park_id == park_id):
                result.append(item)
        return result
