"""Gear inventory: the flat item list kept consistent with the tag hierarchy."""

import logging
from dataclasses import replace
from enum import Enum
from uuid import uuid4

from .aggregation import NestedGear, group_by_path
from .hierarchy import TagHierarchy, VisualsProvider, validate_path
from .models import GearItem, GearItemDraft, TagPath

logger = logging.getLogger(__name__)


class InventoryError(ValueError):
    """Base class for item errors."""


class ItemValidationError(InventoryError):
    """Required item fields are missing or invalid."""


class DuplicateItemError(InventoryError):
    """An item with the same name, brand and weight already exists."""


class ItemNotFoundError(InventoryError):
    """No item with the given id."""


class SearchField(str, Enum):
    ITEM = "item"
    BRAND = "brand"
    TAG = "tag"


def _normalize(text: str) -> str:
    return text.strip().lower()


def validate_item_fields(item: GearItem | GearItemDraft) -> None:
    """Raise ItemValidationError unless name, weight and the tag path are usable."""
    problems = []
    if not item.name or not item.name.strip():
        problems.append("name is required")
    if isinstance(item.weight, bool) or not isinstance(item.weight, int) or item.weight <= 0:
        problems.append("weight must be a positive number of grams")
    if any(not tag or not tag.strip() for tag in item.path):
        problems.append("Top, Middle and Base tags are required")
    if problems:
        raise ItemValidationError("; ".join(problems))


class GearInventory:
    """
    Items plus the hierarchy they point into.

    Every tag rename or delete goes through here so the items' (tt, mt, bt)
    paths and the hierarchy node names never diverge.
    """

    def __init__(
        self,
        items: list[GearItem] | None = None,
        hierarchy: TagHierarchy | None = None,
        visuals: VisualsProvider | None = None,
    ):
        self.hierarchy = hierarchy if hierarchy is not None else TagHierarchy()
        self.visuals = visuals
        self._items: list[GearItem] = list(items or [])
        self._sort()

    def _sort(self) -> None:
        self._items.sort(key=lambda i: i.name.casefold())

    @property
    def items(self) -> list[GearItem]:
        """Items sorted by name."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get_item(self, item_id: str) -> GearItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError(f"Item not found: {item_id}")

    def is_duplicate(self, name: str, brand: str, weight: int) -> bool:
        """Same normalized name and brand, and the same weight."""
        return any(
            _normalize(i.name) == _normalize(name)
            and _normalize(i.brand) == _normalize(brand)
            and i.weight == weight
            for i in self._items
        )

    # ---- items ----

    async def add_item(self, draft: GearItemDraft) -> GearItem:
        """
        Validate and insert a new item, creating any missing tags.

        Raises:
            ItemValidationError: required fields missing
            DuplicateItemError: same name, brand and weight already exist
        """
        validate_item_fields(draft)
        if self.is_duplicate(draft.name, draft.brand, draft.weight):
            raise DuplicateItemError(
                "This exact item (same name, brand, and weight) already exists."
            )

        item = GearItem(
            id=str(uuid4()),
            name=draft.name.strip(),
            brand=draft.brand.strip(),
            weight=draft.weight,
            notes=draft.notes,
            tt=draft.tt.strip(),
            mt=draft.mt.strip(),
            bt=draft.bt.strip(),
        )
        await self.hierarchy.ensure_path(item.path, self.visuals)
        # The same item may have been added while the visuals were generated
        if self.is_duplicate(item.name, item.brand, item.weight):
            raise DuplicateItemError(
                "This exact item (same name, brand, and weight) already exists."
            )

        self._items.append(item)
        self._sort()
        logger.info(f"Added item {item.name} ({item.weight}g) at {' > '.join(item.path)}")
        return item

    async def update_item(self, updated: GearItem) -> GearItem:
        """Replace an item by id; a changed tag path is created if needed."""
        validate_item_fields(updated)
        updated = replace(
            updated,
            name=updated.name.strip(),
            brand=updated.brand.strip(),
            tt=updated.tt.strip(),
            mt=updated.mt.strip(),
            bt=updated.bt.strip(),
        )
        original = self.get_item(updated.id)

        if original.path != updated.path:
            await self.hierarchy.ensure_path(updated.path, self.visuals)
            # Raises if the item was deleted meanwhile
            self.get_item(updated.id)

        self._items = [updated if i.id == updated.id else i for i in self._items]
        self._sort()
        logger.info(f"Updated item {updated.id}")
        return updated

    def delete_item(self, item_id: str) -> GearItem:
        item = self.get_item(item_id)
        self._items = [i for i in self._items if i.id != item_id]
        logger.info(f"Deleted item {item.name}")
        return item

    # ---- tags ----

    def rename_tag(self, path: TagPath | list[str], new_name: str) -> int:
        """
        Rename a tag and cascade the new name to every item below it.

        Only the path segment at the renamed depth changes.

        Returns:
            Number of items rewritten
        """
        path = validate_path(path)
        node = self.hierarchy.rename(path, new_name)
        field_name = ("tt", "mt", "bt")[len(path) - 1]

        changed = 0
        rewritten = []
        for item in self._items:
            if item.matches_path(path):
                item = replace(item, **{field_name: node.name})
                changed += 1
            rewritten.append(item)
        self._items = rewritten
        self._sort()
        return changed

    def delete_tag(self, path: TagPath | list[str]) -> list[GearItem]:
        """Delete a tag subtree and every item under it. Returns the removed items."""
        path = validate_path(path)
        self.hierarchy.delete(path)

        removed = [i for i in self._items if i.matches_path(path)]
        self._items = [i for i in self._items if not i.matches_path(path)]
        if removed:
            logger.info(f"Removed {len(removed)} items under {' > '.join(path)}")
        return removed

    # ---- views ----

    def grouped(self) -> NestedGear:
        return group_by_path(self._items)

    def search(self, query: str, by: SearchField | str = SearchField.ITEM) -> list[GearItem] | None:
        """
        Case-insensitive substring search.

        Returns None for an empty query, meaning no search is active.
        """
        if not query:
            return None
        by = SearchField(by)
        needle = query.lower()

        def hit(item: GearItem) -> bool:
            if by is SearchField.ITEM:
                return needle in item.name.lower()
            if by is SearchField.BRAND:
                return needle in item.brand.lower()
            return any(needle in tag.lower() for tag in item.path)

        return [i for i in self._items if hit(i)]

    def orphaned_items(self) -> list[GearItem]:
        """Items whose tag path is missing from the hierarchy."""
        return [i for i in self._items if not self.hierarchy.has_path(i.path)]
