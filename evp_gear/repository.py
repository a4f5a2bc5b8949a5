"""JSON persistence for the item list and the tag hierarchy."""

import json
import logging
from pathlib import Path

from .config import config
from .hierarchy import TagHierarchy, VisualsProvider
from .initial_data import default_hierarchy, default_items
from .inventory import GearInventory
from .models import GearItem

logger = logging.getLogger(__name__)

ITEMS_FILE = "gear_items.json"
HIERARCHY_FILE = "tag_hierarchy.json"


class InventoryRepository:
    """
    Loads and saves the two whole-object documents.

    Nothing is written implicitly: callers save() once a mutation has
    succeeded.
    """

    def __init__(self, data_dir: Path | None = None):
        self.data_dir = Path(data_dir) if data_dir else config.data_dir
        self.items_path = self.data_dir / ITEMS_FILE
        self.hierarchy_path = self.data_dir / HIERARCHY_FILE

    def _read(self, path: Path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def load_items(self) -> list[GearItem]:
        if not self.items_path.exists():
            return default_items()
        try:
            raw = self._read(self.items_path)
            return [GearItem.from_dict(entry) for entry in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Could not read {self.items_path}, using default items: {e}")
            return default_items()

    def load_hierarchy(self) -> TagHierarchy:
        if not self.hierarchy_path.exists():
            return default_hierarchy()
        try:
            return TagHierarchy.from_dict(self._read(self.hierarchy_path))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not read {self.hierarchy_path}, using default tags: {e}")
            return default_hierarchy()

    def load(self, visuals: VisualsProvider | None = None) -> GearInventory:
        """Read both documents into an inventory."""
        return GearInventory(
            items=self.load_items(),
            hierarchy=self.load_hierarchy(),
            visuals=visuals,
        )

    def save(self, inventory: GearInventory) -> None:
        """Rewrite both documents in full."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.items_path, "w", encoding="utf-8") as f:
            json.dump([i.to_dict() for i in inventory.items], f, indent=2, ensure_ascii=False)
        with open(self.hierarchy_path, "w", encoding="utf-8") as f:
            json.dump(inventory.hierarchy.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug(f"Saved {len(inventory)} items to {self.data_dir}")
