"""Pack selection and analysis state."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Generic, Iterable, Optional, TypeVar
from uuid import uuid4

from .aggregation import pack_total
from .models import GearItem, PackAnalysis

T = TypeVar("T")


class ResultSlot(Generic[T]):
    """
    Holds the latest result of an async request.

    Each request takes a generation token from begin(); commit() only stores
    a result whose token is still current, so a slow, superseded response
    cannot overwrite newer state.
    """

    def __init__(self):
        self._generation = 0
        self.value: Optional[T] = None

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        """Start a new request; any older in-flight request becomes stale."""
        self._generation += 1
        self.value = None
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def commit(self, token: int, value: Optional[T]) -> bool:
        """Store value if token is current. Returns whether it was stored."""
        if not self.is_current(token):
            return False
        self.value = value
        return True

    def invalidate(self) -> None:
        """Drop the stored value and orphan in-flight requests."""
        self._generation += 1
        self.value = None


@dataclass
class PackSelection:
    """The set of item ids chosen for a pack."""

    item_ids: set[str] = field(default_factory=set)

    def toggle(self, item_id: str) -> bool:
        """Flip an item in or out. Returns True if it is now selected."""
        if item_id in self.item_ids:
            self.item_ids.discard(item_id)
            return False
        self.item_ids.add(item_id)
        return True

    def select(self, item_ids: Iterable[str]) -> None:
        self.item_ids.update(item_ids)

    def clear(self) -> None:
        self.item_ids.clear()

    def __contains__(self, item_id: str) -> bool:
        return item_id in self.item_ids

    def __len__(self) -> int:
        return len(self.item_ids)

    def packed(self, items: Iterable[GearItem]) -> list[GearItem]:
        """Selected items that still exist, heaviest first."""
        return sorted(
            (item for item in items if item.id in self.item_ids),
            key=lambda i: i.weight,
            reverse=True,
        )

    def total_weight(self, items: Iterable[GearItem]) -> int:
        return pack_total(items, self.item_ids)


@dataclass
class PackSession:
    """A pack being assembled, with its analysis results."""

    selection: PackSelection = field(default_factory=PackSelection)
    analysis: ResultSlot[PackAnalysis] = field(default_factory=ResultSlot)
    summary: ResultSlot[str] = field(default_factory=ResultSlot)
    ttl_minutes: int = 30

    # Identifiers
    session_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        if self.expires_at is None:
            self.expires_at = self.created_at + timedelta(minutes=self.ttl_minutes)

    def touch(self):
        """Update last activity timestamp and extend expiration."""
        self.updated_at = datetime.now()
        self.expires_at = self.updated_at + timedelta(minutes=self.ttl_minutes)

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now() > self.expires_at

    def _selection_changed(self):
        # Any analysis describes the old selection
        self.analysis.invalidate()
        self.summary.invalidate()
        self.touch()

    def toggle(self, item_id: str) -> bool:
        selected = self.selection.toggle(item_id)
        self._selection_changed()
        return selected

    def select(self, item_ids: Iterable[str]) -> None:
        self.selection.select(item_ids)
        self._selection_changed()

    def deselect(self, item_ids: Iterable[str]) -> None:
        self.selection.item_ids.difference_update(item_ids)
        self._selection_changed()

    def clear(self) -> None:
        self.selection.clear()
        self._selection_changed()

    def to_dict(self, items: list[GearItem]) -> dict:
        """Convert session to dictionary (for serialization)."""
        packed = self.selection.packed(items)
        return {
            "session_id": self.session_id,
            "item_ids": [i.id for i in packed],
            "total_weight": sum(i.weight for i in packed),
            "analysis": self.analysis.value.to_dict() if self.analysis.value else None,
            "summary": self.summary.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
