"""Data models for gear items, tags and pack analysis."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


TagPath = tuple[str, ...]


class TagLevel(str, Enum):
    """The three levels of the tag hierarchy."""

    TOP = "tt"
    MIDDLE = "mt"
    BASE = "bt"

    @property
    def depth(self) -> int:
        return list(TagLevel).index(self)

    @property
    def label(self) -> str:
        return {"tt": "Top Tag", "mt": "Middle Tag", "bt": "Base Tag"}[self.value]


@dataclass
class GearItem:
    """A single piece of catalogued gear."""

    id: str
    name: str
    brand: str
    weight: int  # grams
    notes: str = ""
    tt: str = ""
    mt: str = ""
    bt: str = ""

    @property
    def path(self) -> TagPath:
        """Return the (tt, mt, bt) tag path."""
        return (self.tt, self.mt, self.bt)

    def matches_path(self, path: TagPath) -> bool:
        """Check whether the item sits at or below a 1-3 element path."""
        return self.path[:len(path)] == tuple(path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "weight": self.weight,
            "notes": self.notes,
            "tt": self.tt,
            "mt": self.mt,
            "bt": self.bt,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GearItem":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            brand=data.get("brand", ""),
            weight=int(data.get("weight", 0)),
            notes=data.get("notes", ""),
            tt=data.get("tt", ""),
            mt=data.get("mt", ""),
            bt=data.get("bt", ""),
        )


@dataclass
class GearItemDraft:
    """Item fields as entered, before an id is assigned."""

    name: str
    brand: str = ""
    weight: int = 0
    notes: str = ""
    tt: str = ""
    mt: str = ""
    bt: str = ""

    @property
    def path(self) -> TagPath:
        return (self.tt, self.mt, self.bt)


@dataclass(frozen=True)
class TagVisuals:
    """Display color and emoji for a tag."""

    color: str
    emoji: str


FALLBACK_VISUALS = TagVisuals(color="#7f8c8d", emoji="📦")


@dataclass
class TagSuggestion:
    """A suggested tag with its match percentage (0-100)."""

    tag: str
    match_percentage: int
    is_new: bool = False

    @property
    def confidence_label(self) -> str:
        """Human-readable confidence level."""
        if self.match_percentage >= 90:
            return "Perfect"
        elif self.match_percentage >= 70:
            return "Good"
        elif self.match_percentage >= 40:
            return "Plausible"
        return "Poor"


@dataclass
class DistributionNode:
    """Weight share of one tag within a pack."""

    tag: str
    weight: int
    percentage: float
    children: list["DistributionNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "weight": self.weight,
            "percentage": self.percentage,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class PackAnalysis:
    """Hierarchical weight breakdown of a pack."""

    total_weight: int
    distribution: list[DistributionNode] = field(default_factory=list)
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_weight": self.total_weight,
            "distribution": [d.to_dict() for d in self.distribution],
            "summary": self.summary,
        }
