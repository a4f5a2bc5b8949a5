"""Bundled starter inventory, used when no saved data can be read."""

import copy

from .hierarchy import TagHierarchy
from .models import GearItem


def _leaf_chain(*names: str) -> dict:
    """Uncolored Middle > Base chain."""
    middle, base = names
    return {
        middle: {
            "name": middle, "color": "", "emoji": "",
            "children": {base: {"name": base, "color": "", "emoji": "", "children": {}}},
        }
    }


INITIAL_TAG_HIERARCHY = {
    "Shelter": {
        "name": "Shelter",
        "color": "#2980b9",
        "emoji": "⛺️",
        "children": {
            **_leaf_chain("Tent", "2-Person Tent"),
            **_leaf_chain("Sleeping Bag", "3-Season Synthetic"),
        },
    },
    "Cookware": {
        "name": "Cookware",
        "color": "#e67e22",
        "emoji": "🍳",
        "children": _leaf_chain("Stove", "Canister Stove"),
    },
    "Tools": {
        "name": "Tools",
        "color": "#c0392b",
        "emoji": "🛠️",
        "children": _leaf_chain("Knife", "Multi-tool"),
    },
    "Tech": {
        "name": "Tech",
        "color": "#8e44ad",
        "emoji": "🔋",
        "children": _leaf_chain("Power", "Power Bank"),
    },
}

INITIAL_GEAR_ITEMS = [
    {"id": "1", "name": "Hubba Hubba NX", "brand": "MSR", "weight": 1720,
     "notes": "Reliable 2-person tent.", "tt": "Shelter", "mt": "Tent", "bt": "2-Person Tent"},
    {"id": "2", "name": "Cosmic 20", "brand": "Kelty", "weight": 1162,
     "notes": "Good for 3-season use.", "tt": "Shelter", "mt": "Sleeping Bag", "bt": "3-Season Synthetic"},
    {"id": "3", "name": "PocketRocket 2", "brand": "MSR", "weight": 73,
     "notes": "Fast and lightweight stove.", "tt": "Cookware", "mt": "Stove", "bt": "Canister Stove"},
    {"id": "4", "name": "Leatherman Signal", "brand": "Leatherman", "weight": 212,
     "notes": "Contains all essential tools.", "tt": "Tools", "mt": "Knife", "bt": "Multi-tool"},
    {"id": "5", "name": "PowerCore 10000", "brand": "Anker", "weight": 180,
     "notes": "About 2-3 phone charges.", "tt": "Tech", "mt": "Power", "bt": "Power Bank"},
]


def default_items() -> list[GearItem]:
    return [GearItem.from_dict(raw) for raw in INITIAL_GEAR_ITEMS]


def default_hierarchy() -> TagHierarchy:
    return TagHierarchy.from_dict(copy.deepcopy(INITIAL_TAG_HIERARCHY))
