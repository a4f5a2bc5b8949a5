"""Grouping and weight aggregation over the tag hierarchy."""

from collections.abc import Iterable

from .models import DistributionNode, GearItem

NestedGear = dict[str, dict[str, dict[str, list[GearItem]]]]


def group_by_path(items: Iterable[GearItem]) -> NestedGear:
    """Group items as {tt: {mt: {bt: [items]}}}, preserving item order."""
    nested: NestedGear = {}
    for item in items:
        nested.setdefault(item.tt, {}).setdefault(item.mt, {}).setdefault(item.bt, []).append(item)
    return nested


def group_by_top_tag(
    items: Iterable[GearItem],
    order: Iterable[str],
) -> list[tuple[str, list[GearItem]]]:
    """Group items by Top Tag following a given tag order; empty groups are skipped."""
    items = list(items)
    groups = []
    for tt in order:
        members = [item for item in items if item.tt == tt]
        if members:
            groups.append((tt, members))
    return groups


def pack_total(items: Iterable[GearItem], selected_ids: Iterable[str]) -> int:
    """Sum the weight of exactly the selected items."""
    selected = set(selected_ids)
    return sum(item.weight for item in items if item.id in selected)


def _percentage(weight: int, total: int) -> float:
    return round(weight * 100 / total, 1) if total else 0.0


def weight_breakdown(items: Iterable[GearItem]) -> list[DistributionNode]:
    """
    Compute a Top -> Middle -> Base weight distribution for a set of items.

    Percentages are relative to the whole pack at every level, and each
    level is sorted heaviest first.
    """
    items = list(items)
    total = sum(item.weight for item in items)

    def build(grouped: dict, depth: int) -> list[DistributionNode]:
        nodes = []
        for tag, value in grouped.items():
            if depth == 2:
                weight = sum(item.weight for item in value)
                children = []
            else:
                children = build(value, depth + 1)
                weight = sum(child.weight for child in children)
            nodes.append(DistributionNode(
                tag=tag,
                weight=weight,
                percentage=_percentage(weight, total),
                children=children,
            ))
        return sorted(nodes, key=lambda n: (-n.weight, n.tag))

    return build(group_by_path(items), 0)


def drill_down(distribution: list[DistributionNode], path: Iterable[str]) -> list[DistributionNode]:
    """Return the breakdown below a tag path, or an empty list if the path leads nowhere."""
    level = distribution
    for tag in path:
        node = next((d for d in level if d.tag == tag), None)
        if node is None:
            return []
        level = node.children
    return level
