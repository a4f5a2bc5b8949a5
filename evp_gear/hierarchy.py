"""Three-level tag hierarchy (Top Tag / Middle Tag / Base Tag)."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol
from uuid import uuid4

from .models import FALLBACK_VISUALS, TagPath, TagVisuals

logger = logging.getLogger(__name__)

MAX_DEPTH = 3
MIDDLE_TAG_HINT = "(backpacking gear category)"


class TagError(ValueError):
    """Base class for hierarchy errors."""


class TagPathError(TagError):
    """The path is not 1-3 non-blank names."""


class TagNotFoundError(TagError):
    """No node exists at the given path."""


class DuplicateTagError(TagError):
    """A sibling with the requested name already exists."""


class VisualsProvider(Protocol):
    async def generate_tag_visuals(self, tag_name: str) -> TagVisuals | None:
        ...


@dataclass
class TagNode:
    """A node in the hierarchy, owned by its id."""

    name: str
    depth: int
    color: str = ""
    emoji: str = ""
    parent_id: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    # child name -> child id
    children: dict[str, str] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        return self.depth == MAX_DEPTH - 1


def validate_path(path: TagPath | list[str], full: bool = False) -> TagPath:
    """Normalize a path to a tuple and check its shape."""
    path = tuple(path)
    if not 1 <= len(path) <= MAX_DEPTH:
        raise TagPathError(f"Tag path must have 1 to {MAX_DEPTH} elements, got {len(path)}")
    if full and len(path) != MAX_DEPTH:
        raise TagPathError("A complete Top/Middle/Base tag path is required")
    if any(not isinstance(name, str) or not name.strip() for name in path):
        raise TagPathError(f"Tag names must not be blank: {list(path)}")
    return path


class TagHierarchy:
    """
    Tree of tag nodes indexed by stable identifiers.

    Each parent keeps a name -> id index of its children, so a rename only
    updates the node's name and one index key; ids and subtrees never move.
    """

    def __init__(self):
        self._nodes: dict[str, TagNode] = {}
        self._roots: dict[str, str] = {}

    # ---- lookup ----

    def _index(self, parent: TagNode | None) -> dict[str, str]:
        return self._roots if parent is None else parent.children

    def find(self, path: TagPath | list[str]) -> TagNode | None:
        """Return the node at a 1-3 element path, or None."""
        node = None
        for name in path:
            node_id = self._index(node).get(name)
            if node_id is None:
                return None
            node = self._nodes[node_id]
        return node

    def require(self, path: TagPath | list[str]) -> TagNode:
        path = validate_path(path)
        node = self.find(path)
        if node is None:
            raise TagNotFoundError(f"Tag not found: {' > '.join(path)}")
        return node

    def has_path(self, path: TagPath | list[str]) -> bool:
        return self.find(path) is not None

    def names(self, path: TagPath | list[str] = ()) -> list[str]:
        """Sorted child names below a path; the empty path lists Top Tags."""
        if not path:
            return sorted(self._roots)
        node = self.find(path)
        return sorted(node.children) if node else []

    def children(self, path: TagPath | list[str] = ()) -> list[TagNode]:
        """Child nodes below a path, in insertion order."""
        if not path:
            index = self._roots
        else:
            node = self.find(path)
            index = node.children if node else {}
        return [self._nodes[node_id] for node_id in index.values()]

    def paths(self) -> Iterator[TagPath]:
        """Yield every complete (tt, mt, bt) path."""
        for top in self.children():
            for middle in self.children((top.name,)):
                for base in self.children((top.name, middle.name)):
                    yield (top.name, middle.name, base.name)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path) -> bool:
        return self.has_path(path)

    # ---- mutation ----

    def add_node(
        self,
        parent_path: TagPath | list[str],
        name: str,
        visuals: TagVisuals | None = None,
    ) -> TagNode:
        """Attach a new node under an existing parent path."""
        parent = self.require(parent_path) if parent_path else None
        depth = 0 if parent is None else parent.depth + 1
        if depth >= MAX_DEPTH:
            raise TagPathError(f"Base Tags cannot have children: {name}")
        index = self._index(parent)
        if name in index:
            raise DuplicateTagError(f"A tag named '{name}' already exists here")

        node = TagNode(
            name=name,
            depth=depth,
            color=visuals.color if visuals else "",
            emoji=visuals.emoji if visuals else "",
            parent_id=parent.id if parent else None,
        )
        self._nodes[node.id] = node
        index[name] = node.id
        return node

    async def ensure_path(
        self,
        path: TagPath | list[str],
        visuals: VisualsProvider | None = None,
    ) -> list[TagPath]:
        """
        Make sure every level of a (tt, mt, bt) path exists.

        Missing nodes are created parent before child, each with generated
        visuals (or the fallback when the provider has nothing). Existing
        nodes are left untouched.

        Returns:
            The paths of the nodes that were created, shallowest first
        """
        path = validate_path(path, full=True)
        created: list[TagPath] = []

        for depth in range(MAX_DEPTH):
            prefix = path[:depth + 1]
            if self.has_path(prefix):
                continue
            node_visuals = await self._visuals_for(prefix[-1], depth, visuals)
            # Another caller may have created it while we waited
            if self.has_path(prefix):
                continue
            self.add_node(prefix[:-1], prefix[-1], node_visuals)
            created.append(prefix)
            logger.info(f"Created tag {' > '.join(prefix)}")

        return created

    @staticmethod
    async def _visuals_for(
        name: str,
        depth: int,
        provider: VisualsProvider | None,
    ) -> TagVisuals:
        if provider is None:
            return FALLBACK_VISUALS
        result = await provider.generate_tag_visuals(name) or FALLBACK_VISUALS
        # Middle Tags get one more try when the emoji came back generic
        if depth == 1 and result.emoji == FALLBACK_VISUALS.emoji:
            retry = await provider.generate_tag_visuals(f"{name} {MIDDLE_TAG_HINT}")
            result = retry or result
        return result

    def rename(self, path: TagPath | list[str], new_name: str) -> TagNode:
        """
        Rename the node at a path, keeping its id and subtree.

        Raises:
            DuplicateTagError: if a sibling already uses new_name
        """
        node = self.require(path)
        new_name = new_name.strip()
        if not new_name:
            raise TagPathError("Tag name must not be blank")
        if new_name == node.name:
            return node

        parent = self._nodes.get(node.parent_id) if node.parent_id else None
        index = self._index(parent)
        if new_name in index:
            raise DuplicateTagError(f"A tag named '{new_name}' already exists")

        del index[node.name]
        index[new_name] = node.id
        logger.info(f"Renamed tag {' > '.join(path)} to {new_name}")
        node.name = new_name
        return node

    def delete(self, path: TagPath | list[str]) -> int:
        """Remove the node at a path and its whole subtree. Returns nodes removed."""
        node = self.require(path)
        parent = self._nodes.get(node.parent_id) if node.parent_id else None
        del self._index(parent)[node.name]

        removed = 0
        stack = [node.id]
        while stack:
            current = self._nodes.pop(stack.pop())
            stack.extend(current.children.values())
            removed += 1

        logger.info(f"Deleted tag {' > '.join(path)} ({removed} nodes)")
        return removed

    # ---- serialization ----

    def _node_to_dict(self, node: TagNode) -> dict[str, Any]:
        return {
            "name": node.name,
            "color": node.color,
            "emoji": node.emoji,
            "children": {
                name: self._node_to_dict(self._nodes[child_id])
                for name, child_id in node.children.items()
            },
        }

    def to_dict(self) -> dict[str, Any]:
        """Nested name-keyed document: {tt: {name, color, emoji, children}}."""
        return {
            name: self._node_to_dict(self._nodes[node_id])
            for name, node_id in self._roots.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TagHierarchy":
        """Build a hierarchy from the nested document; keys are authoritative names."""
        if not isinstance(data, dict):
            raise TypeError("Tag hierarchy document must be an object")

        hierarchy = cls()

        def attach(parent_path: TagPath, entries: dict[str, Any]) -> None:
            if not isinstance(entries, dict):
                raise TypeError("Tag children must be an object")
            for name, raw in entries.items():
                raw = raw or {}
                visuals = TagVisuals(color=raw.get("color", ""), emoji=raw.get("emoji", ""))
                hierarchy.add_node(parent_path, name, visuals)
                if len(parent_path) + 1 < MAX_DEPTH:
                    attach(parent_path + (name,), raw.get("children", {}))

        attach((), data)
        return hierarchy

    def __eq__(self, other) -> bool:
        if not isinstance(other, TagHierarchy):
            return NotImplemented
        return self.to_dict() == other.to_dict()
