"""
Tests for the tag hierarchy.
"""

import asyncio

import pytest

from evp_gear.hierarchy import (
    DuplicateTagError,
    TagHierarchy,
    TagNotFoundError,
    TagPathError,
    validate_path,
)
from evp_gear.models import FALLBACK_VISUALS, TagVisuals


class TestLookup:
    """Tests for finding nodes and listing names."""

    def test_find_nested_path(self, hierarchy):
        node = hierarchy.find(("Shelter", "Tent", "2-Person Tent"))
        assert node is not None
        assert node.depth == 2
        assert node.is_leaf

    def test_find_missing_path(self, hierarchy):
        assert hierarchy.find(("Shelter", "Hammock")) is None
        assert not hierarchy.has_path(("Nope",))

    def test_names_are_sorted_per_level(self, hierarchy):
        assert hierarchy.names() == ["Cookware", "Shelter", "Tech", "Tools"]
        assert hierarchy.names(("Shelter",)) == ["Sleeping Bag", "Tent"]
        assert hierarchy.names(("Shelter", "Tent")) == ["2-Person Tent"]
        assert hierarchy.names(("Missing",)) == []

    def test_paths_lists_every_leaf(self, hierarchy):
        paths = set(hierarchy.paths())
        assert ("Cookware", "Stove", "Canister Stove") in paths
        assert len(paths) == 5

    def test_require_raises_for_unknown(self, hierarchy):
        with pytest.raises(TagNotFoundError):
            hierarchy.require(("Shelter", "Hammock"))


class TestValidatePath:

    def test_rejects_bad_lengths(self):
        with pytest.raises(TagPathError):
            validate_path(())
        with pytest.raises(TagPathError):
            validate_path(("a", "b", "c", "d"))

    def test_rejects_blank_names(self):
        with pytest.raises(TagPathError):
            validate_path(("Shelter", "  "))

    def test_full_requires_three(self):
        with pytest.raises(TagPathError):
            validate_path(("Shelter", "Tent"), full=True)
        assert validate_path(["a", "b", "c"], full=True) == ("a", "b", "c")


class TestEnsurePath:
    """Auto-vivification of missing levels."""

    def test_creates_only_missing_levels(self, hierarchy, fake_visuals):
        shelter = hierarchy.find(("Shelter",))
        shelter_id, shelter_color = shelter.id, shelter.color

        created = asyncio.run(hierarchy.ensure_path(("Shelter", "Tarp", "Flat Tarp"), fake_visuals))

        assert created == [("Shelter", "Tarp"), ("Shelter", "Tarp", "Flat Tarp")]
        assert fake_visuals.calls == ["Tarp", "Flat Tarp"]
        assert hierarchy.has_path(("Shelter", "Tarp", "Flat Tarp"))
        # Existing ancestor untouched
        assert hierarchy.find(("Shelter",)).id == shelter_id
        assert hierarchy.find(("Shelter",)).color == shelter_color
        assert hierarchy.names() == ["Cookware", "Shelter", "Tech", "Tools"]

    def test_new_nodes_get_generated_visuals(self, hierarchy, fake_visuals):
        asyncio.run(hierarchy.ensure_path(("Water", "Filter", "Squeeze Filter"), fake_visuals))
        node = hierarchy.find(("Water",))
        assert (node.color, node.emoji) == ("#112233", "🧭")

    def test_is_idempotent(self, hierarchy, fake_visuals):
        path = ("Water", "Filter", "Squeeze Filter")
        asyncio.run(hierarchy.ensure_path(path, fake_visuals))
        once = hierarchy.to_dict()

        created = asyncio.run(hierarchy.ensure_path(path, fake_visuals))

        assert created == []
        assert hierarchy.to_dict() == once
        assert len(fake_visuals.calls) == 3

    def test_overlapping_calls_share_new_nodes(self, hierarchy):
        class Slow:
            async def generate_tag_visuals(self, tag_name):
                await asyncio.sleep(0.01)
                return TagVisuals("#445566", "💧")

        async def both():
            return await asyncio.gather(
                hierarchy.ensure_path(("Water", "Filter", "Squeeze Filter"), Slow()),
                hierarchy.ensure_path(("Water", "Filter", "Gravity Filter"), Slow()),
            )

        first, second = asyncio.run(both())

        assert ("Water",) in first and ("Water",) not in second
        assert hierarchy.names(("Water", "Filter")) == ["Gravity Filter", "Squeeze Filter"]
        assert len(hierarchy) == 18

    def test_fallback_without_provider(self, hierarchy):
        asyncio.run(hierarchy.ensure_path(("Water", "Filter", "Squeeze Filter")))
        node = hierarchy.find(("Water", "Filter"))
        assert (node.color, node.emoji) == (FALLBACK_VISUALS.color, FALLBACK_VISUALS.emoji)

    def test_fallback_when_provider_has_nothing(self, hierarchy):
        class Empty:
            async def generate_tag_visuals(self, name):
                return None

        asyncio.run(hierarchy.ensure_path(("Water", "Filter", "Squeeze Filter"), Empty()))
        assert hierarchy.find(("Water",)).emoji == FALLBACK_VISUALS.emoji

    def test_middle_tag_retries_generic_emoji(self, hierarchy):
        class GenericFirst:
            def __init__(self):
                self.calls = []

            async def generate_tag_visuals(self, name):
                self.calls.append(name)
                if name.endswith("(backpacking gear category)"):
                    return TagVisuals("#00ff00", "💧")
                return FALLBACK_VISUALS

        provider = GenericFirst()
        asyncio.run(hierarchy.ensure_path(("Shelter", "Water", "Bladder"), provider))

        assert provider.calls == ["Water", "Water (backpacking gear category)", "Bladder"]
        assert hierarchy.find(("Shelter", "Water")).emoji == "💧"
        assert hierarchy.find(("Shelter", "Water", "Bladder")).emoji == FALLBACK_VISUALS.emoji

    def test_requires_full_path(self, hierarchy):
        with pytest.raises(TagPathError):
            asyncio.run(hierarchy.ensure_path(("Shelter", "Tent")))


class TestRename:

    def test_rename_keeps_identity_and_children(self, hierarchy):
        tent = hierarchy.find(("Shelter", "Tent"))
        tent_id = tent.id

        hierarchy.rename(("Shelter", "Tent"), "Tents")

        assert hierarchy.find(("Shelter", "Tent")) is None
        renamed = hierarchy.find(("Shelter", "Tents"))
        assert renamed.id == tent_id
        assert hierarchy.has_path(("Shelter", "Tents", "2-Person Tent"))

    def test_rename_top_tag(self, hierarchy):
        hierarchy.rename(("Tech",), "Electronics")
        assert "Electronics" in hierarchy.names()
        assert "Tech" not in hierarchy.names()
        assert hierarchy.has_path(("Electronics", "Power", "Power Bank"))

    def test_rename_to_existing_sibling_fails(self, hierarchy):
        before = hierarchy.to_dict()
        with pytest.raises(DuplicateTagError):
            hierarchy.rename(("Shelter", "Tent"), "Sleeping Bag")
        assert hierarchy.to_dict() == before

    def test_same_name_in_other_branch_is_allowed(self, hierarchy):
        hierarchy.rename(("Cookware", "Stove"), "Tent")
        assert hierarchy.has_path(("Cookware", "Tent", "Canister Stove"))

    def test_rename_to_same_name_is_noop(self, hierarchy):
        before = hierarchy.to_dict()
        hierarchy.rename(("Shelter",), "Shelter")
        assert hierarchy.to_dict() == before

    def test_rename_rejects_blank(self, hierarchy):
        with pytest.raises(TagPathError):
            hierarchy.rename(("Shelter",), "   ")


class TestDelete:

    def test_delete_removes_subtree(self, hierarchy):
        size = len(hierarchy)
        removed = hierarchy.delete(("Shelter",))
        assert removed == 5
        assert len(hierarchy) == size - 5
        assert not hierarchy.has_path(("Shelter",))

    def test_delete_base_tag_only(self, hierarchy):
        hierarchy.delete(("Shelter", "Tent", "2-Person Tent"))
        assert hierarchy.has_path(("Shelter", "Tent"))
        assert hierarchy.names(("Shelter", "Tent")) == []

    def test_delete_unknown_path(self, hierarchy):
        with pytest.raises(TagNotFoundError):
            hierarchy.delete(("Nope",))


class TestSerialization:

    def test_document_shape(self, hierarchy):
        doc = hierarchy.to_dict()
        assert doc["Shelter"]["emoji"] == "⛺️"
        assert doc["Shelter"]["children"]["Tent"]["children"]["2-Person Tent"]["children"] == {}

    def test_from_dict_uses_keys_as_names(self):
        doc = {"Shelter": {"name": "Old", "color": "#fff", "emoji": "⛺️", "children": {}}}
        hierarchy = TagHierarchy.from_dict(doc)
        assert hierarchy.names() == ["Shelter"]

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(TypeError):
            TagHierarchy.from_dict(["Shelter"])

    def test_renamed_hierarchy_serializes_new_name(self, hierarchy):
        hierarchy.rename(("Shelter", "Tent"), "Tents")
        restored = TagHierarchy.from_dict(hierarchy.to_dict())
        assert restored == hierarchy
        assert "Tents" in restored.to_dict()["Shelter"]["children"]
