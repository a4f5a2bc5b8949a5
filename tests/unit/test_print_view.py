"""
Tests for the printable pack list.
"""

from evp_gear.initial_data import default_items
from evp_gear.models import GearItem
from evp_gear.print_view import format_weight, render_pack_html


def test_format_weight():
    assert format_weight(1793) == "1793g (1.79kg)"
    assert format_weight(0) == "0g (0.00kg)"


def test_groups_by_top_tag_in_hierarchy_order(hierarchy):
    items = [i for i in default_items() if i.id in {"5", "1", "3"}]
    html = render_pack_html(items, hierarchy)

    assert "Total Weight: 1973g (1.97kg)" in html
    assert html.index("⛺️ Shelter") < html.index("🍳 Cookware") < html.index("🔋 Tech")
    assert "Tools" not in html
    assert "Hubba Hubba NX (MSR)" in html
    assert "<span>73g</span>" in html


def test_text_is_escaped(hierarchy):
    item = GearItem(id="x", name="<b>Pot</b>", brand="A&B", weight=100,
                    tt="Cookware", mt="Stove", bt="Canister Stove")
    html = render_pack_html([item], hierarchy)
    assert "&lt;b&gt;Pot&lt;/b&gt; (A&amp;B)" in html
    assert "<b>Pot</b>" not in html


def test_items_with_unknown_top_tag_are_still_listed(hierarchy):
    item = GearItem(id="x", name="Mystery", brand="", weight=5, tt="Misc", mt="a", bt="b")
    html = render_pack_html([item], hierarchy)
    assert "<h2>Misc</h2>" in html
    assert "Mystery" in html
