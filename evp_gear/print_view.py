"""Printable pack list."""

from html import escape

from .aggregation import group_by_top_tag
from .hierarchy import TagHierarchy
from .models import GearItem

_STYLE = """
body { font-family: sans-serif; background-color: #1e293b; color: #e2e8f0; padding: 2rem; }
h1 { font-size: 2rem; font-weight: bold; }
h2 { font-size: 1.5rem; font-weight: bold; margin-top: 1.5rem; border-bottom: 2px solid #334155; padding-bottom: 0.5rem; }
.item { display: flex; justify-content: space-between; padding: 0.5rem 0; border-bottom: 1px solid #334155; }
.total { font-size: 1.2rem; font-weight: bold; text-align: right; margin-top: 1rem; }
"""


def format_weight(grams: int) -> str:
    """'1234g (1.23kg)'"""
    return f"{grams}g ({grams / 1000:.2f}kg)"


def render_pack_html(
    items: list[GearItem],
    hierarchy: TagHierarchy,
    title: str = "Pack List",
) -> str:
    """Standalone HTML document listing a pack grouped by Top Tag."""
    total = sum(i.weight for i in items)
    order = [node.name for node in hierarchy.children()]
    # Items whose Top Tag vanished still get printed, at the end
    order += sorted({i.tt for i in items} - set(order))

    sections = []
    for tt, members in group_by_top_tag(items, order):
        node = hierarchy.find((tt,))
        heading = f"{node.emoji} {tt}" if node and node.emoji else tt
        rows = "".join(
            f'<div class="item"><span>{escape(i.name)} ({escape(i.brand)})</span>'
            f"<span>{i.weight}g</span></div>"
            for i in members
        )
        sections.append(f"<h2>{escape(heading)}</h2>{rows}")

    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>EVP-Gear {escape(title)}</title>\n"
        f"<style>{_STYLE}</style>\n"
        "</head>\n<body>\n"
        f"<h1>{escape(title)}</h1>\n"
        f'<p class="total">Total Weight: {format_weight(total)}</p>\n'
        f"{''.join(sections)}\n"
        "</body>\n</html>\n"
    )
