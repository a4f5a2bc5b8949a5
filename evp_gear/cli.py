"""Command-line interface for EVP-Gear."""

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .aggregation import weight_breakdown
from .brands import BrandDirectory, logo_url, search_brands
from .config import config
from .gemini_client import GeminiCollaborator, get_collaborator
from .hierarchy import TagError
from .inventory import GearInventory, InventoryError, SearchField
from .models import DistributionNode, GearItem, GearItemDraft, TagLevel
from .pack import PackSelection
from .print_view import format_weight, render_pack_html
from .repository import InventoryRepository
from .reviewer import TagPicker

app = typer.Typer(
    name="evp-gear",
    help="Catalogue backpacking gear under a three-level tag hierarchy and analyse packs."
)
console = Console()

_state: dict = {"data_dir": None}


def _run_async(func, *args, **kwargs):
    """Helper to run async functions from synchronous Typer commands."""
    return asyncio.run(func(*args, **kwargs))


@app.callback()
def main(
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", help="Directory holding gear_items.json and tag_hierarchy.json"
    ),
):
    _state["data_dir"] = data_dir


def _repository() -> InventoryRepository:
    return InventoryRepository(_state["data_dir"])


def _load(collaborator: GeminiCollaborator | None = None) -> tuple[GearInventory, InventoryRepository]:
    repository = _repository()
    return repository.load(visuals=collaborator), repository


def _abort(error: Exception) -> None:
    console.print(f"[red]{error}[/red]")
    raise typer.Exit(1)


def _resolve_item(inventory: GearInventory, ref: str) -> GearItem:
    """Find an item by id or unique id prefix."""
    matches = [i for i in inventory.items if i.id == ref]
    if not matches:
        matches = [i for i in inventory.items if i.id.startswith(ref)]
    if len(matches) != 1:
        _abort(InventoryError(f"No unique item matches '{ref}'"))
    return matches[0]


def _items_table(items: list[GearItem], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Name", style="bold")
    table.add_column("Brand")
    table.add_column("Weight", justify="right")
    table.add_column("Tags", style="cyan")
    for item in items:
        table.add_row(item.id[:8], item.name, item.brand, f"{item.weight}g", " > ".join(item.path))
    return table


def _distribution_tree(label: str, nodes: list[DistributionNode]) -> Tree:
    tree = Tree(label)

    def add(branch: Tree, children: list[DistributionNode]) -> None:
        for node in children:
            add(branch.add(f"{node.tag}: {node.weight}g ([cyan]{node.percentage:.1f}%[/cyan])"), node.children)

    add(tree, nodes)
    return tree


@app.command("list")
def list_items():
    """Show the inventory as a Top > Middle > Base tree."""
    inventory, _ = _load()
    grouped = inventory.grouped()
    hierarchy = inventory.hierarchy

    tree = Tree(f"[bold]Gear[/bold] ({len(inventory)} items)")
    for tt in hierarchy.names():
        top = hierarchy.find((tt,))
        top_branch = tree.add(f"[bold]{top.emoji} {tt}[/bold]" if top.emoji else f"[bold]{tt}[/bold]")
        for mt in hierarchy.names((tt,)):
            mid_branch = top_branch.add(mt)
            for bt in hierarchy.names((tt, mt)):
                base_branch = mid_branch.add(f"[dim]{bt}[/dim]")
                for item in grouped.get(tt, {}).get(mt, {}).get(bt, []):
                    base_branch.add(f"{item.name} [dim]({item.brand})[/dim] {item.weight}g [dim]{item.id[:8]}[/dim]")
    console.print(tree)


def _choose_tags(
    collaborator: GeminiCollaborator,
    inventory: GearInventory,
    draft: GearItemDraft,
) -> GearItemDraft:
    """Fill missing tags level by level from AI suggestions."""
    hierarchy = inventory.hierarchy
    chosen = {"tt": draft.tt, "mt": draft.mt, "bt": draft.bt}
    picker = TagPicker()
    picker.decisions = {level: chosen[level.value] for level in TagLevel if chosen[level.value]}

    for level in TagLevel:
        if chosen[level.value]:
            continue
        with console.status(f"Suggesting {level.label}..."):
            suggestions = _run_async(
                collaborator.suggest_tags, level, draft, hierarchy, tt=chosen["tt"], mt=chosen["mt"]
            ) or []
        ancestors = tuple(chosen[lv.value] for lv in TagLevel)[:level.depth]
        picker.existing_names[level] = hierarchy.names(ancestors)
        chosen[level.value] = picker.pick(level, suggestions)

    picker.show_summary()
    return replace(draft, **chosen)


@app.command()
def add(
    name: str = typer.Argument(..., help="Item name"),
    weight: int = typer.Option(..., "--weight", "-w", help="Weight in grams"),
    brand: str = typer.Option("", "--brand", "-b"),
    notes: str = typer.Option("", "--notes", "-n"),
    tt: str = typer.Option("", "--tt", help="Top Tag"),
    mt: str = typer.Option("", "--mt", help="Middle Tag"),
    bt: str = typer.Option("", "--bt", help="Base Tag"),
    suggest: bool = typer.Option(True, "--suggest/--no-suggest", help="Ask the AI for missing tags"),
):
    """Add a gear item. Missing tags are suggested and created as needed."""
    collaborator = get_collaborator()
    inventory, repository = _load(collaborator)
    draft = GearItemDraft(name=name, brand=brand, weight=weight, notes=notes, tt=tt, mt=mt, bt=bt)

    if suggest and collaborator.enabled and not all(draft.path):
        draft = _choose_tags(collaborator, inventory, draft)

    try:
        item = _run_async(inventory.add_item, draft)
    except (InventoryError, TagError) as e:
        _abort(e)
    repository.save(inventory)
    console.print(f"[green]✓[/green] Added [bold]{item.name}[/bold] ({item.weight}g) → {' > '.join(item.path)}")


@app.command()
def edit(
    item_ref: str = typer.Argument(..., help="Item id (or unique prefix)"),
    name: Optional[str] = typer.Option(None, "--name"),
    weight: Optional[int] = typer.Option(None, "--weight", "-w"),
    brand: Optional[str] = typer.Option(None, "--brand", "-b"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n"),
    tt: Optional[str] = typer.Option(None, "--tt"),
    mt: Optional[str] = typer.Option(None, "--mt"),
    bt: Optional[str] = typer.Option(None, "--bt"),
):
    """Change an item's fields."""
    inventory, repository = _load(get_collaborator())
    item = _resolve_item(inventory, item_ref)
    changes = {
        key: value
        for key, value in dict(name=name, weight=weight, brand=brand, notes=notes, tt=tt, mt=mt, bt=bt).items()
        if value is not None
    }
    try:
        updated = _run_async(inventory.update_item, replace(item, **changes))
    except (InventoryError, TagError) as e:
        _abort(e)
    repository.save(inventory)
    console.print(f"[green]✓[/green] Updated [bold]{updated.name}[/bold]")


@app.command()
def remove(
    item_ref: str = typer.Argument(..., help="Item id (or unique prefix)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a gear item."""
    inventory, repository = _load()
    item = _resolve_item(inventory, item_ref)
    if not yes and not typer.confirm(f"Delete {item.name}?"):
        raise typer.Exit(0)
    inventory.delete_item(item.id)
    repository.save(inventory)
    console.print(f"[green]✓[/green] Deleted {item.name}")


@app.command()
def search(
    query: str = typer.Argument(...),
    by: SearchField = typer.Option(SearchField.ITEM, "--by", help="Search item names, brands or tags"),
):
    """Search the inventory."""
    inventory, _ = _load()
    results = inventory.search(query, by) or []
    if not results:
        console.print("[yellow]No matching items.[/yellow]")
        return
    console.print(_items_table(results, f"Results for '{query}' ({by.value})"))


@app.command("rename-tag")
def rename_tag(
    path: List[str] = typer.Argument(..., help="Tag path: TOP [MIDDLE [BASE]]"),
    new_name: str = typer.Option(..., "--to", help="New tag name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Rename a tag; every item below it follows."""
    inventory, repository = _load()
    if len(path) < 3 and not yes:
        console.print("[yellow]Renaming this tag affects all sub-tags and gear items within it.[/yellow]")
        if not typer.confirm(f"Rename {path[-1]} to {new_name}?"):
            raise typer.Exit(0)
    try:
        updated = inventory.rename_tag(path, new_name)
    except TagError as e:
        _abort(e)
    repository.save(inventory)
    console.print(f"[green]✓[/green] Renamed {' > '.join(path)} to {new_name} ({updated} items updated)")


@app.command("delete-tag")
def delete_tag(
    path: List[str] = typer.Argument(..., help="Tag path: TOP [MIDDLE [BASE]]"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a tag, its sub-tags and every item under it."""
    inventory, repository = _load()
    affected = [i for i in inventory.items if i.matches_path(tuple(path))]
    if not yes and not typer.confirm(f"Delete {' > '.join(path)} and {len(affected)} items?"):
        raise typer.Exit(0)
    try:
        removed = inventory.delete_tag(path)
    except TagError as e:
        _abort(e)
    repository.save(inventory)
    console.print(f"[green]✓[/green] Deleted {' > '.join(path)} ({len(removed)} items removed)")


@app.command()
def suggest(
    name: str = typer.Argument(..., help="Item name"),
    brand: str = typer.Option("", "--brand", "-b"),
    notes: str = typer.Option("", "--notes", "-n"),
    tt: str = typer.Option("", "--tt", help="Chosen Top Tag, as context"),
    mt: str = typer.Option("", "--mt", help="Chosen Middle Tag, as context"),
):
    """Show AI tag suggestions for all three levels."""
    collaborator = get_collaborator()
    if not collaborator.enabled:
        _abort(RuntimeError("GEMINI_API_KEY is not set; suggestions are unavailable."))
    inventory, _ = _load()
    details = GearItemDraft(name=name, brand=brand, notes=notes)

    with console.status("Asking for suggestions..."):
        results = _run_async(collaborator.suggest_all_levels, details, inventory.hierarchy, tt=tt, mt=mt)

    picker = TagPicker()
    for level, suggestions in results.items():
        picker.show_suggestions(level, suggestions)


@app.command()
def pack(
    item_refs: List[str] = typer.Argument(..., help="Item ids (or unique prefixes) to pack"),
    print_to: Optional[Path] = typer.Option(None, "--print", help="Write a printable HTML list"),
    analyze: bool = typer.Option(False, "--analyze", help="Ask the AI for a weight analysis"),
    further: bool = typer.Option(False, "--further", help="Also ask for a written summary"),
):
    """Total up a pack and show where the weight goes."""
    inventory, _ = _load()
    selection = PackSelection()
    selection.select(_resolve_item(inventory, ref).id for ref in item_refs)
    packed = selection.packed(inventory.items)
    total = selection.total_weight(inventory.items)

    console.print(_items_table(packed, "🎒 Pack"))
    console.print(Panel(f"[bold]Total weight:[/bold] {format_weight(total)}", border_style="green"))
    console.print(_distribution_tree("[bold]Weight by tag[/bold]", weight_breakdown(packed)))

    if print_to:
        print_to.write_text(render_pack_html(packed, inventory.hierarchy), encoding="utf-8")
        console.print(f"[green]✓[/green] Pack list written to {print_to}")

    if analyze or further:
        collaborator = get_collaborator()
        with console.status("Analysing pack..."):
            analysis = _run_async(collaborator.analyze_pack, packed)
        if analysis is None:
            console.print("[yellow]Analysis could not be completed.[/yellow]")
            return
        console.print(_distribution_tree(
            f"[bold]AI analysis[/bold] ({analysis.total_weight}g)", analysis.distribution
        ))
        if analysis.summary:
            console.print(f"[italic]{analysis.summary}[/italic]")
        if further:
            with console.status("Generating summary..."):
                summary = _run_async(collaborator.summarize_pack, analysis)
            console.print(Panel(summary or "[yellow]Summary unavailable.[/yellow]", title="✨ Further analysis"))


@app.command()
def brand(name: str = typer.Argument(..., help="Brand name or fragment")):
    """Look up a brand's website and logo."""
    matches = search_brands(name)
    if matches:
        table = Table(title="Known brands")
        table.add_column("Brand")
        table.add_column("Domain", style="cyan")
        for b in matches:
            table.add_row(b.name, b.domain)
        console.print(table)

    domain = _run_async(BrandDirectory(get_collaborator()).resolve_domain, name)
    if domain:
        console.print(f"[green]✓[/green] {name}: {domain}  [dim]{logo_url(domain)}[/dim]")
    else:
        console.print(f"[yellow]No domain found for {name}.[/yellow]")


@app.command()
def status():
    """Show configuration and inventory state."""
    inventory, repository = _load()
    console.print(Panel("[bold]EVP-Gear - Status[/bold]", border_style="blue"))

    console.print("\n[bold]Configuration:[/bold]")
    console.print(f"  Model: {config.gemini_model}")
    if config.ai_enabled:
        console.print("  [green]✓[/green] AI features enabled")
    else:
        console.print("  [red]✗[/red] AI features disabled (GEMINI_API_KEY not set)")

    console.print("\n[bold]Data:[/bold]")
    console.print(f"  Directory: {repository.data_dir}")
    console.print(f"  Items: {len(inventory)} ({format_weight(sum(i.weight for i in inventory.items))})")
    console.print(f"  Tags: {len(inventory.hierarchy)}")

    orphans = inventory.orphaned_items()
    if orphans:
        console.print(f"  [yellow]![/yellow] Items with unknown tags: {len(orphans)}")
        for item in orphans:
            console.print(f"    [dim]{item.id[:8]}[/dim] {item.name}: {' > '.join(item.path)}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
):
    """Run the HTTP API."""
    from .server import main as run_server

    if _state["data_dir"]:
        config.data_dir = _state["data_dir"]
    run_server(host=host, port=port)


if __name__ == "__main__":
    app()
