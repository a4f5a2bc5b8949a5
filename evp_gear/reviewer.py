"""Interactive picker for AI tag suggestions."""

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .models import TagLevel, TagSuggestion


console = Console()

_CONFIDENCE_COLORS = {
    "Perfect": "green",
    "Good": "green",
    "Plausible": "yellow",
    "Poor": "red",
}


class TagPicker:
    """
    Walks the user through choosing a tag for each level.

    Suggestions are shown with their match percentage and a NEW marker for
    tags that do not exist yet; the user can pick one by number, type any
    other name, or keep the current value.
    """

    def __init__(self, existing_names: dict[TagLevel, list[str]] | None = None):
        """
        Args:
            existing_names: Tag names already in use, per level, for the manual list
        """
        self.existing_names = existing_names or {}
        self.decisions: dict[TagLevel, str] = {}

    def show_suggestions(self, level: TagLevel, suggestions: list[TagSuggestion]) -> None:
        if not suggestions:
            console.print(f"[yellow]No suggestions for the {level.label}.[/yellow]")
            return

        table = Table(title=f"🏷️ {level.label} suggestions", show_header=True)
        table.add_column("#", style="cyan", width=3)
        table.add_column("Tag", style="green")
        table.add_column("Match", justify="right")
        table.add_column("", justify="center")

        for i, suggestion in enumerate(suggestions, 1):
            color = _CONFIDENCE_COLORS.get(suggestion.confidence_label, "white")
            table.add_row(
                str(i),
                suggestion.tag,
                f"[{color}]{suggestion.match_percentage}%[/]",
                "[magenta]NEW[/magenta]" if suggestion.is_new else "",
            )
        console.print(table)

    def pick(
        self,
        level: TagLevel,
        suggestions: list[TagSuggestion],
        current: str = "",
    ) -> str:
        """
        Ask for the tag at one level.

        Returns:
            The chosen tag name (may be the current value or empty if none given)
        """
        self.show_suggestions(level, suggestions)
        existing = self.existing_names.get(level, [])
        if existing:
            console.print(f"[dim]Existing: {', '.join(existing)}[/dim]")

        choice = Prompt.ask(
            f"{level.label} (number or name)",
            default=current or (suggestions[0].tag if suggestions else ""),
        ).strip()

        if choice.isdigit():
            idx = int(choice) - 1
            if 0 <= idx < len(suggestions):
                choice = suggestions[idx].tag
            else:
                console.print("[red]Invalid choice, keeping the current value.[/red]")
                choice = current

        if choice:
            self.decisions[level] = choice
        return choice

    def show_summary(self) -> None:
        """Display the chosen path."""
        if not self.decisions:
            console.print("[dim]No tags chosen.[/dim]")
            return
        path = " > ".join(self.decisions[level] for level in TagLevel if level in self.decisions)
        console.print(f"[green]✓ Tags:[/green] {path}")
