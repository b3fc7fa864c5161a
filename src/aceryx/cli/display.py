"""Rich rendering for catalog listings, tool details and health reports."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from aceryx.tools.base import ToolCategory, execution_mode_to_dict

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aceryx.tools.base import RegistryHealth, ToolDefinition

_DESCRIPTION_LEN = 60


def _truncate(text: str, limit: int = _DESCRIPTION_LEN) -> str:
    """Truncate text to *limit* characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + " ..."


class CatalogDisplay:
    """Renders registry data to a :class:`~rich.console.Console`.

    Accepts an optional console for dependency injection in tests.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    # ── Catalog ───────────────────────────────────────────────

    def tool_table(self, definitions: Sequence[ToolDefinition]) -> None:
        if not definitions:
            self._console.print("No tools found.")
            return

        table = Table(title=f"Tools ({len(definitions)})")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="bold")
        table.add_column("Category", style="magenta")
        table.add_column("Mode")
        table.add_column("Description", style="dim")
        for d in definitions:
            table.add_row(
                d.id,
                d.name,
                str(d.category),
                d.execution_mode.kind,
                _truncate(d.description),
            )
        self._console.print(table)

    def tool_detail(self, definition: ToolDefinition) -> None:
        lines = [
            f"[bold]Name:[/bold] {definition.name}",
            f"[bold]Category:[/bold] {definition.category}",
            f"[bold]Description:[/bold] {definition.description}",
            f"[bold]Created:[/bold] {definition.created_at:%Y-%m-%d %H:%M:%S}",
            f"[bold]Updated:[/bold] {definition.updated_at:%Y-%m-%d %H:%M:%S}",
        ]
        self._console.print(
            Panel("\n".join(lines), title=definition.id, border_style="cyan")
        )
        self._section("Execution mode", execution_mode_to_dict(definition.execution_mode))
        self._section("Input schema", definition.input_schema)
        self._section("Output schema", definition.output_schema)
        if definition.metadata:
            self._section("Metadata", definition.metadata)

    def categories(self) -> None:
        table = Table(title="Categories")
        table.add_column("Name", style="cyan")
        table.add_column("Value")
        for category in ToolCategory:
            table.add_row(category.name, category.value)
        self._console.print(table)

    def _section(self, title: str, data: Any) -> None:
        self._console.print(f"\n[bold]{title}[/bold]")
        self.json(data)

    # ── Execution ─────────────────────────────────────────────

    def result(self, tool_id: str, output: dict[str, Any], elapsed: float) -> None:
        self._console.print(
            f"[green]✓[/green] {tool_id} completed in {elapsed * 1000:.0f} ms"
        )
        self.json(output)

    def json(self, data: Any) -> None:
        text = json.dumps(data, indent=2, default=str)
        self._console.print(Syntax(text, "json", word_wrap=True))

    # ── Health ────────────────────────────────────────────────

    def health(self, report: RegistryHealth) -> None:
        status = "[green]healthy[/green]" if report.healthy else "[red]unhealthy[/red]"
        self._console.print(
            f"Registry: {status}  cached tools: {report.cached_tools}"
        )
        if not report.protocols:
            self._console.print("No protocols registered.")
            return

        table = Table()
        table.add_column("Protocol", style="cyan")
        table.add_column("Status")
        table.add_column("Tools", justify="right")
        table.add_column("Error", style="red")
        for p in report.protocols:
            table.add_row(
                p.protocol_name,
                "[green]ok[/green]" if p.healthy else "[red]down[/red]",
                str(p.tool_count),
                p.error_message or "",
            )
        self._console.print(table)
