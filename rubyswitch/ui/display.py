"""Display utilities for rubyswitch.

Tables and panels rendered by the CLI commands.
"""

from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()


def display_versions_table(
    versions: List[str],
    active: Optional[str] = None,
    title: str = "Installed Rubies"
) -> None:
    """Display installed environments in a formatted table.

    Args:
        versions: Environment names (``version@gemset``).
        active: Name of the environment resolved for the current directory.
        title: Table title to display.
    """
    if not versions:
        console.print("[yellow]No Ruby versions installed.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("", justify="center", width=2)
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Gemset", style="green")

    for name in versions:
        version, _, gemset = name.partition('@')
        marker = "[bold green]*[/bold green]" if name == active else ""
        table.add_row(marker, escape(version), escape(gemset) if gemset else "-")

    console.print(table)


def display_environment(identifier: str, info: Dict[str, str], source: Optional[str] = None) -> None:
    """Show the resolved environment for a path.

    Args:
        identifier: Resolved identifier.
        info: Mapping with ``ruby``, ``GEM_HOME`` and ``GEM_PATH``.
        source: Where the configuration was found.
    """
    lines = [f"[bold]Identifier:[/bold] [cyan]{escape(identifier)}[/cyan]"]
    if source:
        lines.append(f"[bold]Resolved from:[/bold] {escape(str(source))}")
    lines.append("")
    for key in ('ruby', 'GEM_HOME', 'GEM_PATH'):
        lines.append(f"[bold]{key}:[/bold] {escape(info.get(key, ''))}")

    console.print(Panel("\n".join(lines), title="Ruby environment", border_style="blue", expand=False))
