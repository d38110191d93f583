"""Interactive prompts used by the default host integration."""

from typing import Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

console = Console(stderr=True)


def choose_option(prompt_text: str, options: Sequence[str]) -> Optional[str]:
    """Let the user pick one of ``options`` from a numbered list.

    Args:
        prompt_text: Text to display when prompting for selection.
        options: Values to choose from.

    Returns:
        The selected value or None if cancelled.
    """
    if not options:
        console.print("[yellow]Nothing to choose from[/yellow]")
        return None

    console.print(f"\n{escape(prompt_text)}:")
    for i, option in enumerate(options, 1):
        console.print(f"  {i}. [cyan]{escape(str(option))}[/cyan]")
    console.print("  c. Cancel")

    selection = Prompt.ask(
        "Select an option",
        choices=[str(i) for i in range(1, len(options) + 1)] + ["c"],
        default="c",
        console=console
    )

    if selection == "c":
        return None
    return options[int(selection) - 1]


def print_message(text: str) -> None:
    """Status line on stderr, so stdout stays free for shell exports."""
    console.print(f"[green]{escape(text)}[/green]")


def open_in_editor(path: str) -> None:
    """Open ``path`` with the platform's default application."""
    click.launch(str(path), locate=False)
