"""Error handling and recovery suggestions for rubyswitch.

This module defines the exception hierarchy used across the package and an
ErrorHandler that renders errors with contextual recovery suggestions.
"""

import sys
from typing import Any, Dict, List, Optional, Self

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

console = Console(stderr=True)


class RubySwitchError(Exception):
    """Base exception class for rubyswitch errors."""

    def __init__(self: Self, message: str, suggestions: Optional[List[str]] = None) -> None:
        """Initialize rubyswitch error.

        Args:
            message: The error message to display.
            suggestions: Optional list of recovery suggestions.
        """
        super().__init__(message)
        self.message = message
        self.suggestions = suggestions or []


class VersionNotInstalledError(RubySwitchError):
    """Raised when an identifier does not map to an installed environment."""

    def __init__(self: Self, identifier: Any, prefix: Optional[str] = None) -> None:
        self.identifier = str(identifier)
        self.prefix = prefix
        message = f"Ruby version '{self.identifier}' is not installed"
        if prefix:
            message += f" under {prefix}"
        super().__init__(
            message,
            [
                "Install it with your version manager, then retry",
                "List installed versions: rubyswitch list",
                "Check the installation prefix: rubyswitch config --prefix <DIR>",
            ]
        )


class ToolUnavailableError(RubySwitchError):
    """Raised when the version manager executable cannot be found."""

    def __init__(self: Self, executable: str) -> None:
        self.executable = executable
        super().__init__(
            f"Version manager '{executable}' is not installed or not executable",
            [
                f"Make sure '{executable}' is on your PATH",
                "Point rubyswitch at it: rubyswitch config --executable <PATH>",
            ]
        )


class NoActiveEnvironmentError(RubySwitchError):
    """Raised when an operation needs an active Ruby environment."""

    def __init__(self: Self, message: str = "No Ruby environment is active") -> None:
        super().__init__(
            message,
            [
                "Add .ruby-version and .ruby-gemset files to your project",
                "Activate a version manually: rubyswitch use <VERSION>",
            ]
        )


class ErrorHandler:
    """Handles and displays errors with recovery suggestions."""

    def __init__(self: Self) -> None:
        """Initialize the error handler."""
        self.error_patterns: Dict[str, Dict[str, Any]] = {
            "tool_missing": {
                "keywords": ["version manager", "not executable", "command not found"],
                "suggestions": [
                    "Install the version manager and make sure it is on PATH",
                    "Configure its location: rubyswitch config --executable <PATH>",
                ]
            },
            "not_installed": {
                "keywords": ["not installed", "no such version"],
                "suggestions": [
                    "List installed versions: rubyswitch list",
                    "Check the version in your .ruby-version file",
                    "Verify the installation prefix: rubyswitch config",
                ]
            },
            "invalid_marker": {
                "keywords": ["invalid version", "invalid gemset", "invalid gem name"],
                "suggestions": [
                    "Check the contents of .ruby-version and .ruby-gemset",
                    "Marker files must contain a single name without spaces",
                ]
            },
            "config_error": {
                "keywords": ["configuration", "config.json"],
                "suggestions": [
                    "Show current settings: rubyswitch config",
                    "Remove ~/.rubyswitch/config.json to start from defaults",
                ]
            },
            "permission_denied": {
                "keywords": ["permission denied", "not permitted"],
                "suggestions": [
                    "Check permissions on the Ruby installation prefix",
                    "Check permissions on ~/.rubyswitch",
                ]
            },
        }

    def identify_error_type(self: Self, error_message: str) -> Optional[str]:
        """Identify the type of error based on the message.

        Args:
            error_message: The error message to analyze.

        Returns:
            The error type key if identified, None otherwise.
        """
        error_lower = error_message.lower()

        for error_type, pattern_data in self.error_patterns.items():
            for keyword in pattern_data["keywords"]:
                if keyword in error_lower:
                    return error_type

        return None

    def get_suggestions(self: Self, error_message: str) -> List[str]:
        """Get recovery suggestions for an error.

        Args:
            error_message: The error message to analyze.

        Returns:
            List of recovery suggestions.
        """
        error_type = self.identify_error_type(error_message)

        if error_type and error_type in self.error_patterns:
            return self.error_patterns[error_type]["suggestions"]

        return [
            "Show the resolved environment: rubyswitch info",
            "Verify your configuration: rubyswitch config",
            "Review ~/.rubyswitch/logs/activity.log for details",
        ]

    def display_error(
        self: Self,
        error: Exception,
        context: Optional[str] = None,
        show_suggestions: bool = True
    ) -> None:
        """Display an error with formatting and suggestions.

        Args:
            error: The exception that occurred.
            context: Optional context about what was being attempted.
            show_suggestions: Whether to show recovery suggestions.
        """
        error_message = str(error)
        content = []

        if context:
            content.append(f"[bold]Context:[/bold] {escape(context)}")
            content.append("")

        content.append(f"[bold red]Error:[/bold red] {escape(error_message)}")

        if show_suggestions:
            if isinstance(error, RubySwitchError) and error.suggestions:
                suggestions = error.suggestions
            else:
                suggestions = self.get_suggestions(error_message)

            if suggestions:
                content.append("")
                content.append("[bold blue]Suggested solutions:[/bold blue]")
                for i, suggestion in enumerate(suggestions, 1):
                    content.append(f"  {i}. {escape(suggestion)}")

        console.print(Panel(
            "\n".join(content),
            title="[bold red]rubyswitch error[/bold red]",
            border_style="red",
            expand=False
        ))


def handle_exception(
    error: Exception,
    context: Optional[str] = None,
    exit_code: int = 1
) -> None:
    """Global exception handler for the CLI.

    Args:
        error: The exception that occurred.
        context: Optional context about what was being attempted.
        exit_code: Exit code to use when terminating.
    """
    error_handler = ErrorHandler()
    error_handler.display_error(error, context)
    sys.exit(exit_code)


def handle_keyboard_interrupt() -> None:
    """Handle Ctrl+C gracefully."""
    console.print("\n[yellow]Operation cancelled by user[/yellow]")
    sys.exit(130)
