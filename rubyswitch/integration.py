"""Host integration points.

A host (an editor plugin, the CLI, a test) describes itself by filling in an
``Integration``. Every field has a terminal-based default.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from .ui.interactive import choose_option, open_in_editor, print_message


def _no_current_file() -> Optional[Path]:
    return None


@dataclass
class Integration:
    """Callbacks the activation service uses to talk to its host.

    Attributes:
        choose: Ask the user to pick one of the options, None on cancel.
        open_path: Open a file or directory for the user.
        message: Show a status message.
        current_file: Path of the file being edited, if any.
        project_root: Directory the local environment search starts from.
    """

    choose: Callable[[str, Sequence[str]], Optional[str]] = choose_option
    open_path: Callable[[str], None] = open_in_editor
    message: Callable[[str], None] = print_message
    current_file: Callable[[], Optional[Path]] = _no_current_file
    project_root: Callable[[], Path] = field(default=Path.cwd)
