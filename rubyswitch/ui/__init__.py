"""UI components for rubyswitch.

Terminal tables, panels and prompts used by the CLI and the default host
integration.
"""

from .display import display_environment, display_versions_table
from .interactive import choose_option, open_in_editor, print_message

__all__ = [
    'choose_option',
    'display_environment',
    'display_versions_table',
    'open_in_editor',
    'print_message',
]
