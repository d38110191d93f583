"""Rendering of a switched environment as shell commands.

A CLI process cannot change its parent shell's environment, so the CLI
prints these lines for ``eval "$(rubyswitch activate)"``. The state
variables let the next invocation remove the paths injected by this one.
"""

import os
import shlex
from typing import Dict, List, Mapping, Optional

from .switcher import GEM_VARIABLES, ActivePathsState
from .validators import InputValidator

EXPORTED_VARIABLES = ('PATH',) + GEM_VARIABLES


def _render(name: str, value: str, shell: str) -> str:
    if shell == 'fish':
        if name == 'PATH':
            entries = [shlex.quote(entry) for entry in value.split(os.pathsep) if entry]
            return f"set -gx PATH {' '.join(entries)};"
        return f"set -gx {name} {shlex.quote(value)};"
    return f"export {name}={shlex.quote(value)}"


def shell_exports(
    environ: Mapping[str, str],
    shell: str = 'sh',
    state: Optional[ActivePathsState] = None
) -> str:
    """Commands that reproduce the switched variables in ``shell``.

    Args:
        environ: Environment after the switch.
        shell: One of ``sh``, ``bash``, ``zsh`` or ``fish``.
        state: Active paths state to hand over to the next invocation.

    Returns:
        Newline separated commands.
    """
    shell = InputValidator.validate_shell(shell)

    variables: Dict[str, str] = {name: environ.get(name, '') for name in EXPORTED_VARIABLES}
    if state is not None:
        variables.update(state.to_environ())

    lines: List[str] = [_render(name, value, shell) for name, value in variables.items()]
    return "\n".join(lines)
