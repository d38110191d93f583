"""Application of a resolved environment to a process environment.

The switcher owns no global state. It works on an ``ActivePathsState``, a
mutable environment mapping and an executable search list handed to it, so
that the directories recorded in the state are always exactly the ones it
has injected into ``PATH`` and the search list.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, MutableMapping, Optional, Self

from .environment import EnvironmentInfo, ruby_bin_dir
from .resolver import Identifier

logger = logging.getLogger(__name__)

GEM_VARIABLES = ('GEM_HOME', 'GEM_PATH', 'BUNDLE_PATH')


@dataclass
class ActivePathsState:
    """Directories currently injected into PATH, and the active identifier."""

    ruby_bin_paths: List[str] = field(default_factory=list)
    gem_bin_paths: List[str] = field(default_factory=list)
    version: Optional[str] = None
    gemset: Optional[str] = None

    @property
    def identifier(self: Self) -> Optional[Identifier]:
        if self.version is None:
            return None
        return Identifier(self.version, self.gemset)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> 'ActivePathsState':
        """Rebuild the state a previous process exported with ``to_environ``."""
        def paths(name: str) -> List[str]:
            value = environ.get(name, '')
            return [entry for entry in value.split(os.pathsep) if entry]

        return cls(
            ruby_bin_paths=paths('RUBYSWITCH_RUBY_PATHS'),
            gem_bin_paths=paths('RUBYSWITCH_GEM_PATHS'),
            version=environ.get('RUBYSWITCH_VERSION') or None,
            gemset=environ.get('RUBYSWITCH_GEMSET') or None,
        )

    def to_environ(self: Self) -> Dict[str, str]:
        return {
            'RUBYSWITCH_RUBY_PATHS': os.pathsep.join(self.ruby_bin_paths),
            'RUBYSWITCH_GEM_PATHS': os.pathsep.join(self.gem_bin_paths),
            'RUBYSWITCH_VERSION': self.version or '',
            'RUBYSWITCH_GEMSET': self.gemset or '',
        }


def replace_path_entries(entries: List[str], old: List[str], new: List[str]) -> List[str]:
    """Drop ``old`` entries, then put ``new`` entries in front.

    Untouched entries keep their relative order. Entries of ``new`` already
    present further down are moved rather than duplicated.

    Args:
        entries: Current search path entries.
        old: Entries previously injected.
        new: Entries to inject.

    Returns:
        The updated list of entries.
    """
    dropped = set(old) | set(new)
    kept = [entry for entry in entries if entry not in dropped]
    front = []
    for entry in new:
        if entry not in front:
            front.append(entry)
    return front + kept


def gem_bin_dirs(gem_path: str) -> List[str]:
    """Executable directories of every ``GEM_PATH`` entry."""
    if not gem_path:
        return []
    return [entry + '/bin' for entry in gem_path.split(os.pathsep) if entry]


def status_message(identifier: Optional[Identifier]) -> str:
    """Status line reported after a switch."""
    if identifier is None:
        return "Ruby environment cleared"
    if identifier.gemset is None:
        return f"Ruby: {identifier.version}"
    return f"Ruby: {identifier.version} Gemset: {identifier.gemset}"


class EnvironmentSwitcher:
    """Switches PATH, the search list and gem variables between environments."""

    def __init__(
        self: Self,
        state: ActivePathsState,
        environ: Optional[MutableMapping[str, str]] = None,
        exec_path: Optional[List[str]] = None,
        notify: Optional[Callable[[str], None]] = None,
        verbose: bool = True
    ) -> None:
        """Initialize the switcher.

        Args:
            state: Record of the paths this switcher injected.
            environ: Environment to mutate. Defaults to ``os.environ``.
            exec_path: Host executable search list, mutated in place.
            notify: Callback receiving status messages.
            verbose: Whether status messages are emitted at all.
        """
        self.state = state
        self.environ = os.environ if environ is None else environ
        self.exec_path = [] if exec_path is None else exec_path
        self.notify = notify
        self.verbose = verbose

    def _swap(self: Self, old: List[str], new: List[str]) -> None:
        current = self.environ.get('PATH', '')
        entries = current.split(os.pathsep) if current else []
        self.environ['PATH'] = os.pathsep.join(replace_path_entries(entries, old, new))
        # Mutated in place, the host holds a reference to this list.
        self.exec_path[:] = replace_path_entries(self.exec_path, old, new)

    def switch(self: Self, info: EnvironmentInfo, identifier: Optional[Identifier]) -> None:
        """Make ``info`` the active environment.

        Args:
            info: Environment to apply, ``EnvironmentInfo.empty()`` to clear.
            identifier: Identifier recorded as the active one.
        """
        ruby_bin = ruby_bin_dir(info)
        new_ruby_paths = [ruby_bin] if ruby_bin else []
        self._swap(self.state.ruby_bin_paths, new_ruby_paths)
        self.state.ruby_bin_paths = new_ruby_paths

        self.environ['GEM_HOME'] = info.gem_home
        self.environ['GEM_PATH'] = info.gem_path
        self.environ['BUNDLE_PATH'] = info.gem_home

        new_gem_paths = gem_bin_dirs(info.gem_path)
        self._swap(self.state.gem_bin_paths, new_gem_paths)
        self.state.gem_bin_paths = new_gem_paths

        if identifier is None:
            self.state.version = None
            self.state.gemset = None
        else:
            self.state.version = identifier.version
            self.state.gemset = identifier.gemset

        logger.debug("Switched environment to %s (%s)", identifier, info.as_dict())
        self.message(status_message(identifier))

    def clear(self: Self) -> None:
        """Remove every injected path and empty the gem variables."""
        self.switch(EnvironmentInfo.empty(), None)

    def message(self: Self, text: str) -> None:
        if self.verbose and self.notify is not None:
            self.notify(text)
