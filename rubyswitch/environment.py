"""Mapping of identifiers to installed Ruby environments."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Self, Union

from .errors import VersionNotInstalledError
from .resolver import DEFAULT_LOCAL_MARKER, Identifier, is_local_environment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentInfo:
    """Interpreter and gem locations of one environment.

    ``gem_home`` and ``gem_path`` always hold the same root directory.
    """

    ruby: str
    gem_home: str
    gem_path: str

    @classmethod
    def empty(cls) -> 'EnvironmentInfo':
        """Info used to clear a previously switched environment."""
        return cls(ruby='', gem_home='', gem_path='')

    @classmethod
    def from_root(cls, root: Union[str, Path]) -> 'EnvironmentInfo':
        root = str(root)
        return cls(
            ruby=os.path.join(root, 'bin', 'ruby'),
            gem_home=root,
            gem_path=root,
        )

    @property
    def is_empty(self: Self) -> bool:
        return not (self.ruby or self.gem_home or self.gem_path)

    def as_dict(self: Self) -> Dict[str, str]:
        return {
            'ruby': self.ruby,
            'GEM_HOME': self.gem_home,
            'GEM_PATH': self.gem_path,
        }


def environment_root(
    identifier: Identifier,
    prefix: Union[str, Path, None],
    local_marker: str = DEFAULT_LOCAL_MARKER
) -> Path:
    """Directory holding the environment for ``identifier``.

    Args:
        identifier: Version/gemset pair or local environment path.
        prefix: Global installation prefix.
        local_marker: Reserved name of local environment directories.

    Returns:
        Absolute environment root.

    Raises:
        VersionNotInstalledError: If no installed environment matches.
    """
    if identifier.gemset is None and is_local_environment(identifier.version, local_marker):
        return Path(identifier.version).resolve()

    if prefix:
        prefix = Path(prefix).expanduser()
        if prefix.is_dir():
            root = prefix / str(identifier)
            if root.is_dir():
                return root
            logger.debug("No environment directory at %s", root)

    raise VersionNotInstalledError(identifier, str(prefix) if prefix else None)


def environment_info(
    identifier: Identifier,
    prefix: Union[str, Path, None],
    local_marker: str = DEFAULT_LOCAL_MARKER
) -> EnvironmentInfo:
    """Resolve ``identifier`` to its interpreter and gem paths.

    Raises:
        VersionNotInstalledError: If no installed environment matches.
    """
    return EnvironmentInfo.from_root(environment_root(identifier, prefix, local_marker))


def installed_versions(prefix: Union[str, Path, None]) -> List[str]:
    """Names of the environments installed under ``prefix``, sorted."""
    if not prefix:
        return []
    prefix = Path(prefix).expanduser()
    if not prefix.is_dir():
        return []
    return sorted(
        entry.name for entry in prefix.iterdir()
        if entry.is_dir() and not entry.name.startswith('.')
    )


def split_identifier(name: str) -> Identifier:
    """Parse ``version@gemset`` or a bare ``version``."""
    version, _, gemset = name.strip().partition('@')
    return Identifier(version, gemset or None)


def ruby_bin_dir(info: EnvironmentInfo) -> Optional[str]:
    """Directory of the interpreter binary, None for an empty info."""
    if not info.ruby:
        return None
    return os.path.dirname(info.ruby)
