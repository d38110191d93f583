"""Resolution of per-project Ruby configuration.

A project declares its Ruby either with a self-contained local environment
directory (``.redenv`` containing ``gems/``) or with a pair of marker files
(``.ruby-version`` and ``.ruby-gemset``). The local environment wins when
both are present. A version file without a gemset file, or the reverse,
resolves to nothing.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Self, Union

from .locator import locate_dominating_file
from .validators import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_VERSION_FILE = '.ruby-version'
DEFAULT_GEMSET_FILE = '.ruby-gemset'
DEFAULT_LOCAL_MARKER = '.redenv'


@dataclass(frozen=True)
class Identifier:
    """A Ruby version and gemset pair.

    For a local environment ``version`` holds the environment directory and
    ``gemset`` is None.
    """

    version: str
    gemset: Optional[str] = None

    def __str__(self: Self) -> str:
        if self.gemset:
            return f"{self.version}@{self.gemset}"
        return self.version


def is_local_environment(path: Union[str, Path, None], marker_name: str = DEFAULT_LOCAL_MARKER) -> bool:
    """Check whether ``path`` is a usable local environment directory.

    Args:
        path: Candidate directory.
        marker_name: Reserved directory name of local environments.

    Returns:
        True when the name matches and a ``gems`` subdirectory exists.
    """
    if not path:
        return False
    path = Path(path)
    return path.name == marker_name and (path / 'gems').is_dir()


def read_marker(path: Union[str, Path]) -> str:
    """Return the whole content of a marker file, stripped of whitespace.

    Raises:
        ValidationError: If the marker cannot be read as UTF-8 text.
    """
    try:
        return Path(path).read_text(encoding='utf-8').strip()
    except (OSError, UnicodeDecodeError) as e:
        raise ValidationError(
            f"Invalid marker file {path}: {e}",
            [f"Make sure {path} is a text file holding a single name"]
        )


class ConfigResolver:
    """Finds the Ruby configuration that applies to a path."""

    def __init__(
        self: Self,
        version_file: str = DEFAULT_VERSION_FILE,
        gemset_file: str = DEFAULT_GEMSET_FILE,
        local_marker: str = DEFAULT_LOCAL_MARKER
    ) -> None:
        self.version_file = version_file
        self.gemset_file = gemset_file
        self.local_marker = local_marker

    def find_local_environment(self: Self, project_root: Union[str, Path]) -> Optional[Path]:
        """Locate a valid local environment starting from ``project_root``."""
        found = locate_dominating_file(self.local_marker, project_root)
        if found is not None and is_local_environment(found, self.local_marker):
            return found
        if found is not None:
            logger.debug("Ignoring %s: no gems directory", found)
        return None

    def resolve(
        self: Self,
        start_path: Union[str, Path, None],
        project_root: Union[str, Path, None] = None
    ) -> Optional[Identifier]:
        """Resolve the configuration for ``start_path``.

        Args:
            start_path: File or directory the marker search starts from.
            project_root: Where the local environment search starts.
                Defaults to the current working directory.

        Returns:
            The identifier to activate, or None when nothing applies.
        """
        if project_root is None:
            project_root = Path.cwd()

        local_env = self.find_local_environment(project_root)
        if local_env is not None:
            logger.debug("Using local environment %s", local_env)
            return Identifier(str(local_env), None)

        version_path = locate_dominating_file(self.version_file, start_path)
        gemset_path = locate_dominating_file(self.gemset_file, start_path)

        if version_path is None or gemset_path is None:
            if version_path is not None or gemset_path is not None:
                logger.debug(
                    "Incomplete marker pair for %s (version=%s, gemset=%s)",
                    start_path, version_path, gemset_path
                )
            return None

        return Identifier(read_marker(version_path), read_marker(gemset_path))
