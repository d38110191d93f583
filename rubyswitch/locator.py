"""Upward search for marker files."""

import logging
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def locate_dominating_file(name: str, start: Optional[Union[str, Path]]) -> Optional[Path]:
    """Find the closest ``name`` entry in ``start`` or one of its parents.

    ``start`` may be a file or a directory and does not have to exist. When it
    is not an existing directory the search begins in its parent.

    Args:
        name: Exact entry name to look for (file or directory).
        start: Path the search starts from.

    Returns:
        Full path of the closest matching entry, or None when the filesystem
        root is reached without a match.
    """
    if start is None or str(start) == '':
        return None

    current = Path(start).expanduser().absolute()
    if not current.is_dir():
        current = current.parent

    for directory in (current, *current.parents):
        candidate = directory / name
        if candidate.exists():
            logger.debug("Found %s at %s", name, candidate)
            return candidate

    return None
