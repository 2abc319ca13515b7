"""Workspace root detection.

The workspace root is the nearest ancestor (or the start directory
itself) holding a package-manager lockfile.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from isolator.core.errors import WorkspaceNotFoundError
from isolator.core.logging import get_logger
from isolator.isolation.config import LOCKFILES

logger = get_logger(__name__)


def locate(
    start: Path,
    markers: Iterable[str] = LOCKFILES,
    *,
    max_depth: int = 256,
) -> Path:
    """Walk upward from *start* to the first directory holding a lockfile.

    The walk is iterative over canonical paths: it stops at the filesystem
    root, when a directory repeats (symlink cycle), or after *max_depth*
    directories, raising ``WorkspaceNotFoundError`` in each case.
    """
    markers = tuple(markers)
    origin = str(start)
    current = Path(start).resolve()
    seen: set[Path] = set()

    for depth in range(max_depth):
        if current in seen:
            raise WorkspaceNotFoundError(origin, markers, reason=f"cycle at {current}")
        seen.add(current)

        for marker in markers:
            if (current / marker).exists():
                logger.debug("workspace.located", root=str(current), marker=marker, depth=depth)
                return current

        parent = current.parent.resolve()
        if parent == current:
            raise WorkspaceNotFoundError(origin, markers)
        current = parent

    raise WorkspaceNotFoundError(origin, markers, reason=f"gave up after {max_depth} directories")
