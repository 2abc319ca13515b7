"""Path projection: where does a closure member land inside the staging root?

Directory members are whole subtrees (e.g. a native binary's install dir)
and project onto themselves. Everything else (files, symlinks) projects
onto its containing directory so the copy keeps its basename.

    >>> project(Path("/repo"), Path("/tmp/s"), "pkg/lib/util.js")   # doctest: +SKIP
    PosixPath('/tmp/s/pkg/lib')
    >>> project(Path("/repo"), Path("/tmp/s"), "pkg/native-bin")    # doctest: +SKIP
    PosixPath('/tmp/s/pkg/native-bin')
"""

from __future__ import annotations

import os
import posixpath
import stat
from pathlib import Path

from isolator.core.errors import StatError
from isolator.core.logging import get_logger

logger = get_logger(__name__)


def is_directory_member(workspace_root: Path, member: str) -> bool:
    """``lstat`` the member's source; symlinks count as non-directories."""
    source = workspace_root / member
    try:
        mode = os.lstat(source).st_mode
    except OSError as exc:
        raise StatError(str(source), member=member, cause=exc) from exc
    return stat.S_ISDIR(mode)


def project(workspace_root: Path, staging_root: Path, member: str) -> Path:
    """Return the staging directory that must exist before copying *member*."""
    if is_directory_member(workspace_root, member):
        logger.debug("member.projected", member=member, kind="dir")
        return staging_root / member
    logger.debug("member.projected", member=member, kind="file")
    parent = posixpath.dirname(member)
    return staging_root / parent if parent else staging_root
