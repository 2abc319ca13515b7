"""Materialization: copy the manifest and every closure member into staging."""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path

from isolator.core.errors import CopyError, StatError
from isolator.core.logging import get_logger
from isolator.isolation.projector import project

logger = get_logger(__name__)


def copy_manifest(manifest_path: Path, staging_root: Path) -> Path:
    """Copy the workspace root manifest to the top level of *staging_root*."""
    if not manifest_path.is_file():
        raise StatError(str(manifest_path))
    destination = staging_root / manifest_path.name
    try:
        shutil.copy2(manifest_path, destination)
    except OSError as exc:
        raise CopyError(str(manifest_path), str(destination), cause=exc) from exc
    logger.debug("manifest.copied", source=str(manifest_path), destination=str(destination))
    return destination


def copy_member(workspace_root: Path, staging_root: Path, member: str) -> Path:
    """Copy a single closure member to its projected location.

    Returns the path the member now occupies inside *staging_root*.
    """
    source = workspace_root / member
    destination = staging_root / member
    target_dir = project(workspace_root, staging_root, member)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        if target_dir == destination:
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
        else:
            if destination.is_symlink():
                destination.unlink()
            shutil.copy2(source, destination, follow_symlinks=False)
    except OSError as exc:
        raise CopyError(str(source), str(destination), cause=exc) from exc
    logger.debug("member.copied", source=str(source), destination=str(destination))
    return destination


def materialize(
    workspace_root: Path,
    staging_root: Path,
    closure: Iterable[str],
    manifest_path: Path,
) -> int:
    """Populate *staging_root* with the manifest plus every closure member.

    Members are copied in sorted order; the first failure aborts the run.
    Returns the number of members copied.
    """
    copy_manifest(manifest_path, staging_root)
    count = 0
    for member in sorted(set(closure)):
        copy_member(workspace_root, staging_root, member)
        count += 1
    logger.info("closure.materialized", staging_root=str(staging_root), members=count)
    return count
