"""Archivers: turn the staging root into ``deploy.zip``.

An archiver never raises for its own failure; it returns ``Err`` with a
``CollaboratorError`` and the pipeline decides, per
``IsolateConfig.strict_archive``, whether that is fatal.

- ``ZipfileArchiver`` (default) writes with :mod:`zipfile`. Entries are
  sorted and stamped 1980-01-01, so identical staging trees always give
  byte-identical archives.
- ``ZipCommandArchiver`` runs ``zip -r deploy.zip .`` inside the staging
  root with stdout/stderr captured.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import zipfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from isolator.core.errors import CollaboratorError, ConfigurationError
from isolator.core.logging import get_logger
from isolator.core.result import Err, Ok, Result
from isolator.isolation.config import ARCHIVE_NAME

logger = get_logger(__name__)

_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


@runtime_checkable
class Archiver(Protocol):
    """Contract: build ``<staging_root>/deploy.zip`` from everything under it."""

    def archive(self, staging_root: Path, *, verbose: bool = False) -> Result[Path]: ...


def iter_staged_files(staging_root: Path, archive_name: str = ARCHIVE_NAME) -> list[Path]:
    """Sorted files under *staging_root*, minus the archive.

    Directory symlinks are followed unless they point back at one of their
    own ancestors.
    """
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(staging_root, followlinks=True):
        current = Path(dirpath)
        real = os.path.realpath(current)
        ancestors = {os.path.realpath(p) for p in current.parents if staging_root in (p, *p.parents)}
        if real in ancestors:
            dirnames[:] = []
            continue
        dirnames.sort()
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.parent == staging_root and filename == archive_name:
                continue
            files.append(path)
    return sorted(files, key=lambda p: p.relative_to(staging_root).as_posix())


class ZipfileArchiver:
    """Deterministic archiver built on :mod:`zipfile`.

    Symlinks are followed (their target content is stored), matching the
    default behaviour of the ``zip`` command.
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._compression = compression

    def archive(self, staging_root: Path, *, verbose: bool = False) -> Result[Path]:
        target = staging_root / ARCHIVE_NAME
        try:
            files = iter_staged_files(staging_root)
            with zipfile.ZipFile(target, "w", compression=self._compression) as zf:
                for path in files:
                    arcname = path.relative_to(staging_root).as_posix()
                    info = zipfile.ZipInfo(arcname, date_time=_FIXED_DATE_TIME)
                    info.compress_type = self._compression
                    info.external_attr = (path.stat().st_mode & 0o777) << 16
                    info.create_system = 3
                    zf.writestr(info, path.read_bytes())
                    if verbose:
                        logger.debug("archive.added", entry=arcname)
        except OSError as exc:
            return Err(CollaboratorError(f"zipfile failed: {exc}", command=["zipfile"], cause=exc))
        logger.debug("archive.built", archive=str(target), entries=len(files))
        return Ok(target)


class ZipCommandArchiver:
    """Archive by running the external ``zip`` tool in the staging root."""

    def __init__(self, zip_command: str = "zip") -> None:
        self._zip = zip_command

    def command(self, verbose: bool) -> list[str]:
        cmd = [self._zip, "-r", ARCHIVE_NAME, ".", "-x", ARCHIVE_NAME]
        if not verbose:
            cmd.insert(1, "-qq")
        return cmd

    def archive(self, staging_root: Path, *, verbose: bool = False) -> Result[Path]:
        cmd = self.command(verbose)
        if shutil.which(self._zip) is None:
            return Err(CollaboratorError(f"{self._zip} not found on PATH", command=cmd))
        try:
            result = subprocess.run(cmd, cwd=staging_root, capture_output=True, text=True)
        except OSError as exc:
            return Err(CollaboratorError(f"Cannot run {self._zip}: {exc}", command=cmd, cause=exc))

        if result.stdout:
            logger.debug("archive.output", output=result.stdout.strip())
        if result.returncode != 0:
            return Err(
                CollaboratorError(
                    f"zip failed (exit {result.returncode}): {result.stderr.strip()}",
                    command=cmd,
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )
            )
        return Ok(staging_root / ARCHIVE_NAME)


def get_archiver(name: str) -> Archiver:
    """Build the archiver selected by ``IsolateConfig.archiver``."""
    if name == "zipfile":
        return ZipfileArchiver()
    if name == "zip":
        return ZipCommandArchiver()
    raise ConfigurationError(f"Unknown archiver: {name!r} (expected 'zipfile' or 'zip')")
