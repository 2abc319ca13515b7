"""Publishing: deliver ``deploy.zip`` to the caller and drop the staging root."""

from __future__ import annotations

import shutil
import warnings
from pathlib import Path

from isolator.core.errors import CleanupWarning, CopyError
from isolator.core.logging import get_logger
from isolator.isolation.config import ARCHIVE_NAME

logger = get_logger(__name__)


def remove_staging(staging_root: Path) -> str | None:
    """Remove *staging_root* recursively.

    Failure is not an error: a ``CleanupWarning`` is emitted and its
    message returned so callers can report it.
    """
    try:
        shutil.rmtree(staging_root)
    except FileNotFoundError:
        return None
    except OSError as exc:
        message = f"Failed to remove staging directory {staging_root}: {exc}"
        logger.warning("staging.cleanup_failed", staging_root=str(staging_root), error=str(exc))
        warnings.warn(message, CleanupWarning, stacklevel=2)
        return message
    logger.debug("staging.removed", staging_root=str(staging_root))
    return None


def publish(staging_root: Path, output_path: Path) -> tuple[Path, str | None]:
    """Copy the staged archive to *output_path*, then remove *staging_root*.

    Parent directories of *output_path* are not created. Returns the
    published path and the cleanup warning message, if any.

    Raises:
        CopyError: the archive could not be copied (staging is left for
            the caller to clean up).
    """
    source = staging_root / ARCHIVE_NAME
    try:
        published = Path(shutil.copy(source, output_path))
    except OSError as exc:
        raise CopyError(str(source), str(output_path), cause=exc) from exc
    logger.info("archive.published", output=str(published))
    return published, remove_staging(staging_root)
