"""Isolation pipeline orchestration.

Sequences the stages of one run::

    locate ─► resolve entries ─► trace closure ─► materialize ─► archive ─► publish

Every stage blocks until done. The staging root is created just before
materialization and removed on every exit path; a failed removal is only a
warning.

Error policy:
    - ConfigurationError / WorkspaceNotFoundError / StatError / CopyError
      propagate to the caller (the CLI turns them into exit code 1).
    - Archiver failures are logged and the run continues to publish unless
      ``strict_archive`` is set, in which case the CollaboratorError
      propagates.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from isolator.core.errors import ConfigurationError, IsolatorError
from isolator.core.logging import LogContext, ensure_logging, get_logger
from isolator.core.result import Err, Ok
from isolator.isolation.archiver import Archiver, get_archiver
from isolator.isolation.config import IsolateConfig
from isolator.isolation.entries import resolve
from isolator.isolation.locator import locate
from isolator.isolation.materializer import materialize
from isolator.isolation.publisher import publish, remove_staging
from isolator.isolation.results import ArchiveStatus, IsolationResult
from isolator.isolation.tracing import ClosureTracer, get_tracer

logger = get_logger(__name__)

STAGING_PREFIX = "isolator-"


class IsolationRunner:
    """Run the isolation pipeline for one :class:`IsolateConfig`.

    Collaborators default to the ones named in the config and can be
    injected for embedding or testing::

        runner = IsolationRunner(config, tracer=MyTracer())
        result = runner.run()
    """

    def __init__(
        self,
        config: IsolateConfig,
        *,
        tracer: ClosureTracer | None = None,
        archiver: Archiver | None = None,
    ) -> None:
        ensure_logging()
        self.config = config
        self._tracer = tracer
        self._archiver = archiver

    @property
    def tracer(self) -> ClosureTracer:
        if self._tracer is None:
            self._tracer = get_tracer(self.config.tracer)
        return self._tracer

    @property
    def archiver(self) -> Archiver:
        if self._archiver is None:
            self._archiver = get_archiver(self.config.archiver)
        return self._archiver

    # -- public API ----------------------------------------------------------

    def trace(self) -> tuple[Path, list[str], set[str]]:
        """Locate the workspace and compute the closure without staging anything.

        Returns ``(workspace_root, entries, closure)``.
        """
        if self.config.input is None:
            raise ConfigurationError("Required input: pass an input (-i, --input).", missing=["input"])
        return self._trace(self._package_dir(self.config.input.absolute()))

    def run(self) -> IsolationResult:
        """Execute the full pipeline and return the populated result."""
        package_dir, output = self.config.require_paths()
        package_dir = self._package_dir(package_dir)

        result = IsolationResult(
            run_id=self.config.run_id,
            input=str(package_dir),
            output=str(output),
            pattern=self.config.pattern,
        )

        with LogContext(run_id=self.config.run_id):
            workspace_root, entries, closure = self._trace(package_dir)
            result.workspace_root = str(workspace_root)
            result.entries = entries
            result.closure_size = len(closure)

            staging_root = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX))
            result.staging_root = str(staging_root)
            logger.debug("staging.created", staging_root=str(staging_root))
            try:
                result.files_copied = materialize(
                    workspace_root,
                    staging_root,
                    closure,
                    workspace_root / self.config.manifest_name,
                )
                self._archive(staging_root, result)
                published, cleanup_warning = publish(staging_root, output)
            except BaseException as exc:
                if isinstance(exc, IsolatorError):
                    exc.with_context(workspace_root=str(workspace_root), run_id=self.config.run_id)
                warning = remove_staging(staging_root)
                if warning:
                    result.warnings.append(warning)
                raise

            result.published_to = str(published)
            if cleanup_warning:
                result.warnings.append(cleanup_warning)

        result.mark_complete()
        logger.info(
            "isolation.completed",
            run_id=result.run_id,
            output=result.published_to,
            members=result.closure_size,
            duration_seconds=result.duration_seconds,
        )
        return result

    # -- stages --------------------------------------------------------------

    @staticmethod
    def _package_dir(path: Path) -> Path:
        if not path.is_dir():
            raise ConfigurationError(f"Input must be an existing package directory: {path}")
        return path

    def _trace(self, package_dir: Path) -> tuple[Path, list[str], set[str]]:
        workspace_root = locate(
            package_dir,
            self.config.lockfiles,
            max_depth=self.config.max_depth,
        )
        logger.info("workspace.located", root=str(workspace_root))

        entries = resolve(self.config.pattern, package_dir, self.config.ignore)
        logger.info("entries.resolved", count=len(entries), pattern=self.config.pattern)

        closure = self.tracer.trace(entries, workspace_root, package_dir)
        logger.info("closure.traced", members=len(closure))
        return workspace_root, entries, closure

    def _archive(self, staging_root: Path, result: IsolationResult) -> None:
        outcome = self.archiver.archive(staging_root, verbose=self.config.verbose)
        match outcome:
            case Ok(path):
                result.archive_status = ArchiveStatus.OK
                logger.info("archive.created", archive=str(path))
            case Err(error):
                result.archive_status = ArchiveStatus.FAILED
                result.archive_error = str(error)
                if self.config.strict_archive:
                    raise error
                logger.error("archive.failed", error=str(error))


def isolate(
    config: IsolateConfig,
    *,
    tracer: ClosureTracer | None = None,
    archiver: Archiver | None = None,
) -> IsolationResult:
    """Convenience wrapper around :class:`IsolationRunner`.

    Unless the caller has configured structlog already, the runner installs
    the CLI's quiet default (WARNING and above, on stderr); call
    :func:`isolator.core.logging.configure_logging` first for anything else.
    """
    return IsolationRunner(config, tracer=tracer, archiver=archiver).run()
