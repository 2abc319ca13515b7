"""
Shared pytest fixtures and configuration for isolator tests.

This module provides:
- Logging reset between tests (structlog config + bound context)
- A ``make_workspace`` factory that lays out a small JS monorepo on disk
- Stub collaborators (fixed-closure tracer, failing archiver)

Usage:
    def test_something(make_workspace):
        root = make_workspace({"packages/web/index.js": "require('./a')"})
"""

import sys
from pathlib import Path
from typing import Callable, Generator, Iterable

import pytest
import structlog

# Ensure isolator package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from isolator.core.errors import CollaboratorError
from isolator.core.logging import clear_context
from isolator.core.result import Err


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their name and location."""
    for item in items:
        if "end_to_end" in item.name or "test_pipeline" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop structlog configuration and bound context around every test.

    CLI tests configure structlog against CliRunner's temporary streams;
    resetting keeps later tests from writing to a closed stream.
    """
    structlog.reset_defaults()
    clear_context()
    yield
    structlog.reset_defaults()
    clear_context()


# =============================================================================
# Workspace fixtures
# =============================================================================


ROOT_MANIFEST = '{"name": "repo", "private": true, "workspaces": ["packages/*"]}\n'


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[..., Path]:
    """Factory: write ``{relative_path: content}`` under ``tmp_path/repo``.

    A ``package.json`` and a lockfile (``yarn.lock`` unless overridden)
    are added at the root unless disabled.
    """

    def _make(
        files: dict[str, str] | None = None,
        *,
        lockfile: str | None = "yarn.lock",
        manifest: bool = True,
    ) -> Path:
        root = tmp_path / "repo"
        root.mkdir(exist_ok=True)
        if lockfile:
            (root / lockfile).write_text("# lockfile\n")
        if manifest:
            (root / "package.json").write_text(ROOT_MANIFEST)
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _make


@pytest.fixture
def web_workspace(make_workspace: Callable[..., Path]) -> Path:
    """The canonical two-package workspace: web depends on shared."""
    return make_workspace(
        {
            "packages/web/package.json": '{"name": "web", "main": "index.js"}\n',
            "packages/web/index.js": "const util = require('../shared/util')\nmodule.exports = util\n",
            "packages/shared/util.js": "module.exports = { add: (a, b) => a + b }\n",
            "packages/shared/unused.js": "module.exports = 'unused'\n",
        }
    )


class FixedTracer:
    """Tracer stub returning a predetermined closure and recording its call."""

    def __init__(self, closure: Iterable[str]) -> None:
        self.closure = set(closure)
        self.calls: list[tuple[list[str], Path, Path]] = []

    def trace(self, entries, base, process_cwd):
        self.calls.append((list(entries), Path(base), Path(process_cwd)))
        return set(self.closure)


class FailingArchiver:
    """Archiver stub that always reports a collaborator failure."""

    def __init__(self) -> None:
        self.calls = 0

    def archive(self, staging_root, *, verbose=False):
        self.calls += 1
        return Err(CollaboratorError("zip failed (exit 12): nothing to do", returncode=12))


@pytest.fixture
def fixed_tracer() -> Callable[[Iterable[str]], FixedTracer]:
    return FixedTracer


@pytest.fixture
def failing_archiver() -> FailingArchiver:
    return FailingArchiver()
