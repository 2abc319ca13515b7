"""Result model for an isolation run.

``IsolationResult`` is built up stage by stage by the pipeline and then
finalised with ``mark_complete()``. The CLI renders it as a table or, with
``--json``, as ``model_dump_json()``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ArchiveStatus(str, Enum):
    """Outcome of the archiving collaborator."""

    PENDING = "pending"
    OK = "ok"
    FAILED = "failed"


class IsolationResult(BaseModel):
    """Outcome of a single isolate run."""

    run_id: str
    input: str
    output: str
    workspace_root: str | None = None
    staging_root: str | None = None
    pattern: str = ""
    entries: list[str] = Field(default_factory=list)
    closure_size: int = 0
    files_copied: int = 0
    archive_status: ArchiveStatus = ArchiveStatus.PENDING
    archive_error: str | None = None
    published_to: str | None = None
    warnings: list[str] = Field(default_factory=list)
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0

    def mark_complete(self) -> None:
        now = datetime.now(UTC)
        self.completed_at = now.isoformat()
        started = datetime.fromisoformat(self.started_at)
        self.duration_seconds = round((now - started).total_seconds(), 3)

    @property
    def succeeded(self) -> bool:
        return self.published_to is not None
