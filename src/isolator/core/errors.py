"""
Structured error types for isolator.

Every failure the isolation pipeline can surface is an ``IsolatorError``
carrying a category, structured context and an optional chained cause.
The CLI renders these uniformly (one message on stderr, or ``to_dict()``
under ``--json``) and exits non-zero.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure mode of the pipeline
    - **Rich Context:** Errors know which member / path / command failed
    - **Error Chaining:** The underlying ``OSError`` is preserved as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      IsolatorError                          │
        │            (category, context, cause)                       │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigurationError      WorkspaceNotFoundError             │
        │  (CONFIG)                (WORKSPACE)                        │
        │                                                             │
        │  StorageError            CollaboratorError                  │
        │  (STORAGE)               (COLLABORATOR)                     │
        │     │                                                       │
        │  StatError  CopyError                                       │
        └─────────────────────────────────────────────────────────────┘

        CleanupWarning (UserWarning): non-fatal, never raised.

Tags:
    error-handling, exception-hierarchy, error-context, isolator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification in logs and JSON output."""

    CONFIG = "CONFIG"  # Missing / invalid parameters
    WORKSPACE = "WORKSPACE"  # Workspace root cannot be located
    STORAGE = "STORAGE"  # stat / copy / remove failures
    COLLABORATOR = "COLLABORATOR"  # Tracer or archiver process failures
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only fields that are set are emitted by :meth:`to_dict`; anything that
    doesn't fit a typed field goes into ``metadata``.
    """

    workspace_root: str | None = None
    member: str | None = None
    source: str | None = None
    destination: str | None = None
    command: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["workspace_root", "member", "source", "destination", "command"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class IsolatorError(Exception):
    """Base exception for all isolator errors.

    Subclasses set ``default_category``; callers may add context fluently::

        raise StatError("missing").with_context(member="pkg/index.js")
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> IsolatorError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(IsolatorError):
    """Required parameters are missing or invalid. Raised before any I/O."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])
        if self.missing:
            self.context.metadata["missing"] = self.missing


# =============================================================================
# WORKSPACE
# =============================================================================


class WorkspaceNotFoundError(IsolatorError):
    """No lockfile marker was found walking up from the start directory."""

    default_category = ErrorCategory.WORKSPACE

    def __init__(self, start: str, markers: tuple[str, ...] | list[str], reason: str | None = None):
        message = f"Workspace root cannot be found from {start} (looked for {', '.join(markers)})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.start = start
        self.markers = tuple(markers)
        self.context.metadata["start"] = start


# =============================================================================
# STORAGE
# =============================================================================


class StorageError(IsolatorError):
    """Filesystem failure while staging or publishing."""

    default_category = ErrorCategory.STORAGE


class StatError(StorageError):
    """A closure member or the manifest cannot be stat'ed."""

    def __init__(self, path: str, *, member: str | None = None, cause: Exception | None = None):
        super().__init__(f"Cannot stat {path}", cause=cause)
        self.path = path
        self.context.source = path
        self.context.member = member


class CopyError(StorageError):
    """Copying ``source`` to ``destination`` failed."""

    def __init__(self, source: str, destination: str, *, cause: Exception | None = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to copy {source} to {destination}{detail}", cause=cause)
        self.source = source
        self.destination = destination
        self.context.source = source
        self.context.destination = destination


# =============================================================================
# COLLABORATORS
# =============================================================================


class CollaboratorError(IsolatorError):
    """An external collaborator (tracer, zip command) reported failure."""

    default_category = ErrorCategory.COLLABORATOR

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.command = list(command or [])
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if self.command:
            self.context.command = " ".join(self.command)
        if returncode is not None:
            self.context.metadata["returncode"] = returncode


# =============================================================================
# WARNINGS
# =============================================================================


class CleanupWarning(UserWarning):
    """The staging directory could not be removed after publishing."""


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "IsolatorError",
    "ConfigurationError",
    "WorkspaceNotFoundError",
    "StorageError",
    "StatError",
    "CopyError",
    "CollaboratorError",
    "CleanupWarning",
]
