"""
Result envelope for collaborator outcomes.

External collaborators (the archiver above all) report success or failure
as a value instead of raising, so the pipeline can decide per policy
whether a failure is fatal. Pattern matching works on both variants::

    match archiver.archive(staging_root, verbose=False):
        case Ok(path):
            ...
        case Err(error):
            ...

``Err.to_dict()`` is the error payload the CLI prints for ``--json``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from isolator.core.errors import IsolatorError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error; ``unwrap`` re-raises it."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, IsolatorError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {"error_type": type(self.error).__name__, "message": str(self.error)},
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


__all__ = ["Ok", "Err", "Result"]
