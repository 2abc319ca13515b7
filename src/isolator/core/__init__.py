"""
Core primitives shared by every isolator layer: the error hierarchy,
the Result envelope and structured logging.
"""

from isolator.core.errors import (
    CleanupWarning,
    CollaboratorError,
    ConfigurationError,
    CopyError,
    ErrorCategory,
    ErrorContext,
    IsolatorError,
    StatError,
    StorageError,
    WorkspaceNotFoundError,
)
from isolator.core.result import Err, Ok, Result

__all__ = [
    "CleanupWarning",
    "CollaboratorError",
    "ConfigurationError",
    "CopyError",
    "ErrorCategory",
    "ErrorContext",
    "IsolatorError",
    "StatError",
    "StorageError",
    "WorkspaceNotFoundError",
    "Err",
    "Ok",
    "Result",
]
