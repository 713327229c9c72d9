"""
Exception hierarchy for the blob stager.

All exceptions inherit from StagerError, which carries optional structured
context for logging. Storage trouble is never fatal to a render: the
controller logs these and returns an identifier instead of raising.
"""

from __future__ import annotations

from typing import Any


class StagerError(Exception):
    """Base exception for all stager errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(StagerError):
    """Raised when configuration is invalid (e.g. unusable temp directory)."""

    pass


class StageFailure(StagerError):
    """Raised by ContentStore.put when bytes could not be copied to a backing file.

    The identifier is left unmapped, so a later fetch misses.

    Context should include:
        - identifier: The resource identifier being written
        - path: The backing file that was abandoned, if one was created
        - error: The underlying I/O error message
    """

    pass


class ReclaimFailure(StagerError):
    """A backing file could not be deleted.

    Built for logging and returned from reclaim paths; never raised. The
    index entry is kept so a later delete can retry.

    Context should include:
        - identifier: The resource identifier whose file survived
        - path: The backing file path
    """

    pass
