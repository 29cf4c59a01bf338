"""Engine error taxonomy."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all task intelligence errors."""


class AuthorizationError(EngineError):
    """Caller is not identified or does not own the referenced resource."""


class ValidationError(EngineError, ValueError):
    """An input parameter is malformed or out of range."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ComputationError(EngineError):
    """The computation could not complete, usually because the store failed."""
