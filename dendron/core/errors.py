"""
Dendron Error Taxonomy and Result Type

Failures are returned, not raised:
- ValidationError: missing/invalid factor, name, or salt
- ConfigurationError: missing engine, mold, or model at load time
- DuplicateRegistrationError: name collision resolved by reuse (never fatal)

Every fallible operation returns a Result carrying either the value or the
typed error. The error is also reported through dendron.core.diagnostics.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar('T')


class DendronError(Exception):
    """Base class for dendron failures"""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ValidationError(DendronError):
    """Missing or invalid factor, name, or salt"""
    pass


class ConfigurationError(DendronError):
    """Missing engine, mold, or model at load time"""
    pass


class DuplicateRegistrationError(DendronError):
    """Engine name already registered; resolved by reusing the existing type"""
    pass


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a fallible operation: a value or a typed error, never both."""
    value: Optional[T] = None
    error: Optional[DendronError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value

    @staticmethod
    def success(value: T) -> 'Result[T]':
        return Result(value=value)

    @staticmethod
    def failure(error: DendronError) -> 'Result[Any]':
        return Result(error=error)
