"""Data models for error classification.

This module provides:
- ClassifiedError: exception tagged with an ErrorCategory and metadata
- RetryAttemptRecord: one failed attempt inside a retried request
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .codes import ErrorCategory


class ClassifiedError(Exception):
    """An error tagged with a category, raised as the terminal error of a request.

    Instances are immutable once built: ``metadata`` is exposed as a read-only
    mapping and the other attributes are properties. Use ``with_metadata`` to
    derive a copy carrying additional keys.
    """

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        *,
        original_error: BaseException | None = None,
        metadata: Mapping[str, Any] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self._category = ErrorCategory(category)
        self._message = message
        self._original_error = original_error
        self._metadata: Mapping[str, Any] = MappingProxyType(dict(metadata or {}))
        self._code = code

    @property
    def category(self) -> ErrorCategory:
        return self._category

    @property
    def message(self) -> str:
        return self._message

    @property
    def original_error(self) -> BaseException | None:
        return self._original_error

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._metadata

    @property
    def code(self) -> str | None:
        return self._code

    def with_metadata(self, **extra: Any) -> ClassifiedError:
        """Return a new ClassifiedError with ``extra`` merged into the metadata."""
        derived = ClassifiedError(
            self._category,
            self._message,
            original_error=self._original_error,
            metadata={**self._metadata, **extra},
            code=self._code,
        )
        derived.__cause__ = self.__cause__
        return derived

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and error responses."""
        return {
            "category": self._category.value,
            "message": self._message,
            "code": self._code,
            "metadata": dict(self._metadata),
        }

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(category={self._category.value!r}, "
            f"message={self._message!r}, code={self._code!r})"
        )


@dataclass(frozen=True)
class RetryAttemptRecord:
    """One failed attempt of a retried request."""

    attempt: int
    """1-based attempt number."""

    delay_seconds: float
    """Backoff waited after this attempt (0.0 when no retry followed)."""

    category: ErrorCategory
    """Category of the failure."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt": self.attempt,
            "delay_seconds": round(self.delay_seconds, 3),
            "category": self.category.value,
        }


__all__ = ["ClassifiedError", "RetryAttemptRecord"]
