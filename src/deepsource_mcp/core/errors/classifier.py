"""ErrorClassifier implementation for DeepSource API failures.

Maps raw failures (httpx exceptions, GraphQL error payloads, parse errors)
to ClassifiedError instances. Rules are evaluated in a fixed priority order
and the first match wins; unrecognised failures become ``OTHER``.
"""

from __future__ import annotations

import asyncio
import json
import re
import socket
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from deepsource_mcp.core.logging import get_logger

from .codes import ErrorCategory
from .exceptions import GraphQLResponseError, ResponseFormatError
from .models import ClassifiedError

# Module-level logger for error classification
_logger = get_logger("errors")


# =============================================================================
# Default pattern strings for ErrorClassifier.
# =============================================================================

_DEFAULT_NOT_FOUND_PATTERNS: list[str] = [
    r"not found",
    r"does not exist",
    r"nonetype",
]

_DEFAULT_SCHEMA_PATTERNS: list[str] = [
    r"cannot query field",
    r"unknown argument",
    r"unknown type",
    r"field .* not defined",
    r"variable .* of required type",
]

_DEFAULT_AUTH_HINTS: list[str] = [
    r"authentication",
    r"unauthori[sz]ed",
    r"access denied",
    r"not authori[sz]ed",
    r"forbidden",
    r"token",
    r"api.?key",
]

_DEFAULT_RATE_LIMIT_HINTS: list[str] = [
    r"rate.?limit",
    r"too many requests",
    r"throttl",
]

_DEFAULT_NETWORK_HINTS: list[str] = [
    r"network",
    r"connection",
    r"econnreset",
    r"econnrefused",
]

_DEFAULT_TIMEOUT_HINTS: list[str] = [
    r"timeout",
    r"timed out",
    r"etimedout",
]

_DEFAULT_SERVER_HINTS: list[str] = [
    r"server error",
    r"internal error",
    r"\b500\b",
]


def _compile_patterns(strings: list[str]) -> re.Pattern[str]:
    """Merge regex strings into one case-insensitive alternation."""
    return re.compile("|".join(f"(?:{p})" for p in strings), re.IGNORECASE)


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """Parse a ``Retry-After`` header value into seconds.

    Accepts either delta-seconds (``"120"``) or an HTTP-date
    (``"Wed, 21 Oct 2015 07:28:00 GMT"``). Dates in the past yield ``0.0``.

    Returns:
        Seconds to wait, or None when the value is missing, negative or
        unparseable.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if re.fullmatch(r"-?\d+", text):
        seconds = int(text)
        return float(seconds) if seconds >= 0 else None

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)

    reference = now or datetime.now(UTC)
    return max(0.0, (when - reference).total_seconds())


# =============================================================================
# Error Classifier
# =============================================================================


class ErrorClassifier:
    """Classifies raw failures into ErrorCategory values.

    Priority order (first match wins):
    1. HTTP 401/403 -> AUTH
    2. HTTP 429 -> RATE_LIMIT (with ``retry_after_seconds`` when present)
    3. HTTP >= 500 -> SERVER
    4. connection-level failures -> NETWORK
    5. timeouts -> TIMEOUT
    6. GraphQL "not found" messages or HTTP 404 -> NOT_FOUND
    7. GraphQL schema mismatch messages -> SCHEMA
    8. remaining HTTP 4xx -> CLIENT
    9. unparseable responses -> FORMAT
    10. message hints (auth, rate limit, network, timeout, server), else OTHER

    ``classify`` never raises.
    """

    def __init__(
        self,
        not_found_patterns: list[str] | None = None,
        schema_patterns: list[str] | None = None,
    ) -> None:
        self.not_found_pattern = _compile_patterns(
            not_found_patterns or _DEFAULT_NOT_FOUND_PATTERNS
        )
        self.schema_pattern = _compile_patterns(schema_patterns or _DEFAULT_SCHEMA_PATTERNS)
        self._hints: list[tuple[ErrorCategory, re.Pattern[str]]] = [
            (ErrorCategory.AUTH, _compile_patterns(_DEFAULT_AUTH_HINTS)),
            (ErrorCategory.RATE_LIMIT, _compile_patterns(_DEFAULT_RATE_LIMIT_HINTS)),
            (ErrorCategory.NETWORK, _compile_patterns(_DEFAULT_NETWORK_HINTS)),
            (ErrorCategory.TIMEOUT, _compile_patterns(_DEFAULT_TIMEOUT_HINTS)),
            (ErrorCategory.SERVER, _compile_patterns(_DEFAULT_SERVER_HINTS)),
        ]

    def classify(self, error: BaseException) -> ClassifiedError:
        """Classify ``error``; an already classified error is returned unchanged."""
        if isinstance(error, ClassifiedError):
            return error

        try:
            classified = self._classify(error)
        except Exception as exc:
            # A malformed exception object must still come back classified
            _logger.warning(
                "classification_failed",
                error_type=type(error).__name__,
                classifier_error=str(exc),
            )
            classified = ClassifiedError(
                ErrorCategory.OTHER,
                type(error).__name__,
                original_error=error,
            )

        _logger.debug(
            "error_classified",
            category=classified.category.value,
            code=classified.code,
            error_type=type(error).__name__,
        )
        return classified

    def _classify(self, error: BaseException) -> ClassifiedError:
        response = error.response if isinstance(error, httpx.HTTPStatusError) else None
        status = response.status_code if response is not None else None

        if response is not None and status is not None:
            if status in (401, 403):
                return self._from_http(ErrorCategory.AUTH, error, response)
            if status == 429:
                retry_after = parse_retry_after(response.headers.get("retry-after"))
                extra = {"retry_after_seconds": retry_after} if retry_after is not None else {}
                return self._from_http(ErrorCategory.RATE_LIMIT, error, response, **extra)
            if status >= 500:
                return self._from_http(ErrorCategory.SERVER, error, response)

        if _is_network_error(error):
            return ClassifiedError(
                ErrorCategory.NETWORK,
                f"Network error: {_describe(error)}",
                original_error=error,
            )

        if isinstance(error, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError)):
            return ClassifiedError(
                ErrorCategory.TIMEOUT,
                f"Request timed out: {_describe(error)}",
                original_error=error,
            )

        if isinstance(error, GraphQLResponseError):
            message = str(error)
            if self.not_found_pattern.search(message):
                return self._from_graphql(ErrorCategory.NOT_FOUND, error)
            if self.schema_pattern.search(message):
                return self._from_graphql(ErrorCategory.SCHEMA, error)

        if response is not None and status is not None:
            if status == 404:
                return self._from_http(ErrorCategory.NOT_FOUND, error, response)
            if 400 <= status < 500:
                return self._from_http(ErrorCategory.CLIENT, error, response)

        if isinstance(error, (ResponseFormatError, json.JSONDecodeError, httpx.DecodingError)):
            return ClassifiedError(
                ErrorCategory.FORMAT,
                f"Malformed response: {_describe(error)}",
                original_error=error,
                code="FORMAT_ERROR",
            )

        category = self._category_from_hints(_describe(error))
        if isinstance(error, GraphQLResponseError):
            return self._from_graphql(category, error)
        return ClassifiedError(category, _describe(error), original_error=error)

    def _category_from_hints(self, message: str) -> ErrorCategory:
        for category, pattern in self._hints:
            if pattern.search(message):
                return category
        return ErrorCategory.OTHER

    def _from_http(
        self,
        category: ErrorCategory,
        error: BaseException,
        response: httpx.Response,
        **extra: Any,
    ) -> ClassifiedError:
        return ClassifiedError(
            category,
            _http_error_message(response),
            original_error=error,
            metadata={"status_code": response.status_code, **extra},
            code=f"HTTP_{response.status_code}",
        )

    def _from_graphql(
        self,
        category: ErrorCategory,
        error: GraphQLResponseError,
    ) -> ClassifiedError:
        return ClassifiedError(
            category,
            str(error),
            original_error=error,
            metadata={"graphql_errors": error.errors},
            code=error.code or "GRAPHQL_ERROR",
        )


def _is_network_error(error: BaseException) -> bool:
    if isinstance(error, httpx.TimeoutException):
        return False
    return isinstance(error, (httpx.TransportError, ConnectionError, socket.gaierror))


def _describe(error: BaseException) -> str:
    text = str(error)
    return text if text else type(error).__name__


def _http_error_message(response: httpx.Response) -> str:
    """Build ``DeepSource API Error: ...`` from a JSON or plain error body."""
    try:
        body = response.json()
    except (ValueError, httpx.ResponseNotRead):
        body = None

    if isinstance(body, dict) and body.get("error"):
        details = body.get("details")
        if details:
            return f"DeepSource API Error: {body['error']} - {details}"
        return f"DeepSource API Error: {body['error']}"

    return f"DeepSource API Error: HTTP {response.status_code} {response.reason_phrase}".rstrip()


_default_classifier = ErrorClassifier()


def classify_error(error: BaseException) -> ClassifiedError:
    """Classify ``error`` with the shared default classifier."""
    return _default_classifier.classify(error)


__all__ = ["ErrorClassifier", "classify_error", "parse_retry_after"]
