"""Error categories for DeepSource API failures.

Every failure that crosses the client layer is tagged with exactly one
``ErrorCategory``. Categories drive retry decisions and are surfaced to
tool callers in error responses.

| Category   | Default retryable | Typical source                          |
|------------|-------------------|-----------------------------------------|
| auth       | No                | HTTP 401/403, invalid API key           |
| network    | Yes               | connection refused/reset, DNS failure   |
| server     | Yes               | HTTP 5xx, open circuit                  |
| client     | No                | other HTTP 4xx                          |
| timeout    | Yes               | request timeout                         |
| rate_limit | Yes               | HTTP 429                                |
| schema     | No                | GraphQL schema mismatch                 |
| not_found  | No                | unknown project/run, HTTP 404           |
| format     | No                | malformed response body                 |
| other      | No                | anything unrecognised                   |
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Closed set of error categories used for classification and retries."""

    AUTH = "auth"
    """Authentication/authorization failure, needs user intervention."""

    NETWORK = "network"
    """Connection-level failure before a response was received."""

    SERVER = "server"
    """Upstream returned 5xx or the endpoint circuit is open."""

    CLIENT = "client"
    """Request was rejected as malformed (4xx other than auth/404/429)."""

    TIMEOUT = "timeout"
    """Request did not complete within the configured timeout."""

    RATE_LIMIT = "rate_limit"
    """Upstream is throttling requests (HTTP 429)."""

    SCHEMA = "schema"
    """Query does not match the GraphQL schema."""

    NOT_FOUND = "not_found"
    """Requested entity does not exist."""

    FORMAT = "format"
    """Response body could not be parsed or had an unexpected shape."""

    OTHER = "other"
    """Unrecognised failure."""


DEFAULT_RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset({
    ErrorCategory.NETWORK,
    ErrorCategory.SERVER,
    ErrorCategory.TIMEOUT,
    ErrorCategory.RATE_LIMIT,
})
"""Categories retried when no explicit set is configured."""


__all__ = ["DEFAULT_RETRYABLE_CATEGORIES", "ErrorCategory"]
