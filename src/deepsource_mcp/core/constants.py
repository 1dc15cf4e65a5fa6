"""Global constants for the DeepSource MCP server.

Centralizes defaults used throughout the codebase so the config layer,
the transport and the retry machinery agree on them.
"""

# =============================================================================
# DeepSource API
# =============================================================================

DEFAULT_API_URL = "https://api.deepsource.io/graphql/"
"""GraphQL endpoint of the DeepSource public API."""

DEFAULT_TIMEOUT_SECONDS = 30.0
"""Default per-request HTTP timeout."""

# =============================================================================
# Retry Defaults
# =============================================================================

DEFAULT_MAX_ATTEMPTS = 3
"""Total attempts (first try included) for a retryable request."""

DEFAULT_BASE_DELAY_SECONDS = 1.0
"""Delay before the first retry."""

DEFAULT_MAX_DELAY_SECONDS = 30.0
"""Upper bound for any single backoff wait."""

MAX_ATTEMPTS_LIMIT = 10
MIN_BASE_DELAY_SECONDS = 0.1
MAX_BASE_DELAY_SECONDS = 60.0
MAX_DELAY_LIMIT_SECONDS = 300.0

DEFAULT_RETRY_BUDGET_PER_MINUTE = 10
"""Retries allowed per endpoint in a sliding one-minute window."""

RETRY_BUDGET_WINDOW_SECONDS = 60.0

GLOBAL_BUDGET_MULTIPLIER = 3
"""The global retry budget is this multiple of the per-endpoint budget."""

# =============================================================================
# Circuit Breaker Defaults
# =============================================================================

DEFAULT_CIRCUIT_FAILURE_THRESHOLD = 5
DEFAULT_CIRCUIT_FAILURE_WINDOW_SECONDS = 60.0
DEFAULT_CIRCUIT_RECOVERY_TIMEOUT_SECONDS = 30.0
DEFAULT_CIRCUIT_SUCCESS_THRESHOLD = 3
DEFAULT_CIRCUIT_HALF_OPEN_MAX_CALLS = 5

# =============================================================================
# Pagination
# =============================================================================

DEFAULT_PAGE_SIZE = 10
"""Page size used when a cursor is given without an explicit count."""

RUN_SCAN_PAGE_SIZE = 50
"""Page size when scanning all runs of a project for a branch."""

RUN_OCCURRENCES_PAGE_SIZE = 100
"""Default number of occurrences fetched for a single run."""

METRIC_HISTORY_PAGE_SIZE = 50

# =============================================================================
# Logging
# =============================================================================

TRUNCATE_QUERY_PREVIEW_CHARS = 100
"""Maximum characters of a GraphQL document included in log events."""
