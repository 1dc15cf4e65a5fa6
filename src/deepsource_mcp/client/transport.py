"""GraphQL-over-HTTPS transport for the DeepSource API.

The transport does one thing: POST ``{query, variables}`` and hand back the
``data`` mapping. It raises raw exceptions (httpx errors,
``GraphQLResponseError``, ``ResponseFormatError``); classification and
retries live in the executors.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx

from deepsource_mcp.core.config import ClientConfig
from deepsource_mcp.core.constants import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS
from deepsource_mcp.core.errors import (
    ConfigurationError,
    GraphQLResponseError,
    ResponseFormatError,
)
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger


class GraphQLTransport:
    """POST GraphQL documents to DeepSource using httpx.AsyncClient.

    Attributes:
        api_url: GraphQL endpoint URL.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Mapping[str, str] | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            api_key: DeepSource personal access token.
            api_url: GraphQL endpoint URL.
            timeout: Request timeout in seconds.
            headers: Extra headers sent with every request.
            http_transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
            logger: Logger for request events.

        Raises:
            ConfigurationError: If ``api_key`` is empty.
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError("DeepSource API key is required")

        self.api_url = api_url
        self.timeout = timeout
        self._api_key = api_key
        self._extra_headers = dict(headers or {})
        self._http_transport = http_transport
        self._logger = logger or get_logger("transport")
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        logger: DeepSourceLogger | None = None,
    ) -> GraphQLTransport:
        api_key = config.api_key.get_secret_value() if config.api_key else ""
        return cls(
            api_key,
            api_url=config.api_url,
            timeout=config.timeout_seconds,
            http_transport=http_transport,
            logger=logger,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self._extra_headers,
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Lazy initialization to avoid creating the client before the event loop.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self._headers(),
                transport=self._http_transport,
            )
        return self._client

    async def post(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a GraphQL document and return its ``data`` mapping.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response.
            httpx.TransportError: On connection failures and timeouts.
            ResponseFormatError: If the body is not a JSON object.
            GraphQLResponseError: If the response carries GraphQL errors.
        """
        client = await self._get_client()
        response = await client.post(
            self.api_url,
            json={"query": query, "variables": dict(variables or {})},
        )
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as e:
            raise ResponseFormatError(f"Response body is not valid JSON: {e}") from e

        if not isinstance(body, dict):
            raise ResponseFormatError(
                f"Expected a JSON object, got {type(body).__name__}"
            )

        errors = body.get("errors")
        if errors:
            if not isinstance(errors, list):
                errors = [{"message": str(errors)}]
            raise GraphQLResponseError(
                [e if isinstance(e, dict) else {"message": str(e)} for e in errors]
            )

        data = body.get("data")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ResponseFormatError(
                f"Expected 'data' to be an object, got {type(data).__name__}"
            )

        self._logger.debug("graphql_response_received", status_code=response.status_code)
        return data

    async def aclose(self) -> None:
        """Close the HTTP client if it was created."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> GraphQLTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
