"""Async HTTP client for JSON-RPC 2.0 servers."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import httpx

from rpcwire.core.errors import ProtocolError, RpcWireError
from rpcwire.rpc.ids import IdGenerator, random_id
from rpcwire.rpc.protocol import (
    new_batch_request_bytes,
    new_request_bytes,
    parse_batch_response,
    parse_response,
)
from rpcwire.rpc.types import Request, Response

if TYPE_CHECKING:
    from rpcwire.config.schema import ClientConfig

logger = logging.getLogger(__name__)


class ClientError(RpcWireError):
    """Exception for transport-level failures (connection, timeout, HTTP status, bad body)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class HttpClient:
    """Async HTTP client for JSON-RPC servers.

    Every call gets a fresh correlation id from ``id_generator``, so any
    number of calls may be outstanding on one client. The URL and headers
    are fixed between calls; no state carries over from one call to the
    next.

    Usage:
        async with HttpClient("http://127.0.0.1:8765/") as client:
            response = await client.call("add", [1, 2])
            print(response.get_result(int))

            first, second = await client.call_batch([
                new_request("add", [1, 2]),
                new_request("add", [3, 4]),
            ])

    Protocol errors (an error object in the response) are raised as the
    RpcError itself so callers can branch on ``code``. Transport failures
    raise ClientError.
    """

    def __init__(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        id_generator: IdGenerator = random_id,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Endpoint URL that accepts JSON-RPC POST requests.
            headers: Extra headers sent with every request.
            timeout: Request timeout in seconds.
            id_generator: Source of correlation ids.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        self._url = url
        self._headers: dict[str, str] = dict(headers or {})
        self._timeout = timeout
        self._id_generator = id_generator
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.debug("HttpClient initialized: url=%s, timeout=%s", url, timeout)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        id_generator: IdGenerator = random_id,
    ) -> HttpClient:
        """Create a client from a ClientConfig section."""
        return cls(
            config.url,
            headers=config.headers,
            timeout=config.timeout,
            id_generator=id_generator,
        )

    @property
    def url(self) -> str:
        return self._url

    def set_headers(self, headers: Mapping[str, str]) -> None:
        """Replace the extra headers sent with every request."""
        self._headers = dict(headers)

    async def __aenter__(self) -> HttpClient:
        """Enter async context, create httpx client."""
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context, close httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(self._headers)
        return headers

    async def _post(self, body: bytes, label: str) -> bytes:
        """POST a payload and return the body of a 200 response.

        Raises:
            ClientError: On connection error, timeout or non-200 status.
        """
        if self._client is None:
            raise ClientError("Client not initialized. Use 'async with' context manager.")

        try:
            response = await self._client.post(
                self._url,
                content=body,
                headers=self._build_headers(),
            )
        except httpx.ConnectError as e:
            logger.warning("Connection failed to %s: %s", self._url, e)
            raise ClientError(f"Connection failed: {e}") from e
        except httpx.TimeoutException as e:
            logger.warning("Request timed out: %s, timeout=%s", label, self._timeout)
            raise ClientError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("HTTP error for %s: %s", label, e)
            raise ClientError(f"HTTP error: {e}") from e

        if response.status_code != 200:
            logger.warning("Invalid status code %d for %s", response.status_code, label)
            raise ClientError(
                f"Invalid status code: {response.status_code}",
                status_code=response.status_code,
            )
        return response.content

    async def call(self, method: str, params: Any = None) -> Response:
        """Make a single JSON-RPC call.

        Returns:
            The parsed Response (its ``result`` may be decoded with get_result()).

        Raises:
            RpcError: If the server answered with an error object.
            ClientError: On transport failure or an unreadable response body.
            ProtocolError: If the request cannot be serialized.
        """
        request_id = self._id_generator()
        body = new_request_bytes(method, params, request_id)

        logger.debug("RPC call: method=%s, id=%s", method, request_id)
        data = await self._post(body, f"method={method}")
        try:
            response = parse_response(data)
        except ProtocolError as e:
            logger.warning("Invalid server response for method=%s: %s", method, e)
            raise ClientError(f"Invalid server response: {e}") from e

        if response.error is not None:
            logger.debug("RPC error for method=%s: %s", method, response.error)
            raise response.error
        return response

    async def call_result(self, method: str, params: Any = None, type_: Any = None) -> Any:
        """Make a call and decode its result, optionally into ``type_``."""
        response = await self.call(method, params)
        return response.get_result(type_)

    async def call_batch(self, requests: Sequence[Request]) -> list[Response]:
        """Send several requests in one batch.

        Each request is re-issued with a fresh correlation id; the input
        objects are left untouched. Per-element errors stay on the returned
        responses.

        Returns:
            Responses aligned with ``requests``: element i answers request i.

        Raises:
            RpcError: If the server answered the whole batch with one error.
            ClientError: On transport failure.
            ProtocolError: If the batch cannot be serialized, or the response
                is unreadable or does not answer every request.
        """
        outbound = [request.with_id(self._id_generator()) for request in requests]
        body = new_batch_request_bytes(outbound)

        logger.debug("RPC batch: %d request(s)", len(outbound))
        data = await self._post(body, f"batch of {len(outbound)}")
        return parse_batch_response(outbound, data)
