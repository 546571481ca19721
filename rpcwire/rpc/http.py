"""Pure asyncio HTTP server for JSON-RPC 2.0 requests.

This module is a thin I/O shim around Server.call(): it reads one HTTP/1.1
request per connection, hands the body to the engine, and writes the
engine's bytes back verbatim. It uses only asyncio stdlib.

Transport rules:
    - Only POST with a non-empty body reaches the engine. Anything else
      (other HTTP methods, empty bodies, malformed HTTP framing) is
      answered with a Parse error envelope.
    - The HTTP status is always 200 and Content-Type is application/json,
      even for protocol-level errors. Status reflects transport success,
      not the RPC outcome.
    - One request per connection (Connection: close).

Example usage:
    server = Server({"ping": ping})
    await run_http_server(server, host="127.0.0.1", port=8765)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from rpcwire.core.errors import RpcWireError
from rpcwire.rpc.server import Server
from rpcwire.rpc.types import CallContext

logger = logging.getLogger(__name__)

# Constants
DEFAULT_PORT = 8765
MAX_BODY_SIZE = 1_048_576  # 1MB
BIND_HOST = "127.0.0.1"
READ_TIMEOUT = 30.0

# HTTP header limits (DoS protection)
MAX_HEADERS_COUNT = 128
MAX_HEADER_NAME_LEN = 1024
MAX_HEADER_VALUE_LEN = 8192
MAX_TOTAL_HEADERS_SIZE = 32 * 1024
MAX_REQUEST_LINE_LEN = 8192


@dataclass
class HttpRequest:
    """Parsed HTTP request.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: Request path (e.g., "/rpc")
        headers: Dict of lowercase header names to values
        body: Raw request body
    """

    method: str
    path: str
    headers: dict[str, str]
    body: bytes


class HttpParseError(RpcWireError):
    """Raised when HTTP request parsing fails."""


async def _readline(reader: asyncio.StreamReader, timeout: float, what: str) -> bytes:
    try:
        return await asyncio.wait_for(reader.readline(), timeout=timeout)
    except TimeoutError:
        raise HttpParseError(f"{what} timeout") from None
    except ValueError as e:
        # StreamReader raises ValueError when a line exceeds its buffer limit
        raise HttpParseError(f"{what} too long") from e


async def read_http_request(
    reader: asyncio.StreamReader,
    max_body_size: int = MAX_BODY_SIZE,
    timeout: float = READ_TIMEOUT,
) -> HttpRequest:
    """Read and parse an HTTP request from the stream.

    Args:
        reader: The asyncio StreamReader to read from.
        max_body_size: Largest accepted Content-Length.
        timeout: Seconds to wait for each line and for the body.

    Returns:
        Parsed HttpRequest object.

    Raises:
        HttpParseError: If the request is malformed or too large.
    """
    request_line = await _readline(reader, timeout, "Request")
    if not request_line:
        raise HttpParseError("Empty request")

    if len(request_line) > MAX_REQUEST_LINE_LEN:
        raise HttpParseError(f"Request line too long: {len(request_line)} > {MAX_REQUEST_LINE_LEN}")

    # Parse request line: "POST /rpc HTTP/1.1\r\n"
    try:
        request_line_str = request_line.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise HttpParseError(f"Invalid request encoding: {e}") from e
    parts = request_line_str.split(" ")
    if len(parts) != 3:
        raise HttpParseError(f"Invalid request line: {request_line_str}")
    method, path, _version = parts

    headers: dict[str, str] = {}
    total_headers_size = 0

    while True:
        header_line = await _readline(reader, timeout, "Header read")

        if not header_line or header_line in (b"\r\n", b"\n"):
            break  # End of headers

        total_headers_size += len(header_line)
        if total_headers_size > MAX_TOTAL_HEADERS_SIZE:
            raise HttpParseError(
                f"Total headers size exceeds limit: {total_headers_size} > {MAX_TOTAL_HEADERS_SIZE}"
            )

        try:
            header_str = header_line.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise HttpParseError(f"Invalid header encoding: {e}") from e

        if ":" not in header_str:
            continue  # Skip malformed headers

        name, value = header_str.split(":", 1)
        name = name.strip()
        value = value.strip()

        if len(name) > MAX_HEADER_NAME_LEN:
            raise HttpParseError(f"Header name too long: {len(name)} > {MAX_HEADER_NAME_LEN}")
        if len(value) > MAX_HEADER_VALUE_LEN:
            raise HttpParseError(f"Header value too long: {len(value)} > {MAX_HEADER_VALUE_LEN}")
        if len(headers) >= MAX_HEADERS_COUNT:
            raise HttpParseError(f"Too many headers: exceeds limit of {MAX_HEADERS_COUNT}")

        headers[name.lower()] = value

    content_length_str = headers.get("content-length", "0")
    try:
        content_length = int(content_length_str)
    except ValueError as e:
        raise HttpParseError(f"Invalid Content-Length: {content_length_str}") from e

    if content_length < 0:
        raise HttpParseError(f"Invalid Content-Length: {content_length_str}")
    if content_length > max_body_size:
        raise HttpParseError(f"Request body too large: {content_length} > {max_body_size}")

    body = b""
    if content_length > 0:
        try:
            body = await asyncio.wait_for(reader.readexactly(content_length), timeout=timeout)
        except TimeoutError:
            raise HttpParseError("Body read timeout") from None
        except asyncio.IncompleteReadError as e:
            raise HttpParseError(
                f"Incomplete body: expected {content_length}, got {len(e.partial)}"
            ) from e

    return HttpRequest(method=method, path=path, headers=headers, body=body)


async def send_http_response(
    writer: asyncio.StreamWriter,
    body: bytes,
    content_type: str = "application/json",
) -> None:
    """Send a ``200 OK`` response and mark the connection for close.

    JSON-RPC failures travel inside the body, so no other status is sent.

    Args:
        writer: The asyncio StreamWriter to write to.
        body: Response body.
        content_type: Content-Type header value.
    """
    headers = [
        "HTTP/1.1 200 OK",
        f"Content-Type: {content_type}",
        f"Content-Length: {len(body)}",
        "Connection: close",
        "",
        "",
    ]
    writer.write("\r\n".join(headers).encode("ascii") + body)
    await writer.drain()


def _format_peer(peer: Any) -> str | None:
    if isinstance(peer, tuple) and len(peer) >= 2:
        return f"{peer[0]}:{peer[1]}"
    if peer:
        return str(peer)
    return None


async def handle_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    server: Server,
    max_body_size: int = MAX_BODY_SIZE,
    timeout: float = READ_TIMEOUT,
) -> None:
    """Handle a single HTTP connection.

    Pipeline:
        1. Parse HTTP request (framing errors -> Parse error body)
        2. Reject non-POST and empty bodies (Parse error body)
        3. Dispatch body through Server.call()
        4. Send the engine's bytes with status 200

    Args:
        reader: The asyncio StreamReader for the connection.
        writer: The asyncio StreamWriter for the connection.
        server: The dispatch engine.
        max_body_size: Largest accepted request body.
        timeout: Per-read timeout in seconds.
    """
    try:
        try:
            http_request = await read_http_request(reader, max_body_size, timeout)
        except HttpParseError as e:
            logger.debug("Rejected HTTP request: %s", e)
            await send_http_response(writer, server.error_response())
            return

        if http_request.method != "POST" or not http_request.body:
            logger.debug(
                "Rejected %s %s with %d byte body",
                http_request.method,
                http_request.path,
                len(http_request.body),
            )
            body = server.error_response()
        else:
            ctx = CallContext(
                headers=http_request.headers,
                remote=_format_peer(writer.get_extra_info("peername")),
            )
            body = await server.call(http_request.body, ctx)
            logger.debug(
                "%s from %s id=%s",
                ctx.annotations.get("operation", "handle rpc batch"),
                ctx.remote,
                ctx.annotations.get("rpc.request_id"),
            )

        await send_http_response(writer, body)

    except (ConnectionResetError, BrokenPipeError) as e:
        logger.debug("Client disconnected: %s", e)
    except Exception as e:
        logger.error("Unexpected error handling connection: %s", e, exc_info=True)

    finally:
        try:
            writer.close()
            await writer.wait_closed()
        except Exception as close_err:
            logger.debug("Connection close failed (already closed?): %s", close_err)


async def start_http_server(
    server: Server,
    host: str = BIND_HOST,
    port: int = DEFAULT_PORT,
    max_concurrent: int = 32,
    max_body_size: int = MAX_BODY_SIZE,
    timeout: float = READ_TIMEOUT,
) -> asyncio.Server:
    """Bind the listener and start accepting connections.

    Returns:
        The asyncio.Server; the caller owns closing it. Use port=0 to bind
        a free port and read it back from ``sockets[0].getsockname()``.
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def client_handler(
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        async with semaphore:
            await handle_connection(reader, writer, server, max_body_size, timeout)

    listener = await asyncio.start_server(client_handler, host=host, port=port)
    addr = listener.sockets[0].getsockname() if listener.sockets else (host, port)
    logger.info("JSON-RPC HTTP server running at http://%s:%s/", addr[0], addr[1])
    return listener


async def run_http_server(
    server: Server,
    host: str = BIND_HOST,
    port: int = DEFAULT_PORT,
    max_concurrent: int = 32,
    max_body_size: int = MAX_BODY_SIZE,
    timeout: float = READ_TIMEOUT,
    started_event: asyncio.Event | None = None,
) -> None:
    """Run the HTTP server until cancelled.

    Args:
        server: The dispatch engine.
        host: Host to bind to.
        port: Port to listen on.
        max_concurrent: Maximum concurrent connections.
        max_body_size: Largest accepted request body.
        timeout: Per-read timeout in seconds.
        started_event: Optional event set once the port is bound.
    """
    listener = await start_http_server(
        server,
        host=host,
        port=port,
        max_concurrent=max_concurrent,
        max_body_size=max_body_size,
        timeout=timeout,
    )
    if started_event:
        started_event.set()

    async with listener:
        try:
            await listener.serve_forever()
        finally:
            logger.info("HTTP server stopped")
