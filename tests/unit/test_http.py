"""Unit tests for the asyncio HTTP transport."""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest

from rpcwire.client import HttpClient
from rpcwire.rpc.http import (
    HttpParseError,
    read_http_request,
    send_http_response,
    start_http_server,
)
from rpcwire.rpc.protocol import new_request
from rpcwire.rpc.server import Server

PARSE_ERROR = b'{"jsonrpc":"2.0","id":null,"error":{"code":-32700,"message":"Parse error"}}'


async def echo(ctx, params):
    return params.decode() if params is not None else None


async def whoami(ctx, params):
    return {"trace": ctx.headers.get("x-trace"), "remote": ctx.remote}


SERVER = Server({"echo": echo, "whoami": whoami})


@asynccontextmanager
async def running_server(server: Server = SERVER, **kwargs):
    """Start a listener on a free port and yield (url, port)."""
    listener = await start_http_server(server, host="127.0.0.1", port=0, **kwargs)
    port = listener.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}/", port
    finally:
        listener.close()
        await listener.wait_closed()


async def raw_exchange(port: int, payload: bytes) -> bytes:
    """Write raw bytes to the server and read until it closes the connection."""
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(payload)
    await writer.drain()
    data = await reader.read()
    writer.close()
    await writer.wait_closed()
    return data


def stream_of(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestReadHttpRequest:
    """Tests for read_http_request() framing."""

    @pytest.mark.asyncio
    async def test_parses_request(self):
        reader = stream_of(
            b"POST /rpc HTTP/1.1\r\nHost: x\r\nX-Trace: abc\r\nContent-Length: 2\r\n\r\n{}"
        )
        request = await read_http_request(reader)

        assert request.method == "POST"
        assert request.path == "/rpc"
        assert request.headers["x-trace"] == "abc"
        assert request.body == b"{}"

    @pytest.mark.asyncio
    async def test_body_too_large(self):
        reader = stream_of(b"POST / HTTP/1.1\r\nContent-Length: 100\r\n\r\n")
        with pytest.raises(HttpParseError):
            await read_http_request(reader, max_body_size=10)

    @pytest.mark.asyncio
    async def test_incomplete_body(self):
        reader = stream_of(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")
        with pytest.raises(HttpParseError):
            await read_http_request(reader)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"GARBAGE\r\n\r\n",
            b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\n",
            b"POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n",
        ],
    )
    async def test_malformed(self, data):
        with pytest.raises(HttpParseError):
            await read_http_request(stream_of(data))


class RecordingWriter:
    """Collects what send_http_response writes."""

    def __init__(self):
        self.data = b""

    def write(self, data: bytes) -> None:
        self.data += data

    async def drain(self) -> None:
        pass


class TestSendHttpResponse:
    """Tests for send_http_response()."""

    @pytest.mark.asyncio
    async def test_always_200(self):
        writer = RecordingWriter()
        await send_http_response(writer, PARSE_ERROR)

        head, _, body = writer.data.partition(b"\r\n\r\n")
        assert head.split(b"\r\n") == [
            b"HTTP/1.1 200 OK",
            b"Content-Type: application/json",
            f"Content-Length: {len(PARSE_ERROR)}".encode(),
            b"Connection: close",
        ]
        assert body == PARSE_ERROR


class TestHttpServer:
    """End-to-end behavior of the listener."""

    @pytest.mark.asyncio
    async def test_post_single_request(self):
        async with running_server() as (url, _):
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url, content=b'{"jsonrpc":"2.0","method":"echo","params":"hi","id":1}'
                )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.content == b'{"jsonrpc":"2.0","id":1,"result":"hi"}'

    @pytest.mark.asyncio
    async def test_post_batch(self):
        payload = (
            b'[{"jsonrpc":"2.0","method":"echo","params":1,"id":"a"},'
            b'{"jsonrpc":"2.0","method":"nope","id":"b"}]'
        )
        async with running_server() as (url, _):
            async with httpx.AsyncClient() as client:
                response = await client.post(url, content=payload)

        assert response.status_code == 200
        assert json.loads(response.content) == [
            {"jsonrpc": "2.0", "id": "a", "result": 1},
            {"jsonrpc": "2.0", "id": "b", "error": {"code": -32601, "message": "Method not found"}},
        ]

    @pytest.mark.asyncio
    async def test_protocol_error_still_200(self):
        """HTTP status reflects transport success, not the RPC outcome."""
        async with running_server() as (url, _):
            async with httpx.AsyncClient() as client:
                response = await client.post(url, content=b"{not json")

        assert response.status_code == 200
        assert response.content == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_get_rejected_with_parse_error(self):
        async with running_server() as (url, _):
            async with httpx.AsyncClient() as client:
                response = await client.get(url)

        assert response.status_code == 200
        assert response.content == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_empty_body_rejected(self):
        async with running_server() as (url, _):
            async with httpx.AsyncClient() as client:
                response = await client.post(url, content=b"")

        assert response.content == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_oversized_body_rejected(self):
        async with running_server(max_body_size=16) as (_, port):
            data = await raw_exchange(port, b"POST / HTTP/1.1\r\nContent-Length: 100\r\n\r\n")

        head, _, body = data.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 200 OK")
        assert body == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_malformed_http(self):
        async with running_server() as (_, port):
            data = await raw_exchange(port, b"GARBAGE\r\n\r\n")

        head, _, body = data.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 200 OK")
        assert b"Connection: close" in head
        assert body == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_context_from_transport(self):
        """Handlers see lowercased headers and the peer address."""
        async with running_server() as (url, _):
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    content=b'{"jsonrpc":"2.0","method":"whoami","id":1}',
                    headers={"X-Trace": "t-42"},
                )

        result = json.loads(response.content)["result"]
        assert result["trace"] == "t-42"
        assert result["remote"].startswith("127.0.0.1:")

    @pytest.mark.asyncio
    async def test_http_client_round_trip(self):
        async with running_server() as (url, _):
            async with HttpClient(url) as client:
                assert await client.call_result("echo", {"a": [1, 2]}) == {"a": [1, 2]}
                responses = await client.call_batch([
                    new_request("echo", "x"),
                    new_request("echo", "y"),
                ])

        assert [r.get_result() for r in responses] == ["x", "y"]
