"""JSON-RPC 2.0 engine for rpcwire.

Server side, raw bytes in and raw bytes out:
    server = Server({"add": add})
    body = await server.call(request_bytes)

Client side, build and correlate:
    payload = new_batch_request_bytes([r.with_id(random_id()) for r in requests])
    responses = parse_batch_response(requests_with_ids, reply_bytes)

Example over HTTP:
    python -m rpcwire serve myapp:methods --port 8765
    curl -X POST http://localhost:8765/ \\
        -d '{"jsonrpc":"2.0","method":"add","params":[1,2],"id":1}'
"""

from rpcwire.rpc.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
    RpcError,
    ServerError,
)
from rpcwire.rpc.http import (
    BIND_HOST,
    DEFAULT_PORT,
    MAX_BODY_SIZE,
    HttpParseError,
    HttpRequest,
    handle_connection,
    read_http_request,
    run_http_server,
    send_http_response,
    start_http_server,
)
from rpcwire.rpc.ids import IdGenerator, SequentialIds, random_id
from rpcwire.rpc.protocol import (
    new_batch_request_bytes,
    new_request,
    new_request_bytes,
    parse_batch_response,
    parse_response,
    parse_server_request,
    serialize_error_response,
    serialize_request,
    serialize_result_response,
)
from rpcwire.rpc.server import Handler, Server
from rpcwire.rpc.types import CallContext, RawValue, Request, Response, ServerRequest

__all__ = [
    # Types
    "CallContext",
    "RawValue",
    "Request",
    "Response",
    "ServerRequest",
    "HttpRequest",
    # Engine
    "Handler",
    "Server",
    # Protocol functions (server-side)
    "parse_server_request",
    "serialize_result_response",
    "serialize_error_response",
    # Protocol functions (client-side)
    "new_request",
    "new_request_bytes",
    "new_batch_request_bytes",
    "serialize_request",
    "parse_response",
    "parse_batch_response",
    # Ids
    "IdGenerator",
    "SequentialIds",
    "random_id",
    # HTTP server
    "run_http_server",
    "start_http_server",
    "handle_connection",
    "read_http_request",
    "send_http_response",
    "DEFAULT_PORT",
    "MAX_BODY_SIZE",
    "BIND_HOST",
    # Error codes
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "SERVER_ERROR",
    # Exceptions
    "RpcError",
    "ParseError",
    "InvalidRequestError",
    "MethodNotFoundError",
    "InvalidParamsError",
    "InternalError",
    "ServerError",
    "HttpParseError",
]
