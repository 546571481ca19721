"""JSON-RPC 2.0 dispatch engine.

Server.call() turns raw transport bytes into raw response bytes and never
raises: every failure becomes a well-formed error envelope, so a transport
has exactly one thing to do with the return value, which is to send it.

Batch detection is a two-phase probe. The payload is first parsed as a
single request; only when that fails is it parsed as an array. Each array
element is then dispatched on its own, concurrently, exactly as if it had
been the whole payload, and the answers are joined back in input order.

Handlers:
    handler(ctx, params) -> result

    ``ctx`` is the CallContext for this call and ``params`` the raw params
    (RawValue, or None when absent/null). Handlers may be plain functions
    or coroutine functions. Plain functions run in a worker thread so a
    blocking handler does not hold up sibling batch elements. A handler
    signals a protocol error by raising RpcError (InvalidParamsError,
    RpcError.from_message(...), ...). Any other exception is logged and
    answered with an Internal error.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from rpcwire.rpc.errors import InternalError, MethodNotFoundError, ParseError, RpcError
from rpcwire.rpc.protocol import (
    parse_server_request,
    scan_array,
    serialize_batch,
    serialize_error_response,
    serialize_result_response,
)
from rpcwire.rpc.types import CallContext, RawValue, ServerRequest

logger = logging.getLogger(__name__)

# Type alias for handler functions (sync or async)
Handler = Callable[[CallContext, RawValue | None], Any]


class Server:
    """Routes JSON-RPC payloads to registered handlers.

    The method table is copied at construction and exposed read-only, so
    lookups need no locking no matter how many calls run at once.

    Example:
        async def add(ctx, params):
            a, b = params.decode()
            return a + b

        server = Server({"add": add})
        body = await server.call(b'{"jsonrpc":"2.0","method":"add","params":[1,2],"id":7}')
        # b'{"jsonrpc":"2.0","id":7,"result":3}'
    """

    def __init__(self, methods: Mapping[str, Handler]) -> None:
        self._methods: Mapping[str, Handler] = MappingProxyType(dict(methods))

    @property
    def methods(self) -> Mapping[str, Handler]:
        """Read-only view of the registered method table."""
        return self._methods

    async def call(self, data: bytes | str, ctx: CallContext | None = None) -> bytes:
        """Dispatch one payload (single request or batch) and return response bytes.

        The payload comes first and the context second so that ``ctx`` can
        be omitted.

        Args:
            data: Raw request bytes as read from the transport.
            ctx: Ambient call context. A fresh one is created when omitted.

        Returns:
            Serialized response envelope, or a JSON array of envelopes for a
            batch. Never raises for payload or handler problems.
        """
        if ctx is None:
            ctx = CallContext()

        try:
            request = parse_server_request(data)
        except RpcError as single_error:
            try:
                text = data if isinstance(data, str) else bytes(data).decode("utf-8")
                elements = scan_array(text)
            except ValueError:
                logger.debug("Rejected payload: %s", single_error)
                return self.error_response(single_error)
            return await self._batch(elements, ctx)

        ctx.annotate("operation", f"handle rpc: {request.method}")
        ctx.annotate("rpc.method", request.method)
        if request.id is not None:
            ctx.annotate("rpc.request_id", request.id.text)

        return await self._respond(request, ctx)

    def call_sync(self, data: bytes | str, ctx: CallContext | None = None) -> bytes:
        """Blocking variant of call() for synchronous transports.

        Must not be used from inside a running event loop.
        """
        return asyncio.run(self.call(data, ctx))

    def error_response(self, error: RpcError | None = None) -> bytes:
        """Error envelope with a null id (defaults to a Parse error).

        Transports use this when they reject a request before it reaches
        call(), e.g. a non-POST request or an empty body.
        """
        return serialize_error_response(None, error if error is not None else ParseError())

    async def _batch(self, elements: list[RawValue], ctx: CallContext) -> bytes:
        logger.debug("Dispatching batch of %d element(s)", len(elements))
        # gather() returns results positionally, whatever order they finish in
        responses = await asyncio.gather(
            *(self.call(element.text, ctx.child()) for element in elements)
        )
        return serialize_batch(responses)

    async def _respond(self, request: ServerRequest, ctx: CallContext) -> bytes:
        handler = self._methods.get(request.method)
        if handler is None:
            logger.debug("Method not found: %s", request.method)
            return serialize_error_response(request.id, MethodNotFoundError())

        try:
            result = await self._invoke(handler, request, ctx)
        except RpcError as e:
            return self._error_bytes(request, e)

        try:
            return serialize_result_response(request.id, result)
        except (TypeError, ValueError) as e:
            logger.error("Cannot serialize result of method '%s': %s", request.method, e)
            return serialize_error_response(request.id, InternalError())

    async def _invoke(self, handler: Handler, request: ServerRequest, ctx: CallContext) -> Any:
        """Run a handler. The only place handler faults are caught.

        Raises:
            RpcError: Raised by the handler itself, or InternalError wrapping
                any other exception.
        """
        try:
            if inspect.iscoroutinefunction(handler):
                return await handler(ctx, request.params)
            result = await asyncio.to_thread(handler, ctx, request.params)
            if inspect.isawaitable(result):
                result = await result
            return result
        except RpcError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected error in handler for method '%s': %s",
                request.method,
                e,
                exc_info=True,
            )
            raise InternalError() from e

    def _error_bytes(self, request: ServerRequest, error: RpcError) -> bytes:
        try:
            return serialize_error_response(request.id, error)
        except (TypeError, ValueError) as e:
            logger.error("Cannot serialize error data for method '%s': %s", request.method, e)
            return serialize_error_response(request.id, InternalError())
