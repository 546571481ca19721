"""JSON-RPC 2.0 protocol parsing and serialization.

Server side:
    parse_server_request() turns transport bytes into a ServerRequest whose
    id and params are raw JSON spans, and serialize_*_response() writes
    envelopes that echo those spans untouched.

Client side:
    new_request(), new_request_bytes() and new_batch_request_bytes() build
    outbound payloads; parse_response() and parse_batch_response() read
    replies and line batch responses up with the requests that caused them.

The raw-span scanner (scan_object/scan_array) walks only the top level of a
JSON document with json.JSONDecoder.raw_decode, so every member value is
fully validated but kept as the exact text the peer sent.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

from rpcwire.core.errors import BatchCorrelationError, ProtocolError, ResponseValidationError
from rpcwire.rpc.errors import InvalidRequestError, ParseError, RpcError
from rpcwire.rpc.types import JSONRPC_VERSION, RawValue, Request, Response, ServerRequest

_WHITESPACE = re.compile(r"[ \t\n\r]*")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


def _skip(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()  # type: ignore[union-attr]


def _decode_at(text: str, pos: int) -> tuple[Any, int]:
    """Decode one JSON value starting at ``pos``.

    Nesting deep enough to exhaust the decoder's recursion guard is
    reported as malformed input.
    """
    try:
        return _decoder.raw_decode(text, pos)
    except RecursionError as e:
        raise ValueError(f"JSON nested too deeply at offset {pos}") from e


def _as_text(data: bytes | bytearray | memoryview | str) -> str:
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8")


def scan_object(text: str) -> dict[str, RawValue]:
    """Split a JSON object into its members without re-encoding them.

    Duplicate member names keep the last value.

    Raises:
        ValueError: If ``text`` is not exactly one well-formed JSON object.
    """
    pos = _skip(text, 0)
    if not text.startswith("{", pos):
        raise ValueError("expected a JSON object")
    pos = _skip(text, pos + 1)
    members: dict[str, RawValue] = {}

    if text.startswith("}", pos):
        pos += 1
    else:
        while True:
            if not text.startswith('"', pos):
                raise ValueError(f"expected member name at offset {pos}")
            key, pos = _decode_at(text, pos)
            pos = _skip(text, pos)
            if not text.startswith(":", pos):
                raise ValueError(f"expected ':' at offset {pos}")
            pos = _skip(text, pos + 1)
            start = pos
            _, pos = _decode_at(text, pos)
            members[key] = RawValue(text[start:pos])
            pos = _skip(text, pos)
            if text.startswith(",", pos):
                pos = _skip(text, pos + 1)
                continue
            if text.startswith("}", pos):
                pos += 1
                break
            raise ValueError(f"expected ',' or '}}' at offset {pos}")

    if _skip(text, pos) != len(text):
        raise ValueError(f"unexpected data after object at offset {pos}")
    return members


def scan_array(text: str) -> list[RawValue]:
    """Split a JSON array into its elements without re-encoding them.

    Raises:
        ValueError: If ``text`` is not exactly one well-formed JSON array.
    """
    pos = _skip(text, 0)
    if not text.startswith("[", pos):
        raise ValueError("expected a JSON array")
    pos = _skip(text, pos + 1)
    elements: list[RawValue] = []

    if text.startswith("]", pos):
        pos += 1
    else:
        while True:
            start = pos
            _, pos = _decode_at(text, pos)
            elements.append(RawValue(text[start:pos]))
            pos = _skip(text, pos)
            if text.startswith(",", pos):
                pos = _skip(text, pos + 1)
                continue
            if text.startswith("]", pos):
                pos += 1
                break
            raise ValueError(f"expected ',' or ']' at offset {pos}")

    if _skip(text, pos) != len(text):
        raise ValueError(f"unexpected data after array at offset {pos}")
    return elements


# === Server-side functions ===


def _optional_string(members: dict[str, RawValue], name: str) -> str:
    raw = members.get(name)
    if raw is None:
        return ""
    value = raw.decode()
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ParseError()
    return value


def _non_null(raw: RawValue | None) -> RawValue | None:
    if raw is None or raw.is_null:
        return None
    return raw


def parse_server_request(data: bytes | str) -> ServerRequest:
    """Parse transport bytes as a single JSON-RPC 2.0 request.

    ``id`` and ``params`` may be any JSON value and are kept raw. A null or
    missing ``jsonrpc``/``method`` reads as the empty string.

    Raises:
        ParseError: If the payload is not valid UTF-8 JSON, is not an object,
            or ``jsonrpc``/``method`` are not strings.
        InvalidRequestError: If ``jsonrpc`` is not "2.0" or ``method`` is empty.
    """
    try:
        members = scan_object(_as_text(data))
    except ValueError as e:  # includes JSONDecodeError and UnicodeDecodeError
        raise ParseError() from e

    jsonrpc = _optional_string(members, "jsonrpc")
    method = _optional_string(members, "method")
    if jsonrpc != JSONRPC_VERSION or method == "":
        raise InvalidRequestError()

    return ServerRequest(
        method=method,
        params=_non_null(members.get("params")),
        id=_non_null(members.get("id")),
        jsonrpc=jsonrpc,
    )


def _id_text(request_id: RawValue | None) -> str:
    return request_id.text if request_id is not None else "null"


def _string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def serialize_error(error: RpcError) -> str:
    """Serialize an error object; ``data`` is omitted when None.

    Raises:
        ValueError: If ``data`` is not JSON serializable.
    """
    text = f'{{"code":{int(error.code)},"message":{_string(error.message)}'
    if error.data is not None:
        text += f',"data":{RawValue.encode(error.data).text}'
    return text + "}"


def serialize_result_response(request_id: RawValue | None, result: Any) -> bytes:
    """Serialize a success envelope. A None result emits no ``result`` member.

    Raises:
        ValueError: If ``result`` is not JSON serializable.
    """
    text = f'{{"jsonrpc":"{JSONRPC_VERSION}","id":{_id_text(request_id)}'
    if result is not None:
        text += f',"result":{RawValue.encode(result).text}'
    return (text + "}").encode("utf-8")


def serialize_error_response(request_id: RawValue | None, error: RpcError) -> bytes:
    """Serialize an error envelope.

    Raises:
        ValueError: If the error's ``data`` is not JSON serializable.
    """
    text = f'{{"jsonrpc":"{JSONRPC_VERSION}","id":{_id_text(request_id)},"error":{serialize_error(error)}}}'
    return text.encode("utf-8")


def serialize_batch(responses: Sequence[bytes]) -> bytes:
    """Join already-serialized responses into a JSON array, keeping their order."""
    return b"[" + b",".join(responses) + b"]"


# === Client-side functions ===


def new_request(method: str, params: Any = None) -> Request:
    """Build an unsent request without an id."""
    return Request(method=method, params=params)


def serialize_request(request: Request) -> bytes:
    """Serialize a Request. ``id`` is omitted when None; ``params`` is always present.

    Raises:
        ProtocolError: If the request is invalid or a value is not JSON serializable.
    """
    if not request.is_valid():
        raise ProtocolError(
            f"Invalid request: jsonrpc={request.jsonrpc!r}, method={request.method!r}"
        )
    try:
        params = RawValue.encode(request.params).text
        text = f'{{"jsonrpc":{_string(request.jsonrpc)},"method":{_string(request.method)},"params":{params}'
        if request.id is not None:
            text += f',"id":{RawValue.encode(request.id).text}'
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Cannot serialize request {request.method!r}: {e}") from e
    return (text + "}").encode("utf-8")


def new_request_bytes(method: str, params: Any, request_id: Any) -> bytes:
    """Build and serialize a single request with a caller-supplied id."""
    return serialize_request(Request(method=method, params=params, id=request_id))


def new_batch_request_bytes(requests: Sequence[Request]) -> bytes:
    """Serialize id-assigned requests as a JSON array, in order.

    Raises:
        ProtocolError: If the batch is empty, a request has no id, or a
            request cannot be serialized.
    """
    if not requests:
        raise ProtocolError("Batch must contain at least one request")
    parts: list[bytes] = []
    for index, request in enumerate(requests):
        if request.id is None:
            raise ProtocolError(f"Batch request {index} ({request.method!r}) has no id")
        parts.append(serialize_request(request))
    return serialize_batch(parts)


def _build_response(members: dict[str, RawValue]) -> Response:
    jsonrpc_raw = members.get("jsonrpc")
    jsonrpc = jsonrpc_raw.decode() if jsonrpc_raw is not None else None
    id_raw = members.get("id")
    response_id = id_raw.decode() if id_raw is not None else None

    result = members.get("result")
    error_raw = _non_null(members.get("error"))
    error: RpcError | None = None
    if error_raw is not None:
        if result is not None and not result.is_null:
            raise ResponseValidationError("Response cannot have both 'result' and 'error'")
        result = None
        try:
            error = RpcError.from_dict(error_raw.decode())
        except ValueError as e:
            raise ResponseValidationError(f"Invalid error object: {e}") from e

    return Response(id=response_id, result=result, error=error, jsonrpc=jsonrpc)


def _validate_version(response: Response) -> None:
    if response.jsonrpc != JSONRPC_VERSION:
        raise ResponseValidationError(f"jsonrpc must be '2.0', got: {response.jsonrpc!r}")


def parse_response(data: bytes | str) -> Response:
    """Parse a single JSON-RPC 2.0 response.

    Raises:
        ResponseValidationError: If the payload is not a JSON object, the
            version is not "2.0", or the error object is malformed.
    """
    try:
        members = scan_object(_as_text(data))
    except ValueError as e:
        raise ResponseValidationError(f"Invalid response: {e}") from e
    response = _build_response(members)
    _validate_version(response)
    return response


def _same_id(a: Any, b: Any) -> bool:
    # True == 1 in Python but never on the wire
    return isinstance(a, bool) == isinstance(b, bool) and a == b


def parse_batch_response(requests: Sequence[Request], data: bytes | str) -> list[Response]:
    """Parse a batch response and align it with the requests that were sent.

    The i-th element of the result answers ``requests[i]`` whatever order
    the server replied in. When several responses carry the same id, the
    last one wins.

    Raises:
        RpcError: If the server answered the whole batch with a single error
            response (for example a parse error).
        BatchCorrelationError: If any request has no matching response.
        ResponseValidationError: If the payload is not an array of response
            objects, or a matched response has the wrong version.
    """
    try:
        text = _as_text(data)
        elements = scan_array(text)
    except ValueError as e:
        single = _try_single_error(data)
        if single is not None:
            raise single from None
        raise ResponseValidationError(f"Invalid batch response: {e}") from e

    responses: list[Response] = []
    for element in elements:
        try:
            members = scan_object(element.text)
        except ValueError as e:
            raise ResponseValidationError(f"Invalid response in batch: {e}") from e
        responses.append(_build_response(members))

    slots: list[Response | None] = [None] * len(requests)
    for response in responses:
        for index, request in enumerate(requests):
            if _same_id(request.id, response.id):
                slots[index] = response

    missing = [request.id for request, slot in zip(requests, slots) if slot is None]
    if missing:
        raise BatchCorrelationError(
            f"Response for batch request not returned: ids={missing!r}", missing
        )

    matched = [slot for slot in slots if slot is not None]
    for response in matched:
        _validate_version(response)
    return matched


def _try_single_error(data: bytes | str) -> RpcError | None:
    try:
        response = parse_response(data)
    except ProtocolError:
        return None
    return response.error
