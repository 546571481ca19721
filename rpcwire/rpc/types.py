"""JSON-RPC 2.0 types for rpcwire.

Two request/response shapes exist side by side. The server keeps the
caller's id as raw JSON text (ServerRequest) so it can be echoed byte for
byte, while the client decodes ids into Python values (Request, Response)
so they can be compared during batch correlation. Params, results and error
data are never interpreted by the engine; they travel as RawValue.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from rpcwire.core.errors import ResponseValidationError
from rpcwire.rpc.errors import RpcError

JSONRPC_VERSION = "2.0"


@lru_cache(maxsize=256)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


@dataclass(frozen=True)
class RawValue:
    """An uninterpreted serialized JSON value.

    Attributes:
        text: The JSON text exactly as received (or as produced by encode()).
    """

    text: str

    @classmethod
    def encode(cls, value: Any) -> RawValue:
        """Serialize a Python value to compact JSON.

        Dataclasses, pydantic models, enums, datetimes and the other types
        pydantic knows how to dump are converted first. A RawValue is
        returned unchanged.

        Raises:
            ValueError: If the value cannot be represented as JSON (includes
                NaN/Infinity and unknown types).
            TypeError: If json.dumps rejects the converted value.
        """
        if isinstance(value, RawValue):
            return value
        try:
            plain = to_jsonable_python(value, by_alias=True)
        except PydanticSerializationError as e:
            raise ValueError(f"Value is not JSON serializable: {e}") from e
        return cls(json.dumps(plain, separators=(",", ":"), ensure_ascii=False, allow_nan=False))

    def decode(self) -> Any:
        """Decode into plain Python values (dict, list, str, int, float, bool, None)."""
        return json.loads(self.text)

    def decode_as(self, type_: Any) -> Any:
        """Decode and validate into ``type_`` (dataclass, pydantic model, typed dict, ...).

        Raises:
            ResponseValidationError: If the payload does not fit ``type_``.
        """
        try:
            adapter = _adapter(type_)
        except TypeError:
            # Unhashable type expressions bypass the cache
            adapter = TypeAdapter(type_)
        try:
            return adapter.validate_json(self.text)
        except ValidationError as e:
            raise ResponseValidationError(
                f"Payload does not match {getattr(type_, '__name__', type_)!s}: {e}"
            ) from e

    @property
    def is_null(self) -> bool:
        return self.text == "null"

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Request:
    """Client-side JSON-RPC 2.0 request.

    Attributes:
        method: Name of the method to invoke.
        params: Parameters, any JSON-serializable value. Emitted as null when None.
        id: Correlation id. None means "not assigned yet" and is omitted on the wire.
        jsonrpc: Protocol version, must be "2.0".
    """

    method: str
    params: Any = None
    id: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def is_valid(self) -> bool:
        return self.jsonrpc == JSONRPC_VERSION and self.method != ""

    def with_id(self, request_id: Any) -> Request:
        """Return a copy of this request carrying ``request_id``."""
        return replace(self, id=request_id)


@dataclass(frozen=True)
class Response:
    """Client-side JSON-RPC 2.0 response.

    Attributes:
        id: Request identifier echoed by the server, decoded to a Python value.
        result: Raw result payload, or None when the server sent none.
        error: The error object if the call failed.
        jsonrpc: Protocol version, "2.0" for every response that parsed.
    """

    id: Any
    result: RawValue | None = None
    error: RpcError | None = None
    jsonrpc: str = JSONRPC_VERSION

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def get_result(self, type_: Any = None) -> Any:
        """Decode the result payload.

        Args:
            type_: Optional destination type. Without it the plain decoded
                JSON value is returned.

        Raises:
            ResponseValidationError: If there is no result (error response or
                empty envelope) or it does not fit ``type_``.
        """
        if self.result is None:
            if self.error is not None:
                raise ResponseValidationError(f"Response has no result: {self.error}")
            raise ResponseValidationError("Response has no result")
        if type_ is None:
            return self.result.decode()
        return self.result.decode_as(type_)


@dataclass(frozen=True)
class ServerRequest:
    """Server-side JSON-RPC 2.0 request as parsed from transport bytes.

    Attributes:
        method: Name of the method to invoke (non-empty).
        params: Raw params text, or None when absent or null.
        id: Raw id text, or None when absent or null.
        jsonrpc: Protocol version, "2.0".
    """

    method: str
    params: RawValue | None = None
    id: RawValue | None = None
    jsonrpc: str = JSONRPC_VERSION


@dataclass
class CallContext:
    """Ambient data for one inbound call.

    Transports fill in headers and the peer address; applications may stash
    anything in ``values``. The engine records annotations (method, request
    id, operation name) for a successfully parsed single request. Handlers
    and log collaborators read annotations but never influence dispatch
    through them.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    remote: str | None = None
    values: dict[str, Any] = field(default_factory=dict)
    _annotations: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def annotations(self) -> Mapping[str, str]:
        return MappingProxyType(self._annotations)

    def annotate(self, key: str, value: str) -> None:
        self._annotations[key] = value

    def child(self) -> CallContext:
        """Context for one batch element: shared transport data, own annotations."""
        return CallContext(headers=self.headers, remote=self.remote, values=self.values)
