"""JSON-RPC 2.0 error taxonomy.

Every protocol failure is described by an RpcError carrying a numeric code,
a human-readable message and an optional opaque data payload. RpcError is an
exception so handlers can raise it and clients can surface it, but it is also
a plain value: its fields cannot be reassigned and two errors with the same
code, message and data compare equal.

Codes:
    PARSE_ERROR       -32700  malformed payload
    INVALID_REQUEST   -32600  wrong version or empty method
    METHOD_NOT_FOUND  -32601  no handler registered for the method
    INVALID_PARAMS    -32602  raised by handlers, never inferred by the engine
    INTERNAL_ERROR    -32603  uncaught handler fault
    SERVER_ERROR      -32000  fixed server error, also the code for errors
                              built from a bare message string
"""

from __future__ import annotations

from typing import Any

from rpcwire.core.errors import RpcWireError

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000  # Server error range: -32000 to -32099

DEFAULT_MESSAGES: dict[int, str] = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal JSON-RPC error",
    SERVER_ERROR: "Server error",
}


class RpcError(RpcWireError):
    """A JSON-RPC error object: ``{"code": int, "message": str, "data"?: any}``."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self._code = code
        self._message = message
        self._data = data
        # RpcWireError.__init__ would assign .message, which is read-only here
        Exception.__init__(self, code, message)

    @property
    def code(self) -> int:
        return self._code

    @property
    def message(self) -> str:  # type: ignore[override]
        return self._message

    @property
    def data(self) -> Any:
        return self._data

    @classmethod
    def from_message(cls, message: str, data: Any = None) -> RpcError:
        """Build an ad-hoc application error (code SERVER_ERROR)."""
        return ServerError(message, data)

    @classmethod
    def from_dict(cls, obj: Any) -> RpcError:
        """Build an error from a decoded wire error object.

        Known codes map to their dedicated subclass so callers can use
        ``except MethodNotFoundError``; application codes stay plain RpcError.

        Raises:
            ValueError: If ``obj`` is not an object with an integer code and a
                string message.
        """
        if not isinstance(obj, dict):
            raise ValueError(f"error must be an object, got: {type(obj).__name__}")
        code = obj.get("code")
        message = obj.get("message", "")
        if not isinstance(code, int) or isinstance(code, bool):
            raise ValueError(f"error code must be an integer, got: {code!r}")
        if not isinstance(message, str):
            raise ValueError(f"error message must be a string, got: {type(message).__name__}")
        data = obj.get("data")
        subclass = _BY_CODE.get(code)
        if subclass is not None:
            return subclass(message, data)
        return RpcError(code, message, data)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire shape. ``data`` is omitted when None."""
        out: dict[str, Any] = {"code": self._code, "message": self._message}
        if self._data is not None:
            out["data"] = self._data
        return out

    def with_data(self, data: Any) -> RpcError:
        """Return a copy of this error carrying ``data``."""
        return RpcError(self._code, self._message, data)

    def __str__(self) -> str:
        return f"Error [{self._code}]: {self._message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self._code}, message={self._message!r}, data={self._data!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RpcError):
            return NotImplemented
        return (self._code, self._message, self._data) == (other._code, other._message, other._data)

    def __hash__(self) -> int:
        return hash((self._code, self._message))

    def __reduce__(self) -> tuple[Any, ...]:
        return (RpcError, (self._code, self._message, self._data))


class _FixedCodeError(RpcError):
    """RpcError whose code is fixed by the class."""

    CODE: int = SERVER_ERROR

    def __init__(self, message: str | None = None, data: Any = None) -> None:
        super().__init__(self.CODE, message if message is not None else DEFAULT_MESSAGES[self.CODE], data)

    def with_data(self, data: Any) -> RpcError:
        return type(self)(self.message, data)

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.message, self.data))


class ParseError(_FixedCodeError):
    """Invalid JSON was received."""

    CODE = PARSE_ERROR


class InvalidRequestError(_FixedCodeError):
    """The JSON sent is not a valid request object."""

    CODE = INVALID_REQUEST


class MethodNotFoundError(_FixedCodeError):
    """The method does not exist."""

    CODE = METHOD_NOT_FOUND


class InvalidParamsError(_FixedCodeError):
    """Raised by handlers when method parameters are invalid."""

    CODE = INVALID_PARAMS


class InternalError(_FixedCodeError):
    """A handler failed in an unexpected way."""

    CODE = INTERNAL_ERROR


class ServerError(_FixedCodeError):
    """Application error in the -32000 slot."""

    CODE = SERVER_ERROR


_BY_CODE: dict[int, type[_FixedCodeError]] = {
    cls.CODE: cls
    for cls in (
        ParseError,
        InvalidRequestError,
        MethodNotFoundError,
        InvalidParamsError,
        InternalError,
        ServerError,
    )
}
