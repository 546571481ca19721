"""Typed exception hierarchy for rpcwire."""

from __future__ import annotations


class RpcWireError(Exception):
    """Base class for all rpcwire errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(RpcWireError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class ProtocolError(RpcWireError):
    """Raised on the client side when an envelope cannot be built or read."""


class ResponseValidationError(ProtocolError):
    """A response payload is malformed, has the wrong version, or has no usable result."""


class BatchCorrelationError(ProtocolError):
    """A batch response did not answer every request that was sent."""

    def __init__(self, message: str, missing_ids: list[object] | None = None) -> None:
        self.missing_ids = list(missing_ids or [])
        super().__init__(message)
