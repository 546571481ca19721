"""Core types shared across rpcwire."""

from rpcwire.core.errors import (
    BatchCorrelationError,
    ConfigError,
    ProtocolError,
    ResponseValidationError,
    RpcWireError,
)

__all__ = [
    "RpcWireError",
    "ConfigError",
    "ProtocolError",
    "ResponseValidationError",
    "BatchCorrelationError",
]
