"""Pydantic models for rpcwire configuration validation."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class ServerConfig(BaseModel):
    """Configuration for the JSON-RPC HTTP server.

    Example in rpcwire.json:
        "server": {
            "host": "0.0.0.0",
            "port": 8765,
            "max_body_size": 1048576
        }
    """

    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    """Host address to bind to (use 0.0.0.0 for all interfaces)."""

    port: int = Field(default=8765, ge=0, le=65535)
    """Port number for the HTTP server (0 picks a free port)."""

    max_body_size: int = Field(default=1_048_576, gt=0)
    """Largest accepted request body in bytes."""

    max_concurrent: int = Field(default=32, ge=1)
    """Maximum number of connections handled at once."""

    read_timeout: float = Field(default=30.0, gt=0)
    """Seconds to wait for each part of an HTTP request."""


class ClientConfig(BaseModel):
    """Configuration for the HTTP client used by `rpcwire call` and `rpcwire batch`."""

    model_config = ConfigDict(extra="forbid")

    url: str = "http://127.0.0.1:8765/"
    """Endpoint URL of the JSON-RPC server."""

    timeout: float = Field(default=30.0, gt=0)
    """Request timeout in seconds."""

    headers: dict[str, str] = Field(default_factory=dict)
    """Extra headers sent with every request (e.g. Authorization)."""

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must start with http:// or https://, got: {v!r}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: LogLevel = "INFO"
    """Level for the rpcwire logger namespace."""

    log_dir: str | None = None
    """Directory for rpcwire.log. None means console only."""


class Config(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
