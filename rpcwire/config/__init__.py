"""Configuration loading and validation."""

from rpcwire.config.loader import CONFIG_ENV_VAR, LOCAL_CONFIG_NAME, load_config
from rpcwire.config.schema import ClientConfig, Config, LoggingConfig, ServerConfig

__all__ = [
    "CONFIG_ENV_VAR",
    "LOCAL_CONFIG_NAME",
    "ClientConfig",
    "Config",
    "LoggingConfig",
    "ServerConfig",
    "load_config",
]
