"""Server wiring: logging setup and application loading.

Usage:
    configure_logging(logging.INFO, log_dir=Path("logs"))
    server = load_server("myapp.rpc:methods")
"""

from __future__ import annotations

import importlib
import logging
import sys
from collections.abc import Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rpcwire.core.errors import ConfigError
from rpcwire.rpc.server import Server

logger = logging.getLogger(__name__)

LOGGER_NAMESPACE = "rpcwire"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: int = logging.INFO,
    log_dir: Path | None = None,
) -> Path | None:
    """Configure console (and optionally rotating file) logging for rpcwire.

    Existing handlers on the rpcwire logger are replaced, so calling this
    twice does not duplicate output. Logs do not propagate to the root logger.

    Args:
        level: Logging level for the rpcwire namespace.
        log_dir: Directory for rpcwire.log (5MB per file, 3 backups).
            Created if it doesn't exist. None means console only.

    Returns:
        Path to the log file, or None when logging to console only.
    """
    rpc_logger = logging.getLogger(LOGGER_NAMESPACE)
    rpc_logger.setLevel(level)
    rpc_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    rpc_logger.addHandler(console_handler)

    log_file: Path | None = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "rpcwire.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        rpc_logger.addHandler(file_handler)

    rpc_logger.propagate = False
    logger.debug("Logging configured: level=%s, file=%s", logging.getLevelName(level), log_file)
    return log_file


def load_server(target: str) -> Server:
    """Import ``module:attribute`` and build a Server from it.

    The attribute may be a Server, a mapping of method names to handlers,
    or a zero-argument callable returning either.

    Raises:
        ConfigError: If the target cannot be imported or is of the wrong kind.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"App must look like 'module:attribute', got: {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import {module_name!r}: {e}") from e

    obj: object = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"{module_name!r} has no attribute {attr!r}") from e

    if callable(obj) and not isinstance(obj, (Server, Mapping)):
        obj = obj()

    if isinstance(obj, Server):
        server = obj
    elif isinstance(obj, Mapping):
        server = Server(obj)
    else:
        raise ConfigError(
            f"{target!r} must be a Server or a mapping of handlers, got {type(obj).__name__}"
        )

    logger.info("Loaded %d method(s) from %s", len(server.methods), target)
    return server
