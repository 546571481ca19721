"""HTTP server mode for rpcwire.

Serves an application's method table as a JSON-RPC 2.0 endpoint. The
application is named as ``module:attribute`` and may be a Server, a mapping
of method names to handlers, or a factory returning either.

Example:
    rpcwire serve myapp.rpc:methods --port 8765

    curl -X POST http://localhost:8765/ \\
        -H "Content-Type: application/json" \\
        -d '{"jsonrpc":"2.0","method":"add","params":[1,2],"id":1}'
"""

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

from rpcwire.cli.output import print_error, print_info
from rpcwire.config.loader import load_config
from rpcwire.core.errors import ConfigError
from rpcwire.rpc.bootstrap import configure_logging, load_server
from rpcwire.rpc.http import run_http_server

# Load .env file if present
load_dotenv()


async def run_serve(
    app: str,
    host: str | None = None,
    port: int | None = None,
    log_level: str | None = None,
    config_path: Path | None = None,
) -> int:
    """Run the HTTP server until interrupted.

    Command line values override the config file, which overrides defaults.

    Args:
        app: ``module:attribute`` naming the application.
        host: Bind address override.
        port: Port override.
        log_level: Log level override.
        config_path: Explicit config file.

    Returns:
        Exit code: 0 on clean shutdown, 1 if startup failed.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        print_error(e.message)
        return 1

    level = log_level or config.logging.level
    log_dir = Path(config.logging.log_dir) if config.logging.log_dir else None
    log_file = configure_logging(getattr(logging, level), log_dir=log_dir)
    if log_file:
        print_info(f"Logging to {log_file}")

    try:
        server = load_server(app)
    except ConfigError as e:
        print_error(e.message)
        return 1

    settings = config.server
    bind_host = host or settings.host
    bind_port = port if port is not None else settings.port

    try:
        await run_http_server(
            server,
            host=bind_host,
            port=bind_port,
            max_concurrent=settings.max_concurrent,
            max_body_size=settings.max_body_size,
            timeout=settings.read_timeout,
        )
    except OSError as e:
        print_error(f"Cannot listen on {bind_host}:{bind_port}: {e}")
        return 1
    except asyncio.CancelledError:
        pass
    return 0
