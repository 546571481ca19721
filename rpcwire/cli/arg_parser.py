"""Argument parsing for the rpcwire CLI."""

import argparse
from collections.abc import Sequence
from pathlib import Path


def add_config_arg(parser: argparse.ArgumentParser) -> None:
    """Add --config argument to a parser."""
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Config file (default: $RPCWIRE_CONFIG or ./rpcwire.json)",
    )


def add_client_args(parser: argparse.ArgumentParser) -> None:
    """Add --url, --header and --timeout arguments to a parser."""
    parser.add_argument(
        "--url", "-u",
        default=None,
        help="Server endpoint (default: client.url from config)",
    )
    parser.add_argument(
        "--header", "-H",
        action="append",
        dest="headers",
        default=[],
        metavar="NAME=VALUE",
        help="Extra request header (can be repeated)",
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Request timeout in seconds (default: client.timeout from config)",
    )
    add_config_arg(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="rpcwire",
        description="JSON-RPC 2.0 server and client",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve - run the HTTP listener for an application
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve an application's methods over HTTP",
    )
    serve_parser.add_argument(
        "app",
        help="module:attribute naming a Server or a mapping of method handlers",
    )
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from config)")
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port (default: server.port from config, 8765)",
    )
    serve_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: logging.level from config)",
    )
    add_config_arg(serve_parser)

    # call - one request
    call_parser = subparsers.add_parser("call", help="Call one method")
    call_parser.add_argument("method", help="Method name")
    call_parser.add_argument(
        "params",
        nargs="?",
        default=None,
        help="Params as JSON (e.g. '[1, 2]' or '{\"name\": \"x\"}')",
    )
    add_client_args(call_parser)

    # batch - several requests from a file
    batch_parser = subparsers.add_parser(
        "batch",
        help="Send a batch of calls read from a JSON file",
    )
    batch_parser.add_argument(
        "file",
        type=Path,
        help='JSON array of {"method": ..., "params": ...} objects ("-" for stdin)',
    )
    add_client_args(batch_parser)

    return parser.parse_args(argv)
