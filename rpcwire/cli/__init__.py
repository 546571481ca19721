"""Command-line interface for rpcwire.

Subcommands:
    rpcwire serve APP            # Serve module:attribute over HTTP
    rpcwire call METHOD [PARAMS] # One request, result printed as JSON
    rpcwire batch FILE           # Batch of requests from a JSON file
"""

import asyncio
from collections.abc import Sequence

from rpcwire.cli.arg_parser import parse_args


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the rpcwire CLI."""
    args = parse_args(argv)
    try:
        if args.command == "serve":
            from rpcwire.cli.serve import run_serve

            exit_code = asyncio.run(run_serve(
                args.app,
                host=args.host,
                port=args.port,
                log_level=args.log_level,
                config_path=args.config,
            ))
        elif args.command == "call":
            from rpcwire.cli.client_commands import cmd_call

            exit_code = asyncio.run(cmd_call(
                args.method,
                args.params,
                url=args.url,
                headers=args.headers,
                timeout=args.timeout,
                config_path=args.config,
            ))
        elif args.command == "batch":
            from rpcwire.cli.client_commands import cmd_batch

            exit_code = asyncio.run(cmd_batch(
                args.file,
                url=args.url,
                headers=args.headers,
                timeout=args.timeout,
                config_path=args.config,
            ))
        else:
            print(f"Unknown command: {args.command}")
            exit_code = 1
    except KeyboardInterrupt:
        exit_code = 130
    raise SystemExit(exit_code)


__all__ = ["main"]
