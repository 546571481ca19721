"""CLI commands for calling a JSON-RPC server over HTTP.

These commands are thin wrappers around HttpClient, called from
rpcwire.cli.main(). Each function prints JSON to stdout and returns an
exit code:
    rpcwire call add '[1, 2]'
    rpcwire batch calls.json --url http://127.0.0.1:9000/
"""

import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rpcwire.cli.output import print_error, print_info, print_json
from rpcwire.client import ClientError, HttpClient
from rpcwire.config.loader import load_config
from rpcwire.config.schema import ClientConfig
from rpcwire.core.errors import ConfigError, ProtocolError
from rpcwire.rpc.errors import RpcError
from rpcwire.rpc.protocol import new_request
from rpcwire.rpc.types import Request, Response


def parse_header_args(values: Sequence[str]) -> dict[str, str]:
    """Turn repeated NAME=VALUE arguments into a header dict.

    Raises:
        ValueError: If an entry has no '=' or an empty name.
    """
    headers: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Header must look like NAME=VALUE, got: {item!r}")
        headers[name] = value.strip()
    return headers


def _client_config(
    config_path: Path | None,
    url: str | None,
    headers: Sequence[str],
    timeout: float | None,
) -> ClientConfig:
    """Merge command line overrides into the client section of the config."""
    base = load_config(config_path).client
    merged = dict(base.headers)
    merged.update(parse_header_args(headers))
    return ClientConfig(
        url=url or base.url,
        timeout=timeout if timeout is not None else base.timeout,
        headers=merged,
    )


def _result_value(response: Response) -> Any:
    # A method may answer with no result member at all; show it as null
    if response.result is None:
        return None
    return response.get_result()


def _response_to_dict(response: Response) -> dict[str, Any]:
    if response.error is not None:
        return {"error": response.error.to_dict()}
    return {"result": _result_value(response)}


def _print_rpc_error(error: RpcError) -> None:
    print_error(str(error))
    if error.data is not None:
        print_info(f"data: {json.dumps(error.data)}")


def load_batch_file(path: Path) -> list[Request]:
    """Read a batch description: a JSON array of {"method", "params"} objects.

    A path of "-" reads from stdin.

    Raises:
        ValueError: If the file is not valid JSON or an entry is malformed.
    """
    text = sys.stdin.read() if str(path) == "-" else path.read_text(encoding="utf-8")
    try:
        entries = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Batch file is not valid JSON: {e}") from e

    if not isinstance(entries, list) or not entries:
        raise ValueError("Batch file must contain a non-empty JSON array")

    requests: list[Request] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not isinstance(entry.get("method"), str):
            raise ValueError(f"Entry {index} must be an object with a string 'method'")
        requests.append(new_request(entry["method"], entry.get("params")))
    return requests


async def cmd_call(
    method: str,
    params: str | None = None,
    url: str | None = None,
    headers: Sequence[str] = (),
    timeout: float | None = None,
    config_path: Path | None = None,
) -> int:
    """Call one method and print its result.

    Args:
        method: Method name.
        params: Params as a JSON string, or None to send null params.
        url: Endpoint override.
        headers: Extra NAME=VALUE headers.
        timeout: Timeout override in seconds.
        config_path: Explicit config file.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    try:
        decoded = json.loads(params) if params is not None else None
    except json.JSONDecodeError as e:
        print_error(f"Params are not valid JSON: {e}")
        return 1

    try:
        config = _client_config(config_path, url, headers, timeout)
    except (ConfigError, ValueError) as e:
        print_error(str(e))
        return 1

    try:
        async with HttpClient.from_config(config) as client:
            response = await client.call(method, decoded)
    except RpcError as e:
        _print_rpc_error(e)
        return 1
    except (ClientError, ProtocolError) as e:
        print_error(e.message)
        return 1

    print_json(_result_value(response))
    return 0


async def cmd_batch(
    file: Path,
    url: str | None = None,
    headers: Sequence[str] = (),
    timeout: float | None = None,
    config_path: Path | None = None,
) -> int:
    """Send every call in a batch file and print the aligned responses.

    Output is a JSON array with one {"result": ...} or {"error": ...}
    object per entry, in file order.

    Returns:
        Exit code: 0 when every call succeeded, 1 otherwise.
    """
    try:
        requests = load_batch_file(file)
        config = _client_config(config_path, url, headers, timeout)
    except OSError as e:
        print_error(f"Cannot read batch file: {e}")
        return 1
    except (ConfigError, ValueError) as e:
        print_error(str(e))
        return 1

    try:
        async with HttpClient.from_config(config) as client:
            responses = await client.call_batch(requests)
    except RpcError as e:
        _print_rpc_error(e)
        return 1
    except (ClientError, ProtocolError) as e:
        print_error(e.message)
        return 1

    print_json([_response_to_dict(response) for response in responses])
    failed = sum(1 for response in responses if response.is_error)
    if failed:
        print_info(f"{failed} of {len(responses)} call(s) failed")
        return 1
    return 0
