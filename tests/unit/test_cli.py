"""Unit tests for the rpcwire command line."""

import json
from contextlib import asynccontextmanager

import pytest

from rpcwire.cli import main
from rpcwire.cli.arg_parser import parse_args
from rpcwire.cli.client_commands import cmd_batch, cmd_call, load_batch_file, parse_header_args
from rpcwire.config.loader import CONFIG_ENV_VAR
from rpcwire.rpc.errors import InvalidParamsError
from rpcwire.rpc.http import start_http_server
from rpcwire.rpc.server import Server


async def add(ctx, params):
    if params is None:
        raise InvalidParamsError("expected [a, b]", data={"hint": "pass two numbers"})
    a, b = params.decode()
    return a + b


async def nothing(ctx, params):
    return None


async def auth(ctx, params):
    return ctx.headers.get("authorization")


SERVER = Server({"add": add, "nothing": nothing, "auth": auth})


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every CLI test without picking up a real config file."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)


@asynccontextmanager
async def running_server():
    listener = await start_http_server(SERVER, host="127.0.0.1", port=0)
    port = listener.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}/"
    finally:
        listener.close()
        await listener.wait_closed()


class TestParseArgs:
    """Tests for argument parsing."""

    def test_serve(self):
        args = parse_args(["serve", "myapp:methods", "--port", "9000", "--log-level", "DEBUG"])
        assert args.command == "serve"
        assert args.app == "myapp:methods"
        assert args.port == 9000
        assert args.host is None
        assert args.log_level == "DEBUG"

    def test_call(self):
        args = parse_args(["call", "add", "[1, 2]", "-H", "A=b", "-H", "C=d", "--timeout", "3"])
        assert args.method == "add"
        assert args.params == "[1, 2]"
        assert args.headers == ["A=b", "C=d"]
        assert args.timeout == 3.0
        assert args.url is None

    def test_call_without_params(self):
        assert parse_args(["call", "ping"]).params is None

    def test_batch(self):
        args = parse_args(["batch", "calls.json", "--url", "http://h:1/"])
        assert str(args.file) == "calls.json"
        assert args.url == "http://h:1/"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestHelpers:
    """Tests for header parsing and batch files."""

    def test_parse_header_args(self):
        assert parse_header_args(["A=b", " X-Key = v=1 "]) == {"A": "b", "X-Key": "v=1"}

    @pytest.mark.parametrize("value", ["novalue", "=x"])
    def test_parse_header_args_rejects(self, value):
        with pytest.raises(ValueError):
            parse_header_args([value])

    def test_load_batch_file(self, tmp_path):
        path = tmp_path / "calls.json"
        path.write_text(json.dumps([{"method": "add", "params": [1, 2]}, {"method": "ping"}]))
        requests = load_batch_file(path)

        assert [r.method for r in requests] == ["add", "ping"]
        assert requests[0].params == [1, 2]
        assert requests[1].params is None
        assert all(r.id is None for r in requests)

    @pytest.mark.parametrize("content", ["[]", "{}", "not json", '[{"params": 1}]', "[1]"])
    def test_load_batch_file_rejects(self, tmp_path, content):
        path = tmp_path / "calls.json"
        path.write_text(content)
        with pytest.raises(ValueError):
            load_batch_file(path)


class TestCmdCall:
    """Tests for cmd_call()."""

    @pytest.mark.asyncio
    async def test_success(self, capsys):
        async with running_server() as url:
            code = await cmd_call("add", "[2, 3]", url=url)

        assert code == 0
        assert json.loads(capsys.readouterr().out) == 5

    @pytest.mark.asyncio
    async def test_empty_result_prints_null(self, capsys):
        async with running_server() as url:
            code = await cmd_call("nothing", url=url)

        assert code == 0
        assert json.loads(capsys.readouterr().out) is None

    @pytest.mark.asyncio
    async def test_headers_sent(self, capsys):
        async with running_server() as url:
            code = await cmd_call("auth", url=url, headers=["Authorization=Bearer t"])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == "Bearer t"

    @pytest.mark.asyncio
    async def test_url_from_config_file(self, tmp_path, capsys):
        async with running_server() as url:
            (tmp_path / "rpcwire.json").write_text(json.dumps({"client": {"url": url}}))
            code = await cmd_call("add", "[1, 1]")

        assert code == 0
        assert json.loads(capsys.readouterr().out) == 2

    @pytest.mark.asyncio
    async def test_rpc_error(self, capsys):
        async with running_server() as url:
            code = await cmd_call("add", url=url)

        assert code == 1
        err = capsys.readouterr().err
        assert "-32602" in err
        assert "pass two numbers" in err

    @pytest.mark.asyncio
    async def test_invalid_params_json(self, capsys):
        code = await cmd_call("add", "[1,", url="http://127.0.0.1:1/")
        assert code == 1
        assert "not valid JSON" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_connection_refused(self, capsys):
        async with running_server() as url:
            pass
        # The listener is closed, so nothing answers on that port
        code = await cmd_call("add", "[1, 2]", url=url, timeout=2)
        assert code == 1
        assert "Error" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_bad_config_file(self, tmp_path, capsys):
        (tmp_path / "rpcwire.json").write_text("{broken")
        code = await cmd_call("add", "[1, 2]")
        assert code == 1
        assert "Invalid JSON" in capsys.readouterr().err


class TestCmdBatch:
    """Tests for cmd_batch()."""

    @pytest.mark.asyncio
    async def test_all_succeed(self, tmp_path, capsys):
        path = tmp_path / "calls.json"
        path.write_text(json.dumps([
            {"method": "add", "params": [1, 2]},
            {"method": "nothing"},
        ]))
        async with running_server() as url:
            code = await cmd_batch(path, url=url)

        assert code == 0
        assert json.loads(capsys.readouterr().out) == [{"result": 3}, {"result": None}]

    @pytest.mark.asyncio
    async def test_element_failure(self, tmp_path, capsys):
        path = tmp_path / "calls.json"
        path.write_text(json.dumps([{"method": "add", "params": [1, 2]}, {"method": "missing"}]))
        async with running_server() as url:
            code = await cmd_batch(path, url=url)

        captured = capsys.readouterr()
        assert code == 1
        assert json.loads(captured.out) == [
            {"result": 3},
            {"error": {"code": -32601, "message": "Method not found"}},
        ]
        assert "1 of 2" in captured.err

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path, capsys):
        code = await cmd_batch(tmp_path / "absent.json", url="http://127.0.0.1:1/")
        assert code == 1
        assert "Cannot read batch file" in capsys.readouterr().err


class TestMain:
    """Tests for the main() entry point."""

    def test_exit_code(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["call", "add", "{bad"])
        assert exc_info.value.code == 1

    def test_serve_bad_app(self, capsys, restore_logger):
        with pytest.raises(SystemExit) as exc_info:
            main(["serve", "not_a_target"])
        assert exc_info.value.code == 1
        assert "module:attribute" in capsys.readouterr().err
