import socket

import pytest
from starlette.applications import Starlette

from open_meteo_mcp import main as entrypoint
from open_meteo_mcp.servers.tool_registry import McpServersRegistry


@pytest.mark.parametrize("transport", ["sse", "proxy"])
def test_build_app_returns_starlette(transport):
    assert isinstance(entrypoint.build_app(transport, McpServersRegistry()), Starlette)


def test_build_app_http_is_asgi_callable():
    assert callable(entrypoint.build_app("http", McpServersRegistry()))


def test_build_app_rejects_stdio():
    with pytest.raises(ValueError):
        entrypoint.build_app("stdio", McpServersRegistry())


def test_unknown_transport_exits():
    with pytest.raises(SystemExit):
        entrypoint.main(["carrier-pigeon"])


def test_network_transport_uses_default_port(monkeypatch):
    calls = []
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

    entrypoint.main(["sse", "--log-level", "warning"])

    assert calls == [{"host": "0.0.0.0", "port": 3003, "log_level": "warning"}]


def test_bind_failure_exits_nonzero():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]

        with pytest.raises(SystemExit) as excinfo:
            entrypoint.main(["sse", "--host", "127.0.0.1", "--port", str(port), "--log-level", "critical"])

    assert excinfo.value.code == 1
