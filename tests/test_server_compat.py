from __future__ import annotations

import json

import pytest

pytest.importorskip("mcp")

from gcc_journal import server


def test_build_fastmcp_keeps_optional_kwargs_when_supported(monkeypatch) -> None:
    captured: dict[str, object] = {}

    class FakeFastMCP:
        def __init__(self, **kwargs: object) -> None:
            captured.update(kwargs)

    monkeypatch.setattr(server, "FastMCP", FakeFastMCP)
    instance = server._build_fastmcp()

    assert isinstance(instance, FakeFastMCP)
    assert captured["name"] == "gcc-journal"
    assert captured["json_response"] is True


def test_build_fastmcp_drops_json_response_when_unsupported(monkeypatch) -> None:
    calls: list[dict[str, object]] = []

    class FakeFastMCP:
        def __init__(self, **kwargs: object) -> None:
            calls.append(dict(kwargs))
            if "json_response" in kwargs:
                raise TypeError("FastMCP.__init__() got an unexpected keyword argument 'json_response'")

    monkeypatch.setattr(server, "FastMCP", FakeFastMCP)
    instance = server._build_fastmcp()

    assert isinstance(instance, FakeFastMCP)
    assert len(calls) == 2
    assert "json_response" not in calls[1]


def test_build_fastmcp_re_raises_unrelated_type_errors(monkeypatch) -> None:
    class FakeFastMCP:
        def __init__(self, **kwargs: object) -> None:
            _ = kwargs
            raise TypeError("boom")

    monkeypatch.setattr(server, "FastMCP", FakeFastMCP)
    with pytest.raises(TypeError, match="boom"):
        server._build_fastmcp()


def test_register_tool_falls_back_without_annotations(monkeypatch) -> None:
    calls: list[object] = []

    class FakeMCP:
        def tool(self, **kwargs: object):
            if "annotations" in kwargs:
                raise TypeError("tool() got an unexpected keyword argument 'annotations'")

            def decorator(func):
                calls.append(func)
                return func

            return decorator

    monkeypatch.setattr(server, "mcp", FakeMCP())

    def sample() -> dict:
        return {}

    registered = server._register_tool(server.READ_ONLY_TOOL_ANNOTATIONS)(sample)

    assert registered is sample
    assert calls == [sample]


def test_main_print_effective_config(monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        "sys.argv",
        ["gcc-journal-mcp", "--transport", "streamable-http", "--port", "9100", "--print-effective-config"],
    )

    server.main()

    payload = json.loads(capsys.readouterr().out)
    assert payload["transport"] == "streamable-http"
    assert payload["port"] == 9100
    assert payload["host"] == "127.0.0.1"


def test_main_rejects_public_host_without_opt_in(monkeypatch) -> None:
    monkeypatch.setattr(
        "sys.argv",
        ["gcc-journal-mcp", "--transport", "streamable-http", "--host", "0.0.0.0", "--check-config"],
    )

    with pytest.raises(SystemExit) as exc_info:
        server.main()

    assert exc_info.value.code == 2
