"""Tests for the tool registry and the bundled tool library."""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

import httpx
import pytest

import luagent.tools.http_tool as http_tool
from luagent.core.schema import (
    ExecutionStatus,
    TypeTag,
)
from luagent.sandbox.lua_engine import LuaEngine
from luagent.tools import (
    TOOL_REGISTRY,
    builtin_tools,
    create_tool,
    get_tools,
    register_tool,
    tool_from_function,
)

_REAL_CLIENT = httpx.Client


def _weather(city: str, days: Optional[int] = None, units: int | str = "metric") -> Dict[str, Any]:
    """
    Fetch a weather forecast.

    Longer explanation that is not part of the summary.

    Args:
        city: City name
        days: Number of days to forecast
        units (str): Unit system

    Returns:
        The forecast.
    """
    return {"city": city, "days": days, "units": units}


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------
def test_tool_from_function() -> None:
    """Parameters, type tags and descriptions come from the signature and docstring."""

    tool = tool_from_function(_weather, name="weather")

    assert tool.name == "weather"
    assert tool.description == "Fetch a weather forecast."
    city, days, units = tool.parameters
    assert (city.name, city.type, city.required) == ("city", TypeTag.STRING, True)
    assert city.description == "City name"
    assert (days.type, days.required) == (TypeTag.NUMBER, False)
    assert units.type == [TypeTag.NUMBER, TypeTag.STRING]
    assert units.description == "Unit system"
    assert tool.format_for_prompt() == (
        "- weather(city: string, days?: number, units?: number|string): Fetch a weather forecast."
    )


def test_table_annotations() -> None:
    """Lists and dicts are documented as Lua tables; varargs are optional."""

    def merge(items: List[str], extra: Dict[str, int], *rest: Any) -> None:
        """Merge things."""

    params = tool_from_function(merge).parameters
    assert [p.type for p in params[:2]] == [TypeTag.TABLE, TypeTag.TABLE]
    assert params[2].required is False


def test_create_tool_with_explicit_parameters() -> None:
    tool = create_tool(
        "shout",
        "Upper-case a string",
        [{"name": "text", "type": "string"}],
        lambda text: text.upper(),
    )
    assert tool.format_for_prompt() == "- shout(text: string): Upper-case a string"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
def test_builtin_tools() -> None:
    tools = builtin_tools()
    assert set(tools) == {"add", "multiply", "concat", "search"}
    assert tools["add"].function(2, 3) == 5
    assert tools["search"].function("lua") == "Mock search results for: lua"


def test_get_tools_by_scope() -> None:
    assert set(get_tools("json.*")) == {"json.parse", "json.encode", "json.pretty"}
    assert "http.get" in get_tools()


def test_get_tools_unknown_name() -> None:
    with pytest.raises(KeyError):
        get_tools("does_not_exist")
    with pytest.raises(KeyError):
        get_tools("nothing.*")


def test_duplicate_registration_is_rejected() -> None:
    @register_tool("test_echo")
    def echo(value: str) -> str:
        """Echo a value."""
        return value

    try:
        assert TOOL_REGISTRY["test_echo"].function is echo
        with pytest.raises(ValueError, match="already registered"):
            register_tool("test_echo")
    finally:
        TOOL_REGISTRY.pop("test_echo", None)


# ---------------------------------------------------------------------------
# Tools used from Lua
# ---------------------------------------------------------------------------
def test_concat() -> None:
    """concat joins a table of strings and yields nil for anything else."""

    engine = LuaEngine()
    tools = builtin_tools()

    result = engine.execute("final_answer(concat({'lu', 'a'}))", tools)
    assert result.final_answer == "lua"

    result = engine.execute("final_answer(tostring(concat('lua')))", tools)
    assert result.final_answer == "nil"


def test_json_tools() -> None:
    """JSON text decodes into tables and tables encode back to JSON."""

    engine = LuaEngine()
    tools = get_tools("json.*")

    code = """
local data = json.parse('{"name": "lua", "tags": ["small", "fast"]}')
final_answer(data.name .. ":" .. data.tags[2] .. ":" .. json.encode({b = 1, a = {true}}))
"""
    assert engine.execute(code, tools).final_answer == 'lua:fast:{"a":[true],"b":1}'

    result = engine.execute("final_answer(tostring(json.parse('{oops')))", tools)
    assert result.final_answer == "nil"

    pretty = engine.execute("final_answer(json.pretty({x = 1}))", tools).final_answer
    assert pretty == '{\n  "x": 1\n}'


def test_logger_tools(caplog: pytest.LogCaptureFixture) -> None:
    """log.* calls end up on the luagent.script logger."""

    engine = LuaEngine()
    with caplog.at_level(logging.DEBUG, logger="luagent.script"):
        result = engine.execute(
            "log.info('hello')\nlog.log('error', 'bad', {code = 7})", get_tools("log.*")
        )

    assert result.status is ExecutionStatus.CONTINUE
    records = [r for r in caplog.records if r.name == "luagent.script"]
    assert [(r.levelno, r.getMessage()) for r in records] == [
        (logging.INFO, "hello"),
        (logging.ERROR, "bad {'code': 7}"),
    ]


def _patch_http(monkeypatch: pytest.MonkeyPatch, handler: Any) -> None:
    monkeypatch.setattr(
        http_tool,
        "_make_client",
        lambda: _REAL_CLIENT(transport=httpx.MockTransport(handler)),
    )


def test_http_get(monkeypatch: pytest.MonkeyPatch) -> None:
    """A GET returns {status, headers, body} to the script."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-token"] == "abc"
        return httpx.Response(200, json={"ok": True})

    _patch_http(monkeypatch, handler)
    engine = LuaEngine()
    code = """
local resp = http.get('http://example.test/status', {['X-Token'] = 'abc'})
local body = json.parse(resp[3])
final_answer(resp[1] .. ' ' .. tostring(body.ok) .. ' ' .. resp[2]['content-type'])
"""
    tools = {**get_tools("http.*"), **get_tools("json.*")}
    assert engine.execute(code, tools).final_answer == "200 true application/json"


def test_http_post_sends_tables_as_json(monkeypatch: pytest.MonkeyPatch) -> None:
    sent: List[Any] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(201, text="created")

    _patch_http(monkeypatch, handler)
    result = LuaEngine().execute(
        "local r = http.post('http://example.test/items', {name = 'x'})\nfinal_answer(r[3])",
        get_tools("http.*"),
    )
    assert result.final_answer == "created"
    assert sent == [{"name": "x"}]


def test_http_failure_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    """Transport errors come back as a message string instead of raising."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _patch_http(monkeypatch, handler)
    assert http_tool.get("http://example.test/") == "HTTP request failed: connection refused"
