"""Tests for the LLM providers and helpers."""

import json
from typing import (
    Any,
    Callable,
    Dict,
    List,
)

import httpx
import pytest

import luagent.agent.llm_interface as llm_interface
from luagent.agent.llm_interface import (
    MockLLM,
    OllamaLLM,
    extract_lua_code,
    format_error,
    load_llm,
)
from luagent.core.errors import LLMError

_REAL_CLIENT = httpx.Client


def _patch_transport(
    monkeypatch: pytest.MonkeyPatch, handler: Callable[[httpx.Request], httpx.Response]
) -> None:
    """Route every httpx.Client the module creates through *handler*."""

    def factory(**kwargs: Any) -> httpx.Client:
        return _REAL_CLIENT(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(llm_interface.httpx, "Client", factory)


# ---------------------------------------------------------------------------
# extract_lua_code / format_error
# ---------------------------------------------------------------------------
def test_extract_lua_block() -> None:
    """The first lua-tagged block wins."""

    text = "Sure!\n```lua\nfinal_answer(1)\n```\nand\n```lua\nfinal_answer(2)\n```"
    assert extract_lua_code(text) == "final_answer(1)"


def test_extract_generic_block() -> None:
    """An untagged fence is accepted when no lua block exists."""

    assert extract_lua_code("```\nprint('hi')\n```") == "print('hi')"


def test_extract_raw_text() -> None:
    """Without any fence the reply is used as-is."""

    assert extract_lua_code("final_answer('raw')") == "final_answer('raw')"


def test_format_error() -> None:
    assert format_error("timeout", "Ollama") == "Ollama error: timeout"
    assert format_error({"code": 500}, "OpenAI") == "OpenAI error: {'code': 500}"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
def test_load_llm_by_name() -> None:
    """Providers are looked up case-insensitively and receive keyword arguments."""

    llm = load_llm("Mock", responses=["final_answer(1)"])
    assert isinstance(llm, MockLLM)
    assert llm.generate("prompt") == "final_answer(1)"


def test_load_llm_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Supported providers"):
        load_llm("nonexistent")


# ---------------------------------------------------------------------------
# MockLLM
# ---------------------------------------------------------------------------
def test_mock_llm_records_prompts_and_runs_out() -> None:
    """The mock keeps every prompt and fails once its responses are used up."""

    llm = MockLLM(["```lua\nprint(1)\n```"])
    assert llm.generate("first") == "print(1)"

    with pytest.raises(LLMError, match="no more responses"):
        llm.generate("second")
    assert llm.prompts == ["first", "second"]
    assert llm.calls == 2


# ---------------------------------------------------------------------------
# OllamaLLM
# ---------------------------------------------------------------------------
def test_ollama_generate(monkeypatch: pytest.MonkeyPatch) -> None:
    """The request carries model, prompt and options; the code block is extracted."""

    seen: List[Dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/generate"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"response": "```lua\nfinal_answer(5)\n```"})

    _patch_transport(monkeypatch, handler)
    llm = OllamaLLM(model="tiny", host="http://ollama:11434/", temperature=0.1, max_tokens=64)

    assert llm.generate("add 2 and 3") == "final_answer(5)"
    payload = seen[0]
    assert payload["model"] == "tiny"
    assert payload["prompt"] == "add 2 and 3"
    assert payload["stream"] is False
    assert payload["options"] == {"temperature": 0.1, "num_predict": 64}


def test_ollama_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """HTTP failures become LLMError."""

    _patch_transport(monkeypatch, lambda request: httpx.Response(500, text="overloaded"))

    with pytest.raises(LLMError, match="^Ollama error:"):
        OllamaLLM(host="http://ollama:11434").generate("prompt")


def test_ollama_connection_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _patch_transport(monkeypatch, handler)

    with pytest.raises(LLMError, match="connection refused"):
        OllamaLLM(host="http://ollama:11434").generate("prompt")


def test_ollama_unexpected_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    """A reply without a 'response' field is rejected."""

    _patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"done": True}))

    with pytest.raises(LLMError, match="Unexpected response format"):
        OllamaLLM(host="http://ollama:11434").generate("prompt")
