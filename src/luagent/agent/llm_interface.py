"""
LLM interface for luagent.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop,
sandbox, tools, memory) stays model-agnostic: an LLM takes the rendered prompt and returns the
Lua code to run next.

We support these back-ends out of the box:

1. **Ollama** for local models, over its HTTP API (default).
2. **Anthropic / OpenAI** via their SDKs (requires env keys).
3. **Mock**, replaying scripted responses (tests, offline demos).

Additional providers can be added by subclassing :class:`BaseLLM` and registering via
:func:`register_llm`.
"""

import logging
import re
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Type,
)

import httpx

from luagent.config import settings
from luagent.core.errors import LLMError

logger = logging.getLogger(__name__)

_LUA_BLOCK_RE = re.compile(r"```lua\s*(.*?)\s*```", re.DOTALL)
_ANY_BLOCK_RE = re.compile(r"```\s*(.*?)\s*```", re.DOTALL)


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------
def extract_lua_code(text: str) -> str:
    """
    Pull the Lua fragment out of an LLM reply.

    Takes the first ```` ```lua ```` block, else the first generic fenced block, else returns
    *text* unchanged.
    """
    match = _LUA_BLOCK_RE.search(text) or _ANY_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def format_error(error: Any, provider: str) -> str:
    """Format provider errors consistently: ``"<Provider> error: <detail>"``."""
    detail = error if isinstance(error, str) else repr(error)
    return f"{provider} error: {detail}"


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_LLM_REGISTRY: dict[str, Type["BaseLLM"]] = {}


def register_llm(name: str) -> Callable:
    """Decorator to register an LLM class under *name*."""

    def wrapper(cls: Type["BaseLLM"]) -> Type["BaseLLM"]:
        _LLM_REGISTRY[name] = cls
        return cls

    return wrapper


def load_llm(name: str | None = None, **kwargs: Any) -> "BaseLLM":
    """
    Factory that returns an instantiated LLM.

    Fallback order:
    1. *name* arg
    2. ``settings.LLM_PROVIDER`` env option
    3. default: ``"ollama"``

    Extra keyword arguments are passed to the provider's constructor.
    """

    target = name or getattr(settings, "LLM_PROVIDER", "ollama")
    cls = _LLM_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(
            f"LLM provider '{target}' is not registered. "
            f"Supported providers: {', '.join(sorted(_LLM_REGISTRY))}"
        )
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseLLM(ABC):
    """Abstract LLM that turns a prompt into the next Lua fragment."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return the Lua code to execute next, or raise :class:`LLMError`."""


# ---------------------------------------------------------------------------
# Concrete providers
# ---------------------------------------------------------------------------
@register_llm("ollama")
class OllamaLLM(BaseLLM):
    """Local Ollama server over its ``/api/generate`` endpoint."""

    def __init__(
        self,
        model: str | None = None,
        host: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        options: Dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.model = model or settings.OLLAMA_MODEL
        self.host = (host or settings.OLLAMA_HOST).rstrip("/")
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens
        self.options = options or {}
        self.timeout = timeout or settings.LLM_TIMEOUT

    def generate(self, prompt: str) -> str:
        request_options: Dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens:
            request_options["num_predict"] = self.max_tokens
        request_options.update(self.options)

        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": request_options,
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(f"{self.host}/api/generate", json=payload)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as e:
            logger.error("Ollama request error: %s", str(e))
            raise LLMError(format_error(str(e), "Ollama")) from e
        except ValueError as e:
            logger.error("Ollama returned invalid JSON: %s", str(e))
            raise LLMError(format_error(str(e), "Ollama")) from e

        content = body.get("response") if isinstance(body, dict) else None
        if content is None:
            raise LLMError("Unexpected response format from Ollama API")

        logger.debug("Ollama response: %s", content)
        return extract_lua_code(content)


@register_llm("anthropic")
class AnthropicLLM(BaseLLM):
    """Anthropic Claude via the official SDK."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.model = model or settings.ANTHROPIC_MODEL
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self.timeout = timeout or settings.LLM_TIMEOUT

    def generate(self, prompt: str) -> str:
        try:
            import anthropic  # pylint: disable=import-outside-toplevel
        except ImportError as e:
            logger.error("Anthropic SDK not installed")
            raise LLMError("Anthropic SDK not installed. Run 'pip install anthropic'") from e

        try:
            client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
            response = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Anthropic request error: %s", str(e))
            raise LLMError(format_error(str(e), "Anthropic")) from e

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not content:
            raise LLMError("Unexpected response format from Anthropic API")

        logger.debug("Anthropic response: %s", content)
        return extract_lua_code(content)


@register_llm("openai")
class OpenAILLM(BaseLLM):
    """OpenAI chat completions via the official SDK."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.model = model or settings.OPENAI_MODEL
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self.timeout = timeout or settings.LLM_TIMEOUT

    def generate(self, prompt: str) -> str:
        try:
            import openai  # pylint: disable=import-outside-toplevel
        except ImportError as e:
            logger.error("OpenAI SDK not installed")
            raise LLMError("OpenAI SDK not installed. Run 'pip install openai'") from e

        try:
            client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)
            resp = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("OpenAI request error: %s", str(e))
            raise LLMError(format_error(str(e), "OpenAI")) from e

        content = resp.choices[0].message.content
        if not content:
            raise LLMError("OpenAI error: empty response")

        logger.debug("OpenAI response: %s", content)
        return extract_lua_code(content)


@register_llm("mock")
class MockLLM(BaseLLM):
    """
    Replays a fixed list of responses, one per ``generate`` call.

    Every prompt received is kept in :attr:`prompts`.  Once the responses run out, ``generate``
    raises :class:`LLMError`.
    """

    def __init__(self, responses: Sequence[str] = ()) -> None:
        self._responses: List[str] = list(responses)
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            raise LLMError("Mock error: no more responses")
        return extract_lua_code(self._responses.pop(0))

    @property
    def calls(self) -> int:
        return len(self.prompts)
