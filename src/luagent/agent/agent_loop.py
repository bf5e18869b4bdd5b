"""Main orchestration loop for luagent."""

from __future__ import annotations

import logging
import threading
from typing import (
    Any,
    Mapping,
)

from luagent.agent.llm_interface import (
    BaseLLM,
    load_llm,
)
from luagent.agent.prompts import system_prompt
from luagent.config import settings
from luagent.core.errors import (
    AgentCancelled,
    LLMError,
    MaxIterationsReached,
)
from luagent.core.schema import (
    AgentConfig,
    ExecutionResult,
    ExecutionStatus,
    Role,
    Tool,
)
from luagent.memory.conversation import ConversationMemory
from luagent.sandbox.lua_engine import (
    LuaEngine,
    validate_tool_names,
)
from luagent.sandbox.marshal import to_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------
class Agent:
    """
    Drives the LLM <-> Lua cycle until a final answer or a terminal error.

    Each agent owns its conversation memory and its Lua state; both carry over between
    :meth:`run` calls, so a follow-up task can use globals an earlier script defined.
    """

    def __init__(
        self,
        llm: BaseLLM,
        tools: Mapping[str, Tool] | None = None,
        max_iterations: int | None = None,
        name: str | None = None,
        memory: ConversationMemory | None = None,
    ) -> None:
        tools = dict(tools or {})
        validate_tool_names(tools)

        self.config = AgentConfig(
            tools=tools,
            max_iterations=settings.MAX_ITERATIONS if max_iterations is None else max_iterations,
            name=name or settings.AGENT_NAME,
        )
        self.llm = llm
        self.memory = memory if memory is not None else ConversationMemory()
        self.engine = LuaEngine()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def tools(self) -> Mapping[str, Tool]:
        return self.config.tools

    def run(self, task: str, cancel_event: threading.Event | None = None) -> str:
        """
        Solve *task* and return the final answer as text.

        Raises
        ------
        LLMError
            The LLM failed; not retried.
        MaxIterationsReached
            No final answer within ``max_iterations`` attempts.
        AgentCancelled
            *cancel_event* was set before an iteration started.
        """
        self.memory.add_message(Role.USER, task)
        logger.info("[%s] Starting task: %s", self.name, task)

        for iteration in range(self.config.max_iterations):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("[%s] Cancelled before iteration %d", self.name, iteration + 1)
                raise AgentCancelled(f"Cancelled before iteration {iteration + 1}")

            code = self._generate()
            self.memory.add_message(Role.ASSISTANT, code)
            logger.debug("[%s] Iteration %d script:\n%s", self.name, iteration + 1, code)

            result = self.engine.execute(code, self.config.tools)

            if result.status is ExecutionStatus.FINAL_ANSWER:
                answer = to_text(result.final_answer)
                logger.info(
                    "[%s] Final answer after %d iteration(s): %s", self.name, iteration + 1, answer
                )
                return answer

            self._record(result)

        logger.warning("[%s] Gave up after %d iteration(s)", self.name, self.config.max_iterations)
        raise MaxIterationsReached(self.config.max_iterations)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _generate(self) -> str:
        prompt = system_prompt(self.config.tools, self.memory)
        try:
            return self.llm.generate(prompt)
        except LLMError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("[%s] LLM call crashed: %s", self.name, exc)
            raise LLMError(str(exc)) from exc

    def _record(self, result: ExecutionResult) -> None:
        """Append what the script produced so the next prompt can react to it."""
        if result.status is ExecutionStatus.ERROR:
            kind = result.error_kind.value if result.error_kind else "Error"
            logger.info("[%s] Script failed: %s: %s", self.name, kind, result.error)
            self.memory.add_message(Role.SYSTEM, f"Error: {kind}: {result.error}")
        elif result.output:
            self.memory.add_message(Role.SYSTEM, result.output)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------
def create_agent(
    llm: BaseLLM | None = None,
    tools: Mapping[str, Tool] | None = None,
    **kwargs: Any,
) -> Agent:
    """
    Build an agent with sensible defaults.

    *llm* defaults to :func:`load_llm` (``settings.LLM_PROVIDER``); *tools* default to the
    built-in tool set.  Remaining keyword arguments go to :class:`Agent`.
    """
    if tools is None:
        from luagent.tools import builtin_tools  # pylint: disable=import-outside-toplevel

        tools = builtin_tools()
    return Agent(llm=llm or load_llm(), tools=tools, **kwargs)


def run_task(task: str, **kwargs: Any) -> str:
    """One-shot helper: ``create_agent(**kwargs).run(task)``."""
    return create_agent(**kwargs).run(task)
