"""Tests for prompt rendering."""

from luagent.agent.prompts import (
    format_tools,
    system_prompt,
)
from luagent.core.schema import Role
from luagent.memory.conversation import ConversationMemory
from luagent.tools import builtin_tools


def test_format_tools_is_sorted() -> None:
    lines = format_tools(builtin_tools()).splitlines()
    assert [line.split("(")[0] for line in lines] == ["- add", "- concat", "- multiply", "- search"]
    assert lines[0] == "- add(a: number, b: number): Add two numbers."


def test_system_prompt_contains_tools_and_history() -> None:
    """The prompt lists the tools in a Lua block and ends with the conversation."""

    memory = ConversationMemory()
    memory.add_message(Role.USER, "Add 2 and 3")
    memory.add_message(Role.SYSTEM, "Error: RuntimeError: boom")

    prompt = system_prompt(builtin_tools(), memory)

    assert "final_answer(answer)" in prompt
    assert "```lua\n- add(a: number, b: number): Add two numbers." in prompt
    assert "Conversation history:\nUSER: Add 2 and 3\nSYSTEM: Error: RuntimeError: boom" in prompt
    assert prompt.endswith("Now write code to solve the user's task:\n")


def test_system_prompt_without_tools() -> None:
    prompt = system_prompt({}, ConversationMemory())
    assert "```lua\n-- (no tools available)\n```" in prompt
