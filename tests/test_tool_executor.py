"""
Basic sanity tests for the tool executor.

Run with:
$ pytest -q
"""

from luagent.agent.tool_executor import (
    ToolExecutionError,
    execute_tool,
)
from luagent.core.schema import (
    Tool,
    ToolResult,
)


def _add(a: int, b: int) -> int:
    """Return the sum of two integers (used only for tests)."""

    return a + b


ADD = Tool(name="add", description="Add two numbers", function=_add)


def test_execute_tool_success() -> None:
    """Executor should wrap the returned value in a successful result."""

    result = execute_tool(ADD, [2, 3])
    assert result.ok
    assert result.value == 5


def test_execute_tool_bad_args() -> None:
    """Executor should report wrong arguments instead of raising."""

    result = execute_tool(ADD, [2])  # missing 'b'
    assert not result.ok
    assert "Invalid arguments" in (result.error or "")


def test_execute_tool_reported_error() -> None:
    """A ToolExecutionError raised by the tool becomes a failure with its message."""

    def refuse() -> None:
        raise ToolExecutionError("not today")

    result = execute_tool(Tool(name="refuse", function=refuse))
    assert result == ToolResult.failure("not today")


def test_execute_tool_crash_is_contained() -> None:
    """Any other exception is converted, never propagated."""

    def crash() -> None:
        raise ZeroDivisionError("boom")

    result = execute_tool(Tool(name="crash", function=crash), [])
    assert not result.ok
    assert "boom" in (result.error or "")


def test_execute_tool_passes_explicit_result_through() -> None:
    """A tool may return a ToolResult itself to signal failure without raising."""

    tool = Tool(name="explicit", function=lambda: ToolResult.failure("no data source"))
    assert execute_tool(tool).error == "no data source"
