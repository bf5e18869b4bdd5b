"""Default tools handed to an agent when none are given."""

from typing import List

from luagent.agent.tool_executor import ToolExecutionError
from luagent.tools import register_tool


@register_tool("add")
def add(a: float, b: float) -> float:
    """
    Add two numbers.

    Args:
        a: First number
        b: Second number
    """
    return a + b


@register_tool("multiply")
def multiply(a: float, b: float) -> float:
    """
    Multiply two numbers.

    Args:
        a: First number
        b: Second number
    """
    return a * b


@register_tool("concat")
def concat(strings: List[str]) -> str:
    """
    Concatenate strings.

    Args:
        strings: List of strings to concatenate
    """
    if not isinstance(strings, list):
        raise ToolExecutionError("concat expects a list of strings")
    return "".join(str(s) for s in strings)


@register_tool("search")
def search(query: str) -> str:
    """
    Search for information (mock implementation).

    Args:
        query: Search query
    """
    return f"Mock search results for: {query}"
