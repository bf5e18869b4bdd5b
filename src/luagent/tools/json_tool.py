"""
JSON parsing and encoding tools, exposed to Lua as ``json.parse``, ``json.encode`` and
``json.pretty``.  Each returns ``nil`` to the script on error.
"""

import json
from typing import Any

from luagent.agent.tool_executor import ToolExecutionError
from luagent.tools import register_tool


@register_tool("json.parse")
def parse(json_string: str) -> Any:
    """
    Parse a JSON string into a Lua value (objects and arrays become tables).

    Args:
        json_string: The JSON string to parse
    """
    try:
        return json.loads(json_string)
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError(f"Invalid JSON: {exc}") from exc


@register_tool("json.encode")
def encode(data: Any) -> str:
    """
    Encode a Lua table or value into a compact JSON string.

    Args:
        data: The Lua table or value to encode
    """
    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError(f"Cannot encode as JSON: {exc}") from exc


@register_tool("json.pretty")
def pretty(data: Any) -> str:
    """
    Encode a Lua table or value into an indented JSON string.

    Args:
        data: The Lua table or value to encode
    """
    try:
        return json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError(f"Cannot encode as JSON: {exc}") from exc
