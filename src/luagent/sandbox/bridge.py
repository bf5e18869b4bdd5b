"""Wraps a host tool as a Lua-callable function with fault isolation."""

import logging
from typing import (
    Any,
    Callable,
)

from luagent.agent.tool_executor import execute_tool
from luagent.core.schema import Tool
from luagent.sandbox.marshal import (
    to_lua,
    to_python,
)

logger = logging.getLogger(__name__)


def bridge_tool(runtime: Any, tool: Tool) -> Callable[..., Any]:
    """
    Build the function bound into Lua under ``tool.name``.

    Lua arguments are decoded positionally and the tool's value is encoded back.  A failed or
    crashing tool returns ``nil`` to the script; the error is only logged.
    """

    def call_tool(*args: Any) -> Any:
        try:
            decoded = [to_python(runtime, arg) for arg in args]
            result = execute_tool(tool, decoded)
            if not result.ok:
                logger.warning(
                    "Tool '%s' failed, returning nil to script: %s", tool.name, result.error
                )
                return None
            return to_lua(runtime, result.value)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Tool bridge for '%s' crashed, returning nil to script", tool.name)
            return None

    call_tool.__name__ = f"lua_{tool.name.replace('.', '_')}"
    return call_tool
