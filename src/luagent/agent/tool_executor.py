"""Invokes a :class:`~luagent.core.schema.Tool` and turns every outcome into a ``ToolResult``."""

import logging
from typing import (
    Any,
    Sequence,
)

from luagent.core.schema import (
    Tool,
    ToolResult,
)

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised by a tool function to report a failure to the agent."""


def execute_tool(tool: Tool, args: Sequence[Any] | None = None) -> ToolResult:
    """
    Call *tool* with the positional *args* and capture the outcome.

    Parameters
    ----------
    tool:
        The tool to invoke.
    args:
        Positional arguments, already converted to Python values.  If *None*,
        no arguments are passed.

    Returns
    -------
    ToolResult
        ``ok`` with the returned value, or a failure carrying the error text.  A tool that
        returns a ``ToolResult`` itself is passed through unchanged.  This function never
        raises.
    """

    if args is None:
        args = ()

    try:
        logger.debug("Executing tool '%s' with args=%s", tool.name, args)
        value = tool.function(*args)
    except ToolExecutionError as exc:
        logger.warning("Tool '%s' reported an error: %s", tool.name, exc)
        return ToolResult.failure(str(exc))
    except TypeError as exc:
        # Argument mismatch: give the caller a clean message
        logger.exception("Argument error while executing tool '%s'", tool.name)
        return ToolResult.failure(f"Invalid arguments for tool '{tool.name}': {exc}")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", tool.name)
        return ToolResult.failure(f"Tool '{tool.name}' raised an error: {exc}")

    if isinstance(value, ToolResult):
        return value
    return ToolResult.success(value)
