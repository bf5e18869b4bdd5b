"""Logging tools, exposed to Lua as ``log.debug``, ``log.info``, ``log.warning``, ``log.error``
and ``log.log``.  Records go to the ``luagent.script`` logger."""

import logging
from typing import (
    Any,
    Dict,
)

from luagent.tools import register_tool

script_logger = logging.getLogger("luagent.script")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _emit(level: int, message: Any, metadata: Dict[str, Any] | None) -> None:
    if metadata:
        script_logger.log(level, "%s %s", message, metadata)
    else:
        script_logger.log(level, "%s", message)


@register_tool("log.debug")
def debug(message: str, metadata: Dict[str, Any] | None = None) -> None:
    """
    Log a debug message.

    Args:
        message: The message to log
        metadata: Optional table of extra fields
    """
    _emit(logging.DEBUG, message, metadata)


@register_tool("log.info")
def info(message: str, metadata: Dict[str, Any] | None = None) -> None:
    """
    Log an info message.

    Args:
        message: The message to log
        metadata: Optional table of extra fields
    """
    _emit(logging.INFO, message, metadata)


@register_tool("log.warning")
def warning(message: str, metadata: Dict[str, Any] | None = None) -> None:
    """
    Log a warning message.

    Args:
        message: The message to log
        metadata: Optional table of extra fields
    """
    _emit(logging.WARNING, message, metadata)


@register_tool("log.error")
def error(message: str, metadata: Dict[str, Any] | None = None) -> None:
    """
    Log an error message.

    Args:
        message: The message to log
        metadata: Optional table of extra fields
    """
    _emit(logging.ERROR, message, metadata)


@register_tool("log.log")
def log(level: str, message: str, metadata: Dict[str, Any] | None = None) -> None:
    """
    Log a message at the given level; unknown levels log at info.

    Args:
        level: One of debug, info, warning, error
        message: The message to log
        metadata: Optional table of extra fields
    """
    _emit(_LEVELS.get(str(level).lower(), logging.INFO), message, metadata)
