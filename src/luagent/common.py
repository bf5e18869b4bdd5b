"""Terminal output shared by the entry point, the API launcher and the CLI shell."""

import os
import sys
from enum import Enum
from typing import (
    Any,
    TextIO,
)

RESET = "\033[0m"


class AnsiColors(Enum):
    """ANSI colours, one per kind of line luagent prints."""

    RED = "\033[91m"  # errors
    GREEN = "\033[92m"  # banners
    YELLOW = "\033[33m"  # answers
    BLUE = "\033[94m"  # prompts and links


def use_color(stream: TextIO) -> bool:
    """Colour interactive terminals only, and never when ``NO_COLOR`` is set."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty is not None and isatty())


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print *text* in *color*.

    Extra arguments go to :func:`print`.  Output redirected to a file or a pipe is written
    without escape codes.
    """
    stream = kwargs.get("file") or sys.stdout
    if use_color(stream):
        text = f"{color.value}{text}{RESET}"
    print(text, *args, **kwargs)


def print_answer(answer: str) -> None:
    colored_print(answer, AnsiColors.YELLOW)


def print_error(message: str) -> None:
    colored_print(f"⚠️ {message}", AnsiColors.RED)
