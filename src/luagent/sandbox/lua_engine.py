"""
Lua execution engine for agent scripts.

A :class:`LuaEngine` owns one Lua interpreter whose globals persist across :meth:`execute`
calls.  Every call rebinds the tools, re-installs the control functions (``print``,
``thought``, ``observation``, ``final_answer``), clears the print buffer and the final-answer
slot, then runs one script fragment and reports how it ended.

One engine belongs to one agent; engines are never shared between concurrent runs.
"""

import logging
import re
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
)

import lupa
from lupa import (
    LuaError,
    LuaRuntime,
)

from luagent.core.errors import ConfigurationError
from luagent.core.schema import (
    ErrorKind,
    ExecutionResult,
    ExecutionStatus,
    Tool,
)
from luagent.sandbox.bridge import bridge_tool
from luagent.sandbox.marshal import (
    to_lua,
    to_python,
)

logger = logging.getLogger(__name__)

PRINT_BUFFER = "_print_buffer"
FINAL_ANSWER_SLOT = "_final_answer"
CONTROL_FUNCTIONS = ("print", "thought", "observation", "final_answer")
RESERVED_NAMES = frozenset(CONTROL_FUNCTIONS) | {PRINT_BUFFER, FINAL_ANSWER_SLOT}

_TOOL_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

# Strips host access and defines the control functions.  Locals keep them working even if a
# script reassigns ``table`` or ``tostring``.
_PRELUDE = """
local concat, select, tostring = table.concat, select, tostring

io = nil
dofile = nil
loadfile = nil
require = nil
package = nil
python = nil
if os ~= nil then
  os.execute = nil
  os.exit = nil
  os.getenv = nil
  os.remove = nil
  os.rename = nil
  os.tmpname = nil
end

local function emit(...)
  local parts = {}
  for i = 1, select("#", ...) do
    parts[i] = tostring((select(i, ...)))
  end
  local line = concat(parts, " ")
  _print_buffer = (_print_buffer or "") .. line .. "\\n"
  return line
end

print = emit

function thought(msg)
  return emit("[THOUGHT] " .. tostring(msg))
end

function observation(msg)
  return emit("[OBSERVATION] " .. tostring(msg))
end

function final_answer(answer)
  _final_answer = answer
  return answer
end
"""


def validate_tool_names(names: Iterable[str]) -> None:
    """Raise :class:`ConfigurationError` for names Lua cannot bind or that are reserved."""
    for name in names:
        if not _TOOL_NAME_RE.match(name):
            raise ConfigurationError(f"Tool name '{name}' is not a valid Lua identifier.")
        if name.split(".", 1)[0] in RESERVED_NAMES:
            raise ConfigurationError(f"Tool name '{name}' collides with a reserved Lua symbol.")


def _key(name: str) -> bytes:
    return name.encode("utf-8")


class LuaEngine:
    """Persistent Lua state plus the machinery to run agent scripts in it."""

    def __init__(self) -> None:
        # Lua strings arrive as bytes; marshal decodes them leniently
        self._lua = LuaRuntime(encoding=None, register_eval=False)
        self._lua.execute(_PRELUDE)
        globals_ = self._lua.globals()
        self._control = {name: globals_[_key(name)] for name in CONTROL_FUNCTIONS}
        self._bound: Dict[str, Tool] = {}
        self._wrappers: Dict[str, Callable[..., Any]] = {}

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def execute(self, code: str, tools: Mapping[str, Tool]) -> ExecutionResult:
        """
        Run *code* against the persistent state with *tools* bound.

        Returns an ``ExecutionResult`` whose status is ``final_answer`` when the script
        called ``final_answer`` with a non-nil value (the last call wins), ``error`` for
        compilation or runtime failures, and ``continue`` otherwise.
        """
        self.bind_tools(tools)
        self._install_control_functions()

        globals_ = self._lua.globals()
        globals_[_key(FINAL_ANSWER_SLOT)] = None
        globals_[_key(PRINT_BUFFER)] = b""

        try:
            chunk = self._lua.compile(code)
        except LuaError as exc:
            logger.info("Script failed to compile: %s", exc)
            return ExecutionResult.failure(ErrorKind.COMPILATION, str(exc))

        try:
            chunk()
        except LuaError as exc:
            logger.info("Script raised a runtime error: %s", exc)
            return ExecutionResult.failure(ErrorKind.RUNTIME, str(exc), output=self.print_buffer)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected host error while running script")
            return ExecutionResult.failure(ErrorKind.RUNTIME, str(exc), output=self.print_buffer)

        output = self.print_buffer
        answer = globals_[_key(FINAL_ANSWER_SLOT)]
        if answer is None:
            return ExecutionResult(status=ExecutionStatus.CONTINUE, output=output)

        try:
            decoded = to_python(self._lua, answer)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Final answer could not be decoded")
            return ExecutionResult.failure(
                ErrorKind.RUNTIME, f"Final answer could not be decoded: {exc}", output=output
            )
        return ExecutionResult(
            status=ExecutionStatus.FINAL_ANSWER, final_answer=decoded, output=output
        )

    def bind_tools(self, tools: Mapping[str, Tool]) -> None:
        """
        Make *tools* callable from Lua, each under its map key.

        Binding the same tool set again reuses the cached wrappers, so repeated calls leave
        the script-visible bindings unchanged.  Tools missing from *tools* are unbound.
        """
        validate_tool_names(tools)

        for name in list(self._bound):
            if name not in tools:
                logger.debug("Unbinding tool '%s'", name)
                self._assign(name, None, create=False)
                del self._bound[name]
                del self._wrappers[name]

        for name, tool in tools.items():
            if self._bound.get(name) is not tool:
                logger.debug("Binding tool '%s'", name)
                self._bound[name] = tool
                self._wrappers[name] = bridge_tool(self._lua, tool)
            self._assign(name, self._wrappers[name])

    @property
    def print_buffer(self) -> str:
        """Text emitted by the last script through ``print``/``thought``/``observation``."""
        value = to_python(self._lua, self._lua.globals()[_key(PRINT_BUFFER)])
        return value if isinstance(value, str) else ""

    def get_global(self, name: str) -> Any:
        """Read a Lua global, decoded to Python."""
        return to_python(self._lua, self._lua.globals()[_key(name)])

    def set_global(self, name: str, value: Any) -> None:
        """Assign a Python value to a Lua global (e.g. task inputs)."""
        if name in RESERVED_NAMES:
            raise ConfigurationError(f"'{name}' is a reserved Lua symbol.")
        self._lua.globals()[_key(name)] = to_lua(self._lua, value)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _install_control_functions(self) -> None:
        globals_ = self._lua.globals()
        for name, function in self._control.items():
            globals_[_key(name)] = function

    def _assign(self, name: str, value: Any, create: bool = True) -> None:
        """Set a possibly dotted name (``json.parse``), creating scope tables as needed."""
        *scopes, leaf = [_key(part) for part in name.split(".")]
        target = self._lua.globals()
        for scope in scopes:
            nested = target[scope]
            if lupa.lua_type(nested) != "table":
                if not create:
                    return
                nested = self._lua.table()
                target[scope] = nested
            target = nested
        target[leaf] = value
