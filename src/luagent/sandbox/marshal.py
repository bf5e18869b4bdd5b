"""
Conversion between Python values and Lua values.

Both directions are total: :func:`to_lua` always produces something Lua can hold and
:func:`to_python` always produces some Python value, collapsing anything it cannot represent
(functions, coroutines, userdata, cycles, nesting deeper than :data:`MAX_DEPTH`) to
``None``.

Strings cross the boundary as UTF-8 bytes, so the runtime may be created with
``encoding=None``; bytes that are not valid UTF-8 decode with replacement characters.
"""

import dataclasses
import json
import logging
from collections.abc import (
    Mapping,
    Sequence,
)
from enum import Enum
from typing import (
    Any,
    Set,
)

import lupa
from pydantic import BaseModel

logger = logging.getLogger(__name__)

MAX_DEPTH = 100
"""Tables nested deeper than this decode to ``None``."""


class LuaKind(str, Enum):
    """Tagged view of a value coming out of Lua."""

    NIL = "nil"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    TABLE = "table"
    OPAQUE = "opaque"  # functions, coroutines, userdata, wrapped Python objects


def kind_of(value: Any) -> LuaKind:
    """Classify a value returned by the Lua runtime."""
    if value is None:
        return LuaKind.NIL
    if isinstance(value, bool):
        return LuaKind.BOOLEAN
    if isinstance(value, (int, float)):
        return LuaKind.NUMBER
    if isinstance(value, (str, bytes)):
        return LuaKind.STRING
    if lupa.lua_type(value) == "table":
        return LuaKind.TABLE
    return LuaKind.OPAQUE


# ---------------------------------------------------------------------------
# Python -> Lua
# ---------------------------------------------------------------------------
def to_lua(runtime: Any, value: Any) -> Any:
    """
    Encode *value* for the Lua state owned by *runtime*.

    Sequences become 1-indexed tables and mappings become string-keyed tables, recursively.
    Pydantic models and dataclasses are dumped to mappings first.  Values with no Lua
    counterpart are passed as their ``str()``.
    """
    if value is None or isinstance(value, (bool, int, float, bytes)):
        return value
    if isinstance(value, str):
        return value.encode("utf-8", errors="replace")
    if lupa.lua_type(value) is not None:
        return value  # already a Lua object
    if isinstance(value, BaseModel):
        return to_lua(runtime, value.model_dump(mode="json"))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_lua(runtime, dataclasses.asdict(value))
    if isinstance(value, Enum):
        return to_lua(runtime, value.value)

    if isinstance(value, Mapping):
        table = runtime.table()
        for key, item in value.items():
            table[_key_to_lua(key)] = to_lua(runtime, item)
        return table
    if isinstance(value, (Sequence, set, frozenset)):
        table = runtime.table()
        for index, item in enumerate(value, start=1):
            table[index] = to_lua(runtime, item)
        return table

    logger.debug("No Lua counterpart for %s, passing str()", type(value).__name__)
    return str(value)


# ---------------------------------------------------------------------------
# Lua -> Python
# ---------------------------------------------------------------------------
# Numbers each distinct table it is given; every table handed to Python arrives in a fresh
# wrapper object, so identity has to be decided on the Lua side.
_TABLE_IDS = """
local ids, last = {}, 0
return function(t)
  local id = ids[t]
  if id == nil then
    last = last + 1
    id = last
    ids[t] = id
  end
  return id
end
"""


def to_python(runtime: Any, value: Any) -> Any:
    """
    Decode a Lua value from *runtime* into plain Python data.

    A table whose keys are exactly ``1..N`` becomes a list; any other table becomes a dict
    with string keys.
    """
    return _Decoder(runtime).decode(value, 0)


class _Decoder:
    """One decoding pass; remembers the tables on the current path to cut cycles."""

    def __init__(self, runtime: Any) -> None:
        self._runtime = runtime
        self._table_id: Any = None
        self._path: Set[int] = set()

    def decode(self, value: Any, depth: int) -> Any:
        kind = kind_of(value)
        if kind is LuaKind.STRING:
            if isinstance(value, bytes):
                return value.decode("utf-8", errors="replace")
            return value
        if kind in (LuaKind.NIL, LuaKind.BOOLEAN, LuaKind.NUMBER):
            return value
        if kind is LuaKind.OPAQUE:
            return None

        if depth >= MAX_DEPTH:
            return None
        marker = self._identity(value)
        if marker in self._path:
            return None  # cyclic reference
        self._path.add(marker)
        try:
            items = list(value.items())
            keys = [key for key, _ in items]
            if all(isinstance(key, int) and not isinstance(key, bool) for key in keys) and sorted(
                keys
            ) == list(range(1, len(keys) + 1)):
                items.sort(key=lambda kv: kv[0])
                return [self.decode(item, depth + 1) for _, item in items]
            return {_key_to_str(key): self.decode(item, depth + 1) for key, item in items}
        finally:
            self._path.discard(marker)

    def _identity(self, table: Any) -> int:
        if self._table_id is None:
            self._table_id = self._runtime.execute(_TABLE_IDS)
        return self._table_id(table)


def _key_to_lua(key: Any) -> bytes:
    if isinstance(key, bytes):
        return key
    return (key if isinstance(key, str) else str(key)).encode("utf-8", errors="replace")


def _key_to_str(key: Any) -> str:
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, float) and key.is_integer():
        return str(int(key))
    return str(key)


def to_text(value: Any) -> str:
    """Render an already-decoded final answer as text for the caller."""
    if value is None:
        return "nil"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
