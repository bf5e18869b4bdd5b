"""
Tool registry for luagent.

This module provides a decorator to register tools and a registry to look them up by name.
Tools are plain Python functions; their :class:`~luagent.core.schema.Tool` metadata (parameter
names, Lua type tags, descriptions) is derived from the signature, type hints and a
Google-style docstring.
"""

import collections.abc
import importlib
import inspect
import logging
import re
import types
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from luagent.core.schema import (
    Parameter,
    Tool,
    TypeTag,
)

logger = logging.getLogger(__name__)

TOOL_REGISTRY: Dict[str, Tool] = {}
"""Global registry of tools, keyed by the name scripts call them by."""

BUILTIN_MODULES = (
    "luagent.tools.builtin",
    "luagent.tools.json_tool",
    "luagent.tools.http_tool",
    "luagent.tools.logger_tool",
)

_TYPE_TAGS: Dict[Any, TypeTag] = {
    str: TypeTag.STRING,
    int: TypeTag.NUMBER,
    float: TypeTag.NUMBER,
    bool: TypeTag.BOOLEAN,
    list: TypeTag.TABLE,
    tuple: TypeTag.TABLE,
    dict: TypeTag.TABLE,
}
_ARG_LINE_RE = re.compile(r"^\s*(\*{0,2}\w+)\s*(?:\([^)]*\))?\s*:\s*(.*)$")


# ---------------------------------------------------------------------------
# Metadata derivation
# ---------------------------------------------------------------------------
def _type_tags(annotation: Any) -> List[TypeTag]:
    """Map a Python annotation to the Lua type tags it accepts."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        tags: List[TypeTag] = []
        for arg in get_args(annotation):
            if arg is type(None):
                continue
            for tag in _type_tags(arg):
                if tag not in tags:
                    tags.append(tag)
        return tags
    if origin is not None:
        annotation = origin

    if annotation in _TYPE_TAGS:
        return [_TYPE_TAGS[annotation]]
    if isinstance(annotation, type) and issubclass(
        annotation, (collections.abc.Mapping, collections.abc.Sequence)
    ):
        return [TypeTag.TABLE]
    return [TypeTag.STRING]


def _parse_docstring(doc: str) -> tuple[str, Dict[str, str]]:
    """Split a docstring into its summary paragraph and ``Args:`` descriptions."""
    summary_lines: List[str] = []
    arg_docs: Dict[str, str] = {}
    summary_done = False
    in_args = False
    for line in doc.splitlines():
        stripped = line.strip()
        if stripped.lower() in {"args:", "arguments:", "parameters:"}:
            in_args = summary_done = True
            continue
        if in_args:
            if stripped and not line[0].isspace():
                in_args = False  # next section, e.g. "Returns:"
            else:
                match = _ARG_LINE_RE.match(line)
                if match:
                    arg_docs[match.group(1).lstrip("*")] = match.group(2).strip()
                continue
        if not summary_done:
            if stripped:
                summary_lines.append(stripped)
            elif summary_lines:
                summary_done = True
    return " ".join(summary_lines), arg_docs


def tool_from_function(
    fn: Callable[..., Any], name: str | None = None, description: str | None = None
) -> Tool:
    """
    Build a :class:`Tool` from a plain function.

    Parameters without a default are required.  ``Optional[X]`` and ``X | Y`` annotations
    become type unions; unannotated parameters are documented as ``string``.
    """
    sig = inspect.signature(fn)
    try:
        type_hints = get_type_hints(fn)
    except Exception:  # pylint: disable=broad-except
        type_hints = {}
    summary, arg_docs = _parse_docstring(inspect.getdoc(fn) or "")

    params: List[Parameter] = []
    for param_name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_KEYWORD, inspect.Parameter.KEYWORD_ONLY):
            continue
        tags = _type_tags(type_hints.get(param_name, str))
        params.append(
            Parameter(
                name=param_name,
                type=tags[0] if len(tags) == 1 else tags,
                description=arg_docs.get(param_name, ""),
                required=(
                    param.default is inspect.Parameter.empty
                    and param.kind is not inspect.Parameter.VAR_POSITIONAL
                ),
            )
        )

    return Tool(
        name=name or fn.__name__,
        description=description if description is not None else summary,
        parameters=params,
        function=fn,
    )


def create_tool(
    name: str,
    description: str,
    parameters: Sequence[Parameter | Dict[str, Any]],
    function: Callable[..., Any],
) -> Tool:
    """Build a :class:`Tool` from explicit metadata."""
    return Tool(
        name=name,
        description=description,
        parameters=[p if isinstance(p, Parameter) else Parameter(**p) for p in parameters],
        function=function,
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
def register_tool(name: str, description: str | None = None) -> Callable:
    """
    Register a tool function with the given name.
    The name must be unique and is what scripts call the tool by; a dotted name such as
    ``"json.parse"`` is exposed to Lua as a field of the ``json`` table.

    The function is registered as a decorator, so it can be used like this:
        @register_tool("add")
        def add(a: float, b: float) -> float:
            \"\"\"Add two numbers.\"\"\"
            return a + b

    Parameters
    ----------
    name: str
        The name of the tool.
    description: str | None
        Overrides the docstring summary.
    Returns
    -------
    Callable
        A decorator that registers the function and returns it unchanged.
    Raises
    ------
    ValueError
        If a tool with the same name is already registered.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name}' is already registered.")
    logger.debug("Registering tool '%s'", name)

    def wrapper(fn: Callable) -> Callable:
        TOOL_REGISTRY[name] = tool_from_function(fn, name=name, description=description)
        return fn

    return wrapper


def load_builtin_modules() -> None:
    """Import the bundled tool modules so their tools land in :data:`TOOL_REGISTRY`."""
    for module in BUILTIN_MODULES:
        importlib.import_module(module)


def get_tools(*names: str) -> Dict[str, Tool]:
    """
    Return registered tools as a ``{name: Tool}`` map.

    With no *names*, every registered tool is returned.  A name ending in ``.*`` selects a
    whole scope, e.g. ``get_tools("json.*")``.
    """
    load_builtin_modules()
    if not names:
        return dict(TOOL_REGISTRY)

    selected: Dict[str, Tool] = {}
    for wanted in names:
        if wanted.endswith(".*"):
            prefix = wanted[:-1]
            matches = {k: v for k, v in TOOL_REGISTRY.items() if k.startswith(prefix)}
            if not matches:
                raise KeyError(f"No tools registered under scope '{wanted[:-2]}'.")
            selected.update(matches)
        elif wanted in TOOL_REGISTRY:
            selected[wanted] = TOOL_REGISTRY[wanted]
        else:
            raise KeyError(f"Tool '{wanted}' is not registered.")
    return selected


def builtin_tools() -> Dict[str, Tool]:
    """The default tool set: arithmetic, ``concat`` and the mock ``search``."""
    return get_tools("add", "multiply", "concat", "search")
