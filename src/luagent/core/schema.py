"""
Schema definitions for agent <-> sandbox <-> tool data.

These data models serve as the contract between the control loop, the Lua sandbox, and individual
tools.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

from datetime import (
    datetime,
    timezone,
)
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class TypeTag(str, Enum):
    """Lua-side type of a tool parameter."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TABLE = "table"


class Parameter(BaseModel):
    """A single tool parameter as shown to the LLM."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeTag | List[TypeTag] = TypeTag.STRING
    description: str = ""
    required: bool = True

    def type_label(self) -> str:
        """Return ``number`` or ``number|string`` for unions."""
        if isinstance(self.type, list):
            return "|".join(tag.value for tag in self.type)
        return self.type.value


class ToolResult(BaseModel):
    """Outcome of a single tool invocation."""

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "ToolResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ToolResult":
        return cls(ok=False, error=error)


class Tool(BaseModel):
    """
    A host function exposed to Lua scripts under a stable name.

    ``function`` is called with the script's positional arguments, already converted to Python
    values.  It may return a plain value, return a :class:`ToolResult`, or raise.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name the script calls the tool by")
    description: str = ""
    parameters: List[Parameter] = Field(default_factory=list)
    function: Callable[..., Any] = Field(..., exclude=True)

    def format_for_prompt(self, name: Optional[str] = None) -> str:
        """Render ``- name(a: number, b?: string): description``."""
        params = ", ".join(
            f"{p.name}{'' if p.required else '?'}: {p.type_label()}" for p in self.parameters
        )
        return f"- {name or self.name}({params}): {self.description}"


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """One entry of the conversation log."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ExecutionStatus(str, Enum):
    """What a single sandbox execution ended with."""

    CONTINUE = "continue"
    FINAL_ANSWER = "final_answer"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Recoverable script failure classes."""

    COMPILATION = "CompilationError"
    RUNTIME = "RuntimeError"


class ExecutionResult(BaseModel):
    """Result of running one script fragment in the sandbox."""

    status: ExecutionStatus
    output: str = ""  # print buffer contents
    final_answer: Any = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, output: str = "") -> "ExecutionResult":
        return cls(status=ExecutionStatus.ERROR, error_kind=kind, error=message, output=output)


class AgentConfig(BaseModel):
    """Immutable per-run agent configuration."""

    model_config = ConfigDict(frozen=True)

    tools: Dict[str, Tool] = Field(default_factory=dict)
    max_iterations: int = Field(10, ge=0)
    name: str = "Luagent"
