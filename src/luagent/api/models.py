"""
Pydantic models for the luagent API.
This module defines the request and response schemas used by the luagent API.
"""

from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class SessionResponse(BaseModel):
    """Response with session information."""

    session_id: str


class TaskRequest(BaseModel):
    """A task for the agent to solve."""

    task: str = Field(..., min_length=1, description="Task for the agent")
    session_id: Optional[str] = Field(None, description="Session whose agent should run the task")
    max_iterations: Optional[int] = Field(
        None, ge=0, description="Iteration budget for a new session (default from settings)"
    )


class TaskResponse(BaseModel):
    """API response returned to the caller."""

    answer: str
    session_id: str


class MessageOut(BaseModel):
    """One conversation entry of a session."""

    role: str
    content: str
    timestamp: str


class HistoryResponse(BaseModel):
    """Conversation history of a session."""

    session_id: str
    messages: List[MessageOut]
