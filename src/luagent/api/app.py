"""
Core API backend for luagent.

This module exposes agents over a RESTful API that's used by the CLI client.
It exposes the following endpoints:
- **GET /health**  - liveness probe for health checks.
- **POST /sessions** - create a new session (one agent with its own Lua state), returns its ID.
- **GET /sessions** - list all active sessions.
- **GET /sessions/{id}/messages** - conversation history of a session.
- **DELETE /sessions/{id}** - drop a session.
- **POST /agent**   - run a task: {"task": "...", "session_id": "..."}
"""

import logging
import threading
import uuid
from typing import (
    Dict,
    List,
    Optional,
    Tuple,
)

from fastapi import (
    FastAPI,
    HTTPException,
)

from luagent.agent.agent_loop import Agent
from luagent.agent.llm_interface import load_llm
from luagent.api.models import (
    HistoryResponse,
    MessageOut,
    SessionResponse,
    TaskRequest,
    TaskResponse,
)
from luagent.common import (
    AnsiColors,
    colored_print,
)
from luagent.config import settings
from luagent.core.errors import (
    LLMError,
    MaxIterationsReached,
)
from luagent.tools import builtin_tools

logger = logging.getLogger(__name__)

# Session storage (in-memory only; agents do not survive a restart)
sessions: Dict[str, Agent] = {}
_session_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()

app = FastAPI(title="luagent API", version="0.1.0", description="Lua-scripting agent API")


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------
def create_session(max_iterations: Optional[int] = None) -> str:
    """Create a new agent with its own memory and Lua state."""
    agent = Agent(llm=load_llm(), tools=builtin_tools(), max_iterations=max_iterations)
    session_id = str(uuid.uuid4())
    with _registry_lock:
        sessions[session_id] = agent
        _session_locks[session_id] = threading.Lock()
    logger.info("Created session %s", session_id)
    return session_id


def get_or_create_session(
    session_id: Optional[str] = None, max_iterations: Optional[int] = None
) -> str:
    """Get existing session or create a new one."""
    if session_id and session_id in sessions:
        return session_id
    return create_session(max_iterations)


def _get_session(session_id: str) -> Agent:
    return _get_session_and_lock(session_id)[0]


def _get_session_and_lock(session_id: str) -> Tuple[Agent, threading.Lock]:
    """Look up an agent and its run lock together, so a concurrent delete cannot split them."""
    with _registry_lock:
        agent = sessions.get(session_id)
        lock = _session_locks.get(session_id)
    if agent is None or lock is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    return agent, lock


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.post("/sessions", response_model=SessionResponse, summary="Create a new session")
def new_session() -> SessionResponse:
    """Create a new agent session."""
    return SessionResponse(session_id=create_session())


@app.get("/sessions", response_model=List[str], summary="List active sessions")
async def list_sessions() -> List[str]:
    """List all active session IDs."""
    return list(sessions.keys())


@app.get(
    "/sessions/{session_id}/messages",
    response_model=HistoryResponse,
    summary="Conversation history",
)
async def session_messages(session_id: str) -> HistoryResponse:
    """Return the messages recorded by a session's agent."""
    agent = _get_session(session_id)
    messages = [
        MessageOut(role=m.role.value, content=m.content, timestamp=m.timestamp.isoformat())
        for m in agent.memory.get_messages()
    ]
    return HistoryResponse(session_id=session_id, messages=messages)


@app.delete("/sessions/{session_id}", summary="Delete a session")
async def delete_session(session_id: str) -> dict[str, str]:
    """Forget a session and its agent."""
    _get_session(session_id)
    with _registry_lock:
        sessions.pop(session_id, None)
        _session_locks.pop(session_id, None)
    return {"status": "deleted"}


@app.post("/agent", response_model=TaskResponse, summary="Run a task")
def agent_endpoint(req: TaskRequest) -> TaskResponse:
    """
    Run a task on a session's agent, creating the session if needed.

    Runs on the same session are serialised; each session owns one Lua state.
    """
    session_id = get_or_create_session(req.session_id, req.max_iterations)
    agent, lock = _get_session_and_lock(session_id)

    logger.debug("Running task on session %s: %s", session_id, req.task)
    with lock:
        try:
            answer = agent.run(req.task)
        except MaxIterationsReached as exc:
            logger.warning("Session %s: %s", session_id, exc)
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except LLMError as exc:
            logger.error("Session %s: LLM failure: %s", session_id, exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    return TaskResponse(answer=answer, session_id=session_id)


@app.get("/", summary="API root")
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": "Welcome to the luagent API! Use /docs for API documentation."}


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg‑import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting luagent API at %s:%d (reload=%s, log_level=%s, llm=%s)",
        host,
        port,
        reload,
        log_level,
        settings.LLM_PROVIDER,
    )

    colored_print(f"🌙 luagent API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "luagent.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m luagent.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
