"""Tests for the REST API, backed by the mock LLM."""

from typing import (
    Iterator,
    List,
    Optional,
)

import pytest
from fastapi.testclient import TestClient

import luagent.api.app as api_app
from luagent.agent.llm_interface import MockLLM


@pytest.fixture(name="responses")
def fixture_responses(monkeypatch: pytest.MonkeyPatch) -> Iterator[List[str]]:
    """Scripted LLM replies, copied into the mock LLM of each session created afterwards."""

    scripted: List[str] = []
    monkeypatch.setattr(api_app, "load_llm", lambda: MockLLM(scripted))
    yield scripted
    api_app.sessions.clear()
    api_app._session_locks.clear()  # pylint: disable=protected-access


@pytest.fixture(name="client")
def fixture_client(responses: List[str]) -> TestClient:  # pylint: disable=unused-argument
    return TestClient(api_app.app)


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_run_task(client: TestClient, responses: List[str]) -> None:
    """A task creates a session and returns the agent's answer."""

    responses.append("```lua\nfinal_answer(add(2, 3))\n```")

    resp = client.post("/agent", json={"task": "Add 2 and 3"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["answer"] == "5"
    assert body["session_id"] in client.get("/sessions").json()


def test_session_keeps_state(client: TestClient, responses: List[str]) -> None:
    """Tasks on one session share the Lua state and the history."""

    responses.extend(["x = 7\nfinal_answer('saved')", "final_answer(x * 6)"])
    session_id = client.post("/sessions").json()["session_id"]

    first = client.post("/agent", json={"task": "save", "session_id": session_id})
    second = client.post("/agent", json={"task": "use", "session_id": session_id})
    assert first.json()["answer"] == "saved"
    assert second.json()["answer"] == "42"

    history = client.get(f"/sessions/{session_id}/messages").json()
    assert [m["role"] for m in history["messages"]] == ["user", "assistant", "user", "assistant"]


def test_max_iterations_maps_to_422(client: TestClient, responses: List[str]) -> None:
    responses.append("local x = 1")

    resp = client.post("/agent", json={"task": "loop", "max_iterations": 1})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Maximum iterations reached (1)"


def test_llm_failure_maps_to_502(client: TestClient) -> None:
    resp = client.post("/agent", json={"task": "anything"})
    assert resp.status_code == 502
    assert "no more responses" in resp.json()["detail"]


def test_empty_task_is_rejected(client: TestClient) -> None:
    assert client.post("/agent", json={"task": ""}).status_code == 422


def test_delete_session(client: TestClient) -> None:
    session_id = client.post("/sessions").json()["session_id"]

    assert client.delete(f"/sessions/{session_id}").json() == {"status": "deleted"}
    assert client.delete(f"/sessions/{session_id}").status_code == 404
    assert client.get(f"/sessions/{session_id}/messages").status_code == 404


def test_session_deleted_during_lookup_is_404(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A run racing a delete sees an unknown session, not a server error."""

    real_lookup = api_app.get_or_create_session

    def lookup_then_delete(
        session_id: Optional[str] = None, max_iterations: Optional[int] = None
    ) -> str:
        found = real_lookup(session_id, max_iterations)
        api_app._session_locks.pop(found)  # pylint: disable=protected-access
        return found

    monkeypatch.setattr(api_app, "get_or_create_session", lookup_then_delete)
    resp = client.post("/agent", json={"task": "anything"})
    assert resp.status_code == 404
