"""Integration tests for saving chat histories."""

import uuid

import pytest
from fastapi.testclient import TestClient

from haskify.services import Services

TURN = {"question": "what is a tuple?", "response": "An immutable sequence.", "time": "2026-06-01T12:00:00"}


def test_save_session_returns_id(client: TestClient, services: Services) -> None:
    response = client.post("/api/save-session", json={"session": [TURN]})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    uuid.UUID(data["id"])


def test_empty_session_is_rejected(client: TestClient) -> None:
    response = client.post("/api/save-session", json={"session": []})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_session_replaces_turns(client: TestClient, services: Services) -> None:
    log_id = client.post("/api/save-session", json={"session": [TURN]}).json()["id"]
    follow_up = {"question": "can I change a tuple?", "response": "No, build a new one."}

    response = client.patch(f"/api/save-session/{log_id}", json={"session": [TURN, follow_up]})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    stored = await services.history.get(uuid.UUID(log_id))
    assert stored is not None
    assert [t.question for t in stored.turns] == ["what is a tuple?", "can I change a tuple?"]


def test_update_unknown_session_returns_404(client: TestClient) -> None:
    response = client.patch(f"/api/save-session/{uuid.uuid4()}", json={"session": [TURN]})

    assert response.status_code == 404
