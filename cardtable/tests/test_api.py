"""
Tests for API layer.

Tests:
- API service methods
- HTTP routes through the FastAPI test client
- Error handling (unknown sessions)
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.schemas import CreateSessionRequest, StageActionRequest, StagedActionType
from ..api.service import APIService
from ..config import EngineConfig
from ..errors import SessionNotFoundError
from ..session.manager import SessionManager
from .conftest import START_HAND


@pytest.fixture
def service():
    return APIService(session_manager=SessionManager(config=EngineConfig(user_name="Tester")))


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as client:
        yield client


class TestAPIService:
    """Tests for APIService."""

    async def test_create_session(self, service):
        response = await service.create_session(CreateSessionRequest(seed=7))

        assert response.session_id in service.list_sessions()
        assert not response.has_game_book
        assert response.active_view == "mode-selection"

    async def test_get_nonexistent_session(self, service):
        with pytest.raises(SessionNotFoundError):
            service.get_session("nonexistent-id")

    async def test_end_session(self, service):
        created = await service.create_session(CreateSessionRequest())

        assert service.end_session(created.session_id)
        assert created.session_id not in service.list_sessions()

    async def test_operations_drain_notifications(self, service):
        created = await service.create_session(CreateSessionRequest(seed=1))

        response = await service.select_mode(created.session_id, "roguelike")

        assert response.success
        assert "Game book created." in [n.message for n in response.notifications]
        again = await service.claim_pot(created.session_id)
        assert "Game book created." not in [n.message for n in again.notifications]

    async def test_ai_output_without_book(self, service):
        created = await service.create_session(CreateSessionRequest())

        response = await service.process_ai_output(created.session_id, "[Game:Hint, text:hi]")

        assert not response.success
        assert response.results[0].error_code == "NO_GAME_BOOK"

    async def test_stage_and_undo(self, service):
        created = await service.create_session(CreateSessionRequest(seed=1))
        await service.select_mode(created.session_id, "roguelike")
        await service.start_run(created.session_id, "normal")

        staged = service.stage_action(
            created.session_id, StageActionRequest(type=StagedActionType.BET, amount=150),
        )

        assert staged.display_chips == 850
        assert staged.pending_chip_delta == 150
        undone = service.undo_action(created.session_id, staged.staged_actions[0].id)
        assert undone.display_chips == 1000
        assert undone.staged_actions == []

    async def test_sessions_are_independent(self, service):
        first = await service.create_session(CreateSessionRequest(seed=1))
        second = await service.create_session(CreateSessionRequest(seed=1))
        await service.select_mode(first.session_id, "roguelike")

        assert service.get_session(first.session_id).has_game_book
        assert not service.get_session(second.session_id).has_game_book


class TestAPIRoutes:
    """End-to-end flow over HTTP."""

    def create(self, client):
        response = client.post("/api/v1/sessions", json={"seed": 3})
        assert response.status_code == 200
        return response.json()["session_id"]

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_session_is_404(self, client):
        response = client.get("/api/v1/sessions/missing/state")

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "SESSION_NOT_FOUND"
        assert body["details"] == {"session_id": "missing"}

    def test_invalid_mode_is_rejected(self, client):
        session_id = self.create(client)

        response = client.post(f"/api/v1/sessions/{session_id}/mode", json={"mode": "arcade"})

        assert response.status_code == 422

    def test_full_hand(self, client):
        session_id = self.create(client)
        base = f"/api/v1/sessions/{session_id}"

        assert client.post(f"{base}/mode", json={"mode": "roguelike"}).json()["success"]
        run = client.post(f"{base}/runs", json={"difficulty": "hard"}).json()
        assert run["success"]

        started = client.post(f"{base}/ai-output", json={"text": START_HAND}).json()
        assert started["results"][0]["command_key"] == "Game:Start"

        deal_text = '[Game:Function, data:{"type": "发牌", "actions": [{"target": "player", "count": 2}]}]'
        client.post(f"{base}/ai-output", json={"text": deal_text})
        dealt = client.post(f"{base}/deal/process").json()
        assert dealt["success"]
        client.post(f"{base}/deal/cleanup")

        staged = client.post(f"{base}/actions", json={"type": "bet", "amount": 100}).json()
        assert staged["display_chips"] == 400

        committed = client.post(f"{base}/commit").json()
        assert committed["success"]
        assert len(committed["prompts"]) == 1
        assert committed["prompts"][0].startswith("(System: {{user}} performed the following actions:")

        state = client.get(f"{base}/state").json()
        documents = state["documents"]
        assert documents["sp_player_data"]["chips"] == 400
        assert documents["sp_game_state"]["pot_amount"] == 100
        assert len(documents["sp_player_cards"]["current_hand"]) == 2
        assert "sp_private_data" not in documents
        assert state["staged_actions"] == []

    def test_undo_all_route(self, client):
        session_id = self.create(client)
        base = f"/api/v1/sessions/{session_id}"
        client.post(f"{base}/mode", json={"mode": "roguelike"})
        client.post(f"{base}/runs", json={})
        client.post(f"{base}/actions", json={"type": "call", "amount": 40})

        response = client.delete(f"{base}/actions").json()

        assert response["staged_actions"] == []
        assert response["display_chips"] == 1000

    def test_end_session_route(self, client):
        session_id = self.create(client)

        assert client.delete(f"/api/v1/sessions/{session_id}").json()["success"]
        assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404
