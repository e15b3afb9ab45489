"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine calls
2. Manages sessions
3. Drains each session's queued prompts and notifications into responses

This layer is framework-agnostic; the FastAPI app only maps routes
and errors onto it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from ..engine_core.cards import to_cards
from ..engine_core.command import CommandResult
from ..session.manager import SessionManager, TableSession
from ..session.staging import ActionType, StagedAction
from .schemas import (
    CommandResultInfo,
    CreateSessionRequest,
    GameStateResponse,
    NotificationInfo,
    OperationResponse,
    SessionResponse,
    StageActionRequest,
    StagedActionInfo,
    StagingResponse,
)

logger = logging.getLogger(__name__)


def _result_info(result: CommandResult) -> CommandResultInfo:
    return CommandResultInfo(
        success=result.success,
        command_key=result.command_key,
        error=result.error,
        error_code=result.error_code.value if result.error_code else None,
        changes=result.changes,
    )


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()
        session = await service.create_session(CreateSessionRequest())
        await service.select_mode(session.session_id, "roguelike")
        response = await service.process_ai_output(session.session_id, text)
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def create_session(self, request: CreateSessionRequest) -> SessionResponse:
        session = await self.session_manager.create_session(seed=request.seed)
        if request.deterministic_dealing is not None:
            await session.toggle_visible_deck(request.deterministic_dealing)
        return self._session_response(session)

    def get_session(self, session_id: str) -> SessionResponse:
        return self._session_response(self.session_manager.get_session(session_id))

    def end_session(self, session_id: str) -> bool:
        self.session_manager.end_session(session_id)
        return True

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_sessions()

    async def get_state(self, session_id: str) -> GameStateResponse:
        session = self.session_manager.get_session(session_id)
        return GameStateResponse(**await session.state())

    # =========================================================================
    # AI output
    # =========================================================================

    async def process_ai_output(self, session_id: str, text: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        results = await session.process_ai_output(text)
        return self._respond(
            session,
            success=all(r.success for r in results),
            results=results,
        )

    # =========================================================================
    # Run lifecycle
    # =========================================================================

    async def select_mode(self, session_id: str, mode: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        ok = await session.runs.select_game_mode(mode)
        return self._respond(session, success=ok, message=f"mode {mode}")

    async def start_run(self, session_id: str, difficulty: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        ok = await session.runs.start_new_run(difficulty)
        return self._respond(session, success=ok, message=f"difficulty {difficulty}")

    async def claim_pot(self, session_id: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        amount = await session.runs.claim_pot()
        return self._respond(session, success=amount > 0, data={"claimed": amount})

    async def next_floor(self, session_id: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        ok = await session.runs.advance_to_next_floor()
        return self._respond(session, success=ok)

    async def toggle_visible_deck(self, session_id: str, enabled: bool) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        await session.toggle_visible_deck(enabled)
        return self._respond(session, success=True, data={"deterministic_dealing": enabled})

    # =========================================================================
    # Staging
    # =========================================================================

    def stage_action(self, session_id: str, request: StageActionRequest) -> StagingResponse:
        session = self.session_manager.get_session(session_id)
        session.staging.stage(StagedAction(
            type=ActionType(request.type.value),
            amount=request.amount,
            text=request.text,
            cards=to_cards(request.cards),
        ))
        return self._staging_response(session)

    def undo_action(self, session_id: str, action_id: str) -> StagingResponse:
        session = self.session_manager.get_session(session_id)
        session.staging.undo(action_id)
        return self._staging_response(session)

    def undo_all(self, session_id: str) -> StagingResponse:
        session = self.session_manager.get_session(session_id)
        session.staging.undo_all()
        return self._staging_response(session)

    async def commit(self, session_id: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        result = await session.staging.commit()
        return self._respond(session, success=result.success, results=[result])

    # =========================================================================
    # Deals, map, items
    # =========================================================================

    async def process_deal(self, session_id: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        result = await session.dealer.process_pending_deal()
        return self._respond(session, success=result.success, results=[result])

    async def cleanup_deal(self, session_id: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        await session.dealer.cleanup_after_deal()
        return self._respond(session, success=True)

    async def travel(self, session_id: str, node_id: str, node_type: str | None = None) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        result = await session.map.travel_to_node(node_id, node_type)
        return self._respond(session, success=result.success, results=[result])

    async def search_room(self, session_id: str) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        result = await session.map.find_secret_room()
        return self._respond(session, success=result.success, results=[result])

    async def use_item(self, session_id: str, index: int) -> OperationResponse:
        session = self.session_manager.get_session(session_id)
        result = await session.items.use_item(index)
        return self._respond(session, success=result.success, results=[result])

    # =========================================================================
    # Helpers
    # =========================================================================

    def _session_response(self, session: TableSession) -> SessionResponse:
        summary = session.ctx.state_summary()
        return SessionResponse(
            session_id=session.session_id,
            game_mode=summary["game_mode"],
            is_mode_selected=summary["is_mode_selected"],
            run_in_progress=summary["run_in_progress"],
            has_game_book=summary["has_game_book"],
            active_view=summary["active_view"],
            created_at=session.created_at,
        )

    def _drain_notifications(self, session: TableSession) -> list[NotificationInfo]:
        return [NotificationInfo(**n.to_dict()) for n in session.ctx.notifier.drain()]

    def _respond(
        self,
        session: TableSession,
        success: bool,
        message: str | None = None,
        results: list[CommandResult] | None = None,
        data: dict[str, Any] | None = None,
    ) -> OperationResponse:
        prompts = session.ctx.prompts.drain()
        return OperationResponse(
            session_id=session.session_id,
            success=success,
            message=message,
            results=[_result_info(r) for r in results or []],
            data=data or {},
            prompts=prompts,
            notifications=self._drain_notifications(session),
        )

    def _staging_response(self, session: TableSession) -> StagingResponse:
        staging = session.staging
        return StagingResponse(
            session_id=session.session_id,
            staged_actions=[StagedActionInfo(**a.to_dict()) for a in staging.staged],
            pending_chip_delta=staging.pending_chip_delta(),
            display_chips=staging.display_chips(),
            notifications=self._drain_notifications(session),
        )
