"""
FastAPI Application - REST API for a chat host.

Endpoints:
    POST   /api/v1/sessions                              Create table session
    GET    /api/v1/sessions                              List sessions
    GET    /api/v1/sessions/{id}                         Get session status
    DELETE /api/v1/sessions/{id}                         End session
    POST   /api/v1/sessions/{id}/ai-output               Apply AI game-master output
    POST   /api/v1/sessions/{id}/mode                    Select game mode
    POST   /api/v1/sessions/{id}/runs                    Start a run
    POST   /api/v1/sessions/{id}/claim-pot               Claim a won pot
    POST   /api/v1/sessions/{id}/next-floor              Advance after the boss
    POST   /api/v1/sessions/{id}/visible-deck            Toggle deterministic dealing
    POST   /api/v1/sessions/{id}/actions                 Stage a player action
    DELETE /api/v1/sessions/{id}/actions/{action_id}     Undo one staged action
    DELETE /api/v1/sessions/{id}/actions                 Undo all staged actions
    POST   /api/v1/sessions/{id}/commit                  Commit staged actions
    POST   /api/v1/sessions/{id}/deal/process            Execute the queued deal
    POST   /api/v1/sessions/{id}/deal/cleanup            Clear new-card markers
    POST   /api/v1/sessions/{id}/map/travel              Move on the map
    POST   /api/v1/sessions/{id}/map/search              Search the room
    POST   /api/v1/sessions/{id}/items/{index}/use       Use an inventory item
    GET    /api/v1/sessions/{id}/state                   Get documents and flags
    GET    /api/v1/health                                Health check

Operations return the prompts the host should send to the AI and the
notifications it should show the player.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import ALLOWED_ORIGINS, EngineConfig
from ..errors import SessionNotFoundError, StoreError
from ..session.manager import SessionManager
from .schemas import (
    AIOutputRequest,
    CreateSessionRequest,
    EndSessionResponse,
    ErrorCode,
    ErrorResponse,
    GameStateResponse,
    HealthResponse,
    OperationResponse,
    SelectModeRequest,
    SessionListResponse,
    SessionResponse,
    StageActionRequest,
    StagingResponse,
    StartRunRequest,
    TravelRequest,
    VisibleDeckRequest,
)
from .service import APIService

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Session not found"}}


def create_app(service: Optional[APIService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Card Table Engine API",
        description="""
AI game-master card table engine.

## Flow

1. `POST /sessions`, then `POST /mode` (and `POST /runs` for roguelike)
2. Feed every AI message to `POST /ai-output`
3. If the game state holds `unprocessed_deal_actions`, call `POST /deal/process`,
   animate, then `POST /deal/cleanup`
4. Stage player actions with `POST /actions` and send them with `POST /commit`

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `STORE_ERROR` | The game book could not be read or written |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if service is None:
        config = EngineConfig.from_env()
        service = APIService(session_manager=SessionManager(config=config))
    api_service = service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found(request: Request, exc: SessionNotFoundError) -> JSONResponse:
        return make_error_response(
            ErrorCode.SESSION_NOT_FOUND,
            str(exc),
            status_code=404,
            details={"session_id": exc.session_id},
        )

    @app.exception_handler(StoreError)
    async def store_error(request: Request, exc: StoreError) -> JSONResponse:
        return make_error_response(
            ErrorCode.STORE_ERROR,
            str(exc),
            status_code=500,
            details={"key": exc.key},
        )

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        tags=["Sessions"],
        summary="Create a new table session",
    )
    async def create_session(body: Optional[CreateSessionRequest] = None) -> SessionResponse:
        return await api_service.create_session(body or CreateSessionRequest())

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses=NOT_FOUND,
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> SessionResponse:
        return api_service.get_session(session_id)

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        responses=NOT_FOUND,
        tags=["Sessions"],
        summary="End a table session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        success = api_service.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    @app.get(
        "/api/v1/sessions/{session_id}/state",
        response_model=GameStateResponse,
        responses=NOT_FOUND,
        tags=["Sessions"],
        summary="Get the game documents and session flags",
    )
    async def get_state(session_id: str) -> GameStateResponse:
        return await api_service.get_state(session_id)

    # =========================================================================
    # AI Output
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/ai-output",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Game Master"],
        summary="Parse and apply commands from an AI message",
    )
    async def process_ai_output(session_id: str, body: AIOutputRequest) -> OperationResponse:
        """
        Apply every `[Category:Type, ...]` command in the message, left to right.

        Each command has its own entry in `results`; a bad command never
        stops the ones after it.
        """
        return await api_service.process_ai_output(session_id, body.text)

    # =========================================================================
    # Run Lifecycle
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/mode",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Runs"],
        summary="Select the game mode",
    )
    async def select_mode(session_id: str, body: SelectModeRequest) -> OperationResponse:
        return await api_service.select_mode(session_id, body.mode.value)

    @app.post(
        "/api/v1/sessions/{session_id}/runs",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Runs"],
        summary="Start a new roguelike run",
    )
    async def start_run(session_id: str, body: StartRunRequest) -> OperationResponse:
        return await api_service.start_run(session_id, body.difficulty.value)

    @app.post(
        "/api/v1/sessions/{session_id}/claim-pot",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Runs"],
        summary="Move a won pot into the player's chips",
    )
    async def claim_pot(session_id: str) -> OperationResponse:
        return await api_service.claim_pot(session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/next-floor",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Runs"],
        summary="Advance to the next floor after the boss",
    )
    async def next_floor(session_id: str) -> OperationResponse:
        return await api_service.next_floor(session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/visible-deck",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Runs"],
        summary="Toggle deterministic dealing",
    )
    async def toggle_visible_deck(session_id: str, body: VisibleDeckRequest) -> OperationResponse:
        return await api_service.toggle_visible_deck(session_id, body.enabled)

    # =========================================================================
    # Player Actions
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/actions",
        response_model=StagingResponse,
        responses=NOT_FOUND,
        tags=["Player Actions"],
        summary="Stage a player action",
    )
    async def stage_action(session_id: str, body: StageActionRequest) -> StagingResponse:
        return api_service.stage_action(session_id, body)

    @app.delete(
        "/api/v1/sessions/{session_id}/actions/{action_id}",
        response_model=StagingResponse,
        responses=NOT_FOUND,
        tags=["Player Actions"],
        summary="Undo one staged action",
    )
    async def undo_action(session_id: str, action_id: str) -> StagingResponse:
        return api_service.undo_action(session_id, action_id)

    @app.delete(
        "/api/v1/sessions/{session_id}/actions",
        response_model=StagingResponse,
        responses=NOT_FOUND,
        tags=["Player Actions"],
        summary="Undo every staged action",
    )
    async def undo_all(session_id: str) -> StagingResponse:
        return api_service.undo_all(session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/commit",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Player Actions"],
        summary="Commit staged actions and prompt the AI",
    )
    async def commit(session_id: str) -> OperationResponse:
        return await api_service.commit(session_id)

    # =========================================================================
    # Deals
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/deal/process",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Deals"],
        summary="Draw and distribute the queued deal",
    )
    async def process_deal(session_id: str) -> OperationResponse:
        return await api_service.process_deal(session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/deal/cleanup",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Deals"],
        summary="Clear the animation queue and new-card markers",
    )
    async def cleanup_deal(session_id: str) -> OperationResponse:
        return await api_service.cleanup_deal(session_id)

    # =========================================================================
    # Map & Items
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/map/travel",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Map"],
        summary="Travel to a map node",
    )
    async def travel(session_id: str, body: TravelRequest) -> OperationResponse:
        return await api_service.travel(session_id, body.node_id, body.node_type)

    @app.post(
        "/api/v1/sessions/{session_id}/map/search",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Map"],
        summary="Search the current room for a secret door",
    )
    async def search_room(session_id: str) -> OperationResponse:
        return await api_service.search_room(session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/items/{index}/use",
        response_model=OperationResponse,
        responses=NOT_FOUND,
        tags=["Items"],
        summary="Use an inventory item",
    )
    async def use_item(session_id: str, index: int) -> OperationResponse:
        return await api_service.use_item(session_id, index)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service="cardtable-engine",
            version=__version__,
        )

    return app


# For running directly: uvicorn cardtable.api.app:app
app = create_app()
