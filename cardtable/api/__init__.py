"""
API Module - HTTP interface for a chat host.

The host:
1. Creates a session and selects a mode
2. Forwards every AI message to the engine
3. Stages and commits player actions
4. Relays the returned prompts to the AI and notifications to the player
"""

from .schemas import (
    CreateSessionRequest,
    AIOutputRequest,
    StageActionRequest,
    ErrorResponse,
    OperationResponse,
    SessionResponse,
    GameStateResponse,
)
from .service import APIService
from .app import create_app

__all__ = [
    "CreateSessionRequest",
    "AIOutputRequest",
    "StageActionRequest",
    "ErrorResponse",
    "OperationResponse",
    "SessionResponse",
    "GameStateResponse",
    "APIService",
    "create_app",
]
