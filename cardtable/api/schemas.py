"""
Pydantic Schemas for API - request/response models for OpenAPI.

Every response that follows an engine operation carries the prompts and
notifications the session queued while it ran, so a host can forward
them to the chat and the player.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or was ended
- VALIDATION_ERROR: Request body is invalid
- STORE_ERROR: The game book could not be read or written
- INTERNAL_ERROR: Unexpected failure
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORE_ERROR = "STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GameModeName(str, Enum):
    ROGUELIKE = "roguelike"
    ORIGIN = "origin"


class DifficultyName(str, Enum):
    BABY = "baby"
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
    HELL = "hell"


class StagedActionType(str, Enum):
    BET = "bet"
    CALL = "call"
    CHECK = "check"
    FOLD = "fold"
    PLAY_CARDS = "play_cards"
    CUSTOM = "custom"
    HIT = "hit"
    STAND = "stand"
    NARRATIVE = "narrative"
    EMOTE = "emote"


# =============================================================================
# Shared Models
# =============================================================================

class NotificationInfo(BaseModel):
    """A user-facing notice queued by the engine."""
    level: str = Field(..., description="info | success | warning | error")
    message: str
    title: Optional[str] = None


class CommandResultInfo(BaseModel):
    """Outcome of one parsed command."""
    success: bool
    command_key: str = ""
    error: Optional[str] = None
    error_code: Optional[str] = None
    changes: list[str] = Field(default_factory=list)


class StagedActionInfo(BaseModel):
    id: str
    type: StagedActionType
    amount: int = 0
    text: Optional[str] = None
    cards: list[dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to create a table session."""
    seed: Optional[int] = Field(None, description="Seed for shuffles and map generation")
    deterministic_dealing: Optional[bool] = Field(
        None, description="Mirror the deck order to the AI-visible document"
    )


class AIOutputRequest(BaseModel):
    """Raw text produced by the AI game master."""
    text: str = Field(..., description="AI message, possibly containing [Category:Type, ...] commands")


class SelectModeRequest(BaseModel):
    mode: GameModeName


class StartRunRequest(BaseModel):
    difficulty: DifficultyName = DifficultyName.NORMAL


class StageActionRequest(BaseModel):
    """A player action to stage until commit."""
    type: StagedActionType
    amount: int = Field(0, ge=0)
    text: Optional[str] = None
    cards: list[dict[str, Any]] = Field(default_factory=list)


class TravelRequest(BaseModel):
    node_id: str
    node_type: Optional[str] = None


class VisibleDeckRequest(BaseModel):
    enabled: bool


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    game_mode: Optional[str] = None
    is_mode_selected: bool = False
    run_in_progress: bool = False
    has_game_book: bool = False
    active_view: str = "mode-selection"
    created_at: float = 0.0
    api_version: str = "v1"


class OperationResponse(BaseModel):
    """Result of an engine operation plus everything it queued for the host."""
    session_id: str
    success: bool
    message: Optional[str] = None
    results: list[CommandResultInfo] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
    prompts: list[str] = Field(default_factory=list)
    notifications: list[NotificationInfo] = Field(default_factory=list)
    api_version: str = "v1"


class StagingResponse(BaseModel):
    """Staged actions and the chip overlay after a staging change."""
    session_id: str
    staged_actions: list[StagedActionInfo] = Field(default_factory=list)
    pending_chip_delta: int = 0
    display_chips: int = 0
    notifications: list[NotificationInfo] = Field(default_factory=list)
    api_version: str = "v1"


class GameStateResponse(BaseModel):
    """Documents visible to the host and the session flags."""
    session_id: str
    session: dict[str, Any] = Field(default_factory=dict)
    documents: dict[str, Any] = Field(default_factory=dict)
    staged_actions: list[StagedActionInfo] = Field(default_factory=list)
    display_chips: int = 0
    history: list[dict[str, Any]] = Field(default_factory=list)
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
