"""
Command System - Commands, kinds, and results.

Commands represent:
1. Table lifecycle instructions from the AI (start, deal, end)
2. Betting actions narrated by the AI (bet, call, fold)
3. Entity and map mutations (Event:Modify, Map:Modify)

Every command the parser produces is resolved to a CommandKind
before dispatch, so the dispatcher can check it covers them all.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CommandCategory(Enum):
    """Top-level command categories (the part before the colon)."""
    GAME = "Game"
    ACTION = "Action"
    EVENT = "Event"
    MAP = "Map"
    ITEM = "Item"


class CommandKind(Enum):
    """Every command shape the engine understands."""
    # Game lifecycle
    GAME_SETUP_DECK = "Game:SetupDeck"
    GAME_START = "Game:Start"
    GAME_END = "Game:End"
    GAME_FUNCTION = "Game:Function"
    GAME_UPDATE_STATE = "Game:UpdateState"
    GAME_HINT = "Game:Hint"

    # Table actions
    ACTION_BET = "Action:Bet"
    ACTION_CALL = "Action:Call"
    ACTION_CHECK = "Action:Check"
    ACTION_FOLD = "Action:Fold"
    ACTION_HIT = "Action:Hit"
    ACTION_SHOWDOWN = "Action:Showdown"
    ACTION_SWAP_CARDS = "Action:SwapCards"

    # Entity / map mutations
    EVENT_MODIFY = "Event:Modify"
    MAP_MODIFY = "Map:Modify"

    # Item commands from the AI (deprecated path, every type maps here)
    ITEM = "Item"


class ErrorCode(Enum):
    """Why a command had no effect."""
    PARSE_FAILURE = "PARSE_FAILURE"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    NO_GAME_BOOK = "NO_GAME_BOOK"
    HANDLER_ERROR = "HANDLER_ERROR"


@dataclass
class Command:
    """
    A parsed command.

    category/type are the raw header strings; data merges the
    inline key:value pairs with the JSON payload (JSON wins).
    """
    category: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.category}:{self.type}"

    @property
    def kind(self) -> CommandKind | None:
        """Resolve to a CommandKind, or None when the engine has no handler."""
        if self.category == CommandCategory.ITEM.value:
            return CommandKind.ITEM
        try:
            return CommandKind(self.key)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "type": self.type, "data": self.data}


@dataclass
class CommandResult:
    """
    Result of applying a command.

    Contains:
    - Whether the command changed anything
    - Error message and code (if it did not)
    - Human-readable changes (for history/debugging)
    """
    success: bool
    command_key: str = ""
    error: str | None = None
    error_code: ErrorCode | None = None
    changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILURE,
        command_key: str = "",
    ) -> CommandResult:
        """Create a failure result."""
        return cls(success=False, command_key=command_key, error=error, error_code=error_code)

    @classmethod
    def ok(cls, *changes: str, command_key: str = "") -> CommandResult:
        """Create a success result."""
        return cls(success=True, command_key=command_key, changes=list(changes))
