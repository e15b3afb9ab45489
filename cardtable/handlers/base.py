"""
Handler base class and the participant check shared by handlers.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable

from ..engine_core.command import Command, CommandKind, CommandResult
from ..engine_core.state import EnemyData, GameState
from ..session.context import SessionContext

HandlerFn = Callable[[Command], Awaitable[CommandResult]]


class CommandHandler:
    """
    A group of command handlers sharing one session context.

    Subclasses return their slice of the dispatch table from handlers().
    """

    def __init__(self, ctx: SessionContext):
        self.ctx = ctx

    def handlers(self) -> dict[CommandKind, HandlerFn]:
        raise NotImplementedError

    async def is_participant(self, name: Any) -> bool:
        """The human, an enemy in EnemyData, or a listed player."""
        if not isinstance(name, str) or not name:
            return False
        if self.ctx.is_user(name):
            return True
        enemies = await self.ctx.repo.get(EnemyData)
        if enemies.find(name) is not None:
            return True
        state = await self.ctx.repo.get(GameState)
        return name in state.players


def parse_amount(value: Any) -> int | None:
    """Integer amount from an int or a numeric string; None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None
