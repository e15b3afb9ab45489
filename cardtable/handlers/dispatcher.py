"""
Command Dispatcher - routes parsed commands to their handlers.

The handler table is keyed by CommandKind and must cover every kind;
construction fails otherwise. Commands from one AI text are applied
strictly left to right.
"""

from __future__ import annotations
import logging

from pydantic import ValidationError

from ..engine_core.command import Command, CommandKind, CommandResult, ErrorCode
from ..engine_core.parser import parse_commands
from ..errors import StoreError
from ..session.context import SessionContext
from .base import CommandHandler, HandlerFn

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Applies commands through a complete CommandKind -> handler table.

    Nothing a single command does is raised to the caller except
    StoreError; everything else becomes a failed CommandResult.
    """

    def __init__(self, ctx: SessionContext, handlers: list[CommandHandler]):
        self.ctx = ctx
        self._table: dict[CommandKind, HandlerFn] = {}
        for handler in handlers:
            for kind, fn in handler.handlers().items():
                if kind in self._table:
                    raise ValueError(f"Duplicate handler for {kind.value}")
                self._table[kind] = fn

        missing = [kind.value for kind in CommandKind if kind not in self._table]
        if missing:
            raise ValueError(f"No handler for command kinds: {', '.join(missing)}")

    async def dispatch(self, command: Command) -> CommandResult:
        """Apply one command."""
        kind = command.kind
        if kind is None:
            logger.warning("Unknown command %s, ignored", command.key)
            return CommandResult.failure(
                f"Unknown command: {command.key}",
                error_code=ErrorCode.UNKNOWN_COMMAND,
                command_key=command.key,
            )

        try:
            result = await self._table[kind](command)
        except StoreError:
            raise
        except ValidationError as e:
            logger.error("Command %s produced invalid data: %s", command.key, e)
            result = CommandResult.failure(str(e), error_code=ErrorCode.VALIDATION_FAILURE)
        except Exception as e:
            logger.exception("Handler for %s failed", command.key)
            result = CommandResult.failure(str(e), error_code=ErrorCode.HANDLER_ERROR)

        result.command_key = command.key
        if result.success:
            logger.info("Applied %s", command.key)
        else:
            logger.debug("%s had no effect: %s", command.key, result.error)
        return result

    async def process_text(self, text: str | None) -> list[CommandResult]:
        """
        Parse AI output and apply every command in it.

        Skipped entirely (one NO_GAME_BOOK result) when the session has
        no game book.
        """
        if not await self.ctx.repo.has_book():
            logger.info("No game book, skipping AI output")
            return [CommandResult.failure("No game book", error_code=ErrorCode.NO_GAME_BOOK)]

        commands = parse_commands(text)
        if not commands:
            return []

        logger.info("Processing %d command(s)", len(commands))
        if self.ctx.snapshot is None:
            await self.ctx.refresh()

        results = []
        for command in commands:
            results.append(await self.dispatch(command))
        return results
