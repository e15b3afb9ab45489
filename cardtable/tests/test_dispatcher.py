"""
Tests for command dispatch.
"""

import pytest

from ..engine_core.command import Command, CommandKind, CommandResult, ErrorCode
from ..engine_core.state import GameState
from ..errors import StoreError
from ..handlers import CommandDispatcher, CommandHandler


class OneKind(CommandHandler):

    def __init__(self, ctx, kind, fn):
        super().__init__(ctx)
        self.kind = kind
        self.fn = fn

    def handlers(self):
        return {self.kind: self.fn}


class TestHandlerTable:

    async def test_missing_kind_fails_construction(self, session):
        async def noop(command):
            return CommandResult.ok()

        with pytest.raises(ValueError, match="No handler"):
            CommandDispatcher(session.ctx, [OneKind(session.ctx, CommandKind.GAME_HINT, noop)])

    async def test_duplicate_kind_fails_construction(self, session):
        with pytest.raises(ValueError, match="Duplicate"):
            CommandDispatcher(session.ctx, [session.game, session.entities, session.map, session.items, session.game])

    async def test_session_table_is_complete(self, session):
        assert session.dispatcher is not None


class TestDispatch:

    async def test_no_game_book(self, manager):
        fresh = await manager.create_session()

        results = await fresh.process_ai_output("[Game:Hint, text:hello]")

        assert len(results) == 1
        assert results[0].error_code is ErrorCode.NO_GAME_BOOK
        assert fresh.ctx.hint is None

    async def test_unknown_command(self, table):
        results = await table.process_ai_output("[Game:Dance, style:waltz]")

        assert results[0].error_code is ErrorCode.UNKNOWN_COMMAND
        assert results[0].command_key == "Game:Dance"

    async def test_handler_exception_becomes_result(self, table, monkeypatch):
        async def explode(command):
            raise RuntimeError("boom")

        monkeypatch.setitem(table.dispatcher._table, CommandKind.GAME_HINT, explode)

        results = await table.process_ai_output("[Game:Hint, text:x] [Action:Bet, player_name:Bandit, amount:10]")

        assert results[0].error_code is ErrorCode.HANDLER_ERROR
        assert results[0].command_key == "Game:Hint"
        assert results[1].success

    async def test_store_error_propagates(self, table, monkeypatch):
        async def broken(command):
            raise StoreError("sp_game_state", "disk full")

        monkeypatch.setitem(table.dispatcher._table, CommandKind.GAME_HINT, broken)

        with pytest.raises(StoreError):
            await table.dispatcher.dispatch(Command(category="Game", type="Hint", data={"text": "x"}))

    async def test_commands_applied_left_to_right(self, table):
        results = await table.process_ai_output(
            "[Action:Bet, player_name:Bandit, amount:100] "
            "[Action:Call, player_name:{{user}}] "
            "[Game:Hint, text:raise]"
        )

        assert [r.command_key for r in results] == ["Action:Bet", "Action:Call", "Game:Hint"]
        assert all(r.success for r in results)
        assert (await table.repo.get(GameState)).pot_amount == 200

    async def test_bad_command_does_not_stop_later_ones(self, table):
        results = await table.process_ai_output(
            "[Action:Fold, player_name:Ghost] [Game:Hint, text:still here]"
        )

        assert [r.success for r in results] == [False, True]
        assert table.ctx.hint == "still here"

    async def test_prose_yields_no_results(self, table):
        assert await table.process_ai_output("The bandit shuffles nervously.") == []
