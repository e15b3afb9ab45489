"""
Tests for using inventory items and the deprecated Item command.
"""

from ..engine_core.command import ErrorCode
from ..engine_core.state import PlayerData
from ..session.context import NoticeLevel


async def give(session, *items):
    await session.repo.update(PlayerData, lambda p: p.inventory.extend(items))


class TestUseItem:

    async def test_active_item_is_consumed(self, run_session):
        await give(run_session, {"name": "Smoke Bomb", "description": "Blinds the table", "type": "active"})

        result = await run_session.items.use_item(0)

        assert result.success
        assert (await run_session.repo.get(PlayerData)).inventory == []
        prompt = run_session.ctx.prompts.drain()[-1]
        assert prompt == "(System: {{user}} used the item [name: Smoke Bomb, description: Blinds the table])"

    async def test_passive_item_only_reminds(self, run_session):
        await give(run_session, {"name": "Lucky Coin", "description": "+1 luck", "type": "passive"})

        result = await run_session.items.use_item(0)

        assert result.success
        assert len((await run_session.repo.get(PlayerData)).inventory) == 1
        prompt = run_session.ctx.prompts.drain()[-1]
        assert "clicked the passive item [name: Lucky Coin" in prompt
        assert run_session.ctx.notifier.drain()[-1].level is NoticeLevel.INFO

    async def test_untyped_item_is_kept(self, run_session):
        await give(run_session, {"name": "Map Scrap", "description": "Torn"})

        await run_session.items.use_item(0)

        assert len((await run_session.repo.get(PlayerData)).inventory) == 1

    async def test_function_item_is_not_implemented(self, run_session):
        await give(run_session, {"name": "Wand", "type": "active", "function": {"effect": "reroll"}})

        await run_session.items.use_item(0)

        assert run_session.ctx.prompts.drain() == []
        assert 'Item effect "reroll" is not implemented yet.' in [n.message for n in run_session.ctx.notifier.drain()]
        assert (await run_session.repo.get(PlayerData)).inventory == []

    async def test_invalid_index(self, run_session):
        result = await run_session.items.use_item(3)

        assert not result.success


class TestDeprecatedItemCommand:

    async def test_item_command_is_reported(self, table):
        results = await table.process_ai_output("[Item:Grant, name:Lucky Coin]")

        assert results[0].error_code is ErrorCode.UNKNOWN_COMMAND
        assert results[0].command_key == "Item:Grant"
        assert table.ctx.notifier.drain()[-1].level is NoticeLevel.WARNING
        assert (await table.repo.get(PlayerData)).inventory == []
