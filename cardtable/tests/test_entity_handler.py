"""
Tests for Event:Modify.
"""

import json

from ..engine_core.state import EnemyData, MetaData, PlayerData
from ..session.context import NoticeLevel


def modify(target, *mods):
    return "[Event:Modify, data:" + json.dumps({"target": target, "modifications": list(mods)}) + "]"


def mod(field, operation, value):
    return {"field": field, "operation": operation, "value": value}


class TestPlayerModifications:

    async def test_lose_health(self, table):
        await table.process_ai_output(modify("{{user}}", mod("health", "add", -1)))

        assert (await table.repo.get(PlayerData)).health == 2
        messages = [n.message for n in table.ctx.notifier.drain()]
        assert "Player lost 1 health!" in messages

    async def test_health_clamped_to_max(self, table):
        await table.process_ai_output(modify("{{user}}", mod("health", "add", 10)))

        assert (await table.repo.get(PlayerData)).health == 3

    async def test_health_never_negative(self, table):
        await table.process_ai_output(modify("{{user}}", mod("health", "set", -5)))

        player = await table.repo.get(PlayerData)
        assert player.health == 0

    async def test_lowering_max_health_clamps_health(self, table):
        await table.process_ai_output(modify("{{user}}", mod("max_health", "set", 1)))

        player = await table.repo.get(PlayerData)
        assert (player.health, player.max_health) == (1, 1)

    async def test_gain_chips(self, table):
        await table.process_ai_output(modify("{{user}}", mod("chips", "add", 50)))

        assert (await table.repo.get(PlayerData)).chips == 1050
        messages = [n.message for n in table.ctx.notifier.drain()]
        assert "Player gained 50 chips!" in messages

    async def test_losing_all_chips_costs_health(self, table):
        await table.process_ai_output(modify("{{user}}", mod("chips", "add", -1000)))

        player = await table.repo.get(PlayerData)
        assert player.health == 2
        assert player.chips == 1000

    async def test_inventory_add_and_remove(self, table):
        await table.process_ai_output(modify("{{user}}", mod("inventory", "add", {"name": "Lucky Coin", "type": "passive"})))
        assert [i["name"] for i in (await table.repo.get(PlayerData)).inventory] == ["Lucky Coin"]

        await table.process_ai_output(modify("{{user}}", mod("inventory", "remove", "Lucky Coin")))
        assert (await table.repo.get(PlayerData)).inventory == []

    async def test_status_effect_notice(self, table):
        await table.process_ai_output(modify("{{user}}", mod("status_effects", "add", {"name": "Poisoned"})))

        notices = table.ctx.notifier.drain()
        assert any(n.message == "Player gained status [Poisoned]!" and n.level is NoticeLevel.INFO for n in notices)

    async def test_configured_name_targets_player(self, table):
        await table.process_ai_output(modify("Tester", mod("chips", "add", 5)))

        assert (await table.repo.get(PlayerData)).chips == 1005


class TestEnemyModifications:

    async def test_enemy_chips(self, table):
        await table.process_ai_output(modify("Bandit", mod("chips", "add", -300)))

        assert (await table.repo.get(EnemyData)).find("Bandit").chips == 500

    async def test_unknown_enemy_fails(self, table):
        results = await table.process_ai_output(modify("Ghost", mod("chips", "add", 5)))

        assert not results[0].success

    async def test_enemy_health_without_max_caps_at_99(self, table):
        await table.process_ai_output(modify("Bandit", mod("health", "set", 500)))

        assert (await table.repo.get(EnemyData)).find("Bandit").health == 99

    async def test_enemy_max_health_drop_clamps_health(self, table):
        await table.process_ai_output(modify("Bandit", mod("max_health", "set", 2), mod("health", "set", 2)))
        await table.process_ai_output(modify("Bandit", mod("max_health", "add", -1)))

        bandit = (await table.repo.get(EnemyData)).find("Bandit")
        assert (bandit.health, bandit.max_health) == (1, 1)


class TestInvalidModifications:

    async def test_non_numeric_health_drops_command(self, table):
        results = await table.process_ai_output(
            modify("{{user}}", mod("chips", "add", 10), mod("health", "set", "lots"))
        )

        assert not results[0].success
        player = await table.repo.get(PlayerData)
        assert player.health == 3
        assert player.chips == 1000

    async def test_missing_modifications(self, table):
        results = await table.process_ai_output('[Event:Modify, data:{"target": "{{user}}"}]')

        assert not results[0].success


class TestGlobalModifications:

    async def test_add_shards(self, table):
        await table.process_ai_output(modify("global", mod("legacy_shards", "add", 25)))

        assert (await table.repo.get(MetaData)).legacy_shards == 25

    async def test_set_shards(self, table):
        await table.process_ai_output(modify("global", mod("legacy_shards", "set", 7)))

        assert (await table.repo.get(MetaData)).legacy_shards == 7

    async def test_unsupported_global_field(self, table):
        results = await table.process_ai_output(modify("global", mod("gold", "add", 1)))

        assert not results[0].success
