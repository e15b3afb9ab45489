"""
Tests for Game:* and Action:* commands.
"""

from ..engine_core.command import ErrorCode
from ..engine_core.state import (
    EnemyData,
    GameState,
    MapData,
    PlayerCards,
    PlayerData,
    PrivateData,
    Visibility,
)
from ..session.context import View
from .conftest import game_state


class TestGameStart:

    async def test_start_sets_up_table(self, table):
        state = await game_state(table)
        enemies = (await table.repo.get(EnemyData)).enemies

        assert state.game_type == "Texas Hold'em"
        assert state.players == ["{{user}}", "Bandit"]
        assert state.current_turn == "{{user}}"
        assert state.pot_amount == 0
        assert [e.name for e in enemies] == ["Bandit"]
        assert enemies[0].chips == 800
        assert enemies[0].play_style == "Aggressive"
        assert len((await table.repo.get(PrivateData)).deck) == 52

    async def test_configured_user_name_is_not_an_enemy(self, run_session):
        await run_session.process_ai_output(
            '[Game:Start, data:{"game_type": "Poker", "players": ["Tester", "Bandit", "Rat"]}]'
        )

        enemies = (await run_session.repo.get(EnemyData)).enemies
        assert [e.name for e in enemies] == ["Bandit", "Rat"]
        assert all(e.chips == 1000 and e.play_style == "Unknown" for e in enemies)

    async def test_per_enemy_initial_state(self, run_session):
        await run_session.process_ai_output(
            '[Game:Start, data:{"game_type": "Poker", "players": ["{{user}}", "A", "B"], '
            '"initial_state": [{"name": "A", "chips": 50}, {"name": "B", "chips": 70}]}]'
        )

        enemies = (await run_session.repo.get(EnemyData)).enemies
        assert [(e.name, e.chips) for e in enemies] == [("A", 50), ("B", 70)]

    async def test_start_without_players_fails(self, run_session):
        results = await run_session.process_ai_output('[Game:Start, data:{"game_type": "Poker"}]')

        assert not results[0].success
        assert not (await game_state(run_session)).is_active

    async def test_start_clears_previous_hand(self, table):
        await table.process_ai_output('[Game:Function, data:{"type": "发牌", "actions": [{"target": "player", "count": 2}]}]')
        await table.dealer.process_pending_deal()

        await table.process_ai_output("[Game:Start, data:{\"game_type\": \"Again\", \"players\": [\"{{user}}\", \"Bandit\"]}]")

        assert (await table.repo.get(PlayerCards)).current_hand == []
        assert len((await table.repo.get(PrivateData)).deck) == 52


class TestSetupDeck:

    async def test_custom_deck(self, table):
        await table.process_ai_output('[Game:SetupDeck, data:{"num_decks": 2, "jokers": 2}]')

        assert len((await table.repo.get(PrivateData)).deck) == 106


class TestModifyCards:

    async def test_update_board_ranks(self, table):
        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": [{"location": "board", '
            '"operation": "add", "cards_to_add": [{"suit": "♥", "rank": "10"}, {"suit": "♠", "rank": "A"}]}]}]'
        )

        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": [{"location": "board", "operation": "update", '
            '"card_filter": {"index": "all"}, "modifications": [{"field": "rank", "operation": "add", "value": 1}]}]}]'
        )

        board = (await game_state(table)).board_cards
        assert [c.label for c in board] == ["♥J", "♠A"]

    async def test_remove_from_enemy_hand(self, table):
        await table.process_ai_output(
            '[Game:Function, data:{"type": "ModifyCard", "targets": [{"location": "enemy_hand", '
            '"enemy_name": "Bandit", "operation": "add", "cards_to_add": [{"suit": "♦", "rank": "2"}, '
            '{"suit": "♣", "rank": "3"}]}]}]'
        )

        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": [{"location": "enemy_hand", '
            '"enemy_name": "Bandit", "operation": "remove", "card_filter": {"suit": "♦"}}]}]'
        )

        hand = (await table.repo.get(EnemyData)).find("Bandit").hand
        assert [c.label for c in hand] == ["♣3"]

    async def test_invalid_location_is_skipped(self, table):
        results = await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": [{"location": "graveyard", "operation": "add"}]}]'
        )

        assert results[0].success
        assert results[0].changes == []

    async def test_unknown_function_type(self, table):
        results = await table.process_ai_output('[Game:Function, data:{"type": "Teleport"}]')

        assert results[0].error_code is ErrorCode.UNKNOWN_COMMAND


class TestUpdateStateAndHint:

    async def test_update_state_merges(self, table):
        await table.process_ai_output('[Game:UpdateState, data:{"current_turn": "Bandit", "weather": "rain"}]')

        state = await game_state(table)
        assert state.current_turn == "Bandit"
        assert state.model_extra["weather"] == "rain"
        assert state.players == ["{{user}}", "Bandit"]

    async def test_hint(self, table):
        await table.process_ai_output("[Game:Hint, text:Watch the river]")

        assert table.ctx.hint == "Watch the river"

    async def test_hint_without_text_fails(self, table):
        results = await table.process_ai_output("[Game:Hint]")

        assert not results[0].success


class TestGameEnd:

    async def test_lose_keeps_pot_unclaimable(self, table):
        await table.process_ai_output('[Game:UpdateState, data:{"pot_amount": 500}]')

        await table.process_ai_output("[Game:End, result:lose, reason:Outplayed]")

        player = await table.repo.get(PlayerData)
        assert player.claimable_pot == 0
        assert (await table.repo.get(EnemyData)).enemies == []
        assert not (await game_state(table)).is_active
        assert table.ctx.active_view is View.MAP

    async def test_win_credits_pot(self, table):
        await table.process_ai_output('[Game:UpdateState, data:{"pot_amount": 500}]')

        await table.process_ai_output("[Game:End, result:win, reason:Royal flush]")

        assert (await table.repo.get(PlayerData)).claimable_pot == 500

    async def test_end_clears_hand_and_hint(self, table):
        await table.process_ai_output("[Game:Hint, text:bluff]")
        await table.process_ai_output('[Game:Function, data:{"type": "Deal", "actions": [{"target": "player", "count": 2}]}]')
        await table.dealer.process_pending_deal()

        await table.process_ai_output("[Game:End, result:escape, reason:Ran]")

        assert (await table.repo.get(PlayerCards)).current_hand == []
        assert table.ctx.hint is None

    async def test_boss_win_adds_reward_nodes(self, table):
        await table.process_ai_output("[Game:End, result:boss_win, reason:Boss down]")
        await table.process_ai_output("[Game:Start, data:{\"players\": [\"{{user}}\", \"Bandit\"]}]")
        await table.process_ai_output("[Game:End, result:boss_win, reason:Again]")

        map_data = await table.repo.get(MapData)
        rewards = [n for n in map_data.nodes if n.type in ("angel", "devil")]
        boss = next(n for n in map_data.nodes if n.type == "boss")
        assert map_data.boss_defeated
        assert sorted(n.id for n in rewards) == ["L0-ANGEL", "L0-DEVIL"]
        assert all(n.row == boss.row + 1 for n in rewards)
        assert sorted(boss.connections) == ["L0-ANGEL", "L0-DEVIL"]
        assert sum(1 for p in map_data.paths if p.from_id == boss.id) == 2

    async def test_dead_resets_run(self, table):
        await table.process_ai_output("[Game:End, result:dead, reason:Shot]")

        assert not table.ctx.run_in_progress
        assert (await table.repo.get(PlayerData)).health == 0
        assert not (await table.repo.get(MapData)).has_nodes
        assert table.ctx.active_view is View.DIFFICULTY

    async def test_lose_when_broke_costs_health(self, table):
        await table.repo.update(PlayerData, lambda p: setattr(p, "chips", 0))

        await table.process_ai_output("[Game:End, result:lose, reason:Busted]")

        player = await table.repo.get(PlayerData)
        assert player.health == 2
        assert player.chips == 1000


class TestBetting:

    async def test_enemy_bet(self, table):
        await table.process_ai_output("[Action:Bet, player_name:Bandit, amount:100]")

        state = await game_state(table)
        assert state.pot_amount == 100
        assert state.last_bet_amount == 100
        assert (await table.repo.get(EnemyData)).find("Bandit").chips == 700

    async def test_user_bet_charges_player(self, table):
        await table.process_ai_output("[Action:Bet, player_name:{{user}}, amount:100]")

        assert (await table.repo.get(PlayerData)).chips == 900

    async def test_user_overbet_goes_bankrupt(self, table):
        await table.process_ai_output("[Action:Bet, player_name:{{user}}, amount:1500]")

        player = await table.repo.get(PlayerData)
        assert (player.health, player.chips) == (2, 1000)
        assert (await game_state(table)).pot_amount == 1500

    async def test_user_call_to_zero_goes_bankrupt(self, table):
        await table.repo.update(PlayerData, lambda p: setattr(p, "chips", 100))
        await table.process_ai_output("[Action:Bet, player_name:Bandit, amount:100]")

        await table.process_ai_output("[Action:Call, player_name:{{user}}]")

        player = await table.repo.get(PlayerData)
        assert player.chips >= 0
        assert player.health == 2

    async def test_bet_with_things(self, table):
        await table.process_ai_output('[Action:Bet, player_name:Bandit, data:{"things": "a silver ring"}]')

        state = await game_state(table)
        assert state.custom_wagers == [{"player": "Bandit", "item": "a silver ring"}]
        assert state.pot_amount == 0

    async def test_call_matches_last_bet(self, table):
        await table.process_ai_output("[Action:Bet, player_name:Bandit, amount:100]")

        await table.process_ai_output("[Action:Call, player_name:{{user}}]")

        state = await game_state(table)
        assert state.pot_amount == 200
        assert (await table.repo.get(PlayerData)).chips == 900

    async def test_call_without_bet_changes_nothing(self, table):
        results = await table.process_ai_output("[Action:Call, player_name:Bandit]")

        assert not results[0].success
        assert (await game_state(table)).pot_amount == 0
        assert (await table.repo.get(EnemyData)).find("Bandit").chips == 800

    async def test_unknown_actor_fails(self, table):
        results = await table.process_ai_output("[Action:Check, player_name:Ghost] [Action:Fold, player_name:Ghost]")

        assert [r.success for r in results] == [False, False]

    async def test_check_and_fold_record_history(self, table):
        results = await table.process_ai_output("[Action:Check, player_name:Bandit] [Action:Fold, player_name:Bandit]")

        assert all(r.success for r in results)
        actions = [e.data["action"] for e in table.ctx.history.entries()[:2]]
        assert actions == ["fold", "check"]


class TestCardActions:

    async def test_hit_queues_public_card(self, table):
        await table.process_ai_output("[Action:Hit, player_name:Bandit]")

        queued = (await game_state(table)).unprocessed_deal_actions
        assert len(queued) == 1
        assert queued[0].target == "enemy"
        assert queued[0].name == "Bandit"
        assert queued[0].visibility is Visibility.PUBLIC

    async def test_showdown_reveals(self, table):
        await table.process_ai_output('[Game:Function, data:{"type": "Deal", "actions": [{"target": "enemy", "name": "Bandit", "count": 2}]}]')
        await table.dealer.process_pending_deal()

        await table.process_ai_output("[Action:Showdown, player_name:Bandit]")

        hand = (await table.repo.get(EnemyData)).find("Bandit").hand
        assert all(c.visibility is Visibility.PUBLIC for c in hand)

    async def test_showdown_unknown_enemy(self, table):
        results = await table.process_ai_output("[Action:Showdown, player_name:Ghost]")

        assert not results[0].success

    async def test_random_swap_keeps_card_count(self, table):
        await table.process_ai_output('[Game:Function, data:{"type": "Deal", "actions": [{"target": "player", "count": 2}]}]')
        await table.dealer.process_pending_deal()

        await table.process_ai_output(
            '[Action:SwapCards, data:{"swap_type": "random", "source": {"location": "player_hand"}, '
            '"destination": {"location": "deck"}, "count": 1}]'
        )

        hand = (await table.repo.get(PlayerCards)).current_hand
        deck = (await table.repo.get(PrivateData)).deck
        assert len(hand) == 2
        assert len(deck) == 50
        assert len({c.label for c in hand + deck}) == 52

    async def test_specific_swap(self, table):
        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": ['
            '{"location": "player_hand", "operation": "add", "cards_to_add": [{"suit": "♥", "rank": "2"}]}, '
            '{"location": "board", "operation": "add", "cards_to_add": [{"suit": "♠", "rank": "K"}]}]}]'
        )

        await table.process_ai_output(
            '[Action:SwapCards, data:{"swap_type": "specific", '
            '"card_one": {"location": "player_hand", "card_filter": {"rank": "2"}}, '
            '"card_two": {"location": "board", "card_filter": {"rank": "K"}}}]'
        )

        assert [c.label for c in (await table.repo.get(PlayerCards)).current_hand] == ["♠K"]
        assert [c.label for c in (await game_state(table)).board_cards] == ["♥2"]

    async def test_specific_swap_moves_the_card_it_picked(self, table, monkeypatch):
        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": ['
            '{"location": "player_hand", "operation": "add", "cards_to_add": '
            '[{"suit": "♥", "rank": "2"}, {"suit": "♥", "rank": "3"}]}, '
            '{"location": "board", "operation": "add", "cards_to_add": [{"suit": "♠", "rank": "K"}]}]}]'
        )
        picks = []

        def choice(options):
            picks.append(options)
            return options[0] if len(picks) == 1 else options[-1]

        monkeypatch.setattr(table.ctx.rng, "choice", choice)

        await table.process_ai_output(
            '[Action:SwapCards, data:{"swap_type": "specific", '
            '"card_one": {"location": "player_hand", "card_filter": {"index": "random"}}, '
            '"card_two": {"location": "board", "card_filter": {"index": 0}}}]'
        )

        assert len(picks) == 1
        assert [c.label for c in (await game_state(table)).board_cards] == ["♥2"]
        assert [c.label for c in (await table.repo.get(PlayerCards)).current_hand] == ["♥3", "♠K"]

    async def test_specific_swap_within_one_hand(self, table):
        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": [{"location": "player_hand", "operation": "add", '
            '"cards_to_add": [{"suit": "♥", "rank": "2"}, {"suit": "♥", "rank": "3"}, {"suit": "♥", "rank": "4"}]}]}]'
        )

        results = await table.process_ai_output(
            '[Action:SwapCards, data:{"swap_type": "specific", '
            '"card_one": {"location": "player_hand", "card_filter": {"rank": "2"}}, '
            '"card_two": {"location": "player_hand", "card_filter": {"rank": "4"}}}]'
        )

        assert results[0].success
        assert [c.label for c in (await table.repo.get(PlayerCards)).current_hand] == ["♥3", "♥4", "♥2"]

    async def test_specific_swap_with_itself_fails(self, table):
        await table.process_ai_output(
            '[Game:Function, data:{"type": "Modify", "targets": [{"location": "player_hand", "operation": "add", '
            '"cards_to_add": [{"suit": "♥", "rank": "2"}]}]}]'
        )

        results = await table.process_ai_output(
            '[Action:SwapCards, data:{"swap_type": "specific", '
            '"card_one": {"location": "player_hand"}, "card_two": {"location": "player_hand"}}]'
        )

        assert not results[0].success
        assert [c.label for c in (await table.repo.get(PlayerCards)).current_hand] == ["♥2"]

    async def test_specific_swap_missing_card(self, table):
        results = await table.process_ai_output(
            '[Action:SwapCards, data:{"swap_type": "specific", '
            '"card_one": {"location": "player_hand"}, "card_two": {"location": "board"}}]'
        )

        assert not results[0].success


class TestRecordValidation:

    async def test_invalid_update_state_is_rejected(self, table):
        results = await table.process_ai_output('[Game:UpdateState, data:{"pot_amount": "a lot"}]')

        assert results[0].error_code is ErrorCode.VALIDATION_FAILURE
        assert (await table.repo.get(GameState)).pot_amount == 0
