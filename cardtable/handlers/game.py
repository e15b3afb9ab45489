"""
Game Lifecycle Handler - Game:* and Action:* commands.

Game commands set up, run, and end a hand:
    SetupDeck, Start, Function (deal / modify cards), UpdateState, Hint, End

Action commands narrate what a participant did at the table:
    Bet, Call, Check, Fold, Hit, Showdown, SwapCards

The engine does not judge legality. It validates that targets exist,
keeps chip and pot arithmetic consistent, and keeps every card in
exactly one place.
"""

from __future__ import annotations
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from ..engine_core.cards import apply_card_modifications, select_card_indices, to_cards
from ..engine_core.command import Command, CommandKind, CommandResult, ErrorCode
from ..engine_core.deck import create_deck_from_options, new_shuffled_deck, shuffle
from ..engine_core.state import (
    Card,
    Enemy,
    EnemyData,
    GameState,
    MapData,
    MapNode,
    MapPath,
    NodeType,
    PlayerCards,
    PlayerData,
    PrivateData,
    Visibility,
)
from ..session.context import NoticeLevel, SessionContext, View
from ..session.dealing import DealPipeline, update_visible_deck
from ..session.run_manager import RunManager
from ..store import GameMode
from .base import CommandHandler, HandlerFn, parse_amount

logger = logging.getLogger(__name__)

DEAL_FUNCTION_TYPES = ("发牌", "Deal")
MODIFY_FUNCTION_TYPES = ("Modify", "ModifyCard")
END_RESULTS = ("win", "lose", "dead", "boss_win", "escape", "other")

LOCATION_DOCUMENTS: dict[str, type[BaseModel]] = {
    "player_hand": PlayerCards,
    "enemy_hand": EnemyData,
    "board": GameState,
    "deck": PrivateData,
}


def cards_at(record: BaseModel, location: str, enemy_name: str | None = None) -> list[Card] | None:
    """The live card list of a location inside its document record."""
    if location == "player_hand":
        return record.current_hand
    if location == "board":
        return record.board_cards
    if location == "deck":
        return record.deck
    if location == "enemy_hand":
        enemy = record.find(enemy_name or "")
        return enemy.hand if enemy is not None else None
    return None


class GameLifecycleHandler(CommandHandler):
    """
    Handles Game:* and Action:* commands for one session.
    """

    def __init__(self, ctx: SessionContext, dealer: DealPipeline, runs: RunManager):
        super().__init__(ctx)
        self.dealer = dealer
        self.runs = runs

    def handlers(self) -> dict[CommandKind, HandlerFn]:
        return {
            CommandKind.GAME_SETUP_DECK: self.setup_deck,
            CommandKind.GAME_START: self.start,
            CommandKind.GAME_END: self.end,
            CommandKind.GAME_FUNCTION: self.function,
            CommandKind.GAME_UPDATE_STATE: self.update_state,
            CommandKind.GAME_HINT: self.hint,
            CommandKind.ACTION_BET: self.bet,
            CommandKind.ACTION_CALL: self.call,
            CommandKind.ACTION_CHECK: self.check,
            CommandKind.ACTION_FOLD: self.fold,
            CommandKind.ACTION_HIT: self.hit,
            CommandKind.ACTION_SHOWDOWN: self.showdown,
            CommandKind.ACTION_SWAP_CARDS: self.swap_cards,
        }

    # =========================================================================
    # Game:*
    # =========================================================================

    async def setup_deck(self, command: Command) -> CommandResult:
        deck = shuffle(create_deck_from_options(command.data), self.ctx.rng)
        await self.ctx.repo.replace(PrivateData, PrivateData(deck=deck))
        await update_visible_deck(self.ctx, deck)
        logger.info("Custom deck of %d cards created and shuffled", len(deck))
        self.ctx.history.add_game_status(f"Set up a deck of {len(deck)} cards")
        return CommandResult.ok(f"deck of {len(deck)} cards")

    async def start(self, command: Command) -> CommandResult:
        self.ctx.hint = None
        game_type = command.data.get("game_type")
        players = command.data.get("players")
        initial_state = command.data.get("initial_state")

        if not isinstance(players, list) or not all(isinstance(p, str) for p in players):
            logger.error("Game:Start without a players list: %r", command.data)
            self.ctx.notify(
                NoticeLevel.ERROR,
                "Cannot start the game: the command has no player list.",
                "Command error",
            )
            return CommandResult.failure("players must be a list of names")

        enemy_names = [p for p in players if not self.ctx.is_user(p)]
        try:
            enemies = [Enemy.model_validate(self._enemy_seed(name, initial_state)) for name in enemy_names]
        except ValidationError as e:
            logger.error("Game:Start initial_state is invalid: %s", e)
            return CommandResult.failure(f"invalid initial_state: {e}")

        self.ctx.notify(NoticeLevel.INFO, f"A new hand has started: {game_type}", "Game start")
        self.ctx.history.add_game_status(f"Hand started: {game_type}")

        deck = new_shuffled_deck(self.ctx.rng)
        await self.ctx.repo.replace(PrivateData, PrivateData(deck=deck))
        await update_visible_deck(self.ctx, deck)
        await self.ctx.repo.replace(EnemyData, EnemyData(enemies=enemies))

        def reset_table(state: GameState) -> None:
            state.game_type = game_type
            state.players = list(players)
            state.current_turn = players[0] if players else None
            state.pot_amount = 0
            state.board_cards = []
            state.custom_wagers = []
            state.last_bet_amount = 0
            state.last_deal_animation_queue = None

        await self.ctx.repo.update(GameState, reset_table)
        await self.ctx.repo.update(PlayerCards, lambda cards: setattr(cards, "current_hand", []))

        logger.info("Game started: %s with %s", game_type, players)
        await self.ctx.refresh()
        return CommandResult.ok(f"started {game_type}")

    @staticmethod
    def _enemy_seed(name: str, initial_state: Any) -> dict[str, Any]:
        """Initial enemy record: looked up by name, broadcast, or defaulted."""
        if isinstance(initial_state, list):
            seed = next(
                (s for s in initial_state if isinstance(s, dict) and s.get("name") == name),
                {},
            )
        elif isinstance(initial_state, dict):
            seed = initial_state
        else:
            seed = {"play_style": "Unknown", "chips": 1000}
        return {**seed, "name": name, "hand": []}

    async def function(self, command: Command) -> CommandResult:
        function_type = command.data.get("type")
        if function_type in DEAL_FUNCTION_TYPES:
            return await self.dealer.queue_deal(command.data.get("actions") or [])
        if function_type in MODIFY_FUNCTION_TYPES:
            return await self._modify_cards(command)
        logger.warning("Unknown game function type: %r", function_type)
        return CommandResult.failure(
            f"Unknown game function: {function_type}", ErrorCode.UNKNOWN_COMMAND,
        )

    async def _modify_cards(self, command: Command) -> CommandResult:
        targets = command.data.get("targets")
        if not isinstance(targets, list):
            logger.error("Modify command without a targets list: %r", command.data)
            return CommandResult.failure("targets must be a list")

        changes = []
        for target in targets:
            if not isinstance(target, dict):
                logger.warning("Ignoring malformed modify target: %r", target)
                continue
            location = target.get("location")
            record_type = LOCATION_DOCUMENTS.get(location)
            if record_type is None:
                logger.warning("Invalid location in Modify command: %r", location)
                continue

            touched: dict[str, int] = {"count": 0}

            def modify(record: BaseModel, target: dict[str, Any] = target) -> None:
                cards = cards_at(record, target["location"], target.get("enemy_name"))
                if cards is None:
                    logger.warning("No card list at %s (%s)", target["location"], target.get("enemy_name"))
                    return
                operation = target.get("operation")
                if operation == "update":
                    for i in select_card_indices(cards, target.get("card_filter"), self.ctx.rng):
                        apply_card_modifications(cards[i], target.get("modifications") or [])
                        touched["count"] += 1
                elif operation == "add":
                    new_cards = to_cards(target.get("cards_to_add"))
                    cards.extend(new_cards)
                    touched["count"] += len(new_cards)
                elif operation == "remove":
                    doomed = set(select_card_indices(cards, target.get("card_filter"), self.ctx.rng))
                    cards[:] = [c for i, c in enumerate(cards) if i not in doomed]
                    touched["count"] += len(doomed)
                else:
                    logger.warning("Unknown modify operation: %r", operation)

            await self.ctx.repo.update(record_type, modify)
            changes.append(f"{target.get('operation')} {touched['count']} card(s) at {location}")

        await self._mirror_deck(t.get("location") for t in targets if isinstance(t, dict))
        await self.ctx.refresh()
        logger.info("Game:Function Modify processed (%d target(s))", len(changes))
        return CommandResult.ok(*changes)

    async def update_state(self, command: Command) -> CommandResult:
        data = dict(command.data)

        def merge(state: GameState) -> GameState:
            return GameState.model_validate({**state.to_json(), **data})

        await self.ctx.repo.update(GameState, merge)
        await self.ctx.refresh()
        return CommandResult.ok(*(f"set {key}" for key in data))

    async def hint(self, command: Command) -> CommandResult:
        text = command.data.get("text")
        if not text:
            return CommandResult.failure("Hint without text")
        self.ctx.hint = str(text)
        logger.info("Received hint: %r", self.ctx.hint)
        return CommandResult.ok("hint set")

    async def end(self, command: Command) -> CommandResult:
        self.ctx.hint = None
        result = command.data.get("result", "other")
        reason = command.data.get("reason") or ""
        if result not in END_RESULTS:
            logger.warning("Unknown Game:End result %r, treating as other", result)
            result = "other"
        self.ctx.history.add_game_status(f"Hand over: {reason}")

        pot = (await self.ctx.repo.get(GameState)).pot_amount

        if result in ("win", "boss_win") and pot > 0:
            def credit(player: PlayerData) -> None:
                player.claimable_pot += pot

            await self.ctx.repo.update(PlayerData, credit)

        if result == "lose":
            self.ctx.notify(NoticeLevel.WARNING, reason, "Defeat...")
            await self.runs.check_player_vitals()
        elif result == "dead":
            self.ctx.notify(NoticeLevel.ERROR, reason, "You died")
            await self.runs.reset_all_game_data(award_shards=False)
            return CommandResult.ok("player died, run reset")
        elif result == "boss_win":
            self.ctx.notify(NoticeLevel.SUCCESS, reason, "The boss is defeated!")
            await self.ctx.repo.update(MapData, add_reward_nodes)
        elif result == "win":
            self.ctx.notify(NoticeLevel.SUCCESS, reason, "Victory!")
        elif result == "escape":
            self.ctx.notify(NoticeLevel.INFO, reason, "You escaped!")
        else:
            self.ctx.notify(NoticeLevel.INFO, reason, "Hand over")

        await self.ctx.repo.replace(EnemyData, {"enemies": []})
        await self.ctx.repo.replace(GameState, {})
        await self.ctx.repo.update(PlayerCards, lambda cards: setattr(cards, "current_hand", []))

        self.ctx.active_view = View.MAP if self.ctx.game_mode is GameMode.ROGUELIKE else View.GAME_UI
        await self.ctx.refresh()
        return CommandResult.ok(f"hand ended: {result}")

    # =========================================================================
    # Action:*
    # =========================================================================

    async def bet(self, command: Command) -> CommandResult:
        actor = command.data.get("player_name")
        if not await self.is_participant(actor):
            logger.warning("Bet from unknown participant %r", actor)
            return CommandResult.failure(f"Unknown participant: {actor}")

        things = command.data.get("things")
        raw_amount = command.data.get("amount")
        amount = parse_amount(raw_amount) if raw_amount not in (None, "") else 0
        if amount is None:
            return CommandResult.failure(f"Invalid bet amount: {raw_amount!r}")

        self.ctx.history.add_action(actor=actor, action="bet", amount=amount, things=things)

        if amount:
            def raise_pot(state: GameState) -> None:
                state.pot_amount += amount
                state.last_bet_amount = amount

            await self.ctx.repo.update(GameState, raise_pot)
            await self._charge(actor, amount)

        if things:
            def wager(state: GameState) -> None:
                state.custom_wagers.append({"player": actor, "item": things})

            await self.ctx.repo.update(GameState, wager)

        await self.ctx.refresh()
        return CommandResult.ok(f"{actor} bet {amount}")

    async def call(self, command: Command) -> CommandResult:
        actor = command.data.get("player_name")
        if not await self.is_participant(actor):
            logger.warning("Call from unknown participant %r", actor)
            return CommandResult.failure(f"Unknown participant: {actor}")

        to_call = (await self.ctx.repo.get(GameState)).last_bet_amount
        if to_call <= 0:
            logger.warning("Call received but there is no bet to call, ignoring")
            return CommandResult.failure("No bet to call")

        self.ctx.history.add_action(actor=actor, action="call", amount=to_call)

        def add_to_pot(state: GameState) -> None:
            state.pot_amount += to_call

        await self.ctx.repo.update(GameState, add_to_pot)
        await self._charge(actor, to_call)
        await self.ctx.refresh()
        return CommandResult.ok(f"{actor} called {to_call}")

    async def check(self, command: Command) -> CommandResult:
        return await self._record_only(command, "check")

    async def fold(self, command: Command) -> CommandResult:
        return await self._record_only(command, "fold")

    async def _record_only(self, command: Command, action: str) -> CommandResult:
        actor = command.data.get("player_name")
        if not await self.is_participant(actor):
            logger.warning("%s from unknown participant %r", action, actor)
            return CommandResult.failure(f"Unknown participant: {actor}")
        logger.info("%s: %s", actor, action)
        self.ctx.history.add_action(actor=actor, action=action)
        await self.ctx.refresh()
        return CommandResult.ok(f"{actor} {action}")

    async def hit(self, command: Command) -> CommandResult:
        actor = command.data.get("player_name")
        if not await self.is_participant(actor):
            logger.warning("Hit from unknown participant %r", actor)
            return CommandResult.failure(f"Unknown participant: {actor}")

        self.ctx.history.add_action(actor=actor, action="hit")
        if self.ctx.is_user(actor):
            action = {"target": "player", "count": 1, "visibility": Visibility.PUBLIC.value}
        else:
            action = {"target": "enemy", "name": actor, "count": 1, "visibility": Visibility.PUBLIC.value}
        return await self.dealer.queue_deal([action])

    async def showdown(self, command: Command) -> CommandResult:
        name = command.data.get("player_name")
        if not name:
            return CommandResult.failure("Showdown without player_name")
        self.ctx.history.add_action(actor=name, action="showdown")
        revealed: dict[str, bool] = {}

        def reveal(data: EnemyData) -> None:
            enemy = data.find(name)
            revealed["found"] = enemy is not None
            if enemy is not None:
                for card in enemy.hand:
                    card.visibility = Visibility.PUBLIC

        await self.ctx.repo.update(EnemyData, reveal)
        await self.ctx.refresh()
        if not revealed["found"]:
            logger.warning("Showdown for unknown enemy %r", name)
            return CommandResult.failure(f"Unknown enemy: {name}")
        return CommandResult.ok(f"{name} revealed their hand")

    async def swap_cards(self, command: Command) -> CommandResult:
        data = command.data
        swap_type = data.get("swap_type")

        if swap_type == "random":
            source, destination = data.get("source"), data.get("destination")
            count = parse_amount(data.get("count"))
            if not _is_location(source) or not _is_location(destination) or not count:
                logger.error("Invalid random swap: missing source, destination or count")
                return CommandResult.failure("random swap needs source, destination and count")

            def pick_random(cards: list[Card]) -> list[int]:
                k = min(count, len(cards))
                return self.ctx.rng.sample(range(len(cards)), k)

            from_source = await self._take(source, pick_random)
            from_destination = await self._take(destination, pick_random)
            await self._give(source, from_destination)
            await self._give(destination, from_source)

        elif swap_type == "specific":
            card_one, card_two = data.get("card_one"), data.get("card_two")
            if not _is_location(card_one) or not _is_location(card_two):
                logger.error("Invalid specific swap: missing card_one or card_two")
                return CommandResult.failure("specific swap needs card_one and card_two")

            first = await self._peek(card_one)
            second = await self._peek(card_two)
            if not first or not second:
                logger.error("Could not find one or both cards for specific swap")
                return CommandResult.failure("card not found for swap")

            same_list = _same_list(card_one, card_two)
            if same_list and first == second:
                logger.error("Specific swap picked the same card twice")
                return CommandResult.failure("cannot swap a card with itself")
            if same_list and second[0] > first[0]:
                second = [second[0] - 1]

            taken_one = await self._take(card_one, lambda cards: first)
            taken_two = await self._take(card_two, lambda cards: second)
            await self._give(card_one, taken_two)
            await self._give(card_two, taken_one)

        else:
            logger.warning("Unknown swap_type: %r", swap_type)
            return CommandResult.failure(f"Unknown swap_type: {swap_type}")

        await self._mirror_deck(
            where.get("location") for where in (data.get("source"), data.get("destination"),
                                                data.get("card_one"), data.get("card_two"))
            if isinstance(where, dict)
        )
        await self.ctx.refresh()
        return CommandResult.ok(f"{swap_type} swap")

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _charge(self, actor: str, amount: int) -> None:
        if self.ctx.is_user(actor):
            def pay(player: PlayerData) -> None:
                player.chips -= amount

            await self.ctx.repo.update(PlayerData, pay)
            await self.runs.check_player_vitals()
            return

        def enemy_pays(data: EnemyData) -> None:
            enemy = data.find(actor)
            if enemy is not None:
                enemy.chips -= amount

        await self.ctx.repo.update(EnemyData, enemy_pays)

    def _pick_filtered(self, cards: list[Card], where: dict[str, Any]) -> list[int]:
        return select_card_indices(cards, where.get("card_filter"), self.ctx.rng)[:1]

    async def _mirror_deck(self, locations) -> None:
        if "deck" in set(locations):
            await update_visible_deck(self.ctx, (await self.ctx.repo.get(PrivateData)).deck)

    async def _peek(self, where: dict[str, Any]) -> list[int]:
        record = await self.ctx.repo.get(LOCATION_DOCUMENTS[where["location"]])
        cards = cards_at(record, where["location"], where.get("enemy_name"))
        return self._pick_filtered(cards, where) if cards else []

    async def _take(self, where: dict[str, Any], picker) -> list[Card]:
        """Remove the picked cards from a location in one update."""
        taken: list[Card] = []

        def remove(record: BaseModel) -> None:
            cards = cards_at(record, where["location"], where.get("enemy_name"))
            if not cards:
                return
            picked = set(picker(cards))
            taken.extend(c for i, c in enumerate(cards) if i in picked)
            cards[:] = [c for i, c in enumerate(cards) if i not in picked]

        await self.ctx.repo.update(LOCATION_DOCUMENTS[where["location"]], remove)
        return taken

    async def _give(self, where: dict[str, Any], new_cards: list[Card]) -> None:
        if not new_cards:
            return

        def append(record: BaseModel) -> None:
            cards = cards_at(record, where["location"], where.get("enemy_name"))
            if cards is not None:
                cards.extend(new_cards)

        await self.ctx.repo.update(LOCATION_DOCUMENTS[where["location"]], append)


def _is_location(where: Any) -> bool:
    return isinstance(where, dict) and where.get("location") in LOCATION_DOCUMENTS


def _same_list(one: dict[str, Any], two: dict[str, Any]) -> bool:
    return (one["location"], one.get("enemy_name")) == (two["location"], two.get("enemy_name"))


def add_reward_nodes(map_data: MapData) -> None:
    """Mark the boss defeated and wire the angel and devil nodes from it (idempotent)."""
    map_data.boss_defeated = True
    boss = next((n for n in map_data.nodes if n.type == NodeType.BOSS.value), None)
    if boss is None:
        return

    layer = map_data.map_layer
    rewards = (
        MapNode(id=f"L{layer}-ANGEL", row=boss.row + 1, x=boss.x - 100, y=boss.y - 100,
                type=NodeType.ANGEL.value),
        MapNode(id=f"L{layer}-DEVIL", row=boss.row + 1, x=boss.x + 100, y=boss.y - 100,
                type=NodeType.DEVIL.value),
    )
    for node in rewards:
        if map_data.get_node(node.id) is None:
            map_data.nodes.append(node)
        if not any(p.from_id == boss.id and p.to_id == node.id for p in map_data.paths):
            map_data.paths.append(MapPath(from_id=boss.id, to_id=node.id))
        if node.id not in boss.connections:
            boss.connections.append(node.id)
