"""
Run Manager - Lifecycle of a run.

States:
    no book -> mode unselected -> mode selected (difficulty pending)
            -> run in progress -> reset | next floor

Every method performs its document writes one after another and
finishes with a refresh, so the snapshot always reflects the store.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from ..dungeon import generate_map_data
from ..engine_core.state import (
    EnemyData,
    GameState,
    MapData,
    MetaData,
    PlayerCards,
    PlayerData,
    PrivateData,
)
from ..store import GameMode
from ..store.templates import player_cards_template, player_data_template
from .context import NoticeLevel, SessionContext, View

logger = logging.getLogger(__name__)

BANKRUPTCY_RESTOCK = 1000
FLOOR_SHARD_REWARD = 10


@dataclass(frozen=True)
class Difficulty:
    key: str
    health: int
    chips: int


DIFFICULTIES: dict[str, Difficulty] = {
    d.key: d for d in (
        Difficulty("baby", 5, 2000),
        Difficulty("easy", 4, 1500),
        Difficulty("normal", 3, 1000),
        Difficulty("hard", 2, 500),
        Difficulty("hell", 1, 100),
    )
}

MERCY_PROMPT = (
    "(System: {{user}} falls to their knees and begs you for mercy. "
    "Decide, in character, whether to spare them, humiliate them further, "
    "or end their suffering.)"
)


class RunManager:
    """
    Starts, resets, and advances runs; owns the bankruptcy rule.

    Usage:
        runs = RunManager(ctx)
        await runs.select_game_mode("roguelike")
        await runs.start_new_run("normal")
    """

    def __init__(self, ctx: SessionContext):
        self.ctx = ctx

    async def select_game_mode(self, mode: GameMode | str) -> bool:
        try:
            mode = GameMode(mode)
        except ValueError:
            logger.warning("Unknown game mode: %r", mode)
            self.ctx.notify(NoticeLevel.WARNING, f"Unknown game mode: {mode}")
            return False

        if not await self.ctx.repo.has_book():
            await self.ctx.repo.create_book(mode)
            self.ctx.notify(NoticeLevel.SUCCESS, "Game book created.")

        logger.info("Game mode selected: %s", mode.value)
        self.ctx.game_mode = mode
        self.ctx.is_mode_selected = True

        if mode is GameMode.ORIGIN:
            self.ctx.active_view = View.GAME_UI
            await self.ctx.repo.replace(PlayerData, player_data_template())
        else:
            self.ctx.active_view = View.DIFFICULTY
        await self.ctx.refresh()
        return True

    async def start_new_run(self, difficulty: str) -> bool:
        settings = DIFFICULTIES.get(difficulty)
        if settings is None:
            logger.warning("Unknown difficulty: %r", difficulty)
            self.ctx.notify(NoticeLevel.WARNING, f"Unknown difficulty: {difficulty}")
            return False

        logger.info("Starting new run with difficulty %s", difficulty)
        player = PlayerData(
            name=self.ctx.user_name,
            health=settings.health,
            max_health=settings.health,
            chips=settings.chips,
        )
        await self.ctx.repo.replace(PlayerData, player)
        await self.ctx.repo.replace(MapData, generate_map_data(layer=0, rng=self.ctx.rng))
        await self.ctx.repo.replace(GameState, {})
        await self.ctx.repo.replace(EnemyData, {"enemies": []})

        self.ctx.selected_map_node = None
        self.ctx.active_view = View.MAP
        self.ctx.history.add_game_status(f"New run started ({difficulty})")
        await self.ctx.refresh()
        return True

    async def reset_all_game_data(self, award_shards: bool = False) -> None:
        """
        Blank every per-run document and the transient flags.

        Meta progression survives. award_shards is accepted for callers
        that end a run victoriously; no shards are granted on reset.
        """
        logger.info("Resetting run data (award_shards=%s)", award_shards)
        repo = self.ctx.repo
        await repo.replace(PlayerData, {})
        await repo.replace(MapData, {})
        await repo.replace(GameState, {})
        await repo.replace(EnemyData, {})
        await repo.replace(PlayerCards, player_cards_template())
        await repo.replace(PrivateData, {})

        self.ctx.run_in_progress = False
        self.ctx.staged_actions.clear()
        self.ctx.hint = None
        self.ctx.selected_map_node = None
        self.ctx.active_view = View.DIFFICULTY

        self.ctx.notify(NoticeLevel.SUCCESS, "The run has been reset.")
        await self.ctx.refresh()

    async def advance_to_next_floor(self) -> bool:
        map_data = await self.ctx.repo.get(MapData)
        if not map_data.boss_defeated:
            self.ctx.notify(NoticeLevel.WARNING, "You must defeat this floor's boss first!")
            return False

        logger.info("Advancing to the next floor")

        def add_shards(meta: MetaData) -> None:
            meta.legacy_shards += FLOOR_SHARD_REWARD

        await self.ctx.repo.update(MetaData, add_shards)
        self.ctx.notify(
            NoticeLevel.SUCCESS,
            f"You defeated the boss and earned {FLOOR_SHARD_REWARD} legacy shards!",
        )

        next_layer = map_data.map_layer + 1
        await self.ctx.repo.replace(MapData, generate_map_data(layer=next_layer, rng=self.ctx.rng))
        self.ctx.selected_map_node = None

        self.ctx.notify(NoticeLevel.SUCCESS, f"You have reached floor {next_layer + 1}!")
        self.ctx.history.add_game_status(f"Reached floor {next_layer + 1}")
        await self.ctx.refresh()
        return True

    async def check_player_vitals(self) -> None:
        """
        Apply the bankruptcy rule against the latest stored player data.

        During a run, chips <= 0 costs one health and restocks chips;
        at zero health the run is reset. Outside a run, negative chips
        are clamped to zero.
        """
        latest = await self.ctx.repo.get(PlayerData)

        if latest.chips <= 0 and self.ctx.run_in_progress:
            logger.warning("Player is out of chips, applying health penalty")
            outcome: dict[str, bool] = {}

            def penalize(player: PlayerData) -> None:
                player.health = max(0, player.health - 1)
                outcome["died"] = player.health == 0
                if not outcome["died"]:
                    player.chips = BANKRUPTCY_RESTOCK

            await self.ctx.repo.update(PlayerData, penalize)

            if outcome["died"]:
                self.ctx.notify(NoticeLevel.ERROR, "Your health is gone! The run is over.", "Game over")
                await self.reset_all_game_data(award_shards=False)
                return
            self.ctx.notify(
                NoticeLevel.WARNING,
                f"You went bust and lost 1 health! {BANKRUPTCY_RESTOCK} chips were restocked.",
                "Bankrupt!",
            )
            await self.ctx.refresh()
            return

        if latest.chips < 0:
            def clamp(player: PlayerData) -> None:
                player.chips = max(0, player.chips)

            await self.ctx.repo.update(PlayerData, clamp)
            await self.ctx.refresh()

    async def claim_pot(self) -> int:
        """Move claimable_pot into chips in one update. Returns the amount claimed."""
        claimed: dict[str, int] = {"amount": 0}

        def move(player: PlayerData) -> None:
            claimed["amount"] = player.claimable_pot
            if player.claimable_pot > 0:
                player.chips += player.claimable_pot
                player.claimable_pot = 0

        await self.ctx.repo.update(PlayerData, move)
        if claimed["amount"] > 0:
            logger.info("Player claimed a pot of %d chips", claimed["amount"])
            self.ctx.history.add_event(f"Claimed a pot of {claimed['amount']} chips")
        await self.ctx.refresh()
        return max(0, claimed["amount"])

    async def surrender(self) -> None:
        logger.info("Player surrenders the run")
        await self.reset_all_game_data(award_shards=False)
        self.ctx.notify(NoticeLevel.INFO, "You gave up the run.")

    async def beg_for_mercy(self) -> None:
        logger.info("Player begs for mercy")
        self.ctx.notify(NoticeLevel.INFO, "Your fate is in your opponent's hands now...")
        await self.ctx.submit_prompt(MERCY_PROMPT)
