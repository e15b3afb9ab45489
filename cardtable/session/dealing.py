"""
Two-phase dealing.

Phase 1 (queue_deal) only records the requested deal actions in
GameState.unprocessed_deal_actions. Phase 2 (process_pending_deal)
draws every card the request needs in one update of the deck, or none
at all, then distributes them tagged isNew, and moves the request to
last_deal_animation_queue. cleanup_after_deal clears the markers once
the presentation layer has animated them.
"""

from __future__ import annotations
import logging
from typing import Any

from pydantic import ValidationError

from ..engine_core.command import CommandResult, ErrorCode
from ..engine_core.deck import visible_deck_string
from ..engine_core.state import (
    Card,
    DealAction,
    EnemyData,
    GameState,
    PlayerCards,
    PrivateData,
    Visibility,
    VisibleDeck,
)
from .context import NoticeLevel, SessionContext

logger = logging.getLogger(__name__)

DEAL_TARGETS = ("player", "enemy", "board")
VISIBLE_DECK_COMMENT = "Deck order visible to the AI. Deal strictly in this order."


def to_deal_actions(raw: Any) -> list[DealAction]:
    """Validate AI-supplied deal actions, dropping malformed entries."""
    if not isinstance(raw, list):
        logger.warning("Deal actions must be a list, got %r", raw)
        return []
    actions = []
    for item in raw:
        try:
            actions.append(DealAction.model_validate(item))
        except ValidationError as e:
            logger.warning("Ignoring malformed deal action %r: %s", item, e)
    return actions


async def update_visible_deck(ctx: SessionContext, deck: list[Card]) -> None:
    """Mirror the deck order to the AI-visible document when enabled."""
    if not ctx.deterministic_dealing:
        return

    def mirror(visible: VisibleDeck) -> None:
        visible.deck = visible_deck_string(deck)
        visible.comment = VISIBLE_DECK_COMMENT

    await ctx.repo.update(VisibleDeck, mirror)
    logger.debug("Visible deck mirrored (%d cards)", len(deck))


class DealPipeline:
    """
    Queues, executes, and cleans up deals for one session.
    """

    def __init__(self, ctx: SessionContext):
        self.ctx = ctx

    async def queue_deal(self, actions: list[DealAction] | list[dict[str, Any]]) -> CommandResult:
        """Phase 1: record the request. No card moves."""
        validated = to_deal_actions([
            a.to_json() if isinstance(a, DealAction) else a for a in actions
        ])

        def record(state: GameState) -> None:
            state.unprocessed_deal_actions = validated

        await self.ctx.repo.update(GameState, record)
        logger.info("Queued %d deal action(s)", len(validated))
        await self.ctx.refresh()
        return CommandResult.ok(f"queued {len(validated)} deal action(s)")

    async def process_pending_deal(self) -> CommandResult:
        """
        Phase 2: draw and distribute the queued cards.

        If the deck cannot cover the whole request, nothing is drawn,
        the request is dropped, and the user is told the counts.
        """
        repo = self.ctx.repo
        state = await repo.get(GameState)
        requested = state.unprocessed_deal_actions or []
        if not requested:
            return CommandResult.ok()

        enemy_names = {e.name for e in (await repo.get(EnemyData)).enemies}
        actions: list[DealAction] = []
        for action in requested:
            if action.count <= 0:
                continue
            if action.target not in DEAL_TARGETS:
                logger.warning("Unknown deal target %r, skipping", action.target)
                continue
            if action.target == "enemy" and action.name not in enemy_names:
                logger.warning("Deal to unknown enemy %r, skipping", action.name)
                continue
            actions.append(action)

        needed = sum(a.count for a in actions)
        if needed == 0:
            await self._clear_queue()
            return CommandResult.ok()

        self.ctx.notify(NoticeLevel.INFO, "The dealer is dealing...", "Deal")
        drawn: list[Card] = []
        remaining: list[Card] = []
        available: dict[str, int] = {}

        def draw(private: PrivateData) -> None:
            available["count"] = len(private.deck)
            if len(private.deck) < needed:
                return
            drawn.extend(private.deck[:needed])
            private.deck = private.deck[needed:]
            remaining.extend(private.deck)

        await repo.update(PrivateData, draw)

        if not drawn:
            message = f"Not enough cards in the deck. Needed {needed}, available {available['count']}."
            logger.error(message)
            self.ctx.notify(NoticeLevel.ERROR, message, "Deal failed")
            await self._clear_queue()
            return CommandResult.failure(message, ErrorCode.RESOURCE_EXHAUSTED)

        await update_visible_deck(self.ctx, remaining)

        to_player: list[Card] = []
        to_board: list[Card] = []
        to_enemies: dict[str, list[Card]] = {}
        for action in actions:
            cards, drawn = drawn[:action.count], drawn[action.count:]
            for card in cards:
                card.visibility = action.visibility or Visibility.OWNER
                card.is_new = True
            if action.target == "player":
                to_player.extend(cards)
            elif action.target == "board":
                to_board.extend(cards)
            else:
                to_enemies.setdefault(action.name, []).extend(cards)
            self.ctx.history.add_deal(
                target=action.name or action.target,
                count=action.count,
                visibility=(action.visibility or Visibility.OWNER).value,
            )

        if to_player:
            await repo.update(PlayerCards, lambda cards: cards.current_hand.extend(to_player))

        if to_enemies:
            def give(data: EnemyData) -> None:
                for enemy in data.enemies:
                    enemy.hand.extend(to_enemies.get(enemy.name, []))

            await repo.update(EnemyData, give)

        def finish(state: GameState) -> None:
            state.unprocessed_deal_actions = None
            state.last_deal_animation_queue = actions
            if to_board:
                state.board_cards.extend(to_board)
                state.last_bet_amount = 0

        await repo.update(GameState, finish)
        logger.info("Dealt %d card(s)", needed)
        await self.ctx.refresh()
        return CommandResult.ok(f"dealt {needed} card(s)")

    async def cleanup_after_deal(self) -> None:
        """Clear the animation queue, then the isNew markers, one document at a time."""
        repo = self.ctx.repo

        def clear_state(state: GameState) -> None:
            state.last_deal_animation_queue = None
            for card in state.board_cards:
                card.is_new = False

        def clear_hand(cards: PlayerCards) -> None:
            for card in cards.current_hand:
                card.is_new = False

        def clear_enemies(data: EnemyData) -> None:
            for enemy in data.enemies:
                for card in enemy.hand:
                    card.is_new = False

        await repo.update(GameState, clear_state)
        await repo.update(PlayerCards, clear_hand)
        await repo.update(EnemyData, clear_enemies)
        await self.ctx.refresh()
        logger.debug("Post-deal cleanup complete")

    async def _clear_queue(self) -> None:
        def clear(state: GameState) -> None:
            state.unprocessed_deal_actions = None

        await self.ctx.repo.update(GameState, clear)
        await self.ctx.refresh()
