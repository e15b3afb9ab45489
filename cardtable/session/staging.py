"""
Player Action Staging - stage, undo, commit.

Staged actions are held in the session, not the store. Chip-moving
actions (bet, call) contribute to a pending delta; the chips shown to
the player are always the latest snapshot minus that delta, so undo
is exact no matter how often the snapshot is refreshed.

Commit writes, in order:
1. player chips (freshly read chips - pending delta)
2. pot increase and last bet
3. turn advance, if it was the player's turn
then refreshes, composes the action summary with a context block,
and submits it as one prompt.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any
import uuid

from ..engine_core.command import CommandResult
from ..engine_core.state import Card, EnemyData, GameState, PlayerCards, PlayerData
from .context import NoticeLevel, SessionContext
from .context_block import compose_context_block
from .dealing import DealPipeline
from .run_manager import RunManager

logger = logging.getLogger(__name__)

ESCAPE_PROMPT = (
    "(System: {{user}} tries to escape the current encounter. Based on the "
    "situation (who the opponent is, whether a hand is in progress), decide "
    "whether the escape succeeds and emit the matching [Game:End] or "
    "[Event:Modify] command.)"
)


class ActionType(Enum):
    """Kinds of player actions that can be staged."""
    BET = "bet"
    CALL = "call"
    CHECK = "check"
    FOLD = "fold"
    PLAY_CARDS = "play_cards"
    CUSTOM = "custom"
    HIT = "hit"
    STAND = "stand"
    NARRATIVE = "narrative"
    EMOTE = "emote"


CHIP_ACTIONS = {ActionType.BET, ActionType.CALL}
SPOKEN_ACTIONS = {ActionType.NARRATIVE, ActionType.EMOTE}

DESCRIPTIONS: dict[ActionType, str] = {
    ActionType.BET: "- Bet {amount} chips.",
    ActionType.CALL: "- Called {amount} chips.",
    ActionType.CHECK: "- Checked.",
    ActionType.FOLD: "- Folded{cards}.",
    ActionType.PLAY_CARDS: "- Played{cards}.",
    ActionType.CUSTOM: "- Performed a custom action: {text}{cards}.",
    ActionType.HIT: "- Hit.",
    ActionType.STAND: "- Stood.",
}


@dataclass
class StagedAction:
    """
    A player action waiting for commit.

    amount applies to bet/call, text to custom/narrative/emote, cards
    to actions that show or play cards.
    """
    type: ActionType
    amount: int = 0
    text: str | None = None
    cards: list[Card] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def chip_cost(self) -> int:
        return self.amount if self.type in CHIP_ACTIONS and self.amount else 0

    def describe(self) -> str | None:
        """One summary line for the AI, or None for spoken actions."""
        card_text = f" [{', '.join(c.label for c in self.cards)}]" if self.cards else ""
        template = DESCRIPTIONS.get(self.type)
        if template is None:
            return None
        return template.format(amount=self.amount, text=self.text, cards=card_text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": self.amount,
            "text": self.text,
            "cards": [c.to_json() for c in self.cards],
        }


def compose_action_prompt(actions: list[StagedAction]) -> str:
    spoken = ""
    lines = []
    for action in actions:
        if action.type in SPOKEN_ACTIONS:
            spoken += f"“{action.text}” "
            continue
        line = action.describe()
        if line:
            lines.append(line)

    prompt = ""
    if spoken:
        prompt += f"{spoken.strip()} "
    if lines:
        prompt += "(System: {{user}} performed the following actions:\n" + "\n".join(lines) + ")"
    elif not spoken:
        prompt += "(System: {{user}} ended their turn.)"
    return prompt


class StagingPipeline:
    """
    Player-side action pipeline of one session.

    Usage:
        staging.stage(StagedAction(ActionType.BET, amount=100))
        staging.display_chips()   # snapshot chips - 100
        await staging.commit()
    """

    def __init__(self, ctx: SessionContext, dealer: DealPipeline, runs: RunManager):
        self.ctx = ctx
        self.dealer = dealer
        self.runs = runs

    @property
    def staged(self) -> list[StagedAction]:
        return self.ctx.staged_actions

    def pending_chip_delta(self) -> int:
        return sum(action.chip_cost for action in self.staged)

    def display_chips(self) -> int:
        """Chips to show: latest snapshot minus the pending delta."""
        snapshot_chips = self.ctx.snapshot.player.chips if self.ctx.snapshot else 0
        return snapshot_chips - self.pending_chip_delta()

    def stage(self, action: StagedAction) -> StagedAction:
        self.staged.append(action)
        logger.info("Staged player action %s (%s)", action.type.value, action.id)
        return action

    def undo(self, action_id: str) -> bool:
        for index, action in enumerate(self.staged):
            if action.id == action_id:
                del self.staged[index]
                logger.info("Undid staged action %s", action_id)
                return True
        logger.warning("No staged action with id %s", action_id)
        return False

    def undo_all(self) -> int:
        count = len(self.staged)
        self.staged.clear()
        if count:
            logger.info("Undid all %d staged actions", count)
        return count

    async def commit(self) -> CommandResult:
        if not self.staged:
            return CommandResult.failure("No staged actions to commit")

        actions = list(self.staged)
        self.staged.clear()
        repo = self.ctx.repo

        chip_delta = sum(a.chip_cost for a in actions)
        new_last_bet: int | None = None
        for action in actions:
            if action.type is ActionType.BET and action.amount:
                new_last_bet = action.amount

        if chip_delta:
            def pay(player: PlayerData) -> None:
                player.chips -= chip_delta

            await repo.update(PlayerData, pay)
            in_run = self.ctx.run_in_progress
            await self.runs.check_player_vitals()
            if in_run and not self.ctx.run_in_progress:
                logger.info("Run ended on commit, %d staged action(s) dropped", len(actions))
                return CommandResult.failure("The run ended before the actions resolved")

        if chip_delta or new_last_bet is not None:
            def to_pot(state: GameState) -> None:
                state.pot_amount += chip_delta
                if new_last_bet is not None:
                    state.last_bet_amount = new_last_bet

            await repo.update(GameState, to_pot)

        def advance_turn(state: GameState) -> None:
            if state.current_turn in state.players and self.ctx.is_user(state.current_turn):
                index = state.players.index(state.current_turn)
                state.current_turn = state.players[(index + 1) % len(state.players)]

        await repo.update(GameState, advance_turn)

        for action in actions:
            self.ctx.history.add_action(
                actor="{{user}}", action=action.type.value, amount=action.amount or None,
            )

        docs = await self.ctx.refresh() or await repo.load_all()
        prompt = compose_action_prompt(actions) + compose_context_block(
            docs, self.ctx.game_mode, self.ctx.user_name,
        )
        await self.ctx.submit_prompt(prompt.strip())
        logger.info("Committed %d staged action(s)", len(actions))
        return CommandResult.ok(*(a.type.value for a in actions))

    # =========================================================================
    # Player and GM shortcuts
    # =========================================================================

    def player_goes_all_in(self) -> StagedAction | None:
        amount = self.display_chips()
        if amount <= 0:
            self.ctx.notify(NoticeLevel.INFO, "You have no chips left!")
            return None
        return self.stage(StagedAction(ActionType.BET, amount=amount))

    async def attempt_escape(self) -> None:
        logger.info("Player attempts to escape")
        self.ctx.notify(NoticeLevel.INFO, "Your opponent is deciding whether to let you go...")
        await self.ctx.submit_prompt(ESCAPE_PROMPT)

    async def gm_draw_cards(
        self,
        target: str,
        quantity: int,
        visibility: str = "owner",
        notification: str | None = None,
    ) -> CommandResult:
        """
        Queue a deal on behalf of the game master.

        target is "player", "board" (always public), "all_players",
        or an enemy name.
        """
        state = await self.ctx.repo.get(GameState)
        if not state.is_active:
            self.ctx.notify(NoticeLevel.WARNING, "GM draws are only available once a hand has started.")
            return CommandResult.failure("No hand in progress")
        if not isinstance(quantity, int) or quantity <= 0:
            self.ctx.notify(NoticeLevel.WARNING, "Draw quantity must be a positive integer.")
            return CommandResult.failure(f"Invalid quantity: {quantity!r}")

        actions: list[dict[str, Any]] = []
        if target == "player":
            actions.append({"target": "player", "count": quantity, "visibility": visibility})
        elif target == "board":
            actions.append({"target": "board", "count": quantity, "visibility": "public"})
        elif target == "all_players":
            actions.append({"target": "player", "count": quantity, "visibility": visibility})
            for enemy in (await self.ctx.repo.get(EnemyData)).enemies:
                actions.append({"target": "enemy", "name": enemy.name, "count": quantity, "visibility": visibility})
        else:
            actions.append({"target": "enemy", "name": target, "count": quantity, "visibility": visibility})

        result = await self.dealer.queue_deal(actions)

        if not notification or not notification.strip():
            logger.info("GM draw queued without notification")
            return result

        docs = await self.ctx.current()
        block = compose_context_block(docs, self.ctx.game_mode, self.ctx.user_name)
        await self.ctx.submit_prompt(f"{notification}{block}")
        return result

    async def delete_card(self, location: str, index: int, enemy_name: str | None = None) -> CommandResult:
        """Remove one card by position from a hand or the board."""
        removed: list[Card] = []

        def pop_from(cards: list[Card]) -> None:
            if 0 <= index < len(cards):
                removed.append(cards.pop(index))

        if location == "player_hand":
            await self.ctx.repo.update(PlayerCards, lambda pc: pop_from(pc.current_hand))
        elif location == "board":
            await self.ctx.repo.update(GameState, lambda gs: pop_from(gs.board_cards))
        elif location == "enemy_hand":
            def from_enemy(data: EnemyData) -> None:
                enemy = data.find(enemy_name or "")
                if enemy is not None:
                    pop_from(enemy.hand)

            await self.ctx.repo.update(EnemyData, from_enemy)
        else:
            logger.error("Invalid location for card deletion: %s", location)
            return CommandResult.failure(f"Invalid location: {location}")

        await self.ctx.refresh()
        if not removed:
            logger.warning("No card at index %s in %s", index, location)
            return CommandResult.failure(f"No card at index {index} in {location}")
        self.ctx.notify(NoticeLevel.SUCCESS, "Card deleted.")
        return CommandResult.ok(f"deleted {removed[0].label} from {location}")
