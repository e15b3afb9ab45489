"""
Card Operations - Filters and field modifications for card lists.

Used by Game:Function Modify, Action:SwapCards and card deletion.
All functions operate on lists of Card records in place or return
indices into them; none of them touch the store.
"""

from __future__ import annotations
import logging
import random
from typing import Any

from pydantic import ValidationError

from .state import Card, Visibility

logger = logging.getLogger(__name__)

RANK_VALUES: dict[str, int] = {
    "A": 14, "K": 13, "Q": 12, "J": 11,
    "10": 10, "9": 9, "8": 8, "7": 7, "6": 6, "5": 5, "4": 4, "3": 3, "2": 2,
}
VALUE_RANKS: dict[int, str] = {v: k for k, v in RANK_VALUES.items()}

MIN_RANK_VALUE = 2
MAX_RANK_VALUE = 14


def rank_value(rank: str) -> int | None:
    return RANK_VALUES.get(str(rank))


def rank_from_value(value: float) -> str:
    """Round and clamp a numeric rank into 2..14, then map back to a label."""
    clamped = max(MIN_RANK_VALUE, min(MAX_RANK_VALUE, round(value)))
    return VALUE_RANKS[clamped]


def shift_rank(rank: str, operation: str, value: Any) -> str:
    """
    Apply add/subtract/set to a rank.

    Unknown ranks (jokers, custom faces) and bad operands are left alone.
    set accepts a rank label ("Q") or a number (12).
    """
    current = rank_value(rank)
    if operation == "set":
        if str(value) in RANK_VALUES:
            return str(value)
        try:
            return rank_from_value(float(value))
        except (TypeError, ValueError):
            logger.warning("Cannot set rank to %r", value)
            return rank

    if current is None:
        logger.warning("Rank %r has no numeric value, not modified", rank)
        return rank
    try:
        amount = float(value)
    except (TypeError, ValueError):
        logger.warning("Rank %s operand is not numeric: %r", operation, value)
        return rank

    if operation == "add":
        return rank_from_value(current + amount)
    if operation == "subtract":
        return rank_from_value(current - amount)

    logger.warning("Unknown rank operation: %s", operation)
    return rank


def select_card_indices(
    cards: list[Card],
    card_filter: dict[str, Any] | None,
    rng: random.Random | None = None,
) -> list[int]:
    """
    Indices of the cards a filter selects.

    Filter keys (all optional):
        suit:  exact suit match
        rank:  exact rank match
        index: "all" (default), "random" (one matching card), or an int
               position into the matching subset
    """
    card_filter = card_filter or {}
    matching = [
        i for i, card in enumerate(cards)
        if ("suit" not in card_filter or card.suit == card_filter["suit"])
        and ("rank" not in card_filter or card.rank == str(card_filter["rank"]))
    ]

    index = card_filter.get("index", "all")
    if index is None or index == "all":
        return matching
    if not matching:
        return []
    if index == "random":
        rng = rng or random.Random()
        return [rng.choice(matching)]
    try:
        position = int(index)
    except (TypeError, ValueError):
        logger.warning("Invalid card_filter index: %r", index)
        return []
    if 0 <= position < len(matching):
        return [matching[position]]
    return []


def apply_card_modifications(card: Card, modifications: list[dict[str, Any]]) -> Card:
    """
    Apply field modifications to one card in place, in order.

    Each modification is {"field": ..., "operation": ..., "value": ...}.
    rank supports add/subtract/set; suit and visibility support set.
    """
    for change in modifications or []:
        if not isinstance(change, dict):
            logger.warning("Ignoring malformed card modification: %r", change)
            continue
        field_name = change.get("field")
        operation = change.get("operation", "set")
        value = change.get("value")

        if field_name == "rank":
            card.rank = shift_rank(card.rank, operation, value)
        elif field_name == "suit":
            if operation == "set" and value is not None:
                card.suit = str(value)
            else:
                logger.warning("suit only supports set, got %s", operation)
        elif field_name == "visibility":
            if operation == "set":
                try:
                    card.visibility = Visibility(value)
                except ValueError:
                    logger.warning("Invalid visibility: %r", value)
            else:
                logger.warning("visibility only supports set, got %s", operation)
        else:
            logger.warning("Card field %s cannot be modified", field_name)

        if field_name in ("rank", "suit") and card.name and not card.is_special:
            card.name = card.label
    return card


def to_cards(raw: Any) -> list[Card]:
    """Validate a list of AI-supplied card dicts, dropping bad entries."""
    if not isinstance(raw, list):
        return []
    cards: list[Card] = []
    for item in raw:
        if isinstance(item, Card):
            cards.append(item)
        elif isinstance(item, dict):
            try:
                card = Card.model_validate(item)
            except ValidationError as e:
                logger.warning("Ignoring invalid card %r: %s", item, e)
                continue
            if card.name is None:
                card.name = card.label
            cards.append(card)
        else:
            logger.warning("Ignoring non-card entry: %r", item)
    return cards
