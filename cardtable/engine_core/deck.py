"""
Deck Library - Deck construction, shuffling, and small display helpers.

Pure functions. Randomness comes from an injectable random.Random so
callers (and tests) can make shuffles reproducible.
"""

from __future__ import annotations
import random
from typing import Any, Iterable, Sequence

from .state import Card

DEFAULT_SUITS: tuple[str, ...] = ("♥", "♦", "♣", "♠")
DEFAULT_RANKS: tuple[str, ...] = (
    "A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K",
)

JOKER_SUIT = "🃏"
BIG_JOKER = "Big Joker"
LITTLE_JOKER = "Little Joker"

# (minimum chips, tier), highest first
CHIP_TIERS: tuple[tuple[int, int], ...] = ((5000, 4), (1500, 3), (500, 2))


def create_deck(
    use_suits: Sequence[str] | None = None,
    use_ranks: Sequence[str] | None = None,
    jokers: int = 0,
    num_decks: int = 1,
) -> list[Card]:
    """
    Build an unshuffled deck.

    Args:
        use_suits: Suits to include (default: all four)
        use_ranks: Ranks to include (default: A through K)
        jokers: Number of jokers added after the copies are combined;
            the first is the Big Joker, the rest Little Jokers
        num_decks: Number of copies to combine

    Returns:
        Cards in suit-major order repeated num_decks times, then jokers
    """
    suits = list(use_suits) if use_suits else list(DEFAULT_SUITS)
    ranks = list(use_ranks) if use_ranks else list(DEFAULT_RANKS)
    copies = max(1, int(num_decks or 1))

    deck: list[Card] = []
    for _ in range(copies):
        for suit in suits:
            for rank in ranks:
                deck.append(Card(suit=suit, rank=rank, is_special=False, name=f"{suit}{rank}"))
    for i in range(max(0, int(jokers or 0))):
        rank = BIG_JOKER if i == 0 else LITTLE_JOKER
        deck.append(Card(suit=JOKER_SUIT, rank=rank, is_special=True, name=rank))
    return deck


def create_deck_from_options(options: dict[str, Any] | None) -> list[Card]:
    """Build a deck from an AI-supplied option map (Game:SetupDeck data)."""
    options = options or {}
    try:
        num_decks = int(options.get("num_decks", 1))
    except (TypeError, ValueError):
        num_decks = 1
    try:
        jokers = int(options.get("jokers", 0) or 0)
    except (TypeError, ValueError):
        jokers = 0
    return create_deck(
        use_suits=options.get("use_suits"),
        use_ranks=options.get("use_ranks"),
        jokers=jokers,
        num_decks=num_decks,
    )


def shuffle(cards: Iterable[Card], rng: random.Random | None = None) -> list[Card]:
    """
    Fisher-Yates shuffle. Returns a new list; the input is not modified.
    """
    rng = rng or random.Random()
    deck = list(cards)
    for i in range(len(deck) - 1, 0, -1):
        j = rng.randint(0, i)
        deck[i], deck[j] = deck[j], deck[i]
    return deck


def new_shuffled_deck(rng: random.Random | None = None) -> list[Card]:
    """A standard 52-card deck, shuffled."""
    return shuffle(create_deck(), rng)


def visible_deck_string(cards: Iterable[Card]) -> str:
    """Compact deck rendering for the AI, e.g. "[♥A,♦2,♣10]"."""
    return "[" + ",".join(card.label for card in cards) + "]"


def chip_tier(chips: int) -> int:
    """Coarse 1-4 bucket used to pick chip-stack art."""
    for minimum, tier in CHIP_TIERS:
        if chips >= minimum:
            return tier
    return 1
