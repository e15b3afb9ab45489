"""
Game book templates: the documents a new book starts with.
"""

from __future__ import annotations
import copy
from enum import Enum

from .base import Document


class GameMode(str, Enum):
    ROGUELIKE = "roguelike"
    ORIGIN = "origin"


PLAYER_DATA_TEMPLATE: Document = {
    "comment": "Player's public status, visible to the character.",
    "name": "{{user}}",
    "health": 3,
    "max_health": 3,
    "chips": 1000,
    "claimable_pot": 0,
    "inventory": [],
    "status_effects": [],
}

PLAYER_CARDS_TEMPLATE: Document = {
    "comment": "Player's hand. Per-card visibility decides what the AI may see.",
    "current_hand": [],
}

META_DATA_TEMPLATE: Document = {
    "comment": "Cross-run progression, hidden from the character.",
    "legacy_shards": 0,
    "unlocked_legends": [],
    "unlocked_talents": [],
}

_COMMON_ENTRIES: dict[str, Document] = {
    "sp_enemy_data": {"comment": "Enemies in the current encounter and their hands."},
    "sp_player_cards": PLAYER_CARDS_TEMPLATE,
    "sp_player_data": PLAYER_DATA_TEMPLATE,
    "sp_game_state": {"comment": "Public state of the current hand: board, pot, turn."},
    "sp_private_data": {"comment": "Hidden game data. Holds the deck."},
    "sp_visible_deck": {"comment": "Deck order shown to the AI when dealing is deterministic."},
}


def roguelike_book() -> dict[str, Document]:
    entries = copy.deepcopy(_COMMON_ENTRIES)
    entries["sp_map_data"] = {"comment": "Floor map and player position."}
    entries["sp_meta_data"] = copy.deepcopy(META_DATA_TEMPLATE)
    return entries


def origin_book() -> dict[str, Document]:
    """Origin mode has no map and no meta progression."""
    return copy.deepcopy(_COMMON_ENTRIES)


def book_for_mode(mode: GameMode | str) -> dict[str, Document]:
    if GameMode(mode) is GameMode.ORIGIN:
        return origin_book()
    return roguelike_book()


def player_data_template() -> Document:
    return copy.deepcopy(PLAYER_DATA_TEMPLATE)


def player_cards_template() -> Document:
    return copy.deepcopy(PLAYER_CARDS_TEMPLATE)
