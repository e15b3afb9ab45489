"""
Engine Core - Commands, card mechanics, and typed table documents.

The core is the store-agnostic part of the engine:
1. Parses AI text into Commands
2. Resolves Commands to CommandKinds
3. Builds and shuffles decks
4. Filters and modifies cards
5. Defines the typed records behind every persisted document
"""

from .command import Command, CommandCategory, CommandKind, CommandResult, ErrorCode
from .parser import parse_commands, parse_single_command
from .deck import create_deck, shuffle, visible_deck_string, chip_tier
from .state import (
    Card,
    Visibility,
    NodeType,
    PlayerData,
    Enemy,
    EnemyData,
    PlayerCards,
    DealAction,
    GameState,
    PrivateData,
    VisibleDeck,
    MapNode,
    MapPath,
    SecretNode,
    MapData,
    MetaData,
)

__all__ = [
    "Command",
    "CommandCategory",
    "CommandKind",
    "CommandResult",
    "ErrorCode",
    "parse_commands",
    "parse_single_command",
    "create_deck",
    "shuffle",
    "visible_deck_string",
    "chip_tier",
    "Card",
    "Visibility",
    "NodeType",
    "PlayerData",
    "Enemy",
    "EnemyData",
    "PlayerCards",
    "DealAction",
    "GameState",
    "PrivateData",
    "VisibleDeck",
    "MapNode",
    "MapPath",
    "SecretNode",
    "MapData",
    "MetaData",
]
