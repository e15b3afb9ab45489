"""
Handlers - Apply commands to the game book.

Each handler owns a slice of the CommandKind table; the dispatcher
joins them and checks the table is complete.
"""

from .base import CommandHandler, HandlerFn, parse_amount
from .game import GameLifecycleHandler, add_reward_nodes
from .entity import EntityMutationHandler
from .map import MapMutationHandler, select_target_node
from .item import ItemHandler
from .meta import MetaProgression
from .dispatcher import CommandDispatcher

__all__ = [
    "CommandHandler",
    "HandlerFn",
    "parse_amount",
    "GameLifecycleHandler",
    "add_reward_nodes",
    "EntityMutationHandler",
    "MapMutationHandler",
    "select_target_node",
    "ItemHandler",
    "MetaProgression",
    "CommandDispatcher",
]
