"""
Store - Persistence of the game book.

Only documents are persisted; sessions and staged actions are in-memory.
"""

from .base import Document, DocumentStore
from .memory import InMemoryStore
from .file import JsonFileStore
from .templates import GameMode, roguelike_book, origin_book
from .repository import GameDataRepository, GameDocuments, dump_record

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryStore",
    "JsonFileStore",
    "GameMode",
    "roguelike_book",
    "origin_book",
    "GameDataRepository",
    "GameDocuments",
    "dump_record",
]
