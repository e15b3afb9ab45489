"""
Document Store - Abstract key-value store of JSON documents.

The host persistence layer is modelled as a "game book": a set of named
JSON documents that can be read, atomically read-modify-written, and
listed. A store with no documents has no game book.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable

Document = dict[str, Any]
UpdateFn = Callable[[Document], "Document | None"]


class DocumentStore(ABC):
    """
    Async interface to the persisted documents of one session.

    Contract:
    - get() returns None for a missing document and {} for one whose
      content could not be decoded
    - update() applies fn to a private copy of the current document
      (or {}) and writes the result; if fn raises, nothing is written
    - fn may mutate its argument and return None, or return a new dict
    """

    @abstractmethod
    async def get(self, key: str) -> Document | None:
        ...

    @abstractmethod
    async def update(self, key: str, fn: UpdateFn) -> Document:
        ...

    @abstractmethod
    async def replace(self, key: str, document: Document) -> None:
        ...

    @abstractmethod
    async def list_documents(self) -> list[str]:
        ...

    @abstractmethod
    async def create_book(self, entries: dict[str, Document]) -> None:
        """Create (or overwrite) the game book with the given documents."""
        ...

    async def has_book(self) -> bool:
        return len(await self.list_documents()) > 0
