"""
In-memory document store. Default backing for sessions and tests.
"""

from __future__ import annotations
import copy

from .base import Document, DocumentStore, UpdateFn


class InMemoryStore(DocumentStore):
    """Documents live in a dict; every read and write deep-copies."""

    def __init__(self, documents: dict[str, Document] | None = None):
        self._documents: dict[str, Document] = copy.deepcopy(documents or {})

    async def get(self, key: str) -> Document | None:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def update(self, key: str, fn: UpdateFn) -> Document:
        working = copy.deepcopy(self._documents.get(key) or {})
        result = fn(working)
        new_document = working if result is None else result
        self._documents[key] = copy.deepcopy(new_document)
        return copy.deepcopy(new_document)

    async def replace(self, key: str, document: Document) -> None:
        self._documents[key] = copy.deepcopy(document)

    async def list_documents(self) -> list[str]:
        return list(self._documents)

    async def create_book(self, entries: dict[str, Document]) -> None:
        self._documents = copy.deepcopy(entries)

    def snapshot(self) -> dict[str, Document]:
        """Copy of every document (debugging and tests)."""
        return copy.deepcopy(self._documents)
