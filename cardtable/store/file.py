"""
File Store - One JSON file per document, under a per-session directory.

Layout:
    <root>/<book>/<key>.json

Design decisions:
- Simple file-based storage, no database
- Writes go to a temp file and are renamed into place
- A file that fails to decode reads as {} (logged), like a blank entry
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path

from ..errors import StoreError
from .base import Document, DocumentStore, UpdateFn

logger = logging.getLogger(__name__)


class JsonFileStore(DocumentStore):
    """
    File-backed document store.

    Usage:
        store = JsonFileStore("~/.cardtable/books", book="session-1")
        await store.create_book(templates.roguelike_book())
    """

    def __init__(self, root: str | Path | None = None, book: str = "default"):
        if root is None:
            root = Path.home() / ".cardtable" / "books"
        self.book_dir = Path(root).expanduser() / book
        self.book_dir.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> Document | None:
        path = self._path(key)
        if not path.exists():
            return None
        return self._load(key, path)

    async def update(self, key: str, fn: UpdateFn) -> Document:
        path = self._path(key)
        working = self._load(key, path) if path.exists() else {}
        result = fn(working)
        new_document = working if result is None else result
        self._save(key, new_document)
        return new_document

    async def replace(self, key: str, document: Document) -> None:
        self._save(key, document)

    async def list_documents(self) -> list[str]:
        return sorted(p.stem for p in self.book_dir.glob("*.json"))

    async def create_book(self, entries: dict[str, Document]) -> None:
        for path in self.book_dir.glob("*.json"):
            path.unlink(missing_ok=True)
        for key, document in entries.items():
            self._save(key, document)

    def _path(self, key: str) -> Path:
        if not key or os.sep in key or key.startswith("."):
            raise StoreError(key, "invalid document key")
        return self.book_dir / f"{key}.json"

    def _load(self, key: str, path: Path) -> Document:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(key, f"read failed: {e}") from e
        if not text.strip():
            return {}
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Document %s is not valid JSON (%s), reading as empty", key, e)
            return {}
        if not isinstance(loaded, dict):
            logger.warning("Document %s is not a JSON object, reading as empty", key)
            return {}
        return loaded

    def _save(self, key: str, document: Document) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreError(key, f"write failed: {e}") from e
