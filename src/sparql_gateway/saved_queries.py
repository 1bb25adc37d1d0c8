"""
Saved SPARQL queries kept in a local key-value store.

All queries live under one key as a JSON list of
``{"title", "queryString", "key"}`` records, in save order.

Two identifiers are exposed per query:
- ``id``: the 1-based position, assigned on every read. It is a display
  ordinal and shifts when an earlier query is deleted.
- ``key``: a generated identifier stored with the record; it does not
  change across deletions.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

QUERIES_STORAGE_KEY = "rdf4j-queries"


class KeyValueStorage(Protocol):
    """Minimal string key-value store (same shape as browser localStorage)."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Key-value storage held in a dict; lost with the process."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """
    Key-value storage backed by a single JSON object file.

    Every ``set_item`` rewrites the file through a temporary file in the
    same directory and an atomic replace.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


def new_query_key() -> str:
    return f"query-{uuid.uuid4().hex[:12]}"


@dataclass
class SavedQuery:
    """A saved SPARQL query."""
    title: str
    query_string: str
    id: Optional[int] = None
    key: Optional[str] = None

    def to_dict(self) -> dict:
        """Stored form; ``id`` is positional and never persisted."""
        data = {"title": self.title, "queryString": self.query_string}
        if self.key:
            data["key"] = self.key
        return data

    @classmethod
    def from_dict(cls, data: dict) -> SavedQuery:
        return cls(
            title=data.get("title", ""),
            query_string=data.get("queryString", ""),
            key=data.get("key"),
        )


class SavedQueryStore:
    """
    Saved query persistence over a KeyValueStorage.

    Storage errors are not caught; they reach the caller.

    Usage:
        store = SavedQueryStore(JsonFileStorage("~/.sparql-gateway/queries.json"))
        store.save(SavedQuery(title="All types", query_string="SELECT ..."))
        for q in store.list():
            print(q.id, q.title)
    """

    def __init__(self, storage: Optional[KeyValueStorage] = None, key: str = QUERIES_STORAGE_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.key = key

    def _write(self, queries: list[SavedQuery]) -> None:
        self.storage.set_item(self.key, json.dumps([q.to_dict() for q in queries]))

    def list(self) -> list[SavedQuery]:
        """All saved queries, with ``id`` set to their 1-based position."""
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        queries = [SavedQuery.from_dict(item) for item in json.loads(raw)]
        for i, query in enumerate(queries):
            query.id = i + 1
        return queries

    def save(self, query: SavedQuery) -> SavedQuery:
        """Append ``query``. A stable key is generated when it has none."""
        queries = self.list()
        stored = SavedQuery(
            title=query.title,
            query_string=query.query_string,
            key=query.key or new_query_key(),
        )
        queries.append(stored)
        self._write(queries)
        stored.id = len(queries)
        logger.info(f"Saved query '{stored.title}' with key {stored.key}")
        return stored

    def delete(self, query_id: int) -> bool:
        """Delete by positional id. Returns False when no query has that id."""
        queries = self.list()
        remaining = [q for q in queries if q.id != query_id]
        self._write(remaining)
        return len(remaining) != len(queries)

    def delete_by_key(self, key: str) -> bool:
        queries = self.list()
        remaining = [q for q in queries if q.key != key]
        self._write(remaining)
        return len(remaining) != len(queries)

    def get_by_key(self, key: str) -> Optional[SavedQuery]:
        for query in self.list():
            if query.key == key:
                return query
        return None
