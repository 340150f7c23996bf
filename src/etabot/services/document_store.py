from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import aiosqlite

from .base import BaseService, PersistenceError


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class StoredDocument:
    name: str
    doc_json: str
    updated_at_iso: str


class DocumentStore(BaseService[StoredDocument]):
    """Named JSON documents, each rewritten in full on every save.

    No business logic lives here; ``ConfigStore`` and ``HistoryStore`` own
    the shape of what they persist.
    """

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
              name TEXT PRIMARY KEY,
              doc_json TEXT NOT NULL,
              updated_at_iso TEXT NOT NULL
            )
            """
        )

    def _from_row(self, row: aiosqlite.Row) -> StoredDocument:
        return StoredDocument(
            name=str(row["name"]),
            doc_json=str(row["doc_json"]),
            updated_at_iso=str(row["updated_at_iso"]),
        )

    @property
    def _get_query(self) -> str:
        return "SELECT name, doc_json, updated_at_iso FROM documents WHERE name = ?"

    async def load(self, name: str) -> Optional[dict[str, Any]]:
        """Return the stored document, or None if absent or unreadable."""
        stored = await self.get(name)
        if stored is None:
            return None
        try:
            doc = json.loads(stored.doc_json)
        except json.JSONDecodeError:
            self._logger.error("Document %r is not valid JSON; treating it as absent", name)
            return None
        if not isinstance(doc, dict):
            self._logger.error("Document %r is not a JSON object; treating it as absent", name)
            return None
        return doc

    async def save(self, name: str, doc: dict[str, Any]) -> None:
        doc_json = json.dumps(doc, separators=(",", ":"), ensure_ascii=False)
        try:
            async with aiosqlite.connect(self._path) as db:
                await db.execute(
                    """
                    INSERT INTO documents (name, doc_json, updated_at_iso) VALUES (?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET doc_json = excluded.doc_json, updated_at_iso = excluded.updated_at_iso
                    """,
                    (name, doc_json, _now_iso()),
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError(f"Failed to save document {name!r}: {e}") from e
        self._logger.debug("Saved document %r (%d bytes)", name, len(doc_json))
