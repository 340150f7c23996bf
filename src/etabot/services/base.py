from __future__ import annotations

import aiosqlite
import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional

T = TypeVar("T")
log = logging.getLogger("etabot.base_service")


class PersistenceError(RuntimeError):
    """Raised when a store cannot write to the database."""


class BaseService(ABC, Generic[T]):
    """Base class for all SQLite-backed services."""

    def __init__(self, sqlite_path: str) -> None:
        self._path = sqlite_path
        self._logger = logging.getLogger(f"etabot.{self.__class__.__name__.lower()}")

    @property
    def path(self) -> str:
        return self._path

    async def init(self) -> None:
        """Initialize the database schema."""
        async with aiosqlite.connect(self._path) as db:
            await self._create_tables(db)
            await db.commit()

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        """Create the necessary database tables."""
        pass

    @abstractmethod
    def _from_row(self, row: aiosqlite.Row) -> T:
        """Convert a database row to the service's data type."""
        pass

    async def get(self, key: str) -> Optional[T]:
        """Fetch a single row by primary key."""
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(self._get_query, (key,)) as cur:
                row = await cur.fetchone()
                if row is None:
                    return None
                return self._from_row(row)

    @property
    @abstractmethod
    def _get_query(self) -> str:
        """SQL query for getting data by key."""
        pass
