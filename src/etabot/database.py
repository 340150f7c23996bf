from __future__ import annotations

import logging
from typing import List

import aiosqlite

from .services.base import BaseService

log = logging.getLogger("etabot.database")


async def initialize_database(sqlite_path: str, stores: List[BaseService]) -> None:
    """Initialize the database with all stores."""
    try:
        async with aiosqlite.connect(sqlite_path) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")
            await db.commit()

        log.info("Applied SQLite optimizations")

        for store in stores:
            await store.init()
            log.info("Initialized %s", store.__class__.__name__)

        log.info("Database initialization completed")

    except Exception as e:
        log.error(f"Failed to initialize database: {e}")
        raise


async def get_database_info(sqlite_path: str) -> dict:
    """Get size information about the database."""
    async with aiosqlite.connect(sqlite_path) as db:
        cursor = await db.execute("PRAGMA page_count")
        page_count = (await cursor.fetchone())[0]

        cursor = await db.execute("PRAGMA page_size")
        page_size = (await cursor.fetchone())[0]

    return {
        "size_bytes": page_count * page_size,
        "size_mb": (page_count * page_size) / (1024 * 1024),
    }
