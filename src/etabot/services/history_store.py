from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from ..constants import HISTORY_DOCUMENT, HISTORY_LIMIT, RANKING_LIMIT, TOP_TARGETS_LIMIT
from ..moderation.models import ExecutorStats, RankingEntry, TimeoutRecord, UserStats
from .document_store import DocumentStore

log = logging.getLogger("etabot.history_store")


def _parse_timestamp(raw: Any) -> datetime:
    text = str(raw)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _pick(raw: dict[str, Any], snake: str, camel: str) -> Any:
    return raw[snake] if snake in raw else raw[camel]


@dataclass
class History:
    """Timeout records in chronological order plus per-executor aggregates."""

    timeouts: list[TimeoutRecord] = field(default_factory=list)
    statistics: dict[int, dict[int, ExecutorStats]] = field(default_factory=dict)

    def copy(self) -> "History":
        return History(
            timeouts=list(self.timeouts),
            statistics={
                guild_id: {executor_id: stats.copy() for executor_id, stats in executors.items()}
                for guild_id, executors in self.statistics.items()
            },
        )

    def apply(self, record: TimeoutRecord) -> None:
        """Append a record and count it; both always change together."""
        self.timeouts.append(record)
        stats = self.statistics.setdefault(record.guild_id, {}).setdefault(record.executor_id, ExecutorStats())
        stats.executed += 1
        stats.targets[record.target_id] = stats.targets.get(record.target_id, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeouts": [
                {
                    "guild_id": r.guild_id,
                    "executor_id": r.executor_id,
                    "target_id": r.target_id,
                    "duration": r.duration,
                    "timestamp": r.timestamp.isoformat(),
                }
                for r in self.timeouts
            ],
            "statistics": {
                str(guild_id): {
                    str(executor_id): {
                        "executed": stats.executed,
                        "targets": {str(t): c for t, c in stats.targets.items()},
                    }
                    for executor_id, stats in executors.items()
                }
                for guild_id, executors in self.statistics.items()
            },
        }

    @classmethod
    def from_dict(cls, doc: dict[str, Any]) -> "History":
        """Rebuild a history from its document.

        Aggregates are recomputed from the record list so they always agree
        with it, whatever the stored ``statistics`` say.
        """
        history = cls()
        for raw in doc.get("timeouts") or []:
            try:
                record = TimeoutRecord(
                    guild_id=int(_pick(raw, "guild_id", "guildId")),
                    executor_id=int(_pick(raw, "executor_id", "executorId")),
                    target_id=int(_pick(raw, "target_id", "targetId")),
                    duration=int(raw["duration"]),
                    timestamp=_parse_timestamp(raw["timestamp"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Skipping malformed history record %r: %s", raw, e)
                continue
            history.apply(record)

        stored = doc.get("statistics") or {}
        if isinstance(stored, dict) and stored != history.to_dict()["statistics"]:
            log.warning("Stored statistics disagree with the record list; using recomputed values")
        return history


class HistoryStore:
    """History document owner.

    Mutations run under one lock and copy-on-write: the new document is
    persisted first and only then becomes visible, so a failed save leaves
    the in-memory history exactly as it was.
    """

    def __init__(self, documents: DocumentStore) -> None:
        self._documents = documents
        self._lock = asyncio.Lock()
        self._history = History()

    async def load(self) -> None:
        async with self._lock:
            doc = await self._documents.load(HISTORY_DOCUMENT)
            if doc is None:
                history = History()
                await self._documents.save(HISTORY_DOCUMENT, history.to_dict())
            else:
                history = History.from_dict(doc)
            self._history = history
            log.info("Loaded history with %d timeout records", len(history.timeouts))

    async def record(self, record: TimeoutRecord) -> None:
        async with self._lock:
            updated = self._history.copy()
            updated.apply(record)
            await self._documents.save(HISTORY_DOCUMENT, updated.to_dict())
            self._history = updated

    async def reset(self) -> None:
        async with self._lock:
            cleared = History()
            await self._documents.save(HISTORY_DOCUMENT, cleared.to_dict())
            self._history = cleared
            log.info("History and statistics reset")

    def snapshot(self) -> dict[str, Any]:
        return self._history.to_dict()

    def total(self) -> int:
        return len(self._history.timeouts)

    def guild_total(self, guild_id: int) -> int:
        executors = self._history.statistics.get(guild_id, {})
        return sum(stats.executed for stats in executors.values())

    def user_stats(self, guild_id: int, executor_id: int) -> Optional[UserStats]:
        stats = self._history.statistics.get(guild_id, {}).get(executor_id)
        if stats is None or stats.executed == 0:
            return None
        # sorted() is stable, so equal counts keep first-seen order.
        ranked = sorted(stats.targets.items(), key=lambda item: item[1], reverse=True)
        return UserStats(
            executed=stats.executed,
            distinct_targets=len(stats.targets),
            top_targets=ranked[:TOP_TARGETS_LIMIT],
        )

    def ranking(self, guild_id: int, limit: int = RANKING_LIMIT) -> list[RankingEntry]:
        executors = self._history.statistics.get(guild_id, {})
        ranked = sorted(executors.items(), key=lambda item: item[1].executed, reverse=True)
        return [RankingEntry(user_id=uid, executed=stats.executed) for uid, stats in ranked[:limit]]

    def recent_history(self, guild_id: int, limit: int = HISTORY_LIMIT) -> list[TimeoutRecord]:
        recent: list[TimeoutRecord] = []
        for record in reversed(self._history.timeouts):
            if len(recent) >= limit:
                break
            if record.guild_id == guild_id:
                recent.append(record)
        return recent
