from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from .services.config_store import ConfigStore
from .services.cooldowns import CooldownTracker
from .services.document_store import DocumentStore
from .services.history_store import HistoryStore
from .services.stats import RuntimeStats


@dataclass
class BotContext:
    """The single owner of shared state.

    The chat side and the admin web server receive the same instance, so
    both see one config, one history and one set of cooldowns.
    """

    documents: DocumentStore
    config_store: ConfigStore
    history_store: HistoryStore
    cooldowns: CooldownTracker
    stats: RuntimeStats = field(default_factory=RuntimeStats)

    @classmethod
    def create(cls, sqlite_path: str, clock: Callable[[], float] = time.time) -> "BotContext":
        documents = DocumentStore(sqlite_path)
        config_store = ConfigStore(documents)
        return cls(
            documents=documents,
            config_store=config_store,
            history_store=HistoryStore(documents),
            cooldowns=CooldownTracker(lambda: config_store.current.cooldown_seconds, clock=clock),
        )

    async def load(self) -> None:
        await self.config_store.load()
        await self.history_store.load()
