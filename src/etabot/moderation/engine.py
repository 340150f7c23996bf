from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ..constants import TIMEOUT_REASON_TEMPLATE
from ..services.base import PersistenceError
from ..services.config_store import ConfigStore
from ..services.cooldowns import CooldownTracker
from ..services.history_store import HistoryStore
from ..services.stats import RuntimeStats
from .config_schema import BotConfig
from .eligibility import EligibilityChecker
from .gateway import ModerationGateway
from .models import (
    ActionFailed,
    ActionRequest,
    CooldownActive,
    Denied,
    ModerationOutcome,
    RecordFailed,
    Success,
    TimeoutRecord,
)

log = logging.getLogger("etabot.engine")


class ModerationEngine:
    """Runs one timeout request from eligibility through to recording.

    The outcome is all-or-nothing: unless ``Success`` is returned, neither
    the history nor the cooldowns have changed.
    """

    def __init__(
        self,
        *,
        config_store: ConfigStore,
        history_store: HistoryStore,
        cooldowns: CooldownTracker,
        gateway: ModerationGateway,
        checker: Optional[EligibilityChecker] = None,
        stats: Optional[RuntimeStats] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config_store
        self.history = history_store
        self.cooldowns = cooldowns
        self.gateway = gateway
        self.checker = checker or EligibilityChecker()
        self.stats = stats or RuntimeStats()
        self._rng = rng or random.Random()
        self._clock = clock
        # Serializes check-then-set of the cooldown per (guild, executor).
        # Entries live only while some request holds or awaits them.
        self._locks: dict[tuple[int, int], asyncio.Lock] = {}
        self._lock_users: dict[tuple[int, int], int] = {}

    def draw_duration(self, config: BotConfig) -> int:
        return self._rng.randint(config.min_timeout, config.max_timeout)

    def _acquire_slot(self, key: tuple[int, int]) -> asyncio.Lock:
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        return self._locks.setdefault(key, asyncio.Lock())

    def _release_slot(self, key: tuple[int, int]) -> None:
        remaining = self._lock_users[key] - 1
        if remaining:
            self._lock_users[key] = remaining
        else:
            del self._lock_users[key]
            del self._locks[key]

    @property
    def active_locks(self) -> int:
        return len(self._locks)

    async def execute(self, request: ActionRequest, now: Optional[float] = None) -> ModerationOutcome:
        config = self.config.current

        verdict = self.checker.evaluate(request, config.target_role_id)
        if isinstance(verdict, Denied):
            log.debug(
                "Denied timeout guild=%s executor=%s target=%s: %s",
                request.guild_id,
                request.executor_id,
                request.target_id,
                verdict.reason.value,
            )
            return verdict

        key = (request.guild_id, request.executor_id)
        lock = self._acquire_slot(key)
        try:
            async with lock:
                return await self._run_locked(request, config, now)
        finally:
            self._release_slot(key)

    async def _run_locked(
        self, request: ActionRequest, config: BotConfig, now: Optional[float]
    ) -> ModerationOutcome:
        now = self._clock() if now is None else now

        seconds_left = self.cooldowns.check(request.executor_id, request.guild_id, now)
        if seconds_left > 0:
            return CooldownActive(seconds_left)

        duration = self.draw_duration(config)
        reason = TIMEOUT_REASON_TEMPLATE.format(executor=request.executor_tag or request.executor_id)

        try:
            await self.gateway.timeout(request.guild_id, request.target_id, duration, reason)
        except Exception as e:
            self.stats.timeouts_failed += 1
            log.warning(
                "Timeout failed guild=%s executor=%s target=%s",
                request.guild_id,
                request.executor_id,
                request.target_id,
                exc_info=e,
            )
            return ActionFailed(cause=str(e) or type(e).__name__)

        record = TimeoutRecord(
            guild_id=request.guild_id,
            executor_id=request.executor_id,
            target_id=request.target_id,
            duration=duration,
            timestamp=datetime.fromtimestamp(now, tz=timezone.utc),
        )
        try:
            await self.history.record(record)
        except PersistenceError as e:
            self.stats.records_failed += 1
            log.exception("Timeout applied but history could not be saved (guild=%s)", request.guild_id)
            return RecordFailed(cause=str(e))

        self.cooldowns.set(request.executor_id, request.guild_id, now)
        self.stats.timeouts_applied += 1
        log.info(
            "Timeout applied guild=%s executor=%s target=%s duration=%ss",
            request.guild_id,
            request.executor_id,
            request.target_id,
            duration,
        )
        return Success(duration=duration, record=record)
