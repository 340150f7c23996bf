from __future__ import annotations

import math
import time
from typing import Callable, Optional


class CooldownTracker:
    """In-memory per (guild, user) cooldown expiries.

    Nothing is persisted; a restart clears every cooldown.
    """

    def __init__(
        self,
        cooldown_seconds: Callable[[], int],
        clock: Callable[[], float] = time.time,
    ) -> None:
        # Read on every set() so config changes apply to the next action.
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._expiries: dict[tuple[int, int], float] = {}

    def check(self, user_id: int, guild_id: int, now: Optional[float] = None) -> int:
        """Seconds left (rounded up), or 0 if the user may act."""
        key = (guild_id, user_id)
        expires_at = self._expiries.get(key)
        if expires_at is None:
            return 0
        now = self._clock() if now is None else now
        if now >= expires_at:
            self._expiries.pop(key, None)
            return 0
        return math.ceil(expires_at - now)

    def set(self, user_id: int, guild_id: int, now: Optional[float] = None) -> None:
        now = self._clock() if now is None else now
        self._expiries[(guild_id, user_id)] = now + max(0, int(self._cooldown_seconds()))

    def prune(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        stale = [k for k, v in self._expiries.items() if v <= now]
        for k in stale:
            self._expiries.pop(k, None)
        return len(stale)

    def __len__(self) -> int:
        return len(self._expiries)
