from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..context import BotContext
from ..moderation.config_schema import ValidationIssue, redact

log = logging.getLogger("etabot.admin_api")


class AdminStatus(str, Enum):
    UPDATED = "updated"
    RESET = "reset"
    UNAUTHORIZED = "unauthorized"
    INVALID = "invalid"


@dataclass(frozen=True)
class AdminResult:
    status: AdminStatus
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (AdminStatus.UPDATED, AdminStatus.RESET)


class AdminAPI:
    """Remote configuration and statistics operations.

    Reads are open; writes require the shared secret stored in the config.
    Persistence failures propagate as ``PersistenceError``.
    """

    def __init__(self, context: BotContext) -> None:
        self.context = context

    def _authorized(self, secret: Any) -> bool:
        if not isinstance(secret, str):
            return False
        expected = self.context.config_store.current.web_password
        return hmac.compare_digest(secret.encode("utf-8"), expected.encode("utf-8"))

    def _unauthorized(self, operation: str) -> AdminResult:
        self.context.stats.admin_unauthorized += 1
        log.warning("Rejected %s: secret mismatch", operation)
        return AdminResult(AdminStatus.UNAUTHORIZED)

    def get_config(self) -> dict[str, Any]:
        return redact(self.context.config_store.current)

    async def set_config(self, secret: Any, partial: dict[str, Any]) -> AdminResult:
        if not self._authorized(secret):
            return self._unauthorized("config update")
        issues = await self.context.config_store.update(partial)
        if issues:
            return AdminResult(AdminStatus.INVALID, issues)
        return AdminResult(AdminStatus.UPDATED)

    def get_statistics(self) -> dict[str, Any]:
        return self.context.history_store.snapshot()

    async def reset_statistics(self, secret: Any) -> AdminResult:
        if not self._authorized(secret):
            return self._unauthorized("statistics reset")
        await self.context.history_store.reset()
        return AdminResult(AdminStatus.RESET)
