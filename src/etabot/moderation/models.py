from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class TimeoutRecord:
    """One executed timeout, as kept in the history document."""

    guild_id: int
    executor_id: int
    target_id: int
    duration: int
    timestamp: datetime


@dataclass
class ExecutorStats:
    executed: int = 0
    # Insertion order is first-seen order; ties in "top targets" rely on it.
    targets: dict[int, int] = field(default_factory=dict)

    def copy(self) -> "ExecutorStats":
        return ExecutorStats(executed=self.executed, targets=dict(self.targets))


@dataclass(frozen=True)
class UserStats:
    executed: int
    distinct_targets: int
    top_targets: list[tuple[int, int]]


@dataclass(frozen=True)
class RankingEntry:
    user_id: int
    executed: int


@dataclass(frozen=True)
class ActionRequest:
    """Everything eligibility needs to know about one timeout attempt."""

    guild_id: int
    executor_id: int
    target_id: int
    executor_is_bot: bool
    target_is_bot: bool
    executor_role_ids: frozenset[int]
    target_role_ids: frozenset[int]
    bot_can_moderate: bool
    # Human-readable executor name, used only in the audit-log reason.
    executor_tag: str = ""


class DenialReason(str, Enum):
    SELF_TARGET = "self_target"
    BOT_TARGET = "bot_target"
    TARGET_NOT_ELIGIBLE = "target_not_eligible"
    EXECUTOR_INELIGIBLE = "executor_ineligible"
    INSUFFICIENT_BOT_PERMISSION = "insufficient_bot_permission"


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


Eligibility = Union[Allowed, Denied]


@dataclass(frozen=True)
class Success:
    duration: int
    record: TimeoutRecord


@dataclass(frozen=True)
class CooldownActive:
    seconds_left: int


@dataclass(frozen=True)
class ActionFailed:
    cause: str


@dataclass(frozen=True)
class RecordFailed:
    """The platform applied the timeout but the history could not be saved."""

    cause: str


ModerationOutcome = Union[Success, Denied, CooldownActive, ActionFailed, RecordFailed]
