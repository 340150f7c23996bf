from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..constants import COMMAND_ALIASES
from ..context import BotContext
from .engine import ModerationEngine
from .models import ActionRequest, ModerationOutcome, RankingEntry, TimeoutRecord, UserStats

log = logging.getLogger("etabot.router")

_ALIAS_TO_COMMAND = {alias.lower(): name for name, aliases in COMMAND_ALIASES.items() for alias in aliases}


@dataclass(frozen=True)
class MemberSnapshot:
    id: int
    is_bot: bool
    role_ids: frozenset[int]
    tag: str = ""


@dataclass(frozen=True)
class Mention:
    user_id: int
    # None when the mentioned user is not a member of the guild.
    member: Optional[MemberSnapshot]


@dataclass(frozen=True)
class CommandInvocation:
    """A chat message reduced to what routing needs."""

    guild_id: Optional[int]
    author: MemberSnapshot
    content: str
    mentions: tuple[Mention, ...] = ()
    bot_can_moderate: bool = False


@dataclass(frozen=True)
class ParsedCommand:
    # Canonical command name, or None for the moderate form.
    name: Optional[str]
    args: tuple[str, ...]


class UsageProblem(str, Enum):
    MISSING_TARGET = "missing_target"
    MULTIPLE_TARGETS = "multiple_targets"
    TARGET_NOT_FOUND = "target_not_found"


@dataclass(frozen=True)
class HelpReply:
    prefix: str
    min_timeout: int
    max_timeout: int


@dataclass(frozen=True)
class StatsReply:
    stats: Optional[UserStats]


@dataclass(frozen=True)
class RankingReply:
    entries: list[RankingEntry]


@dataclass(frozen=True)
class HistoryReply:
    records: list[TimeoutRecord]


@dataclass(frozen=True)
class InfoReply:
    min_timeout: int
    max_timeout: int
    cooldown_seconds: int
    target_role_id: int
    total_timeouts: int


@dataclass(frozen=True)
class ModerationReply:
    outcome: ModerationOutcome
    executor_id: int
    target_id: int
    cooldown_seconds: int


@dataclass(frozen=True)
class UsageReply:
    problem: UsageProblem
    prefix: str


Reply = Union[HelpReply, StatsReply, RankingReply, HistoryReply, InfoReply, ModerationReply, UsageReply]


def parse(content: str, prefix: str) -> Optional[ParsedCommand]:
    """Split a prefixed message into command name and arguments."""
    if not prefix or not content.startswith(prefix):
        return None
    args = tuple(content[len(prefix):].split())
    if args:
        name = _ALIAS_TO_COMMAND.get(args[0].lower())
        if name is not None:
            return ParsedCommand(name=name, args=args[1:])
    return ParsedCommand(name=None, args=args)


_MENTION_RE = re.compile(r"<@!?(\d+)>")


def _mentioned_ids(args: tuple[str, ...]) -> set[int]:
    return {int(m) for arg in args for m in _MENTION_RE.findall(arg)}


class CommandRouter:
    """Maps chat commands to queries or to the moderation engine.

    Keeps no state of its own; everything it reads lives in the context.
    """

    def __init__(self, context: BotContext, engine: ModerationEngine) -> None:
        self.context = context
        self.engine = engine

    async def handle(self, invocation: CommandInvocation) -> Optional[Reply]:
        if invocation.guild_id is None or invocation.author.is_bot:
            return None

        config = self.context.config_store.current
        if not config.guild_enabled(invocation.guild_id):
            return None

        parsed = parse(invocation.content, config.prefix)
        if parsed is None:
            return None

        reply = await self._dispatch(invocation, parsed)
        if reply is not None:
            self.context.stats.commands_handled += 1
        return reply

    async def _dispatch(self, invocation: CommandInvocation, parsed: ParsedCommand) -> Optional[Reply]:
        assert invocation.guild_id is not None
        config = self.context.config_store.current
        history = self.context.history_store
        guild_id = invocation.guild_id

        if parsed.name == "help":
            return HelpReply(prefix=config.prefix, min_timeout=config.min_timeout, max_timeout=config.max_timeout)
        if parsed.name == "stats":
            return StatsReply(stats=history.user_stats(guild_id, invocation.author.id))
        if parsed.name == "ranking":
            return RankingReply(entries=history.ranking(guild_id))
        if parsed.name == "history":
            return HistoryReply(records=history.recent_history(guild_id))
        if parsed.name == "info":
            return InfoReply(
                min_timeout=config.min_timeout,
                max_timeout=config.max_timeout,
                cooldown_seconds=config.cooldown_seconds,
                target_role_id=config.target_role_id,
                total_timeouts=history.guild_total(guild_id),
            )
        return await self._moderate(invocation, parsed)

    async def _moderate(self, invocation: CommandInvocation, parsed: ParsedCommand) -> Optional[Reply]:
        assert invocation.guild_id is not None
        prefix = self.context.config_store.current.prefix

        if not parsed.args:
            return UsageReply(UsageProblem.MISSING_TARGET, prefix)

        # Reply pings also land in the mention list; only mentions written
        # in the arguments name a target.
        written = _mentioned_ids(parsed.args)
        mentions: dict[int, Mention] = {}
        for mention in invocation.mentions:
            if mention.user_id in written:
                mentions.setdefault(mention.user_id, mention)
        if not mentions:
            # An unknown word without a mention is not a moderation attempt.
            return None
        if len(mentions) > 1:
            return UsageReply(UsageProblem.MULTIPLE_TARGETS, prefix)

        (mention,) = mentions.values()
        target = mention.member
        if target is None:
            return UsageReply(UsageProblem.TARGET_NOT_FOUND, prefix)

        request = ActionRequest(
            guild_id=invocation.guild_id,
            executor_id=invocation.author.id,
            target_id=target.id,
            executor_is_bot=invocation.author.is_bot,
            target_is_bot=target.is_bot,
            executor_role_ids=invocation.author.role_ids,
            target_role_ids=target.role_ids,
            bot_can_moderate=invocation.bot_can_moderate,
            executor_tag=invocation.author.tag,
        )
        outcome = await self.engine.execute(request)
        return ModerationReply(
            outcome=outcome,
            executor_id=invocation.author.id,
            target_id=target.id,
            cooldown_seconds=self.context.config_store.current.cooldown_seconds,
        )
