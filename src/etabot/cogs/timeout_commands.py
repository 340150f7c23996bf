from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import discord
from discord.ext import commands

from ..constants import COLORS, ERROR_MESSAGES
from ..moderation.models import ActionFailed, CooldownActive, Denied, RecordFailed, Success
from ..moderation.router import (
    CommandInvocation,
    HelpReply,
    HistoryReply,
    InfoReply,
    MemberSnapshot,
    Mention,
    ModerationReply,
    RankingReply,
    Reply,
    StatsReply,
    UsageReply,
)
from ..utils import add_field, error_embed, format_timestamp, mention, safe_embed, safe_reply

if TYPE_CHECKING:
    from ..bot import EtaBot

log = logging.getLogger("etabot.cog.timeout_commands")

_MEDALS = ("🥇", "🥈", "🥉")


def _snapshot(member: discord.Member | discord.User) -> MemberSnapshot:
    roles = getattr(member, "roles", None) or []
    return MemberSnapshot(
        id=member.id,
        is_bot=member.bot,
        role_ids=frozenset(r.id for r in roles),
        tag=str(member),
    )


def build_invocation(message: discord.Message) -> CommandInvocation:
    """Reduce a guild message to the data the router works on."""
    guild = message.guild
    mentions: list[Mention] = []
    bot_can_moderate = False
    if guild is not None:
        for user in message.mentions:
            member = user if isinstance(user, discord.Member) else guild.get_member(user.id)
            mentions.append(Mention(user_id=user.id, member=_snapshot(member) if member else None))
        bot_can_moderate = guild.me.guild_permissions.moderate_members

    return CommandInvocation(
        guild_id=guild.id if guild else None,
        author=_snapshot(message.author),
        content=message.content,
        mentions=tuple(mentions),
        bot_can_moderate=bot_can_moderate,
    )


def render_reply(reply: Reply) -> discord.Embed:
    if isinstance(reply, HelpReply):
        e = safe_embed("📚 ETA Bot help", "Timeout command list")
        add_field(e, f"{reply.prefix} @user", f"Time out the user for a random {reply.min_timeout}–{reply.max_timeout}s.")
        add_field(e, f"{reply.prefix} stats", "Show your timeout statistics.")
        add_field(e, f"{reply.prefix} ranking", "Show the server ranking.")
        add_field(e, f"{reply.prefix} history", "Show recent timeouts.")
        add_field(e, f"{reply.prefix} info", "Show the bot settings.")
        return e

    if isinstance(reply, StatsReply):
        if reply.stats is None:
            return safe_embed("📊 Your statistics", "You have not timed out anyone yet.", COLORS["success"])
        e = safe_embed("📊 Your statistics", color=COLORS["success"])
        add_field(e, "Executed", str(reply.stats.executed), inline=True)
        add_field(e, "Targets", str(reply.stats.distinct_targets), inline=True)
        add_field(e, "Most timed out", "\n".join(f"{mention(uid)}: {n}" for uid, n in reply.stats.top_targets))
        return e

    if isinstance(reply, RankingReply):
        if not reply.entries:
            return safe_embed("🏆 Timeout ranking", "No ranking data yet.", COLORS["ranking"])
        lines = [
            f"{_MEDALS[i] if i < len(_MEDALS) else f'{i + 1}.'} {mention(entry.user_id)}: {entry.executed}"
            for i, entry in enumerate(reply.entries)
        ]
        return safe_embed("🏆 Timeout ranking", "\n".join(lines), COLORS["ranking"])

    if isinstance(reply, HistoryReply):
        if not reply.records:
            return safe_embed("📜 Recent timeouts", "No history yet.", COLORS["history"])
        lines = [
            f"{format_timestamp(r.timestamp)} {mention(r.executor_id)} → {mention(r.target_id)} ({r.duration}s)"
            for r in reply.records
        ]
        return safe_embed("📜 Recent timeouts", "\n".join(lines), COLORS["history"])

    if isinstance(reply, InfoReply):
        e = safe_embed("ℹ️ Bot settings")
        add_field(e, "Timeout range", f"{reply.min_timeout}–{reply.max_timeout}s", inline=True)
        add_field(e, "Cooldown", f"{reply.cooldown_seconds}s", inline=True)
        add_field(e, "Target role", f"<@&{reply.target_role_id}>" if reply.target_role_id else "not set")
        add_field(e, "Total timeouts", str(reply.total_timeouts), inline=True)
        return e

    if isinstance(reply, UsageReply):
        return error_embed(ERROR_MESSAGES[reply.problem.value].format(prefix=reply.prefix))

    return _render_moderation(reply)


def _render_moderation(reply: ModerationReply) -> discord.Embed:
    outcome = reply.outcome
    if isinstance(outcome, Success):
        e = safe_embed("✅ Timeout applied", color=COLORS["success"])
        add_field(e, "Target", mention(reply.target_id), inline=True)
        add_field(e, "Duration", f"{outcome.duration}s", inline=True)
        add_field(e, "Executor", mention(reply.executor_id), inline=True)
        e.set_footer(text=f"Cooldown until next use: {reply.cooldown_seconds}s")
        return e
    if isinstance(outcome, Denied):
        return error_embed(ERROR_MESSAGES[outcome.reason.value])
    if isinstance(outcome, CooldownActive):
        return safe_embed("⏳ Cooldown", ERROR_MESSAGES["cooldown"].format(seconds=outcome.seconds_left), COLORS["warning"])
    if isinstance(outcome, RecordFailed):
        return error_embed(ERROR_MESSAGES["record_failed"])
    # ActionFailed: the cause is logged by the engine, not shown.
    assert isinstance(outcome, ActionFailed)
    return error_embed(ERROR_MESSAGES["action_failed"])


class TimeoutCommandsCog(commands.Cog):
    """Prefix-command front end for the timeout engine."""

    def __init__(self, bot: "EtaBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return

        reply: Optional[Reply] = await self.bot.router.handle(build_invocation(message))
        if reply is None:
            return
        await safe_reply(message, embed=render_reply(reply))
