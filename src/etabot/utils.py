from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import discord

from .constants import COLORS, MAX_EMBED_DESCRIPTION, MAX_EMBED_TITLE, MAX_FIELD_VALUE

log = logging.getLogger("etabot.utils")


def safe_embed(title: str, description: str = "", color: int = COLORS["default"]) -> discord.Embed:
    """Create an embed with safe length limits."""
    if len(title) > MAX_EMBED_TITLE:
        title = title[:MAX_EMBED_TITLE - 3] + "…"
    if len(description) > MAX_EMBED_DESCRIPTION:
        description = description[:MAX_EMBED_DESCRIPTION - 3] + "…"

    return discord.Embed(title=title, description=description, color=color, timestamp=discord.utils.utcnow())


def add_field(embed: discord.Embed, name: str, value: str, inline: bool = False) -> None:
    if len(value) > MAX_FIELD_VALUE:
        value = value[:MAX_FIELD_VALUE - 3] + "…"
    embed.add_field(name=name, value=value or "—", inline=inline)


def error_embed(message: str) -> discord.Embed:
    return safe_embed("Error", message, COLORS["error"])


def mention(user_id: int) -> str:
    return f"<@{user_id}>"


def format_timestamp(ts: datetime) -> str:
    return discord.utils.format_dt(ts, style="f")


async def safe_reply(
    message: discord.Message,
    content: str | None = None,
    embed: discord.Embed | None = None,
    **kwargs: Any,
) -> bool:
    """Reply to a message, logging instead of raising on HTTP errors."""
    try:
        await message.reply(content=content, embed=embed, mention_author=False, **kwargs)
        return True
    except discord.HTTPException as e:
        log.error(f"Failed to send reply: {e}")
        return False
