from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Protocol, runtime_checkable

import aiohttp
import discord

log = logging.getLogger("etabot.gateway")


class ModerationActionError(Exception):
    """The platform refused or failed to apply a timeout."""


@runtime_checkable
class ModerationGateway(Protocol):
    """The one platform action the engine needs."""

    async def timeout(self, guild_id: int, target_id: int, duration_seconds: int, reason: str) -> None:
        """Apply a timeout or raise ModerationActionError."""
        ...


class DiscordModerationGateway:
    """Applies timeouts through a connected discord.py client."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def timeout(self, guild_id: int, target_id: int, duration_seconds: int, reason: str) -> None:
        guild = self._client.get_guild(guild_id)
        if guild is None:
            raise ModerationActionError(f"guild {guild_id} is not available")

        member = guild.get_member(target_id)
        if member is None:
            try:
                member = await guild.fetch_member(target_id)
            except discord.NotFound as e:
                raise ModerationActionError(f"member {target_id} is no longer in guild {guild_id}") from e
            except discord.HTTPException as e:
                raise ModerationActionError(f"could not fetch member {target_id}: {e}") from e
            except (OSError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise ModerationActionError(f"could not reach Discord: {e!r}") from e

        try:
            await member.timeout(timedelta(seconds=duration_seconds), reason=reason)
        except discord.Forbidden as e:
            raise ModerationActionError(f"missing permission to time out {target_id}") from e
        except discord.HTTPException as e:
            raise ModerationActionError(f"Discord rejected the timeout: {e}") from e
        except (OSError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ModerationActionError(f"could not reach Discord: {e!r}") from e
