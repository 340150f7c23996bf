from __future__ import annotations

import logging

import discord
from discord.ext import commands

from .config import Settings
from .context import BotContext
from .cogs.timeout_commands import TimeoutCommandsCog
from .moderation.engine import ModerationEngine
from .moderation.gateway import DiscordModerationGateway
from .moderation.router import CommandRouter

log = logging.getLogger("etabot.bot")


class EtaBot(commands.Bot):
    def __init__(self, settings: Settings, context: BotContext) -> None:
        intents = discord.Intents.default()
        intents.members = True
        # The whole command surface is prefix based.
        intents.message_content = bool(settings.message_content_intent)

        log.info("INTENTS: guilds=%s members=%s message_content=%s", intents.guilds, intents.members, intents.message_content)

        super().__init__(
            # Commands are parsed by CommandRouter, not discord.ext.commands.
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self.context = context
        self.gateway = DiscordModerationGateway(self)
        self.engine = ModerationEngine(
            config_store=context.config_store,
            history_store=context.history_store,
            cooldowns=context.cooldowns,
            gateway=self.gateway,
            stats=context.stats,
        )
        self.router = CommandRouter(context, self.engine)

    async def setup_hook(self) -> None:
        await self.add_cog(TimeoutCommandsCog(self))
        log.info("Loaded cog: TimeoutCommandsCog")

    async def on_ready(self) -> None:
        log.info("Logged in as %s (guilds=%d)", self.user, len(self.guilds))
        prefix = self.context.config_store.current.prefix
        try:
            await self.change_presence(activity=discord.Game(name=f"{prefix} help"))
        except discord.HTTPException as e:
            log.warning("Could not set presence: %s", e)
