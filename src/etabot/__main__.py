from __future__ import annotations

import asyncio
import logging
import signal

import discord
from dotenv import load_dotenv

from .bot import EtaBot
from .config import load_settings
from .context import BotContext
from .database import initialize_database
from .logging_setup import setup_logging
from .web.server import create_app, start_web_server

log = logging.getLogger("etabot.main")


async def main_async() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    context = BotContext.create(settings.sqlite_path)
    await initialize_database(settings.sqlite_path, [context.documents])
    await context.load()

    config = context.config_store.current
    runner = await start_web_server(create_app(context), settings.web_host, settings.web_port or config.web_port)

    bot = EtaBot(settings, context)

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows / limited environments
            pass

    token = settings.token or config.token
    try:
        if not token:
            log.error("No Discord token configured. Set one through the admin API and restart.")
            await stop_event.wait()
            return
        async with bot:
            bot_task = asyncio.create_task(bot.start(token), name="etabot-bot")
            stop_task = asyncio.create_task(stop_event.wait(), name="etabot-stop")
            done, pending = await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

            if bot_task in done and bot_task.exception() is not None:
                exc = bot_task.exception()
                if isinstance(exc, discord.LoginFailure):
                    # Keep the admin API up so the token can be fixed remotely.
                    log.error("Discord login failed: %s. Set a valid token through the admin API and restart.", exc)
                    await stop_event.wait()
                else:
                    raise exc

            if stop_event.is_set():
                log.info("Shutdown signal received; closing bot...")
                await bot.close()

            for t in pending:
                t.cancel()
    finally:
        await runner.cleanup()


def main() -> None:
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
