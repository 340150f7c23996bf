from __future__ import annotations

import random
from typing import Any

import pytest

from etabot.context import BotContext
from etabot.database import initialize_database
from etabot.moderation.engine import ModerationEngine
from etabot.moderation.models import ActionRequest
from etabot.moderation.router import CommandRouter
from etabot.services.base import PersistenceError
from etabot.services.config_store import ConfigStore
from etabot.services.cooldowns import CooldownTracker
from etabot.services.document_store import DocumentStore
from etabot.services.history_store import HistoryStore
from etabot.testing.fakes import FakeClock, FakeModerationGateway

GUILD_ID = 1000
TARGET_ROLE_ID = 777
OTHER_ROLE_ID = 888


class FlakyDocumentStore(DocumentStore):
    """Document store whose saves can be switched to fail."""

    fail_saves = False

    async def save(self, name: str, doc: dict[str, Any]) -> None:
        if self.fail_saves:
            raise PersistenceError(f"disk full while saving {name!r}")
        await super().save(name, doc)


@pytest.fixture
def sqlite_path(tmp_path) -> str:
    return str(tmp_path / "eta.sqlite3")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def context(sqlite_path, clock) -> BotContext:
    documents = FlakyDocumentStore(sqlite_path)
    config_store = ConfigStore(documents)
    ctx = BotContext(
        documents=documents,
        config_store=config_store,
        history_store=HistoryStore(documents),
        cooldowns=CooldownTracker(lambda: config_store.current.cooldown_seconds, clock=clock),
    )
    await initialize_database(sqlite_path, [documents])
    await ctx.load()
    issues = await ctx.config_store.update(
        {"target_role_id": TARGET_ROLE_ID, "min_timeout": 10, "max_timeout": 10, "cooldown_seconds": 60}
    )
    assert issues == []
    return ctx


@pytest.fixture
def gateway() -> FakeModerationGateway:
    return FakeModerationGateway()


@pytest.fixture
def engine(context, gateway, clock) -> ModerationEngine:
    return ModerationEngine(
        config_store=context.config_store,
        history_store=context.history_store,
        cooldowns=context.cooldowns,
        gateway=gateway,
        stats=context.stats,
        rng=random.Random(1234),
        clock=clock,
    )


@pytest.fixture
def router(context, engine) -> CommandRouter:
    return CommandRouter(context, engine)


def make_request(
    executor_id: int = 1,
    target_id: int = 2,
    *,
    guild_id: int = GUILD_ID,
    executor_roles: tuple[int, ...] = (),
    target_roles: tuple[int, ...] = (TARGET_ROLE_ID,),
    executor_is_bot: bool = False,
    target_is_bot: bool = False,
    bot_can_moderate: bool = True,
) -> ActionRequest:
    return ActionRequest(
        guild_id=guild_id,
        executor_id=executor_id,
        target_id=target_id,
        executor_is_bot=executor_is_bot,
        target_is_bot=target_is_bot,
        executor_role_ids=frozenset(executor_roles),
        target_role_ids=frozenset(target_roles),
        bot_can_moderate=bot_can_moderate,
        executor_tag=f"user{executor_id}",
    )
