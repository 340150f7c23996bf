from __future__ import annotations

import asyncio
import random

from hypothesis import given, strategies as st

from etabot.moderation.config_schema import BotConfig
from etabot.moderation.engine import ModerationEngine
from etabot.moderation.models import (
    ActionFailed,
    CooldownActive,
    Denied,
    DenialReason,
    RecordFailed,
    Success,
)

from conftest import GUILD_ID, TARGET_ROLE_ID, make_request


async def test_cooldown_scenario(engine, context, clock, gateway):
    first = await engine.execute(make_request(1, 2))
    assert isinstance(first, Success)
    assert first.duration == 10

    second = await engine.execute(make_request(1, 2))
    assert isinstance(second, CooldownActive)
    assert 59 <= second.seconds_left <= 60

    clock.advance(61)
    third = await engine.execute(make_request(1, 2))
    assert isinstance(third, Success)
    assert len(gateway.calls) == 2


async def test_cooldown_reported_right_after_success(engine, context, clock):
    await engine.execute(make_request(1, 2))
    assert context.cooldowns.check(1, GUILD_ID) == 60
    clock.advance(60)
    assert context.cooldowns.check(1, GUILD_ID) == 0


async def test_explicit_now_drives_cooldown(engine, clock):
    t0 = clock.now
    assert isinstance(await engine.execute(make_request(1, 2), now=t0), Success)
    assert isinstance(await engine.execute(make_request(1, 2), now=t0 + 30), CooldownActive)
    assert isinstance(await engine.execute(make_request(1, 2), now=t0 + 61), Success)


async def test_success_records_history_and_statistics(engine, context, gateway):
    outcome = await engine.execute(make_request(1, 2))
    assert isinstance(outcome, Success)

    guild_id, target_id, duration, reason = gateway.calls[0]
    assert (guild_id, target_id, duration) == (GUILD_ID, 2, 10)
    assert "user1" in reason

    stats = context.history_store.user_stats(GUILD_ID, 1)
    assert stats.executed == 1
    assert stats.top_targets == [(2, 1)]
    assert context.history_store.recent_history(GUILD_ID) == [outcome.record]
    assert context.stats.timeouts_applied == 1


async def test_target_role_holder_is_denied_without_side_effects(engine, context, gateway):
    before = context.history_store.snapshot()
    outcome = await engine.execute(make_request(3, 4, executor_roles=(TARGET_ROLE_ID,)))
    assert outcome == Denied(DenialReason.EXECUTOR_INELIGIBLE)
    assert gateway.calls == []
    assert context.history_store.snapshot() == before
    assert context.cooldowns.check(3, GUILD_ID) == 0


async def test_denial_takes_precedence_over_cooldown(engine):
    await engine.execute(make_request(1, 2))
    outcome = await engine.execute(make_request(1, 1))
    assert outcome == Denied(DenialReason.SELF_TARGET)


async def test_platform_failure_changes_nothing(engine, context, gateway):
    await engine.execute(make_request(5, 2))
    before = context.history_store.snapshot()

    gateway.fail("Missing Permissions")
    outcome = await engine.execute(make_request(1, 2))

    assert isinstance(outcome, ActionFailed)
    assert "Missing Permissions" in outcome.cause
    assert context.history_store.snapshot() == before
    assert context.cooldowns.check(1, GUILD_ID) == 0
    assert context.stats.timeouts_failed == 1


async def test_platform_timeout_is_reported_as_action_failed(engine, context, gateway):
    gateway.fail_with = asyncio.TimeoutError()
    outcome = await engine.execute(make_request(1, 2))
    assert isinstance(outcome, ActionFailed)
    assert context.history_store.total() == 0


async def test_persistence_failure_sets_no_cooldown(engine, context, gateway):
    context.documents.fail_saves = True
    outcome = await engine.execute(make_request(1, 2))

    assert isinstance(outcome, RecordFailed)
    assert len(gateway.calls) == 1
    assert context.history_store.total() == 0
    assert context.cooldowns.check(1, GUILD_ID) == 0


async def test_concurrent_requests_from_one_executor_apply_once(context, gateway, clock):
    class SlowGateway:
        def __init__(self) -> None:
            self.calls = 0

        async def timeout(self, guild_id, target_id, duration_seconds, reason):
            self.calls += 1
            await asyncio.sleep(0.01)

    slow = SlowGateway()
    engine = ModerationEngine(
        config_store=context.config_store,
        history_store=context.history_store,
        cooldowns=context.cooldowns,
        gateway=slow,
        clock=clock,
    )

    outcomes = await asyncio.gather(
        engine.execute(make_request(1, 2)),
        engine.execute(make_request(1, 3)),
    )

    assert sum(isinstance(o, Success) for o in outcomes) == 1
    assert sum(isinstance(o, CooldownActive) for o in outcomes) == 1
    assert slow.calls == 1
    assert context.history_store.guild_total(GUILD_ID) == 1


async def test_different_executors_are_independent(engine, context):
    assert isinstance(await engine.execute(make_request(1, 2)), Success)
    assert isinstance(await engine.execute(make_request(3, 2)), Success)
    assert context.history_store.user_stats(GUILD_ID, 2) is None
    assert [e.user_id for e in context.history_store.ranking(GUILD_ID)] == [1, 3]


async def test_config_change_applies_to_next_action(engine, context):
    await context.config_store.update({"min_timeout": 30, "max_timeout": 30, "cooldown_seconds": 5})
    outcome = await engine.execute(make_request(1, 2))
    assert outcome.duration == 30
    assert context.cooldowns.check(1, GUILD_ID) == 5


@given(
    low=st.integers(min_value=1, max_value=500),
    span=st.integers(min_value=0, max_value=500),
    seed=st.integers(min_value=0, max_value=2**32 - 1),
)
def test_duration_stays_within_bounds(low, span, seed):
    engine = ModerationEngine(
        config_store=None,
        history_store=None,
        cooldowns=None,
        gateway=None,
        rng=random.Random(seed),
    )
    config = BotConfig(min_timeout=low, max_timeout=low + span)
    for _ in range(5):
        duration = engine.draw_duration(config)
        assert low <= duration <= low + span
        if span == 0:
            assert duration == low


async def test_network_failure_is_reported_as_action_failed(engine, context, gateway):
    gateway.fail_with = OSError("connection reset")
    outcome = await engine.execute(make_request(1, 2))
    assert isinstance(outcome, ActionFailed)
    assert "connection reset" in outcome.cause
    assert context.history_store.total() == 0
    assert context.cooldowns.check(1, GUILD_ID) == 0
    assert context.stats.timeouts_failed == 1


async def test_locks_are_released_after_each_request(engine):
    await engine.execute(make_request(1, 2))
    await engine.execute(make_request(1, 2))
    await asyncio.gather(*(engine.execute(make_request(uid, 2)) for uid in range(10, 20)))
    assert engine.active_locks == 0
