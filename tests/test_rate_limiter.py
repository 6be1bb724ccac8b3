"""Tests for cooldowns and rate limits."""

import logging
from unittest.mock import MagicMock

import pytest

from rolegate.ratelimit import rate_limiter
from rolegate.ratelimit.rate_limiter import (
    DEFAULT_COOLDOWNS,
    STALE_COOLDOWN_MS,
    LimitReason,
    RateLimiter,
)

USER = 1001


@pytest.fixture()
def limiter(clock):
    # rng above the ageing threshold keeps state deterministic
    return RateLimiter(clock=clock, rng=lambda: 0.99)


def test_first_use_passes_then_cooldown_applies(limiter, clock):
    assert limiter.check_cooldown(USER, "daily", "economy").on_cooldown is False

    clock.advance(1000)
    status = limiter.check_cooldown(USER, "daily", "economy")

    assert status.on_cooldown is True
    assert status.time_left == 2
    assert status.message == "⏰ This command is on cooldown. Try again in 2 seconds."


def test_blocked_call_does_not_reset_timer(limiter, clock):
    limiter.check_cooldown(USER, "daily", "economy")
    clock.advance(2500)
    limiter.check_cooldown(USER, "daily", "economy")

    clock.advance(500)

    assert limiter.check_cooldown(USER, "daily", "economy").on_cooldown is False


def test_cooldowns_are_per_command(limiter):
    limiter.check_cooldown(USER, "cmdA")

    assert limiter.check_cooldown(USER, "cmdB").on_cooldown is False
    assert limiter.check_cooldown(USER, "cmdA").on_cooldown is True
    assert limiter.check_cooldown(2002, "cmdA").on_cooldown is False


def test_unknown_category_falls_back_to_general(limiter, clock):
    limiter.check_cooldown(USER, "ping", "mystery")
    clock.advance(DEFAULT_COOLDOWNS["general"])

    assert limiter.check_cooldown(USER, "ping", "mystery").on_cooldown is False


def test_cooldown_precedence(clock):
    limiter = RateLimiter(cooldowns={"economy": 10000, "daily": 60000}, clock=clock, rng=lambda: 0.99)

    assert limiter.category_cooldowns["economy"] == 10000
    assert limiter.command_cooldowns == {"daily": 60000}

    limiter.check_cooldown(USER, "daily", "economy")
    assert limiter.get_remaining_cooldown(USER, "daily", "economy") == 60

    # An explicit per-call delay wins over the command override
    limiter.reset_cooldown(USER, "daily")
    limiter.check_cooldown(USER, "daily", "economy", custom_cooldown_ms=1500)
    clock.advance(1500)
    assert limiter.check_cooldown(USER, "daily", "economy", custom_cooldown_ms=1500).on_cooldown is False


def test_set_custom_cooldown(limiter, clock):
    limiter.set_custom_cooldown("pay", 20000)
    limiter.check_cooldown(USER, "pay", "economy")
    clock.advance(10000)

    assert limiter.get_remaining_cooldown(USER, "pay", "economy") == 10


def test_remaining_and_reset_cooldown(limiter, clock):
    assert limiter.get_remaining_cooldown(USER, "daily", "economy") == 0

    limiter.check_cooldown(USER, "daily", "economy")
    clock.advance(100)
    assert limiter.get_remaining_cooldown(USER, "daily", "economy") == 3

    limiter.reset_cooldown(USER, "daily")
    assert limiter.get_remaining_cooldown(USER, "daily", "economy") == 0
    assert limiter.check_cooldown(USER, "daily", "economy").on_cooldown is False


def test_economy_window_blocks_twenty_first_use(limiter, clock):
    for _ in range(20):
        assert limiter.check_rate_limit(USER, "economy").limited is False

    blocked = limiter.check_rate_limit(USER, "economy")
    assert blocked.limited is True
    assert blocked.reset_in == 60
    assert limiter.get_rate_limit_status(USER, "economy").uses == 20

    clock.advance(60001)
    assert limiter.check_rate_limit(USER, "economy").limited is False
    assert limiter.get_rate_limit_status(USER, "economy").uses == 1


def test_window_uses_never_exceed_max(limiter):
    for _ in range(50):
        limiter.check_rate_limit(USER, "customRole")

    usage = limiter.get_rate_limit_status(USER, "customRole")
    assert usage.uses == 3
    assert usage.percentage == 100


def test_unconfigured_category_is_never_limited(limiter):
    for _ in range(100):
        assert limiter.check_rate_limit(USER, "general").limited is False

    assert limiter.get_rate_limit_status(USER, "general") is None


def test_rate_limit_status_and_reset(limiter, clock):
    assert limiter.get_rate_limit_status(USER, "shop").uses == 0

    for _ in range(3):
        limiter.check_rate_limit(USER, "shop")
    clock.advance(30000)

    usage = limiter.get_rate_limit_status(USER, "shop")
    assert usage.uses == 3
    assert usage.max_uses == 15
    assert usage.reset_in == 30
    assert usage.percentage == 20

    limiter.reset_rate_limit(USER, "shop")
    assert limiter.get_rate_limit_status(USER, "shop").uses == 0


def test_rate_limit_overrides(clock):
    limiter = RateLimiter(rate_limits={"general": {"max_uses": 1, "window_ms": 1000}}, clock=clock, rng=lambda: 0.99)

    assert limiter.check_rate_limit(USER, "general").limited is False
    assert limiter.check_rate_limit(USER, "general").limited is True


def test_check_limits_cooldown_first(limiter, clock):
    assert limiter.check_limits(USER, "buy", "shop").blocked is False

    decision = limiter.check_limits(USER, "buy", "shop")
    assert decision.blocked is True
    assert decision.reason is LimitReason.COOLDOWN
    assert decision.retry_after == 2
    # The blocked call did not count against the window
    assert limiter.get_rate_limit_status(USER, "shop").uses == 1


def test_check_limits_rate_limit(clock):
    limiter = RateLimiter(
        cooldowns={"giveaway": 0},
        clock=clock,
        rng=lambda: 0.99,
    )
    for index in range(5):
        assert limiter.check_limits(USER, f"gstart{index}", "giveaway").blocked is False

    decision = limiter.check_limits(USER, "gstart9", "giveaway")
    assert decision.blocked is True
    assert decision.reason is LimitReason.RATE_LIMIT
    assert str(decision.reason) == "rateLimit"
    assert decision.retry_after == 300


def test_ageing_purges_stale_entries(clock):
    limiter = RateLimiter(clock=clock, rng=lambda: 0.0)
    limiter.check_cooldown(1, "daily", "economy")
    limiter.check_rate_limit(1, "economy")

    clock.advance(STALE_COOLDOWN_MS + 1)
    limiter.check_cooldown(2, "daily", "economy")

    stats = limiter.get_stats()
    assert stats["active_cooldowns"] == 1
    assert stats["active_rate_limits"] == 0


def test_is_exempt(make_member):
    limiter = RateLimiter(owner_ids=frozenset({"7"}), admin_check=lambda member: member.guild_permissions.administrator)

    assert limiter.is_exempt(make_member(user_id=7)) is True
    assert limiter.is_exempt(make_member(administrator=True)) is True
    assert limiter.is_exempt(make_member()) is False


def test_stats(clock):
    limiter = RateLimiter(cooldowns={"daily": 60000}, clock=clock, rng=lambda: 0.99)
    limiter.check_cooldown(USER, "daily", "economy")

    stats = limiter.get_stats()

    assert stats["active_cooldowns"] == 1
    assert stats["command_overrides"] == {"daily": 60000}
    assert "general" in stats["categories"]
    assert "customRole" in stats["rate_limit_categories"]


def test_ageing_keeps_long_cooldowns_that_are_still_running(clock):
    limiter = RateLimiter(clock=clock, rng=lambda: 0.0)
    limiter.set_custom_cooldown("bigcmd", 600_000)
    limiter.check_cooldown(1, "bigcmd")

    clock.advance(STALE_COOLDOWN_MS + 1)
    limiter.check_cooldown(2, "daily", "economy")

    status = limiter.check_cooldown(1, "bigcmd")
    assert status.on_cooldown is True
    assert status.time_left == 300


def test_rate_limit_block_is_logged(limiter, monkeypatch):
    audit = MagicMock()
    monkeypatch.setattr(rate_limiter, "logger", audit)
    for _ in range(3):
        limiter.check_rate_limit(USER, "customRole")

    assert limiter.check_rate_limit(USER, "customRole").limited is True

    level, _, category, _, facts = audit.log.call_args.args
    assert level == logging.INFO
    assert category == "RATE_LIMITER"
    assert "rate_category='customRole'" in facts
