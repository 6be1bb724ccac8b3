"""
Command cooldowns and per-category rate limits.

Cooldowns space out repeated uses of one command by one user. Rate limits
cap how many commands of a category one user may run inside a fixed
window. Neither ever raises: callers get a status object and decide what
to reply.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import discord

from rolegate.datatypes.discord_datatypes import UserID
from rolegate.util.duration import MINUTE_MS, now_ms
from rolegate.util.logger import get_logger, log_event
from rolegate.util.member_utils import member_user_id

logger = get_logger("rate_limiter")

CATEGORY = "RATE_LIMITER"

GENERAL_CATEGORY = "general"

DEFAULT_COOLDOWNS: Dict[str, int] = {
    "admin": 5000,
    "economy": 3000,
    "shop": 2000,
    "giveaway": 10000,
    "moderator": 1000,
    "customRole": 30000,
    GENERAL_CATEGORY: 1000,
}

DEFAULT_RATE_LIMITS: Dict[str, Dict[str, int]] = {
    "admin": {"max_uses": 10, "window_ms": 60000},
    "economy": {"max_uses": 20, "window_ms": 60000},
    "shop": {"max_uses": 15, "window_ms": 60000},
    "giveaway": {"max_uses": 5, "window_ms": 300000},
    "moderator": {"max_uses": 30, "window_ms": 60000},
    "customRole": {"max_uses": 3, "window_ms": 3600000},
}

# Ageing only purges cooldowns older than this that have also run out
STALE_COOLDOWN_MS = 5 * MINUTE_MS
AGEING_PROBABILITY = 0.01


class LimitReason(Enum):
    COOLDOWN = "cooldown"
    RATE_LIMIT = "rateLimit"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class CooldownStatus:
    on_cooldown: bool
    time_left: int = 0
    message: Optional[str] = None


@dataclass(slots=True)
class RateLimitStatus:
    limited: bool
    reset_in: int = 0
    message: Optional[str] = None


@dataclass(slots=True)
class LimitDecision:
    """Combined verdict of ``check_limits``; ``retry_after`` is in seconds."""

    blocked: bool
    reason: Optional[LimitReason] = None
    retry_after: int = 0
    message: Optional[str] = None


@dataclass(slots=True)
class RateLimitUsage:
    uses: int
    max_uses: int
    reset_in: int
    percentage: int


@dataclass(slots=True)
class _Stamp:
    used_at: int
    delay: int

    def expired(self, now: int) -> bool:
        return now >= self.used_at + self.delay


@dataclass(slots=True)
class _Window:
    uses: int
    reset_time: int


def _ceil_seconds(ms: int) -> int:
    return math.ceil(ms / 1000)


def _never(member: discord.Member) -> bool:
    return False


class RateLimiter:
    """
    In-memory cooldown and fixed-window rate limit tracker.

    Args:
        owner_ids: Users exempt from all limits.
        admin_check: Global admin check used by ``is_exempt``.
        cooldowns: Overrides in milliseconds. Keys naming a known category
            replace that category's delay; any other key is a per-command delay.
        rate_limits: Overrides as ``{category: {"max_uses": n, "window_ms": ms}}``.
        clock: Returns the current epoch milliseconds.
        rng: Returns a float in ``[0, 1)``; drives probabilistic ageing.
    """

    def __init__(
        self,
        owner_ids: frozenset[UserID] = frozenset(),
        admin_check: Callable[[discord.Member], bool] = _never,
        cooldowns: Optional[Mapping[str, int]] = None,
        rate_limits: Optional[Mapping[str, Mapping[str, int]]] = None,
        clock: Callable[[], int] = now_ms,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.owner_ids = frozenset(UserID(owner) for owner in owner_ids)
        self.admin_check = admin_check
        self._clock = clock
        self._rng = rng

        self.category_cooldowns: Dict[str, int] = dict(DEFAULT_COOLDOWNS)
        self.command_cooldowns: Dict[str, int] = {}
        for key, delay in (cooldowns or {}).items():
            if key in self.category_cooldowns:
                self.category_cooldowns[key] = int(delay)
            else:
                self.command_cooldowns[key] = int(delay)

        self.rate_limit_config: Dict[str, Dict[str, int]] = {k: dict(v) for k, v in DEFAULT_RATE_LIMITS.items()}
        for category, limit in (rate_limits or {}).items():
            self.rate_limit_config[category] = {"max_uses": int(limit["max_uses"]), "window_ms": int(limit["window_ms"])}

        self._cooldowns: Dict[Tuple[UserID, str], _Stamp] = {}
        self._windows: Dict[Tuple[UserID, str], _Window] = {}

    # --------------------------
    # Cooldowns
    # --------------------------
    def _cooldown_delay(self, command_name: str, category: str, custom_cooldown_ms: Optional[int] = None) -> int:
        if custom_cooldown_ms:
            return int(custom_cooldown_ms)
        if command_name in self.command_cooldowns:
            return self.command_cooldowns[command_name]
        return self.category_cooldowns.get(category, self.category_cooldowns[GENERAL_CATEGORY])

    def check_cooldown(
        self,
        user_id: UserID | int | str,
        command_name: str,
        category: str = GENERAL_CATEGORY,
        custom_cooldown_ms: Optional[int] = None,
    ) -> CooldownStatus:
        """
        Record a use of ``command_name`` unless the user is still cooling down.

        A blocked call leaves the previous timestamp in place, so hammering a
        command does not extend the wait.
        """
        key = (UserID(user_id), command_name)
        now = self._clock()
        delay = self._cooldown_delay(command_name, category, custom_cooldown_ms)

        stamp = self._cooldowns.get(key)
        if stamp is not None and now < stamp.used_at + delay:
            time_left = _ceil_seconds(stamp.used_at + delay - now)
            return CooldownStatus(
                on_cooldown=True,
                time_left=time_left,
                message=f"⏰ This command is on cooldown. Try again in {time_left} seconds.",
            )

        self._cooldowns[key] = _Stamp(used_at=now, delay=delay)
        self._age_entries(now)
        return CooldownStatus(on_cooldown=False)

    def get_remaining_cooldown(self, user_id: UserID | int | str, command_name: str, category: str = GENERAL_CATEGORY) -> int:
        """Seconds until ``command_name`` is usable again; 0 when it already is."""
        stamp = self._cooldowns.get((UserID(user_id), command_name))
        if stamp is None:
            return 0
        expires = stamp.used_at + self._cooldown_delay(command_name, category)
        now = self._clock()
        if now >= expires:
            return 0
        return _ceil_seconds(expires - now)

    def reset_cooldown(self, user_id: UserID | int | str, command_name: str) -> None:
        self._cooldowns.pop((UserID(user_id), command_name), None)

    def set_custom_cooldown(self, command_name: str, cooldown_ms: int) -> None:
        """Give one command its own delay, overriding its category."""
        self.command_cooldowns[command_name] = int(cooldown_ms)
        log_event(logger, CATEGORY, f"Custom cooldown set for {command_name}",
                  command_name=command_name, cooldown_ms=int(cooldown_ms))

    # --------------------------
    # Rate limits
    # --------------------------
    def check_rate_limit(self, user_id: UserID | int | str, category: str) -> RateLimitStatus:
        """Count a use against the user's window for ``category``. Unconfigured categories are never limited."""
        config = self.rate_limit_config.get(category)
        if config is None:
            return RateLimitStatus(limited=False)

        key = (UserID(user_id), category)
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now > window.reset_time:
            self._windows[key] = _Window(uses=1, reset_time=now + config["window_ms"])
            return RateLimitStatus(limited=False)

        if window.uses >= config["max_uses"]:
            reset_in = _ceil_seconds(window.reset_time - now)
            log_event(
                logger, CATEGORY, f"Rate limit reached for user {key[0]} in {category}",
                user_id=str(key[0]), rate_category=category, uses=window.uses, reset_in=reset_in,
            )
            return RateLimitStatus(
                limited=True,
                reset_in=reset_in,
                message=f"🚫 Rate limit reached for category {category}. Resets in {reset_in} seconds.",
            )

        window.uses += 1
        return RateLimitStatus(limited=False)

    def reset_rate_limit(self, user_id: UserID | int | str, category: str) -> None:
        self._windows.pop((UserID(user_id), category), None)

    def get_rate_limit_status(self, user_id: UserID | int | str, category: str) -> Optional[RateLimitUsage]:
        config = self.rate_limit_config.get(category)
        if config is None:
            return None

        window = self._windows.get((UserID(user_id), category))
        if window is None:
            return RateLimitUsage(uses=0, max_uses=config["max_uses"], reset_in=0, percentage=0)

        reset_in = max(0, _ceil_seconds(window.reset_time - self._clock()))
        return RateLimitUsage(
            uses=window.uses,
            max_uses=config["max_uses"],
            reset_in=reset_in,
            percentage=round(window.uses / config["max_uses"] * 100),
        )

    # --------------------------
    # Combined gate
    # --------------------------
    def check_limits(
        self,
        user_id: UserID | int | str,
        command_name: str,
        category: str = GENERAL_CATEGORY,
        custom_cooldown_ms: Optional[int] = None,
    ) -> LimitDecision:
        """Cooldown first, then rate limit. A call blocked by the cooldown does not count against the window."""
        cooldown = self.check_cooldown(user_id, command_name, category, custom_cooldown_ms)
        if cooldown.on_cooldown:
            return LimitDecision(blocked=True, reason=LimitReason.COOLDOWN, retry_after=cooldown.time_left, message=cooldown.message)

        rate_limit = self.check_rate_limit(user_id, category)
        if rate_limit.limited:
            return LimitDecision(blocked=True, reason=LimitReason.RATE_LIMIT, retry_after=rate_limit.reset_in, message=rate_limit.message)

        return LimitDecision(blocked=False)

    def is_exempt(self, member: discord.Member) -> bool:
        """Bot owners and global admins skip limits; applying this is up to the caller."""
        if member_user_id(member) in self.owner_ids:
            return True
        return bool(self.admin_check(member))

    # --------------------------
    # Maintenance
    # --------------------------
    def _age_entries(self, now: int) -> None:
        if self._rng() < AGEING_PROBABILITY:
            stale = [
                key for key, stamp in self._cooldowns.items()
                if now - stamp.used_at > STALE_COOLDOWN_MS and stamp.expired(now)
            ]
            for key in stale:
                del self._cooldowns[key]

        if self._rng() < AGEING_PROBABILITY:
            finished = [key for key, window in self._windows.items() if now > window.reset_time]
            for key in finished:
                del self._windows[key]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_cooldowns": len(self._cooldowns),
            "active_rate_limits": len(self._windows),
            "categories": list(self.category_cooldowns),
            "command_overrides": dict(self.command_cooldowns),
            "rate_limit_categories": list(self.rate_limit_config),
        }
