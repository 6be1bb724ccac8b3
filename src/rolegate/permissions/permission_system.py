"""
Wiring and lifecycle for the permission core.

``PermissionSystem`` builds every store from one configuration, connects
them (the context store consults the resolver's global check, the rate
limiter consults its admin check) and owns the background sweeps.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from rolegate.configuration.app_configuration import AppConfig
from rolegate.configuration.role_settings import RoleSettings
from rolegate.datatypes.discord_datatypes import UserID
from rolegate.permissions.context_overrides import ContextOverrideStore
from rolegate.permissions.permission_groups import PermissionGroupGraph, default_role_bindings
from rolegate.permissions.role_permissions import PermissionResolver
from rolegate.permissions.temporary_grants import TemporaryGrantStore
from rolegate.ratelimit.rate_limiter import RateLimiter
from rolegate.scheduler.sweep_scheduler import DEFAULT_SWEEP_INTERVAL_SECONDS
from rolegate.util.duration import now_ms
from rolegate.util.logger import get_logger

logger = get_logger("permission_system")


class PermissionSystem:
    """Container holding one instance of each store plus the resolver and rate limiter."""

    def __init__(
        self,
        roles: Optional[RoleSettings] = None,
        owner_ids: frozenset[UserID] = frozenset(),
        cooldowns: Optional[dict] = None,
        rate_limits: Optional[dict] = None,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], int] = now_ms,
        local_now: Callable[[], datetime] = datetime.now,
        rng: Optional[Callable[[], float]] = None,
    ) -> None:
        roles = roles if roles is not None else RoleSettings()
        self.clock = clock

        self.temporary_grants = TemporaryGrantStore(clock=clock, sweep_interval_seconds=sweep_interval_seconds)
        self.groups = PermissionGroupGraph(default_role_bindings(roles), clock=clock)
        self.resolver = PermissionResolver(
            roles=roles,
            owner_ids=owner_ids,
            temporary_grants=self.temporary_grants,
            groups=self.groups,
            clock=clock,
            local_now=local_now,
            sweep_interval_seconds=sweep_interval_seconds,
        )
        self.contexts: ContextOverrideStore = self.resolver.contexts

        limiter_kwargs = {"rng": rng} if rng is not None else {}
        self.rate_limiter = RateLimiter(
            owner_ids=owner_ids,
            admin_check=self.resolver.is_admin,
            cooldowns=cooldowns,
            rate_limits=rate_limits,
            clock=clock,
            **limiter_kwargs,
        )

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs) -> "PermissionSystem":
        """Build the system from the YAML configuration; ``kwargs`` override clocks and randomness."""
        system = cls(
            roles=config.roles,
            owner_ids=config.owner_ids,
            cooldowns=config.cooldowns,
            rate_limits=config.rate_limits,
            sweep_interval_seconds=config.sweep_interval_seconds,
            **kwargs,
        )
        logger.info(
            "[PERMISSION SYSTEM] Loaded with %d owner(s), %d role binding(s)",
            len(config.owner_ids), sum(1 for role in config.roles.as_dict().values() if role is not None),
        )
        return system

    def start(self) -> None:
        """Start the expiry sweeps. Requires a running event loop."""
        self.temporary_grants.start()
        self.contexts.start()
        logger.info("[PERMISSION SYSTEM] Expiry sweeps started")

    async def shutdown(self) -> None:
        await self.temporary_grants.shutdown()
        await self.contexts.shutdown()
        logger.info("[PERMISSION SYSTEM] Shutdown complete")
