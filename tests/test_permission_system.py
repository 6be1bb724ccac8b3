"""Tests for wiring the permission core from configuration."""

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from rolegate.configuration.app_configuration import AppConfig
from rolegate.permissions.permission_system import PermissionSystem


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    path = tmp_path / "app_config.yml"
    path.write_text(
        yaml.safe_dump({
            "owner_ids": [7],
            "roles": {"admin": 100, "helper": 600},
            "rate_limiter": {
                "cooldowns": {"daily": 60000},
                "rate_limits": {"general": {"max_uses": 2, "window_ms": 10000}},
            },
            "sweep": {"interval_seconds": 5},
        }),
        encoding="utf-8",
    )
    return AppConfig(path)


@pytest.fixture()
def system(app_config, clock) -> PermissionSystem:
    return PermissionSystem.from_config(
        app_config, clock=clock, local_now=lambda: datetime(2024, 1, 8, 12, 0), rng=lambda: 0.99
    )


def test_from_config_wires_roles_and_owners(system, make_member):
    assert system.resolver.is_owner(7) is True
    assert system.resolver.is_admin(make_member(role_ids=[100])) is True
    # helper is bound to the junior-staff group by default
    assert system.groups.get_role_groups(600) == ["junior-staff"]
    assert system.resolver.has_permission(make_member(role_ids=[600]), "giveaway") is True


def test_from_config_wires_rate_limiter(system, make_member):
    limiter = system.rate_limiter

    assert limiter.command_cooldowns == {"daily": 60000}
    assert limiter.rate_limit_config["general"] == {"max_uses": 2, "window_ms": 10000}
    assert limiter.is_exempt(make_member(user_id=7)) is True
    assert limiter.is_exempt(make_member(role_ids=[100])) is True
    assert limiter.is_exempt(make_member()) is False


def test_stores_are_shared(system, make_member):
    member = make_member()
    system.temporary_grants.grant(member.id, member.guild.id, "economy", "1h", "9")

    assert system.resolver.temporary_grants is system.temporary_grants
    assert system.resolver.contexts is system.contexts
    assert system.resolver.has_permission(member, "economy") is True
    # The context store consults the resolver as its global check
    system.contexts.set_context_config("chan1", "channel", {"permissions": {"economy": False}})
    assert system.contexts.has_context_permission(member, "economy", "chan1") is True


def test_system_uses_injected_clock(system, clock):
    assert system.clock() == clock.now


def test_default_system_has_no_owners(make_member):
    system = PermissionSystem()

    assert system.resolver.is_admin(make_member()) is False
    assert system.rate_limiter.owner_ids == frozenset()


@pytest.mark.asyncio
async def test_start_and_shutdown(system):
    system.start()
    assert system.temporary_grants._scheduler.running is True
    assert system.contexts._scheduler.running is True

    await system.shutdown()
    assert system.temporary_grants._scheduler.running is False
    assert system.contexts._scheduler.running is False
