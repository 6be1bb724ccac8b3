"""
Pytest configuration and fixtures for Rolegate tests.
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

T0 = 1_700_000_000_000

GUILD_PERMISSION_FLAGS = ("administrator", "manage_guild", "manage_messages", "kick_members", "ban_members")


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def build_member(user_id=1001, guild_id=42, role_ids=(), **flags):
    """Lightweight stand-in for ``discord.Member``."""
    roles = [SimpleNamespace(id=role_id, name=f"role-{role_id}", mention=f"<@&{role_id}>") for role_id in role_ids]
    permissions = SimpleNamespace(**{flag: False for flag in GUILD_PERMISSION_FLAGS})
    for flag, value in flags.items():
        setattr(permissions, flag, value)
    return SimpleNamespace(
        id=user_id,
        guild=SimpleNamespace(id=guild_id),
        roles=roles,
        guild_permissions=permissions,
        mention=f"<@{user_id}>",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_member():
    return build_member
