"""
Read-only lookups against a guild member.

The permission core only ever asks three questions of the chat platform:
which roles a member holds, whether it holds a given role, and whether a
guild-level permission flag is set. Everything goes through here so the
stores work equally with ``discord.Member`` objects and lightweight test
doubles.
"""

from typing import Iterable, List, Set

import discord

from rolegate.datatypes.discord_datatypes import GuildID, RoleID, UserID


def member_user_id(member: discord.Member) -> UserID:
    return UserID(member.id)


def member_guild_id(member: discord.Member) -> GuildID:
    return GuildID(member.guild.id)


def member_roles(member: discord.Member) -> List[discord.Role]:
    """Return the roles held by ``member`` (empty when the member has none)."""
    return list(getattr(member, "roles", None) or [])


def member_role_ids(member: discord.Member) -> Set[RoleID]:
    return {RoleID(role.id) for role in member_roles(member)}


def has_role(member: discord.Member, role_id: RoleID | str | int | None) -> bool:
    """
    Check whether ``member`` holds the role ``role_id``.

    Args:
        member: Guild member to inspect.
        role_id: Role identifier; ``None`` (an unconfigured role) never matches.

    Returns:
        bool: True if the member holds the role.
    """
    if role_id is None or role_id == "":
        return False
    return RoleID(role_id) in member_role_ids(member)


def has_any_role(member: discord.Member, role_ids: Iterable[RoleID | str | int]) -> bool:
    held = member_role_ids(member)
    return any(RoleID(role_id) in held for role_id in role_ids)


def has_guild_permission(member: discord.Member, permission_name: str) -> bool:
    """
    Check a guild-level permission flag such as ``administrator`` or ``manage_guild``.

    Args:
        member: Guild member to inspect.
        permission_name: Attribute name on ``discord.Permissions``.

    Returns:
        bool: True if the flag is set; False when the member exposes no permissions.
    """
    permissions = getattr(member, "guild_permissions", None)
    if permissions is None:
        return False
    return bool(getattr(permissions, permission_name, False))
