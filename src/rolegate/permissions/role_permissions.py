"""
Role based permission checks and the combined authorization decision.

``PermissionResolver`` is what command handlers talk to. A permission is
held when any of these layers grants it, checked in order:

1. static checks on configured roles, owner ids and guild permission flags,
2. an unexpired temporary grant,
3. a permission group reached directly or through a role.

Context-aware checks add the per-channel layer on top through
``has_context_permission``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

import discord

from rolegate.configuration.role_settings import RoleSettings
from rolegate.datatypes.discord_datatypes import ContextID, RoleID, UserID
from rolegate.datatypes.permission_datatypes import (
    ALL_PERMISSIONS,
    ContextType,
    PermissionSnapshot,
    PermissionType,
    RoleGroupBinding,
)
from rolegate.permissions.context_overrides import ContextOverrideStore
from rolegate.permissions.permission_groups import PermissionGroupGraph, default_role_bindings
from rolegate.permissions.temporary_grants import TemporaryGrantStore
from rolegate.scheduler.sweep_scheduler import DEFAULT_SWEEP_INTERVAL_SECONDS
from rolegate.util.duration import now_ms
from rolegate.util.logger import get_logger
from rolegate.util.member_utils import has_guild_permission, has_role, member_guild_id, member_roles, member_user_id

logger = get_logger("role_permissions")

INVALID_PERMISSION_TYPE = "Invalid permission type"

PERMISSION_ERRORS: Dict[str, str] = {
    "admin": "❌ **|** You need the **Administrator** permission or the **Admin** role to use this command.",
    "staff": "❌ **|** You need the **Staff** role or higher to use this command.",
    "moderator": "❌ **|** You need the **Moderator** role or a moderation permission to use this command.",
    "economy": "❌ **|** You need the **Manage Guild** permission or the **Admin** role to use this command.",
    "giveaway": "❌ **|** You need the **Staff** role or the **Manage Messages** permission to use this command.",
    "ticket": "❌ **|** You need the **Staff** or **Support Team** role to use this command.",
    "shop": "❌ **|** You need the **Admin** role to use this command.",
    "customRole": "❌ **|** You need the **Boost** or **Donate** role to use this command.",
}
GENERIC_PERMISSION_ERROR = "❌ **|** You do not have permission to use this command."


class PermissionResolver:
    """
    Authorization facade over the static checks and the permission stores.

    Stores not passed in are built with the given clock and sweep interval.
    A default context store uses ``has_permission`` as its global check.

    Args:
        roles: Configured staff roles.
        owner_ids: Bot owners; they pass every check.
        temporary_grants: Temporary grant store.
        groups: Permission group graph; defaults to the builtin groups with
            the configured staff roles bound to their default groups.
        contexts: Context override store.
        clock: Returns the current epoch milliseconds.
        local_now: Returns the local wall-clock time for rule time windows.
        sweep_interval_seconds: Sweep cadence for stores built here.
    """

    def __init__(
        self,
        roles: Optional[RoleSettings] = None,
        owner_ids: Iterable[UserID | int | str] = (),
        temporary_grants: Optional[TemporaryGrantStore] = None,
        groups: Optional[PermissionGroupGraph] = None,
        contexts: Optional[ContextOverrideStore] = None,
        clock: Callable[[], int] = now_ms,
        local_now: Callable[[], datetime] = datetime.now,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self.roles = roles if roles is not None else RoleSettings()
        self.owner_ids: FrozenSet[UserID] = frozenset(UserID(owner) for owner in owner_ids)

        if temporary_grants is None:
            temporary_grants = TemporaryGrantStore(clock=clock, sweep_interval_seconds=sweep_interval_seconds)
        if groups is None:
            groups = PermissionGroupGraph(default_role_bindings(self.roles), clock=clock)
        if contexts is None:
            contexts = ContextOverrideStore(
                global_check=self.has_permission,
                clock=clock,
                local_now=local_now,
                sweep_interval_seconds=sweep_interval_seconds,
            )

        self.temporary_grants = temporary_grants
        self.groups = groups
        self.contexts = contexts

        self._static_checks: Dict[str, Callable[[discord.Member], bool]] = {
            PermissionType.ADMIN.value: self.is_admin,
            PermissionType.STAFF.value: self.is_staff,
            PermissionType.MODERATOR.value: self.is_moderator,
            PermissionType.ECONOMY.value: self.can_manage_economy,
            PermissionType.GIVEAWAY.value: self.can_manage_giveaways,
            PermissionType.TICKET.value: self.can_manage_tickets,
            PermissionType.SHOP.value: self.can_manage_shop,
            PermissionType.CUSTOM_ROLE.value: self.can_create_custom_role,
        }

    # --------------------------
    # Static checks
    # --------------------------
    def is_owner(self, user_id: UserID | int | str) -> bool:
        return UserID(user_id) in self.owner_ids

    def is_admin(self, member: discord.Member) -> bool:
        if member is None:
            return False
        if self.is_owner(member_user_id(member)):
            return True
        if has_guild_permission(member, "administrator"):
            return True
        return has_role(member, self.roles.admin)

    def is_staff(self, member: discord.Member) -> bool:
        if member is None:
            return False
        return self.is_admin(member) or has_role(member, self.roles.staff)

    def is_moderator(self, member: discord.Member) -> bool:
        if member is None:
            return False
        if self.is_staff(member) or has_role(member, self.roles.moderator):
            return True
        return any(has_guild_permission(member, flag) for flag in ("manage_messages", "kick_members", "ban_members"))

    def can_manage_economy(self, member: discord.Member) -> bool:
        if member is None:
            return False
        return self.is_admin(member) or has_guild_permission(member, "manage_guild")

    def can_manage_giveaways(self, member: discord.Member) -> bool:
        if member is None:
            return False
        if self.is_staff(member) or has_guild_permission(member, "manage_messages"):
            return True
        return has_role(member, self.roles.event_organizer)

    def can_manage_tickets(self, member: discord.Member) -> bool:
        if member is None:
            return False
        return self.is_staff(member) or has_role(member, self.roles.support_team)

    def can_manage_shop(self, member: discord.Member) -> bool:
        return self.is_admin(member)

    def has_boost_role(self, member: discord.Member) -> bool:
        return member is not None and has_role(member, self.roles.boost)

    def has_donate_role(self, member: discord.Member) -> bool:
        return member is not None and has_role(member, self.roles.donate)

    def can_create_custom_role(self, member: discord.Member) -> bool:
        return self.has_boost_role(member) or self.has_donate_role(member)

    def get_available_custom_role_types(self, member: discord.Member) -> List[str]:
        types = []
        if self.has_boost_role(member):
            types.append("boost")
        if self.has_donate_role(member):
            types.append("donate")
        return types

    def has_static_permission(self, member: discord.Member, permission: str) -> bool:
        check = self._static_checks.get(str(permission))
        return check is not None and check(member)

    # --------------------------
    # Combined decisions
    # --------------------------
    def has_permission(self, member: discord.Member, permission: PermissionType | str) -> bool:
        """True if any layer grants ``permission``: static checks, a temporary grant, or a group."""
        if member is None:
            return False
        permission = str(permission)
        if permission not in ALL_PERMISSIONS:
            return False

        if self.has_static_permission(member, permission):
            return True
        if self.temporary_grants.has(member_user_id(member), member_guild_id(member), permission):
            return True
        return self.groups.has_permission_through_groups(member, permission)

    def check_permission(self, member: discord.Member, permission: PermissionType | str) -> Optional[str]:
        """
        Authorize a command for ``member``.

        Returns:
            Optional[str]: ``None`` when allowed, otherwise the denial message
            to show the user. Unknown permission names yield
            ``"Invalid permission type"``.
        """
        permission = str(permission)
        if permission not in self._static_checks:
            return INVALID_PERMISSION_TYPE
        if self.has_permission(member, permission):
            return None
        logger.debug("[PERMISSIONS] Denied %s to user %s", permission, getattr(member, "id", None))
        return self.create_permission_error(permission)

    @staticmethod
    def create_permission_error(permission: PermissionType | str) -> str:
        return PERMISSION_ERRORS.get(str(permission), GENERIC_PERMISSION_ERROR)

    def has_context_permission(
        self,
        member: discord.Member,
        permission: PermissionType | str,
        context_id: ContextID | int | str,
        context_type: ContextType | str = ContextType.CHANNEL,
        parent_id: ContextID | int | str | None = None,
    ) -> bool:
        return self.contexts.has_context_permission(member, str(permission), context_id, context_type, parent_id)

    def get_complete_user_permissions(self, member: discord.Member) -> PermissionSnapshot:
        """Everything contributing to ``member``'s permissions, for diagnostic display."""
        user_id = member_user_id(member)
        guild_id = member_guild_id(member)

        direct = {permission: check(member) for permission, check in self._static_checks.items()}
        grant = self.temporary_grants.get_user_grant(user_id, guild_id)
        inherited = self.groups.user_permissions(member)

        role_groups = []
        for role in member_roles(member):
            groups = self.groups.get_role_groups(role.id)
            if groups:
                role_groups.append(RoleGroupBinding(role_id=RoleID(role.id), role_name=getattr(role, "name", str(role.id)), groups=groups))

        everything = {permission for permission, held in direct.items() if held}
        everything |= inherited
        if grant is not None:
            everything.update(grant.permissions)

        return PermissionSnapshot(
            direct_permissions=direct,
            temporary_permissions=grant,
            inherited_permissions=sorted(inherited),
            user_groups=self.groups.get_user_groups(user_id, guild_id),
            role_groups=role_groups,
            all_permissions=sorted(everything),
        )
