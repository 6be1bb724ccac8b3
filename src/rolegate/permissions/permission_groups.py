"""
Permission groups with inheritance.

A group bundles permission names and may inherit other groups. Members
reach groups directly (per user and guild) or through the roles they hold.
Resolution walks the inheritance graph iteratively with a visited set, so a
cycle introduced by hand still terminates and simply contributes nothing
the second time round.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import discord

from rolegate.configuration.role_settings import RoleSettings
from rolegate.datatypes.discord_datatypes import GuildID, RoleID, UserID
from rolegate.datatypes.permission_datatypes import (
    GroupDetails,
    InheritanceNode,
    OperationResult,
    PermissionGroup,
    find_invalid_permissions,
    normalize_permissions,
)
from rolegate.util.duration import now_ms
from rolegate.util.errors import guarded_operation
from rolegate.util.logger import get_logger, log_event
from rolegate.util.member_utils import member_guild_id, member_roles, member_user_id

logger = get_logger("permission_groups")

CATEGORY = "PERMISSION_INHERITANCE"

# name -> (direct permissions, inherits, description)
BUILTIN_GROUPS: Dict[str, Tuple[List[str], List[str], str]] = {
    # Management groups
    "server-manager": (
        ["admin", "staff", "moderator", "economy", "giveaway", "ticket", "shop"],
        [],
        "Full server management access",
    ),
    "content-manager": (["staff", "moderator", "giveaway", "ticket"], [], "Content and community management"),
    "economy-manager": (["economy", "shop"], [], "Economy and shop management"),
    "event-organizer": (["giveaway", "ticket"], [], "Event and giveaway management"),
    "support-staff": (["ticket", "moderator"], [], "Support and moderation"),
    # Specialized groups
    "community-moderator": (["moderator"], [], "Basic moderation permissions"),
    "shop-assistant": (["shop"], [], "Shop management only"),
    "event-assistant": (["giveaway"], [], "Giveaway management only"),
    # Hierarchical groups
    "senior-staff": (["staff"], ["content-manager", "support-staff"], "Senior staff member"),
    "junior-staff": ([], ["community-moderator", "event-assistant"], "Junior staff member"),
    # Custom role groups
    "premium-manager": (["customRole"], [], "Custom role management for premium users"),
    "boost-manager": (["customRole"], [], "Custom role management for boosters"),
}

# Configured staff role -> groups it receives out of the box
DEFAULT_ROLE_GROUPS: Dict[str, List[str]] = {
    "admin": ["server-manager"],
    "staff": ["senior-staff"],
    "moderator": ["content-manager"],
    "event_organizer": ["event-organizer"],
    "support_team": ["support-staff"],
    "helper": ["junior-staff"],
}


def default_role_bindings(roles: RoleSettings) -> Dict[RoleID, List[str]]:
    """Map every configured staff role to its default groups, skipping unset roles."""
    bindings: Dict[RoleID, List[str]] = {}
    for role_key, groups in DEFAULT_ROLE_GROUPS.items():
        role_id = roles.get(role_key)
        if role_id is not None:
            bindings.setdefault(role_id, [])
            bindings[role_id].extend(g for g in groups if g not in bindings[role_id])
    return bindings


UserKey = Tuple[UserID, GuildID]


class PermissionGroupGraph:
    """
    Registry of permission groups and their user/role assignments.

    Args:
        role_bindings: Initial role -> group names assignments.
        clock: Returns the current epoch milliseconds (creation timestamps).
    """

    def __init__(
        self,
        role_bindings: Optional[Mapping[RoleID | str | int, Iterable[str]]] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._clock = clock
        self._groups: Dict[str, PermissionGroup] = {
            name: PermissionGroup(name=name, direct_permissions=list(perms), inherits=list(inherits), description=description)
            for name, (perms, inherits, description) in BUILTIN_GROUPS.items()
        }
        self._user_groups: Dict[UserKey, List[str]] = {}
        self._role_groups: Dict[RoleID, List[str]] = {}

        for role_id, groups in (role_bindings or {}).items():
            known = [g for g in groups if g in self._groups]
            if known:
                self._role_groups[RoleID(role_id)] = known

    # --------------------------
    # Resolution
    # --------------------------
    def resolve(self, group_name: str) -> Set[str]:
        """
        All permissions of ``group_name`` including everything it inherits.

        Depth-first over ``inherits`` with an explicit stack. A group already
        visited in this call is skipped, which makes the walk O(V + E) and
        total even on cyclic input. Unknown names resolve to the empty set.
        """
        permissions: Set[str] = set()
        visited: Set[str] = set()
        stack = [group_name]

        while stack:
            name = stack.pop()
            if name in visited:
                continue
            group = self._groups.get(name)
            if group is None:
                continue
            visited.add(name)
            permissions.update(group.direct_permissions)
            stack.extend(reversed(group.inherits))

        return permissions

    def user_permissions(self, member: discord.Member) -> Set[str]:
        """Union of the groups assigned to the member directly and to any role it holds."""
        permissions: Set[str] = set()
        for group_name in self.get_user_groups(member_user_id(member), member_guild_id(member)):
            permissions |= self.resolve(group_name)
        for role in member_roles(member):
            for group_name in self.get_role_groups(role.id):
                permissions |= self.resolve(group_name)
        return permissions

    def has_permission_through_groups(self, member: discord.Member, permission: str) -> bool:
        return str(permission) in self.user_permissions(member)

    # --------------------------
    # Group definitions
    # --------------------------
    @guarded_operation(logger, CATEGORY, "creating permission group")
    def create(
        self,
        group_name: str,
        permissions: Iterable[str],
        inherits: Optional[Iterable[str]] = None,
        description: str = "",
        created_by: str = "",
    ) -> OperationResult:
        """
        Define a custom group.

        Fails when the name is taken, a permission name is unknown, or an
        inherited group does not exist.
        """
        name = (group_name or "").strip()
        if not name:
            return OperationResult.fail("Group name is required")
        if name in self._groups:
            return OperationResult.fail("Permission group already exists")

        direct = normalize_permissions(list(permissions))
        invalid = find_invalid_permissions(direct)
        if invalid:
            return OperationResult.fail(f"Invalid permissions: {', '.join(invalid)}")

        parents = list(dict.fromkeys(inherits or []))
        unknown = [g for g in parents if g not in self._groups]
        if unknown:
            return OperationResult.fail(f"Invalid inherited groups: {', '.join(unknown)}")

        self._groups[name] = PermissionGroup(
            name=name,
            direct_permissions=direct,
            inherits=parents,
            description=description,
            custom=True,
            created_by=str(created_by),
            created_at=self._clock(),
        )
        resolved = sorted(self.resolve(name))

        log_event(
            logger, CATEGORY, f"Custom permission group '{name}' created",
            group_name=name, permissions=direct, inherits=parents,
            description=description, created_by=str(created_by),
        )
        return OperationResult.ok(group_name=name, permissions=resolved, direct_permissions=direct, inherits=parents)

    @guarded_operation(logger, CATEGORY, "deleting permission group")
    def delete(self, group_name: str, deleted_by: str = "") -> OperationResult:
        """
        Delete a custom group that nothing refers to.

        Builtin groups cannot be deleted, nor can a group assigned to any user
        or role or inherited by another group. A refused delete changes nothing.
        """
        group = self._groups.get(group_name)
        if group is None:
            return OperationResult.fail("Permission group not found")
        if not group.custom:
            return OperationResult.fail("Cannot delete built-in permission group")
        if self.is_in_use(group_name):
            return OperationResult.fail("Cannot delete group that is currently in use")

        del self._groups[group_name]

        log_event(logger, CATEGORY, f"Custom permission group '{group_name}' deleted",
                  group_name=group_name, deleted_by=str(deleted_by))
        return OperationResult.ok(deleted_group=group_name)

    def is_in_use(self, group_name: str) -> bool:
        """True if the group is assigned to a user or role, or inherited by another group."""
        if any(group_name in groups for groups in self._user_groups.values()):
            return True
        if any(group_name in groups for groups in self._role_groups.values()):
            return True
        return any(group_name in other.inherits for other in self._groups.values() if other.name != group_name)

    # --------------------------
    # Assignments
    # --------------------------
    @guarded_operation(logger, CATEGORY, "assigning permission group to user")
    def assign_to_user(
        self,
        user_id: UserID | int | str,
        guild_id: GuildID | int | str,
        group_name: str,
        assigned_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        if group_name not in self._groups:
            return OperationResult.fail("Invalid permission group")
        key = (UserID(user_id), GuildID(guild_id))
        current = self._user_groups.get(key, [])
        if group_name in current:
            return OperationResult.fail("User already has this permission group")

        self._user_groups[key] = [*current, group_name]
        resolved = sorted(self.resolve(group_name))

        log_event(
            logger, CATEGORY, f"Permission group '{group_name}' assigned to user {key[0]}",
            user_id=str(key[0]), guild_id=str(key[1]), group_name=group_name,
            assigned_by=str(assigned_by), reason=reason, permissions=resolved,
        )
        return OperationResult.ok(group_name=group_name, permissions=resolved, all_user_groups=list(self._user_groups[key]))

    @guarded_operation(logger, CATEGORY, "removing permission group from user")
    def remove_from_user(
        self,
        user_id: UserID | int | str,
        guild_id: GuildID | int | str,
        group_name: str,
        removed_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        key = (UserID(user_id), GuildID(guild_id))
        current = self._user_groups.get(key, [])
        if group_name not in current:
            return OperationResult.fail("User does not have this permission group")

        remaining = [g for g in current if g != group_name]
        if remaining:
            self._user_groups[key] = remaining
        else:
            del self._user_groups[key]
        resolved = sorted(self.resolve(group_name))

        log_event(
            logger, CATEGORY, f"Permission group '{group_name}' removed from user {key[0]}",
            user_id=str(key[0]), guild_id=str(key[1]), group_name=group_name,
            removed_by=str(removed_by), reason=reason,
        )
        return OperationResult.ok(removed_group=group_name, permissions=resolved, remaining_groups=remaining)

    @guarded_operation(logger, CATEGORY, "assigning permission group to role")
    def assign_to_role(
        self,
        role_id: RoleID | int | str,
        group_name: str,
        assigned_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        if group_name not in self._groups:
            return OperationResult.fail("Invalid permission group")
        key = RoleID(role_id)
        current = self._role_groups.get(key, [])
        if group_name in current:
            return OperationResult.fail("Role already has this permission group")

        self._role_groups[key] = [*current, group_name]
        resolved = sorted(self.resolve(group_name))

        log_event(
            logger, CATEGORY, f"Permission group '{group_name}' assigned to role {key}",
            role_id=str(key), group_name=group_name, assigned_by=str(assigned_by),
            reason=reason, permissions=resolved,
        )
        return OperationResult.ok(group_name=group_name, permissions=resolved, all_role_groups=list(self._role_groups[key]))

    @guarded_operation(logger, CATEGORY, "removing permission group from role")
    def remove_from_role(
        self,
        role_id: RoleID | int | str,
        group_name: str,
        removed_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        key = RoleID(role_id)
        current = self._role_groups.get(key, [])
        if group_name not in current:
            return OperationResult.fail("Role does not have this permission group")

        remaining = [g for g in current if g != group_name]
        if remaining:
            self._role_groups[key] = remaining
        else:
            del self._role_groups[key]
        resolved = sorted(self.resolve(group_name))

        log_event(
            logger, CATEGORY, f"Permission group '{group_name}' removed from role {key}",
            role_id=str(key), group_name=group_name, removed_by=str(removed_by), reason=reason,
        )
        return OperationResult.ok(removed_group=group_name, permissions=resolved, remaining_groups=remaining)

    # --------------------------
    # Queries
    # --------------------------
    def get_group(self, group_name: str) -> Optional[PermissionGroup]:
        return self._groups.get(group_name)

    def get_user_groups(self, user_id: UserID | int | str, guild_id: GuildID | int | str) -> List[str]:
        return list(self._user_groups.get((UserID(user_id), GuildID(guild_id)), []))

    def get_role_groups(self, role_id: RoleID | int | str) -> List[str]:
        return list(self._role_groups.get(RoleID(role_id), []))

    def get_all_groups(self) -> Dict[str, PermissionGroup]:
        return dict(self._groups)

    def get_group_details(self, group_name: str) -> Optional[GroupDetails]:
        group = self._groups.get(group_name)
        if group is None:
            return None
        return GroupDetails(
            name=group.name,
            description=group.description,
            direct_permissions=list(group.direct_permissions),
            inherits=list(group.inherits),
            all_permissions=sorted(self.resolve(group_name)),
            custom=group.custom,
            created_by=group.created_by,
            created_at=group.created_at,
        )

    def get_inheritance_tree(self, group_name: str) -> List[InheritanceNode]:
        """
        Pre-order listing of the inheritance tree rooted at ``group_name``.

        A group already on the current path is not expanded again, so cyclic
        input yields a finite tree.
        """
        tree: List[InheritanceNode] = []
        stack: List[Tuple[str, int, frozenset[str]]] = [(group_name, 0, frozenset())]

        while stack:
            name, depth, path = stack.pop()
            group = self._groups.get(name)
            if group is None or name in path:
                continue
            tree.append(InheritanceNode(name=name, depth=depth, permissions=list(group.direct_permissions), description=group.description))
            child_path = path | {name}
            for parent in reversed(group.inherits):
                stack.append((parent, depth + 1, child_path))

        return tree

    def get_statistics(self) -> Dict[str, Any]:
        usage: Counter[str] = Counter()
        for groups in self._user_groups.values():
            usage.update(groups)
        for groups in self._role_groups.values():
            usage.update(groups)

        custom = sum(1 for g in self._groups.values() if g.custom)
        most_used = usage.most_common(1)
        return {
            "total_groups": len(self._groups),
            "custom_groups": custom,
            "builtin_groups": len(self._groups) - custom,
            "users_with_groups": len(self._user_groups),
            "roles_with_groups": len(self._role_groups),
            "group_usage": dict(usage),
            "most_used_group": most_used[0][0] if most_used else None,
        }
