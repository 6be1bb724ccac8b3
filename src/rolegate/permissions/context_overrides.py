"""
Per-context permission overrides.

A context is a channel, category, thread, voice or stage channel. Three
kinds of entries refine the global permission model inside one context:

* a configuration of rules per permission (grants and restrictions),
* per-user overrides, optionally expiring,
* per-role grants.

``has_context_permission`` combines them with a fixed precedence; see its
docstring.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import discord

from rolegate.datatypes.discord_datatypes import ContextID, RoleID, UserID
from rolegate.datatypes.permission_datatypes import (
    ContextPermissionConfig,
    ContextType,
    OperationResult,
    RoleContextPermission,
    UserContextOverride,
    find_invalid_permissions,
    normalize_permissions,
)
from rolegate.datatypes.rule_datatypes import PermissionCheck, Rule, RuleParseError, evaluate_rule, parse_rule
from rolegate.scheduler.sweep_scheduler import DEFAULT_SWEEP_INTERVAL_SECONDS, SweepScheduler
from rolegate.store.expiring_map import ExpiringMap
from rolegate.util.duration import now_ms
from rolegate.util.errors import guarded_operation
from rolegate.util.logger import get_logger, log_event
from rolegate.util.member_utils import member_roles, member_user_id

logger = get_logger("context_overrides")

CATEGORY = "CONTEXT_PERMISSIONS"

# Context types whose configuration may defer to the enclosing context
INHERITING_CONTEXT_TYPES = frozenset({ContextType.CHANNEL, ContextType.THREAD, ContextType.VOICE, ContextType.STAGE})

OverrideKey = Tuple[UserID, ContextID]
RoleContextKey = Tuple[RoleID, ContextID]


def _never(member: discord.Member, permission: str) -> bool:
    return False


class ContextOverrideStore:
    """
    In-memory store of context configurations, user overrides and role grants.

    Args:
        global_check: Global permission check; a member passing it for a
            permission bypasses every context rule.
        clock: Returns the current epoch milliseconds.
        local_now: Returns the local wall-clock time used by time restrictions.
        sweep_interval_seconds: Cadence of the expired override sweep.
    """

    def __init__(
        self,
        global_check: PermissionCheck = _never,
        clock: Callable[[], int] = now_ms,
        local_now: Callable[[], datetime] = datetime.now,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self.global_check = global_check
        self._clock = clock
        self._local_now = local_now
        self._configs: Dict[ContextID, ContextPermissionConfig] = {}
        self._user_overrides: ExpiringMap[OverrideKey, UserContextOverride] = ExpiringMap(
            lambda override: override.expiry, clock
        )
        self._role_permissions: Dict[RoleContextKey, RoleContextPermission] = {}
        self._scheduler = SweepScheduler("context_overrides", self.sweep, lambda: sweep_interval_seconds)

    # --------------------------
    # Lifecycle
    # --------------------------
    def start(self) -> None:
        self._scheduler.start()

    async def shutdown(self) -> None:
        await self._scheduler.shutdown()

    # --------------------------
    # Context configurations
    # --------------------------
    @staticmethod
    def _parse_rules(section: Mapping[str, Any], label: str) -> Tuple[Dict[str, Rule], Optional[str]]:
        invalid = find_invalid_permissions(section.keys())
        if invalid:
            return {}, f"Invalid {label}: {invalid[0]}"
        rules: Dict[str, Rule] = {}
        for permission, raw in section.items():
            try:
                rules[permission] = parse_rule(raw)
            except RuleParseError as exc:
                return {}, f"Invalid rule for {label} {permission}: {exc}"
        return rules, None

    @guarded_operation(logger, CATEGORY, "setting context permissions")
    def set_context_config(
        self,
        context_id: ContextID | int | str,
        context_type: ContextType | str,
        config: Mapping[str, Any],
        set_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        """
        Attach a rule configuration to a context, replacing any previous one.

        Args:
            context_id: Channel, category or thread id.
            context_type: One of ``channel``, ``category``, ``thread``,
                ``voice``, ``stage``.
            config: Mapping with optional ``permissions``, ``restrictions``
                (permission name -> raw rule) and ``settings`` sections.
            set_by: Acting user id.
            reason: Free-text reason.

        Returns:
            OperationResult: ``details["context_config"]`` holds the stored
            configuration with parsed rules.
        """
        try:
            kind = ContextType(str(context_type))
        except ValueError:
            return OperationResult.fail(f"Invalid context type: {context_type}")

        if not isinstance(config, Mapping):
            return OperationResult.fail("Configuration must be an object")

        sections = {}
        for section, label in (("permissions", "Permissions"), ("restrictions", "Restrictions"), ("settings", "Settings")):
            value = config.get(section) or {}
            if not isinstance(value, Mapping):
                return OperationResult.fail(f"{label} must be an object")
            sections[section] = value

        permissions, error = self._parse_rules(sections["permissions"], "permission")
        if error:
            return OperationResult.fail(error)
        restrictions, error = self._parse_rules(sections["restrictions"], "restriction")
        if error:
            return OperationResult.fail(error)

        key = ContextID(context_id)
        context_config = ContextPermissionConfig(
            context_id=key,
            context_type=kind,
            permissions=permissions,
            restrictions=restrictions,
            settings=dict(sections["settings"]),
            set_by=str(set_by),
            set_at=self._clock(),
            reason=reason,
        )
        self._configs[key] = context_config

        log_event(
            logger, CATEGORY, f"Context permissions set for {kind} {key}",
            context_id=str(key), context_type=str(kind), set_by=str(set_by), reason=reason,
            permissions=sorted(permissions), restrictions=sorted(restrictions),
        )
        return OperationResult.ok(context_config=context_config)

    def get_context_config(self, context_id: ContextID | int | str) -> Optional[ContextPermissionConfig]:
        return self._configs.get(ContextID(context_id))

    def get_all_context_configs(self) -> List[ContextPermissionConfig]:
        return list(self._configs.values())

    @guarded_operation(logger, CATEGORY, "removing context permissions")
    def remove_context_config(
        self,
        context_id: ContextID | int | str,
        removed_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        """Remove a context configuration together with every user override and role grant for it."""
        key = ContextID(context_id)
        if key not in self._configs:
            return OperationResult.fail("No context permissions found")

        del self._configs[key]
        removed_overrides = self._user_overrides.remove_where(lambda k, _: k[1] == key)
        doomed_roles = [k for k in self._role_permissions if k[1] == key]
        for role_key in doomed_roles:
            del self._role_permissions[role_key]

        log_event(
            logger, CATEGORY, f"Context permissions removed from {key}",
            context_id=str(key), removed_by=str(removed_by), reason=reason,
            removed_user_overrides=removed_overrides, removed_role_permissions=len(doomed_roles),
        )
        return OperationResult.ok(
            context_id=str(key),
            removed_user_overrides=removed_overrides,
            removed_role_permissions=len(doomed_roles),
        )

    # --------------------------
    # User overrides
    # --------------------------
    @guarded_operation(logger, CATEGORY, "setting user context override")
    def set_user_override(
        self,
        user_id: UserID | int | str,
        context_id: ContextID | int | str,
        permissions: Optional[Iterable[str]] = None,
        restrictions: Optional[Iterable[str]] = None,
        expiry: Optional[int] = None,
        set_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        """
        Grant and/or restrict permissions for one user inside one context.

        Args:
            expiry: Epoch milliseconds after which the override lapses, or
                ``None`` for a permanent override.
        """
        granted = normalize_permissions(list(permissions or []))
        restricted = normalize_permissions(list(restrictions or []))
        invalid = find_invalid_permissions([*granted, *restricted])
        if invalid:
            return OperationResult.fail(f"Invalid permissions: {', '.join(invalid)}")
        if expiry is not None and expiry <= self._clock():
            return OperationResult.fail("Override expiry must be in the future")

        key = (UserID(user_id), ContextID(context_id))
        override = UserContextOverride(
            user_id=key[0],
            context_id=key[1],
            permissions=granted,
            restrictions=restricted,
            expiry=expiry,
            set_by=str(set_by),
            set_at=self._clock(),
            reason=reason,
        )
        self._user_overrides.set(key, override)

        log_event(
            logger, CATEGORY, f"User context override set for {key[0]} in {key[1]}",
            user_id=str(key[0]), context_id=str(key[1]), permissions=granted,
            restrictions=restricted, expiry=expiry, set_by=str(set_by), reason=reason,
        )
        return OperationResult.ok(override=override)

    def get_user_override(
        self, user_id: UserID | int | str, context_id: ContextID | int | str
    ) -> Optional[UserContextOverride]:
        return self._user_overrides.get((UserID(user_id), ContextID(context_id)))

    def get_user_overrides(
        self, user_id: UserID | int | str, context_id: ContextID | int | str | None = None
    ) -> List[UserContextOverride]:
        """Live overrides of a user, across all contexts or in one."""
        wanted_user = UserID(user_id)
        wanted_context = ContextID(context_id) if context_id is not None else None
        return [
            override
            for (override_user, override_context), override in self._user_overrides.items()
            if override_user == wanted_user and (wanted_context is None or override_context == wanted_context)
        ]

    # --------------------------
    # Role grants
    # --------------------------
    @guarded_operation(logger, CATEGORY, "setting role context permissions")
    def set_role_context_permissions(
        self,
        role_id: RoleID | int | str,
        context_id: ContextID | int | str,
        permissions: Iterable[str],
        set_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        granted = normalize_permissions(list(permissions))
        invalid = find_invalid_permissions(granted)
        if invalid:
            return OperationResult.fail(f"Invalid permissions: {', '.join(invalid)}")

        key = (RoleID(role_id), ContextID(context_id))
        role_permissions = RoleContextPermission(
            role_id=key[0],
            context_id=key[1],
            permissions=granted,
            set_by=str(set_by),
            set_at=self._clock(),
            reason=reason,
        )
        self._role_permissions[key] = role_permissions

        log_event(
            logger, CATEGORY, f"Role context permissions set for {key[0]} in {key[1]}",
            role_id=str(key[0]), context_id=str(key[1]), permissions=granted,
            set_by=str(set_by), reason=reason,
        )
        return OperationResult.ok(role_permissions=role_permissions)

    def get_role_context_permissions(
        self, role_id: RoleID | int | str, context_id: ContextID | int | str
    ) -> Optional[RoleContextPermission]:
        return self._role_permissions.get((RoleID(role_id), ContextID(context_id)))

    # --------------------------
    # Decisions
    # --------------------------
    def evaluate_rule(self, member: discord.Member, rule: Rule | Any) -> bool:
        """Evaluate a parsed rule, or a raw rule value, for ``member`` at the current local time."""
        return evaluate_rule(member, parse_rule(rule), self.global_check, self._local_now())

    def _config_decision(self, member: discord.Member, permission: str, config: ContextPermissionConfig) -> Optional[bool]:
        """Rules of one configuration: a permission rule is authoritative, a matching restriction denies."""
        rule = config.permissions.get(permission)
        if rule is not None:
            return self.evaluate_rule(member, rule)
        restriction = config.restrictions.get(permission)
        if restriction is not None and self.evaluate_rule(member, restriction):
            return False
        return None

    def has_context_permission(
        self,
        member: discord.Member,
        permission: str,
        context_id: ContextID | int | str,
        context_type: ContextType | str = ContextType.CHANNEL,
        parent_id: ContextID | int | str | None = None,
    ) -> bool:
        """
        Decide whether ``member`` may use ``permission`` inside a context.

        Precedence, first decisive step wins:

        1. the global check passes;
        2. the user's override grants the permission, else restricts it;
        3. a role the member holds has a role grant in this context;
        4. the context configuration has a rule for the permission;
        5. the configuration restricts the permission and the restriction matches;
        6. with ``inheritFromParent`` set on a channel-like context, steps 4
           and 5 are repeated against ``parent_id``'s configuration;
        7. otherwise denied.

        Unexpected errors are logged and deny.
        """
        if member is None:
            return False
        permission = str(permission)

        try:
            if self.global_check(member, permission):
                return True

            context_key = ContextID(context_id)

            override = self.get_user_override(member_user_id(member), context_key)
            if override is not None:
                if permission in override.permissions:
                    return True
                if permission in override.restrictions:
                    return False

            for role in member_roles(member):
                role_permissions = self._role_permissions.get((RoleID(role.id), context_key))
                if role_permissions is not None and permission in role_permissions.permissions:
                    return True

            visited = set()
            config = self._configs.get(context_key)
            kind = ContextType(str(context_type))
            next_parent = ContextID(parent_id) if parent_id is not None else None

            while config is not None and config.context_id not in visited:
                visited.add(config.context_id)
                decision = self._config_decision(member, permission, config)
                if decision is not None:
                    return decision
                if not (config.inherit_from_parent and kind in INHERITING_CONTEXT_TYPES and next_parent is not None):
                    break
                config = self._configs.get(next_parent)
                # Only the immediate parent is known to the caller
                next_parent = None
                if config is not None:
                    kind = config.context_type

            return False
        except Exception as exc:
            logger.exception("[%s] Error checking context permission: %s", CATEGORY, exc)
            return False

    # --------------------------
    # Maintenance
    # --------------------------
    def sweep(self) -> int:
        """Delete expired user overrides, logging each one. Returns the number removed."""
        expired = self._user_overrides.sweep()
        for (user_id, context_id), _ in expired:
            log_event(
                logger, CATEGORY, f"User context override expired: {user_id} in {context_id}",
                user_id=str(user_id), context_id=str(context_id),
            )
        if expired:
            logger.debug("[%s] Cleaned up %d expired context overrides", CATEGORY, len(expired))
        return len(expired)

    def get_statistics(self) -> Dict[str, Any]:
        now = self._clock()
        by_type = Counter(str(config.context_type) for config in self._configs.values())
        active = sum(
            1 for _, override in self._user_overrides.raw_items()
            if override.expiry is None or override.expiry > now
        )
        most_used = by_type.most_common(1)
        return {
            "total_contexts": len(self._configs),
            "total_user_overrides": len(self._user_overrides),
            "total_role_permissions": len(self._role_permissions),
            "contexts_by_type": dict(by_type),
            "most_used_context_type": most_used[0][0] if most_used else None,
            "active_overrides": active,
        }
