"""
Context permission rules.

A rule decides whether a member satisfies one entry of a context
configuration. Configuration files and commands supply rules as plain
values (``true``, a role id, a list of role ids, or a mapping); they are
parsed once into the tagged variants below and evaluated with ``match``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Tuple, Union

import discord

from rolegate.datatypes.discord_datatypes import RoleID
from rolegate.datatypes.permission_datatypes import ALL_PERMISSIONS
from rolegate.util.member_utils import has_any_role, has_role


class RuleParseError(ValueError):
    """Raised when a raw rule value has an unsupported shape."""


@dataclass(frozen=True, slots=True)
class BooleanRule:
    value: bool


@dataclass(frozen=True, slots=True)
class SingleRoleRule:
    role_id: RoleID


@dataclass(frozen=True, slots=True)
class AnyOfRolesRule:
    role_ids: Tuple[RoleID, ...]


@dataclass(frozen=True, slots=True)
class TimeRestrictions:
    """Local-time window; ``hours`` bounds are inclusive, ``days`` uses 0 = Sunday."""

    hours: Optional[Tuple[int, int]] = None
    days: Optional[Tuple[int, ...]] = None

    def allows(self, moment: datetime) -> bool:
        if self.hours is not None:
            start_hour, end_hour = self.hours
            if moment.hour < start_hour or moment.hour > end_hour:
                return False
        if self.days is not None:
            # datetime.weekday() has Monday = 0
            if (moment.weekday() + 1) % 7 not in self.days:
                return False
        return True


@dataclass(frozen=True, slots=True)
class CompositeRule:
    """All present sub-conditions must hold; absent ones are satisfied."""

    roles: Optional[Tuple[RoleID, ...]] = None
    permissions: Optional[Tuple[str, ...]] = None
    time_restrictions: Optional[TimeRestrictions] = None


Rule = Union[BooleanRule, SingleRoleRule, AnyOfRolesRule, CompositeRule]

PermissionCheck = Callable[[discord.Member, str], bool]


def _role_tuple(raw: Any) -> Tuple[RoleID, ...]:
    if isinstance(raw, (list, tuple)):
        return tuple(RoleID(role_id) for role_id in raw)
    return (RoleID(raw),)


def _parse_time_restrictions(raw: Any) -> TimeRestrictions:
    if not isinstance(raw, dict):
        raise RuleParseError("timeRestrictions must be a mapping")

    hours = raw.get("hours")
    if hours is not None:
        if not isinstance(hours, (list, tuple)) or len(hours) != 2:
            raise RuleParseError("timeRestrictions.hours must be [start, end]")
        start_hour, end_hour = (int(h) for h in hours)
        if not (0 <= start_hour <= 23 and 0 <= end_hour <= 23):
            raise RuleParseError("timeRestrictions.hours must be between 0 and 23")
        hours = (start_hour, end_hour)

    days = raw.get("days")
    if days is not None:
        if not isinstance(days, (list, tuple)):
            raise RuleParseError("timeRestrictions.days must be a list")
        days = tuple(int(d) for d in days)
        if any(d < 0 or d > 6 for d in days):
            raise RuleParseError("timeRestrictions.days must be between 0 (Sunday) and 6")

    return TimeRestrictions(hours=hours, days=days)


def parse_rule(raw: Any) -> Rule:
    """
    Convert a raw configuration value into a rule variant.

    Args:
        raw: ``bool``, role id (``str``/``int``), list of role ids, mapping
            with optional ``roles``/``permissions``/``timeRestrictions`` keys,
            or an already parsed rule.

    Returns:
        Rule: The parsed variant.

    Raises:
        RuleParseError: If the value has an unsupported shape.
    """
    match raw:
        case BooleanRule() | SingleRoleRule() | AnyOfRolesRule() | CompositeRule():
            return raw
        case bool():
            return BooleanRule(raw)
        case str() | int():
            try:
                return SingleRoleRule(RoleID(raw))
            except ValueError as exc:
                raise RuleParseError(str(exc)) from exc
        case list() | tuple():
            try:
                return AnyOfRolesRule(tuple(RoleID(role_id) for role_id in raw))
            except ValueError as exc:
                raise RuleParseError(str(exc)) from exc
        case dict():
            unknown = set(raw) - {"roles", "permissions", "timeRestrictions"}
            if unknown:
                raise RuleParseError(f"Unknown rule keys: {', '.join(sorted(unknown))}")

            roles = None
            if raw.get("roles") is not None:
                try:
                    roles = _role_tuple(raw["roles"])
                except ValueError as exc:
                    raise RuleParseError(str(exc)) from exc

            permissions = None
            if raw.get("permissions") is not None:
                perms = raw["permissions"]
                permissions = tuple(perms) if isinstance(perms, (list, tuple)) else (perms,)
                invalid = [p for p in permissions if p not in ALL_PERMISSIONS]
                if invalid:
                    raise RuleParseError(f"Invalid permissions in rule: {', '.join(map(str, invalid))}")

            time_restrictions = None
            if raw.get("timeRestrictions") is not None:
                time_restrictions = _parse_time_restrictions(raw["timeRestrictions"])

            return CompositeRule(roles=roles, permissions=permissions, time_restrictions=time_restrictions)
        case _:
            raise RuleParseError(f"Unsupported rule type: {type(raw).__name__}")


def evaluate_rule(
    member: discord.Member,
    rule: Rule,
    permission_check: PermissionCheck,
    moment: datetime,
) -> bool:
    """
    Decide whether ``member`` satisfies ``rule``.

    Args:
        member: Guild member being checked.
        rule: Parsed rule.
        permission_check: Global permission check used by composite rules.
        moment: Local time used for time restrictions.

    Returns:
        bool: True if the rule holds for the member.
    """
    match rule:
        case BooleanRule(value=value):
            return value
        case SingleRoleRule(role_id=role_id):
            return has_role(member, role_id)
        case AnyOfRolesRule(role_ids=role_ids):
            return has_any_role(member, role_ids)
        case CompositeRule(roles=roles, permissions=permissions, time_restrictions=time_restrictions):
            if roles is not None and not has_any_role(member, roles):
                return False
            if permissions is not None and not any(permission_check(member, p) for p in permissions):
                return False
            if time_restrictions is not None and not time_restrictions.allows(moment):
                return False
            return True
        case _:
            return False


def describe_rule(rule: Rule) -> str:
    """Short text form of a rule for command replies."""
    match rule:
        case BooleanRule(value=value):
            return "always" if value else "never"
        case SingleRoleRule(role_id=role_id):
            return f"role {role_id}"
        case AnyOfRolesRule(role_ids=role_ids):
            return "any of roles " + ", ".join(str(r) for r in role_ids)
        case CompositeRule():
            parts = []
            if rule.roles is not None:
                parts.append("roles " + "/".join(str(r) for r in rule.roles))
            if rule.permissions is not None:
                parts.append("permission " + "/".join(rule.permissions))
            if rule.time_restrictions is not None:
                if rule.time_restrictions.hours is not None:
                    parts.append("hours %d-%d" % rule.time_restrictions.hours)
                if rule.time_restrictions.days is not None:
                    parts.append("days " + ",".join(str(d) for d in rule.time_restrictions.days))
            return " and ".join(parts) if parts else "always"
        case _:
            return "unknown"
