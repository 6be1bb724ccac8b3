"""
Permission names, stored records and operation results.

This module defines the closed set of permission names, the records kept by
each permission store, and the ``OperationResult`` shape every mutation
returns instead of raising on expected failures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union

from rolegate.datatypes.discord_datatypes import ContextID, GuildID, RoleID, UserID

if TYPE_CHECKING:
    from rolegate.datatypes.rule_datatypes import Rule


class PermissionType(Enum):
    """Coarse capabilities a command can require."""

    ADMIN = "admin"
    STAFF = "staff"
    MODERATOR = "moderator"
    ECONOMY = "economy"
    GIVEAWAY = "giveaway"
    TICKET = "ticket"
    SHOP = "shop"
    CUSTOM_ROLE = "customRole"

    def __str__(self) -> str:
        return self.value


ALL_PERMISSIONS: frozenset[str] = frozenset(p.value for p in PermissionType)

# customRole is tied to boost/donate roles and cannot be lent out temporarily
TEMPORARY_PERMISSIONS: frozenset[str] = ALL_PERMISSIONS - {PermissionType.CUSTOM_ROLE.value}

PermissionInput = Union[str, PermissionType, Iterable[Union[str, PermissionType]]]


def normalize_permissions(value: PermissionInput | None) -> List[str]:
    """Return permission names as a de-duplicated list, keeping first-seen order."""
    if value is None:
        return []
    if isinstance(value, (str, PermissionType)):
        value = [value]
    names: List[str] = []
    for item in value:
        name = str(item).strip()
        if name not in names:
            names.append(name)
    return names


def find_invalid_permissions(names: Iterable[str], allowed: frozenset[str] = ALL_PERMISSIONS) -> List[str]:
    """Return the names that are not in ``allowed``."""
    return [name for name in names if name not in allowed]


def ms_to_iso(timestamp_ms: int) -> str:
    """Render an epoch-millisecond timestamp as an ISO-8601 UTC string."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


class ContextType(Enum):
    """Kinds of scope a context permission configuration can be attached to."""

    CHANNEL = "channel"
    CATEGORY = "category"
    THREAD = "thread"
    VOICE = "voice"
    STAGE = "stage"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return CONTEXT_TYPE_LABELS[self]


CONTEXT_TYPE_LABELS: Dict[ContextType, str] = {
    ContextType.CHANNEL: "Text/Voice Channel",
    ContextType.CATEGORY: "Channel Category",
    ContextType.THREAD: "Thread",
    ContextType.VOICE: "Voice Channel",
    ContextType.STAGE: "Stage Channel",
}


@dataclass(slots=True)
class OperationResult:
    """Outcome of a mutation.

    Attributes:
        success: Whether the mutation was applied.
        error: Human readable reason when ``success`` is False.
        details: Operation specific facts (new expiry, resolved permissions, ...).
    """

    success: bool
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **details: Any) -> "OperationResult":
        return cls(success=True, details=details)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


@dataclass(slots=True)
class GrantRecord:
    """Audit entry appended for every successful temporary grant."""

    permissions: List[str]
    expiry: int
    granted_by: str
    granted_at: int
    reason: str
    duration: int


@dataclass(slots=True)
class TemporaryGrant:
    """Time-limited permissions held by one user in one guild.

    Attributes:
        expiry: Epoch milliseconds after which the whole grant lapses.
        history: Every grant call that contributed to this entry.
    """

    user_id: UserID
    guild_id: GuildID
    permissions: List[str]
    expiry: int
    granted_by: str
    granted_at: int
    reason: str = ""
    history: List[GrantRecord] = field(default_factory=list)

    @property
    def expiry_iso(self) -> str:
        return ms_to_iso(self.expiry)

    def time_remaining(self, now: int) -> int:
        return max(0, self.expiry - now)

    def is_expired(self, now: int) -> bool:
        return now > self.expiry


@dataclass(slots=True)
class PermissionGroup:
    """Named, inheritable bundle of permission names."""

    name: str
    direct_permissions: List[str]
    inherits: List[str] = field(default_factory=list)
    description: str = ""
    custom: bool = False
    created_by: Optional[str] = None
    created_at: Optional[int] = None


@dataclass(slots=True)
class GroupDetails:
    """Read model of a group including its fully resolved permissions."""

    name: str
    description: str
    direct_permissions: List[str]
    inherits: List[str]
    all_permissions: List[str]
    custom: bool
    created_by: Optional[str]
    created_at: Optional[int]


@dataclass(slots=True)
class InheritanceNode:
    """One row of a rendered inheritance tree."""

    name: str
    depth: int
    permissions: List[str]
    description: str


@dataclass(slots=True)
class ContextPermissionConfig:
    """Permission rules attached to one channel-like context."""

    context_id: ContextID
    context_type: ContextType
    permissions: Dict[str, "Rule"] = field(default_factory=dict)
    restrictions: Dict[str, "Rule"] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    set_by: str = ""
    set_at: int = 0
    reason: str = ""

    @property
    def inherit_from_parent(self) -> bool:
        return bool(self.settings.get("inheritFromParent", False))


@dataclass(slots=True)
class UserContextOverride:
    """Explicit grants/restrictions for one user inside one context."""

    user_id: UserID
    context_id: ContextID
    permissions: List[str] = field(default_factory=list)
    restrictions: List[str] = field(default_factory=list)
    expiry: Optional[int] = None
    set_by: str = ""
    set_at: int = 0
    reason: str = ""


@dataclass(slots=True)
class RoleContextPermission:
    """Permissions a role gains inside one context."""

    role_id: RoleID
    context_id: ContextID
    permissions: List[str] = field(default_factory=list)
    set_by: str = ""
    set_at: int = 0
    reason: str = ""


@dataclass(slots=True)
class RoleGroupBinding:
    """Groups reached through one role a member holds."""

    role_id: RoleID
    role_name: str
    groups: List[str]


@dataclass(slots=True)
class PermissionSnapshot:
    """Everything that contributes to a member's permissions, for diagnostics."""

    direct_permissions: Dict[str, bool]
    temporary_permissions: Optional[TemporaryGrant]
    inherited_permissions: List[str]
    user_groups: List[str]
    role_groups: List[RoleGroupBinding]
    all_permissions: List[str]
