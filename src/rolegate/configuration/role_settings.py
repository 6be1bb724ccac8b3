from typing import Any, Dict, Optional

from rolegate.datatypes.discord_datatypes import RoleID

ROLE_KEYS = (
    "admin",
    "staff",
    "moderator",
    "support_team",
    "event_organizer",
    "helper",
    "boost",
    "donate",
)


class RoleSettings:
    """Typed accessors for the ``roles`` section of the configuration.

    Each key maps a staff tier to the guild role that confers it. Unset or
    blank entries read as ``None`` so checks against them never match.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str) -> Optional[RoleID]:
        """Return the role bound to ``key`` or ``None`` if unset."""
        value = self.data.get(key)
        if value is None or str(value).strip() == "":
            return None
        return RoleID(value)

    def as_dict(self) -> Dict[str, Optional[RoleID]]:
        return {key: self.get(key) for key in ROLE_KEYS}

    @property
    def admin(self) -> Optional[RoleID]:
        return self.get("admin")

    @property
    def staff(self) -> Optional[RoleID]:
        return self.get("staff")

    @property
    def moderator(self) -> Optional[RoleID]:
        return self.get("moderator")

    @property
    def support_team(self) -> Optional[RoleID]:
        return self.get("support_team")

    @property
    def event_organizer(self) -> Optional[RoleID]:
        return self.get("event_organizer")

    @property
    def helper(self) -> Optional[RoleID]:
        return self.get("helper")

    @property
    def boost(self) -> Optional[RoleID]:
        return self.get("boost")

    @property
    def donate(self) -> Optional[RoleID]:
        return self.get("donate")
