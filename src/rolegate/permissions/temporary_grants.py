"""
Time-limited permission grants.

Staff can lend a user one or more permissions for up to seven days. Grants
for the same user and guild merge into one entry whose expiry only ever
moves forward. Expired entries vanish on read and are swept every few
minutes.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Tuple

from rolegate.datatypes.discord_datatypes import GuildID, UserID
from rolegate.datatypes.permission_datatypes import (
    TEMPORARY_PERMISSIONS,
    GrantRecord,
    OperationResult,
    PermissionInput,
    TemporaryGrant,
    find_invalid_permissions,
    ms_to_iso,
    normalize_permissions,
)
from rolegate.scheduler.sweep_scheduler import DEFAULT_SWEEP_INTERVAL_SECONDS, SweepScheduler
from rolegate.store.expiring_map import ExpiringMap
from rolegate.util.duration import DAY_MS, format_duration, now_ms, parse_duration
from rolegate.util.errors import guarded_operation
from rolegate.util.logger import get_logger, log_event

logger = get_logger("temporary_grants")

CATEGORY = "TEMP_PERMISSIONS"
MAX_DURATION_MS = 7 * DAY_MS

GrantKey = Tuple[UserID, GuildID]


def _grant_key(user_id: UserID | int | str, guild_id: GuildID | int | str) -> Optional[GrantKey]:
    try:
        return UserID(user_id), GuildID(guild_id)
    except ValueError:
        return None


class TemporaryGrantStore:
    """
    In-memory store of temporary grants keyed by ``(user_id, guild_id)``.

    Args:
        clock: Returns the current epoch milliseconds.
        sweep_interval_seconds: Cadence of the background expiry sweep.
    """

    def __init__(
        self,
        clock: Callable[[], int] = now_ms,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._grants: ExpiringMap[GrantKey, TemporaryGrant] = ExpiringMap(lambda grant: grant.expiry, clock)
        self._scheduler = SweepScheduler("temporary_grants", self.sweep, lambda: sweep_interval_seconds)

    # --------------------------
    # Lifecycle
    # --------------------------
    def start(self) -> None:
        self._scheduler.start()

    async def shutdown(self) -> None:
        await self._scheduler.shutdown()

    # --------------------------
    # Mutations
    # --------------------------
    @guarded_operation(logger, CATEGORY, "granting temporary permission")
    def grant(
        self,
        user_id: UserID | int | str,
        guild_id: GuildID | int | str,
        permissions: PermissionInput,
        duration: int | str,
        granted_by: str,
        reason: str = "",
    ) -> OperationResult:
        """
        Grant ``permissions`` to a user for ``duration``.

        Args:
            user_id: Receiving user.
            guild_id: Guild the grant applies to.
            permissions: One permission name or a list of them.
            duration: Milliseconds or a string such as ``"1h"``.
            granted_by: Acting user id, for the audit trail.
            reason: Free-text reason.

        Returns:
            OperationResult: On success ``details`` holds ``permissions``,
            ``expiry``, ``expiry_iso``, ``duration`` and ``duration_formatted``.
        """
        key = _grant_key(user_id, guild_id)
        if key is None:
            return OperationResult.fail("Invalid user or guild id")

        duration_ms = parse_duration(duration)
        if duration_ms <= 0:
            return OperationResult.fail("Invalid duration specified")
        if duration_ms > MAX_DURATION_MS:
            return OperationResult.fail("Duration cannot exceed 7 days")

        requested = normalize_permissions(permissions)
        if not requested:
            return OperationResult.fail("No permissions specified")
        invalid = find_invalid_permissions(requested, TEMPORARY_PERMISSIONS)
        if invalid:
            return OperationResult.fail(f"Invalid permissions: {', '.join(invalid)}")

        now = self._clock()
        expiry = now + duration_ms
        record = GrantRecord(
            permissions=requested,
            expiry=expiry,
            granted_by=str(granted_by),
            granted_at=now,
            reason=reason,
            duration=duration_ms,
        )

        existing = self._grants.get(key)
        if existing is None:
            self._grants.set(key, TemporaryGrant(
                user_id=key[0],
                guild_id=key[1],
                permissions=list(requested),
                expiry=expiry,
                granted_by=str(granted_by),
                granted_at=now,
                reason=reason,
                history=[record],
            ))
        else:
            existing.permissions.extend(p for p in requested if p not in existing.permissions)
            # Never shorten a live grant
            existing.expiry = max(existing.expiry, expiry)
            existing.granted_by = str(granted_by)
            existing.granted_at = now
            existing.reason = reason
            existing.history.append(record)

        log_event(
            logger, CATEGORY,
            f"Temporary permission granted: {', '.join(requested)} to user {key[0]} for {format_duration(duration_ms)}",
            user_id=str(key[0]), guild_id=str(key[1]), permissions=requested,
            duration=duration_ms, granted_by=str(granted_by), reason=reason,
        )

        return OperationResult.ok(
            permissions=requested,
            expiry=expiry,
            expiry_iso=ms_to_iso(expiry),
            duration=duration_ms,
            duration_formatted=format_duration(duration_ms),
        )

    @guarded_operation(logger, CATEGORY, "revoking temporary permission")
    def revoke(
        self,
        user_id: UserID | int | str,
        guild_id: GuildID | int | str,
        permissions: Optional[PermissionInput] = None,
        revoked_by: str = "",
        reason: str = "",
    ) -> OperationResult:
        """
        Revoke some or all of a user's temporary permissions.

        Without ``permissions`` the whole grant is removed. With a filter only
        the listed permissions go, and the call fails if none of them are held.
        The entry is deleted once no permissions remain.

        Returns:
            OperationResult: ``details`` holds ``revoked_permissions`` and
            ``remaining_permissions``.
        """
        key = _grant_key(user_id, guild_id)
        if key is None:
            return OperationResult.fail("Invalid user or guild id")

        existing = self._grants.get(key)
        if existing is None:
            return OperationResult.fail("No temporary permissions found for this user")

        if permissions is not None:
            requested = normalize_permissions(permissions)
            revoked = [p for p in requested if p in existing.permissions]
            if not revoked:
                return OperationResult.fail("User does not have the specified temporary permissions")
            existing.permissions = [p for p in existing.permissions if p not in revoked]
            if not existing.permissions:
                self._grants.pop(key)
        else:
            revoked = list(existing.permissions)
            existing.permissions = []
            self._grants.pop(key)

        log_event(
            logger, CATEGORY,
            f"Temporary permission revoked: {', '.join(revoked)} from user {key[0]}",
            user_id=str(key[0]), guild_id=str(key[1]), permissions=revoked,
            revoked_by=str(revoked_by), reason=reason,
        )

        return OperationResult.ok(
            revoked_permissions=revoked,
            remaining_permissions=list(existing.permissions),
        )

    @guarded_operation(logger, CATEGORY, "extending temporary permission")
    def extend(
        self,
        user_id: UserID | int | str,
        guild_id: GuildID | int | str,
        additional_duration: int | str,
        extended_by: str,
        reason: str = "",
    ) -> OperationResult:
        """
        Push an existing grant's expiry further out.

        The seven day cap is measured from the moment of extension: the new
        expiry may not pass ``now + 7 days``.

        Returns:
            OperationResult: ``details`` holds ``new_expiry``, ``new_expiry_iso``,
            ``additional_duration`` and ``additional_duration_formatted``.
        """
        key = _grant_key(user_id, guild_id)
        if key is None:
            return OperationResult.fail("Invalid user or guild id")

        existing = self._grants.get(key)
        if existing is None:
            return OperationResult.fail("No temporary permissions found for this user")

        additional_ms = parse_duration(additional_duration)
        if additional_ms <= 0:
            return OperationResult.fail("Invalid additional duration specified")

        new_expiry = existing.expiry + additional_ms
        if new_expiry > self._clock() + MAX_DURATION_MS:
            return OperationResult.fail("Extended duration would exceed maximum limit (7 days)")

        previous_expiry = existing.expiry
        existing.expiry = new_expiry

        log_event(
            logger, CATEGORY,
            f"Temporary permission extended for user {key[0]} by {format_duration(additional_ms)}",
            user_id=str(key[0]), guild_id=str(key[1]), additional_duration=additional_ms,
            previous_expiry=previous_expiry, new_expiry=new_expiry,
            extended_by=str(extended_by), reason=reason,
        )

        return OperationResult.ok(
            new_expiry=new_expiry,
            new_expiry_iso=ms_to_iso(new_expiry),
            additional_duration=additional_ms,
            additional_duration_formatted=format_duration(additional_ms),
        )

    # --------------------------
    # Queries
    # --------------------------
    def has(self, user_id: UserID | int | str, guild_id: GuildID | int | str, permission: str) -> bool:
        """True if the user holds an unexpired temporary grant of ``permission``."""
        grant = self.get_user_grant(user_id, guild_id)
        return grant is not None and str(permission) in grant.permissions

    def get_user_grant(self, user_id: UserID | int | str, guild_id: GuildID | int | str) -> Optional[TemporaryGrant]:
        key = _grant_key(user_id, guild_id)
        if key is None:
            return None
        return self._grants.get(key)

    def get_all_active(self, guild_id: GuildID | int | str | None = None) -> List[TemporaryGrant]:
        """Unexpired grants, optionally for one guild, soonest expiry first."""
        wanted = GuildID(guild_id) if guild_id is not None else None
        grants = [grant for (_, grant_guild), grant in self._grants.items() if wanted is None or grant_guild == wanted]
        return sorted(grants, key=lambda grant: grant.expiry)

    def sweep(self) -> int:
        """Delete every expired grant, logging each one. Returns the number removed."""
        expired = self._grants.sweep()
        for (user_id, guild_id), grant in expired:
            log_event(
                logger, CATEGORY,
                f"Temporary permissions expired for user {user_id}: {', '.join(grant.permissions)}",
                user_id=str(user_id), guild_id=str(guild_id), permissions=list(grant.permissions),
            )
        if expired:
            logger.debug("[%s] Cleaned up %d expired temporary permissions", CATEGORY, len(expired))
        return len(expired)

    def get_statistics(self) -> Dict[str, Any]:
        now = self._clock()
        active = 0
        expired = 0
        permission_counts: Counter[str] = Counter()
        guild_counts: Counter[str] = Counter()

        for (_, guild_id), grant in self._grants.raw_items():
            if grant.is_expired(now):
                expired += 1
                continue
            active += 1
            permission_counts.update(grant.permissions)
            guild_counts[str(guild_id)] += 1

        most_used = permission_counts.most_common(1)
        return {
            "active_grants": active,
            "expired_grants": expired,
            "total_grants": active + expired,
            "permission_counts": dict(permission_counts),
            "guild_counts": dict(guild_counts),
            "most_used_permission": most_used[0][0] if most_used else None,
        }
