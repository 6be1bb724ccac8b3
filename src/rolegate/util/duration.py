"""Human duration strings ("30m", "2h", "7d") to and from milliseconds."""

import re
import time

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$", re.IGNORECASE)

UNIT_MULTIPLIERS = {
    "s": SECOND_MS,
    "m": MINUTE_MS,
    "h": HOUR_MS,
    "d": DAY_MS,
}

# Offered as slash command choices
DURATION_CHOICES = ["15m", "30m", "1h", "6h", "12h", "1d", "3d", "7d"]


def now_ms() -> int:
    """Current wall-clock time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def parse_duration(value: str | int | float | None) -> int:
    """
    Convert a duration to milliseconds.

    Numbers are taken as milliseconds already. Strings must be a single
    integer followed by one of ``s``, ``m``, ``h`` or ``d``.

    Args:
        value: Duration as milliseconds or a string like ``"2h"``.

    Returns:
        int: Duration in milliseconds, or 0 when the value cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)

    match = DURATION_PATTERN.match(value.strip())
    if not match:
        return 0

    amount, unit = match.groups()
    return int(amount) * UNIT_MULTIPLIERS[unit.lower()]


def format_duration(ms: int | float) -> str:
    """
    Format milliseconds as a short human readable duration.

    Args:
        ms: Duration in milliseconds. Negative values are treated as 0.

    Returns:
        str: e.g. ``"1d 2h 3m"``, ``"2h 5m"``, ``"3m 10s"`` or ``"45s"``.
    """
    seconds = max(0, int(ms // 1000))
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h {minutes % 60}m"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"
