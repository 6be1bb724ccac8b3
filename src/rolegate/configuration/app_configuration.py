from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, FrozenSet
import yaml

from rolegate.configuration.role_settings import RoleSettings
from rolegate.datatypes.discord_datatypes import UserID
from rolegate.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()
DEFAULT_SWEEP_INTERVAL_SECONDS = 300.0


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the owner list, staff role bindings, rate limiter
    overrides and sweep cadence. Uses fcntl file locks for safe concurrent
    access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Acquire a shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)

                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    if data is not None:
                        logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (which will be an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def owner_ids(self) -> FrozenSet[UserID]:
        """Bot owners; they pass every permission check and bypass rate limits."""
        raw = self._data.get("owner_ids") or []
        if not isinstance(raw, list):
            raw = [raw]
        owners = set()
        for value in raw:
            try:
                owners.add(UserID(value))
            except ValueError:
                logger.warning("[APP CONFIGURATION] Ignoring invalid owner id %r", value)
        return frozenset(owners)

    @property
    def roles(self) -> RoleSettings:
        """Return the staff role bindings wrapped in a RoleSettings helper."""
        return RoleSettings(self._section("roles"))

    @property
    def cooldowns(self) -> Dict[str, int]:
        """Cooldown overrides in milliseconds, keyed by category or command name."""
        section = self._section("rate_limiter").get("cooldowns", {})
        if not isinstance(section, dict):
            return {}
        cooldowns: Dict[str, int] = {}
        for key, value in section.items():
            try:
                cooldowns[str(key)] = int(value)
            except (TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring invalid cooldown for %s: %r", key, value)
        return cooldowns

    @property
    def rate_limits(self) -> Dict[str, Dict[str, int]]:
        """Rate limit overrides as ``{category: {"max_uses": n, "window_ms": ms}}``."""
        section = self._section("rate_limiter").get("rate_limits", {})
        if not isinstance(section, dict):
            return {}
        limits: Dict[str, Dict[str, int]] = {}
        for category, entry in section.items():
            try:
                limits[str(category)] = {"max_uses": int(entry["max_uses"]), "window_ms": int(entry["window_ms"])}
            except (KeyError, TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring malformed rate limit for %s", category)
        return limits

    @property
    def sweep_interval_seconds(self) -> float:
        """Interval between expiry sweeps of grants and overrides. Default is 300 seconds."""
        value = self._section("sweep").get("interval_seconds", DEFAULT_SWEEP_INTERVAL_SECONDS)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Ignoring invalid sweep interval %r", value)
            return DEFAULT_SWEEP_INTERVAL_SECONDS


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
