from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from modgate.datatypes.command_datatypes import UsageLimits
from modgate.datatypes.discord_datatypes import UserID
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.util.logger import get_logger
from modgate.util.parsers import DEFAULT_SIMILARITY_THRESHOLD

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()
DEFAULT_DB_PATH = Path("./data/modgate.db")


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    Caches the contents of ``./config/app_config.yml`` and exposes typed
    shortcuts for the values the bot needs at startup. A missing or broken
    file yields an empty mapping, so every shortcut falls back to its default.

    Example file::

        database_path: ./data/modgate.db
        bot_masters: [123456789012345678]
        default_usage_limits: {enabled: true, local_cooldown: 0, global_cooldown: 1000}
        dm_usage_limits: {local_cooldown: 5000}
        help_visibility_ceiling: admin
        suggestion_threshold: 0.4
        wrapper_cache:
          max_idle_seconds: 900
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
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping, ignoring it.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file and return the freshly loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping (shallow reference, do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        value = self._data.get("database_path")
        return Path(value) if value else DEFAULT_DB_PATH

    @property
    def bot_masters(self) -> List[UserID]:
        """User ids that always resolve to the bot master permission level.

        Entries that are not valid snowflakes are logged and skipped.
        """
        masters: List[UserID] = []
        for raw in self._data.get("bot_masters") or []:
            try:
                masters.append(UserID(raw))
            except ValueError:
                logger.warning("[APP CONFIGURATION] Ignoring invalid bot master id %r", raw)
        return masters

    @property
    def default_usage_limits(self) -> UsageLimits:
        """Usage limits applied to every command a guild has not configured."""
        return self._usage_limits("default_usage_limits", UsageLimits())

    @property
    def dm_usage_limits(self) -> UsageLimits:
        """Usage limits for commands run in direct messages."""
        return self._usage_limits("dm_usage_limits", self.default_usage_limits)

    @property
    def help_visibility_ceiling(self) -> PermissionLevel:
        """Highest permission level whose commands are shown in ordinary listings."""
        value = self._data.get("help_visibility_ceiling", "admin")
        if isinstance(value, int):
            try:
                return PermissionLevel(value)
            except ValueError:
                pass
        elif isinstance(value, str) and value.upper() in PermissionLevel.__members__:
            return PermissionLevel[value.upper()]
        logger.warning("[APP CONFIGURATION] Unknown help_visibility_ceiling %r, using admin", value)
        return PermissionLevel.ADMIN

    @property
    def suggestion_threshold(self) -> float:
        return float(self._data.get("suggestion_threshold", DEFAULT_SIMILARITY_THRESHOLD))

    @property
    def wrapper_cache_max_idle_seconds(self) -> float:
        """Idle time after which cached user/guild/member wrappers are evicted."""
        cache_config = self._data.get("wrapper_cache", {})
        if isinstance(cache_config, dict):
            return float(cache_config.get("max_idle_seconds", 900.0))
        return 900.0

    def _usage_limits(self, key: str, fallback: UsageLimits) -> UsageLimits:
        raw = self._data.get(key)
        if raw is None:
            return fallback
        if not isinstance(raw, dict):
            logger.warning("[APP CONFIGURATION] %s should be a mapping, ignoring it.", key)
            return fallback
        try:
            return UsageLimits.from_dict(raw, fallback)
        except (TypeError, ValueError) as exc:
            logger.warning("[APP CONFIGURATION] Invalid %s (%s), using defaults.", key, exc)
            return fallback
