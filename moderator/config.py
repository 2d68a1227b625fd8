"""Environment-driven settings for the moderator engine."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Env var names
ENV_MAX_HISTORY_SNAPSHOTS = "MAFIA_MAX_HISTORY_SNAPSHOTS"
ENV_MAX_TIMELINE_ENTRIES = "MAFIA_MAX_TIMELINE_ENTRIES"
ENV_CATALOG_SELF_CHECK = "MAFIA_CATALOG_SELF_CHECK"
ENV_LOG_LEVEL = "MAFIA_LOG_LEVEL"

DEFAULT_MAX_HISTORY_SNAPSHOTS = 20
DEFAULT_MAX_TIMELINE_ENTRIES = 200
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    """Resolved configuration."""

    max_history_snapshots: int = DEFAULT_MAX_HISTORY_SNAPSHOTS
    max_timeline_entries: int = DEFAULT_MAX_TIMELINE_ENTRIES
    catalog_self_check: bool = True
    log_level: str = DEFAULT_LOG_LEVEL


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %d", name, raw, default)
        return default
    if value < 1:
        logger.warning("%s=%d must be positive; using %d", name, value, default)
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def load_settings() -> Settings:
    """Read settings from the environment, falling back to defaults."""
    return Settings(
        max_history_snapshots=_env_int(ENV_MAX_HISTORY_SNAPSHOTS, DEFAULT_MAX_HISTORY_SNAPSHOTS),
        max_timeline_entries=_env_int(ENV_MAX_TIMELINE_ENTRIES, DEFAULT_MAX_TIMELINE_ENTRIES),
        catalog_self_check=_env_bool(ENV_CATALOG_SELF_CHECK, True),
        log_level=(os.environ.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured log level to the root logger (for scripts, not the library)."""
    settings = settings or load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))
