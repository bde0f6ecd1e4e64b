"""
Shared configuration for CatchLog core.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("catchlog")


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(env_name: str, default: float) -> float:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_list(env_name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.environ.get(env_name)
    if value is None:
        return default
    items = tuple(item.strip().lower() for item in value.split(",") if item.strip())
    return items or default


# Database settings
DB_BACKEND = os.environ.get("DB_BACKEND", "sqlite").strip().lower()
SQLITE_PATH = os.environ.get("SQLITE_PATH", "catchlog.db")
DATABASE_URL = os.environ.get("DATABASE_URL")

# Database initialization controls
AUTO_MIGRATE_ON_STARTUP = _get_bool("AUTO_MIGRATE_ON_STARTUP", True)
RUN_DATA_MIGRATIONS_ON_STARTUP = _get_bool("CATCHLOG_RUN_DATA_MIGRATIONS_ON_STARTUP", True)

# Background integrity scan cadence (0 disables)
INTEGRITY_CHECK_INTERVAL_SECONDS = _get_int("CATCHLOG_INTEGRITY_CHECK_INTERVAL_SECONDS", 0)

# Data versioning
APP_VERSION = "1.4.0"
CURRENT_SCHEMA_VERSION = 2
DATA_VERSION_SETTING_KEY = "dataVersion"

# Record field limits
MAX_LOCATION_LENGTH = _get_int("CATCHLOG_MAX_LOCATION_LENGTH", 100)
MAX_SPECIES_LENGTH = _get_int("CATCHLOG_MAX_SPECIES_LENGTH", 100)
MAX_WEATHER_LENGTH = _get_int("CATCHLOG_MAX_WEATHER_LENGTH", 100)
MAX_NOTES_LENGTH = _get_int("CATCHLOG_MAX_NOTES_LENGTH", 500)

SIZE_MIN, SIZE_MAX = 0, 999
WEIGHT_MIN, WEIGHT_MAX = 0, 99999
TEMPERATURE_MIN, TEMPERATURE_MAX = 0, 50
TEMPERATURE_TYPICAL_MIN = _get_float("CATCHLOG_TEMPERATURE_TYPICAL_MIN", 5.0)
TEMPERATURE_TYPICAL_MAX = _get_float("CATCHLOG_TEMPERATURE_TYPICAL_MAX", 35.0)

# Coordinates outside this box are accepted with a warning
EXPECTED_REGION_LAT_MIN = _get_float("CATCHLOG_REGION_LAT_MIN", 20.0)
EXPECTED_REGION_LAT_MAX = _get_float("CATCHLOG_REGION_LAT_MAX", 46.0)
EXPECTED_REGION_LON_MIN = _get_float("CATCHLOG_REGION_LON_MIN", 122.0)
EXPECTED_REGION_LON_MAX = _get_float("CATCHLOG_REGION_LON_MAX", 154.0)

# Photo limits
PHOTO_MAX_BYTES = _get_int("CATCHLOG_PHOTO_MAX_BYTES", 10 * 1024 * 1024)
PHOTO_WARN_BYTES = _get_int("CATCHLOG_PHOTO_WARN_BYTES", 5 * 1024 * 1024)
PHOTO_ALLOWED_MIME_TYPES = _get_list(
    "CATCHLOG_PHOTO_ALLOWED_MIME_TYPES",
    ("image/jpeg", "image/png", "image/webp"),
)


def validate_and_prepare_config() -> None:
    """Validate configuration and apply derived settings at startup."""
    global DATABASE_URL

    errors = []
    if DB_BACKEND not in {"postgres", "sqlite"}:
        errors.append("DB_BACKEND must be 'postgres' or 'sqlite'")

    if not DATABASE_URL:
        if DB_BACKEND == "sqlite":
            if not SQLITE_PATH:
                errors.append("SQLITE_PATH environment variable is required for sqlite")
            else:
                DATABASE_URL = f"sqlite:///{SQLITE_PATH}"
        else:
            errors.append("DATABASE_URL environment variable is required")
    else:
        url_lower = DATABASE_URL.lower()
        is_sqlite_url = url_lower.startswith("sqlite")
        if DB_BACKEND == "sqlite" and not is_sqlite_url:
            errors.append("DATABASE_URL must be a sqlite URL when DB_BACKEND=sqlite")
        if DB_BACKEND == "postgres" and is_sqlite_url:
            errors.append("DATABASE_URL must be a postgres URL when DB_BACKEND=postgres")

    if EXPECTED_REGION_LAT_MIN > EXPECTED_REGION_LAT_MAX:
        errors.append("CATCHLOG_REGION_LAT_MIN must not exceed CATCHLOG_REGION_LAT_MAX")
    if EXPECTED_REGION_LON_MIN > EXPECTED_REGION_LON_MAX:
        errors.append("CATCHLOG_REGION_LON_MIN must not exceed CATCHLOG_REGION_LON_MAX")
    if PHOTO_WARN_BYTES > PHOTO_MAX_BYTES:
        errors.append("CATCHLOG_PHOTO_WARN_BYTES must not exceed CATCHLOG_PHOTO_MAX_BYTES")

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
