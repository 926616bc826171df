"""Centralized configuration for the RSS reader backend."""

import os
import logging

log = logging.getLogger("rssreader.config")


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# =========================
# Storage
# =========================
DATABASE_PATH: str = os.getenv("DATABASE_PATH", "database.sqlite")

# =========================
# HTTP server
# =========================
LISTEN_HOST: str = os.getenv("LISTEN_HOST", "::1")
LISTEN_PORT: int = int(os.getenv("LISTEN_PORT", "8080"))
# Read-only default; the effective value is passed to create_app explicitly.
NO_AUTH: bool = _env_bool("NO_AUTH")
READ_LATER_PAGE_SIZE: int = int(os.getenv("READ_LATER_PAGE_SIZE", "20"))

# =========================
# Refresh
# =========================
REFRESH_INTERVAL_MINUTES: float = float(os.getenv("REFRESH_INTERVAL_MINUTES", "30"))
FEED_FETCH_TIMEOUT: float = float(os.getenv("FEED_FETCH_TIMEOUT", "30"))
REFRESH_FAIL_FAST: bool = _env_bool("REFRESH_FAIL_FAST")
USER_AGENT: str = os.getenv("USER_AGENT", "rss-reader-backend/1.0")

# =========================
# Monitoring
# =========================
FAILURE_ALERT_THRESHOLD: int = int(os.getenv("FAILURE_ALERT_THRESHOLD", "5"))

# =========================
# Logging
# =========================
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def validate_config(interval_minutes: float = REFRESH_INTERVAL_MINUTES,
                    fetch_timeout: float = FEED_FETCH_TIMEOUT) -> None:
    """Validate numeric settings. Call at startup."""
    problems = []
    if interval_minutes <= 0:
        problems.append(f"REFRESH_INTERVAL_MINUTES={interval_minutes}")
    if fetch_timeout <= 0:
        problems.append(f"FEED_FETCH_TIMEOUT={fetch_timeout}")
    if READ_LATER_PAGE_SIZE < 1:
        problems.append(f"READ_LATER_PAGE_SIZE={READ_LATER_PAGE_SIZE}")
    if problems:
        raise ValueError(f"Invalid configuration (must be positive): {', '.join(problems)}")
    if fetch_timeout >= interval_minutes * 60:
        log.warning(
            "FEED_FETCH_TIMEOUT (%ss) is not shorter than the refresh interval (%s min).",
            fetch_timeout, interval_minutes,
        )
