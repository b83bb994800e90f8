"""Configuration management for the ledger analytics engine.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Base project root - assumes this file is in ledger_analytics/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("LEDGER_DATA_DIR", _PROJECT_ROOT / "data"))
EXPORTS_DIR = DATA_DIR / "exports"

# Database
DB_PATH = Path(
    os.getenv("LEDGER_DB_PATH", DATA_DIR / "ledger.db")
).resolve()

# Calendar boundaries (day/week/month/year) are evaluated in this zone
TIMEZONE = os.getenv("LEDGER_TIMEZONE", "UTC")

# Listing defaults
DEFAULT_PER_PAGE = int(os.getenv("LEDGER_PER_PAGE", "10"))
RECENT_ACTIVITY_LIMIT = int(os.getenv("LEDGER_RECENT_LIMIT", "5"))

LOG_LEVEL = os.getenv("LEDGER_LOG_LEVEL", "INFO")


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, EXPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def get_db_path() -> str:
    """Get the database path as a string."""
    return str(DB_PATH)


def get_timezone(name: str | None = None) -> str:
    """Return a validated IANA timezone name.

    ``name`` overrides the configured ``LEDGER_TIMEZONE``. Raises
    ``ValueError`` for names the system tz database does not know.
    """
    candidate = name or TIMEZONE
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{candidate}'") from exc
    return candidate
