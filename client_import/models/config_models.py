from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from zoneinfo import ZoneInfo

"""Config dataclasses for the client import tool.

These are filled in by client_import.config.loader after schema validation.
"""

DEFAULT_TABLE = "clients"
DEFAULT_BATCH_SIZE = 50
DEFAULT_ERROR_LOG_DIR = "./logs"


def local_today(timezone: str = "UTC") -> date:
    """Current calendar day in the configured timezone."""
    return datetime.now(ZoneInfo(timezone)).date()


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for import/export runs."""
    table: str = DEFAULT_TABLE  # target clients table
    batch_size: int = DEFAULT_BATCH_SIZE  # records per insert_many call
    owner_id: str | None = None  # advisor that owns imported clients
    timezone: str = "UTC"
    error_log_dir: str = DEFAULT_ERROR_LOG_DIR
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
