"""Runtime settings read from the environment.

Env vars:
  TAXCALC_DATA_DIR=<dir>                -> local key-value store directory (default: user_data)
  TAXCALC_BACKUP_DB=<path.sqlite>       -> backup database (default: <data dir>/backups/backups.sqlite)
  TAXCALC_MIN_PASSWORD_LENGTH=6         -> minimum backup password length
  TAXCALC_LOG_LEVEL=INFO                -> log level
  TAXCALC_PORT=8000                     -> development server port
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from .backup.store import DEFAULT_MIN_PASSWORD_LENGTH


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class Settings:
    data_dir: str = "user_data"
    backup_db: str = ""
    min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH
    log_level: str = "INFO"
    port: int = 8000

    def __post_init__(self) -> None:
        if not self.backup_db:
            self.backup_db = os.path.join(self.data_dir, "backups", "backups.sqlite")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=os.getenv("TAXCALC_DATA_DIR", "user_data"),
            backup_db=os.getenv("TAXCALC_BACKUP_DB", ""),
            min_password_length=_env_int("TAXCALC_MIN_PASSWORD_LENGTH", DEFAULT_MIN_PASSWORD_LENGTH),
            log_level=os.getenv("TAXCALC_LOG_LEVEL", "INFO").upper(),
            port=_env_int("TAXCALC_PORT", 8000),
        )
