"""Settings loaded from environment variables (+ optional .env)."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKTRACK"
MEMORY_URL = "memory"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_level(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


@dataclass(frozen=True)
class Settings:
    database_url: str = MEMORY_URL
    session_days: int = 7
    cookie_secure: bool = False
    bcrypt_rounds: int = 12
    min_password_length: int = 6
    log_level: int = logging.INFO
    log_dir: Optional[Path] = None
    host: str = "127.0.0.1"
    port: int = 3000

    @property
    def uses_memory_store(self) -> bool:
        return self.database_url.strip().lower() == MEMORY_URL

    @classmethod
    def from_env(cls) -> "Settings":
        log_dir = _env(_k("LOG_DIR")).strip()
        return cls(
            database_url=_env(_k("DATABASE_URL"), MEMORY_URL).strip() or MEMORY_URL,
            session_days=max(1, _env_int(_k("SESSION_DAYS"), 7)),
            cookie_secure=_env_bool(_k("COOKIE_SECURE"), False),
            # bcrypt only accepts cost factors 4..31
            bcrypt_rounds=min(31, max(4, _env_int(_k("BCRYPT_ROUNDS"), 12))),
            min_password_length=max(1, _env_int(_k("MIN_PASSWORD_LENGTH"), 6)),
            log_level=_env_level(_k("LOG_LEVEL"), logging.INFO),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            host=_env(_k("HOST"), "127.0.0.1"),
            port=_env_int(_k("PORT"), 3000),
        )
