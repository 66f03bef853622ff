# src/pomoquest/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read from disk at import time except an optional .env.
- Every value has a sane default so the app starts with zero configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "POMO"

DEFAULT_CATEGORIES = ["Work", "Personal", "Study", "Fitness"]


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_local_dotenv() -> None:
    """Load .env from the working directory (real env vars win)."""
    load_dotenv(override=False)


_load_local_dotenv()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    # Categories may contain spaces, so only commas separate items.
    return [p.strip() for p in raw.split(",") if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    cache_db_path: Path

    # ---- External file ----
    file_backend: str  # "path" | "handle"
    auto_reconnect: bool

    # ---- Tasks ----
    categories: list[str]

    # ---- Timer (minutes) ----
    work_minutes: int
    short_break_minutes: int
    long_break_minutes: int
    long_break_every: int

    # ---- Notifications (seconds) ----
    level_up_notice_seconds: float
    achievement_notice_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "pomoquest") or "pomoquest"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/pomoquest"))
        cache_db_path = _env_path(_k("CACHE_DB_PATH"), data_dir / "cache.sqlite3")

        file_backend = _env(_k("FILE_BACKEND"), "path").strip().lower()
        if file_backend not in {"path", "handle"}:
            file_backend = "path"
        auto_reconnect = _env_bool(_k("AUTO_RECONNECT"), True)

        categories = _env_list(_k("CATEGORIES"), DEFAULT_CATEGORIES)

        work_minutes = _env_int(_k("WORK_MINUTES"), 25, minimum=1)
        short_break_minutes = _env_int(_k("SHORT_BREAK_MINUTES"), 5, minimum=1)
        long_break_minutes = _env_int(_k("LONG_BREAK_MINUTES"), 15, minimum=1)
        long_break_every = _env_int(_k("LONG_BREAK_EVERY"), 4, minimum=1)

        level_up_notice_seconds = _env_float(_k("LEVEL_UP_NOTICE_SECONDS"), 5.0)
        achievement_notice_seconds = _env_float(_k("ACHIEVEMENT_NOTICE_SECONDS"), 4.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            cache_db_path=cache_db_path,
            file_backend=file_backend,
            auto_reconnect=auto_reconnect,
            categories=categories,
            work_minutes=work_minutes,
            short_break_minutes=short_break_minutes,
            long_break_minutes=long_break_minutes,
            long_break_every=long_break_every,
            level_up_notice_seconds=level_up_notice_seconds,
            achievement_notice_seconds=achievement_notice_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
