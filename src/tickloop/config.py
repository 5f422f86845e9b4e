# src/tickloop/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole library host ("settings layer").
- Nothing is validated at import time; bad policy names fail when the scheduler is built.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TICKLOOP"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


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
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- Logging ----
    log_level: str
    log_dir: Path | None

    # ---- Scheduler ----
    queues: list[str]
    selector: str
    idle_policy: str
    fault_policy: str

    # ---- Chunked computations ----
    slice_size: int

    # ---- Watchdog ----
    watchdog_threshold_seconds: float
    watchdog_poll_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            log_dir=_env_path(_k("LOG_DIR")),
            # Browser-like default: microtasks first, then tasks, then rendering.
            queues=_env_list(_k("QUEUES"), ["microtask", "task", "render"]),
            selector=_env(_k("SELECTOR"), "round_robin").strip().lower(),
            idle_policy=_env(_k("IDLE_POLICY"), "exit").strip().lower(),
            fault_policy=_env(_k("FAULT_POLICY"), "log").strip().lower(),
            slice_size=_env_int(_k("SLICE_SIZE"), 500),
            watchdog_threshold_seconds=_env_float(_k("WATCHDOG_THRESHOLD_SECONDS"), 5.0),
            watchdog_poll_seconds=_env_float(_k("WATCHDOG_POLL_SECONDS"), 0.5),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS


def reload_settings() -> Settings:
    """Re-read the environment (tests and long-lived hosts)."""
    global _SETTINGS
    _SETTINGS = Settings.from_env()
    return _SETTINGS
