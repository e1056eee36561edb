from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so type casting and validation live in one place
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getenv_cron(name: str, default: str) -> str:
    raw = _getenv(name, default)
    # Five fields: minute hour day month day_of_week
    if len(raw.split()) != 5:
        raise ValueError(f"{name} must be a 5-field cron expression (got {raw!r})")
    return raw


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    scheduler_enabled: bool = False
    active_window_days: int = 30
    retention_days: int = 182
    streak_lookback_days: int = 400
    daily_cron: str = "0 2 * * *"
    hourly_cron: str = "0 * * * *"
    weekly_cron: str = "0 3 * * sun"
    monthly_cron: str = "0 4 1 * *"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000, minimum=1)

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", False),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        scheduler_enabled=_getenv_bool("SCHEDULER_ENABLED", False),
        active_window_days=_getenv_int("ACTIVE_WINDOW_DAYS", 30, minimum=1),
        retention_days=_getenv_int("RETENTION_DAYS", 182, minimum=1),
        streak_lookback_days=_getenv_int("STREAK_LOOKBACK_DAYS", 400, minimum=2),
        daily_cron=_getenv_cron("DAILY_CRON", "0 2 * * *"),
        hourly_cron=_getenv_cron("HOURLY_CRON", "0 * * * *"),
        weekly_cron=_getenv_cron("WEEKLY_CRON", "0 3 * * sun"),
        monthly_cron=_getenv_cron("MONTHLY_CRON", "0 4 1 * *"),
    )


SETTINGS = load_settings()
