from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")

# ASCII only: these values are interpolated into metric names and SQL
IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+$")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    return raw in _TRUTHY


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None

    site_name: str = "pressmetrics"
    metric_prefix: str = "cms"
    charset: str = "UTF-8"
    host_snapshot_path: str | None = None

    # Secrets sourced from the process environment.  Both are read-only at
    # request time; absence falls back to encrypted option storage.
    encryption_key_env: str | None = None
    bearer_token_env: str | None = None

    cache_ttl_fast: int = 10
    cache_ttl_heavy: int = 300
    cache_ttl_static: int = 3600
    cache_prefix: str = "pressmetrics_cache"

    # Host table holding autoloaded options, inspected when DATABASE_URL is set
    options_table: str = "options"

    rate_limit: int = 60
    rate_limit_window: int = 60

    debug_log: bool = False

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
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    metric_prefix = _getenv("PRESSMETRICS_METRIC_PREFIX", "cms")
    if not IDENTIFIER_RE.fullmatch(metric_prefix):
        raise ValueError(
            f"PRESSMETRICS_METRIC_PREFIX must be alphanumeric/underscore "
            f"(got {metric_prefix!r})"
        )

    options_table = _getenv("PRESSMETRICS_OPTIONS_TABLE", "options")
    if not IDENTIFIER_RE.fullmatch(options_table):
        raise ValueError(
            f"PRESSMETRICS_OPTIONS_TABLE must be alphanumeric/underscore "
            f"(got {options_table!r})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        site_name=_getenv("PRESSMETRICS_SITE_NAME", "pressmetrics") or "pressmetrics",
        metric_prefix=metric_prefix,
        charset=_getenv("PRESSMETRICS_CHARSET", "UTF-8") or "UTF-8",
        host_snapshot_path=_getenv("PRESSMETRICS_HOST_SNAPSHOT", "") or None,
        encryption_key_env=_getenv("PRESSMETRICS_ENCRYPTION_KEY", "") or None,
        bearer_token_env=_getenv("PRESSMETRICS_BEARER_TOKEN", "") or None,
        cache_ttl_fast=_getenv_int("PRESSMETRICS_CACHE_TTL_FAST", 10),
        cache_ttl_heavy=_getenv_int("PRESSMETRICS_CACHE_TTL_HEAVY", 300),
        cache_ttl_static=_getenv_int("PRESSMETRICS_CACHE_TTL_STATIC", 3600),
        rate_limit=_getenv_int("PRESSMETRICS_RATE_LIMIT", 60),
        rate_limit_window=_getenv_int("PRESSMETRICS_RATE_LIMIT_WINDOW", 60),
        options_table=options_table,
        debug_log=_getenv_bool("PRESSMETRICS_DEBUG_LOG"),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
