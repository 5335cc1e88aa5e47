"""
Environment-driven settings.

Everything the process reads from the environment lives here so that the
users feature never touches os.environ directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _sanitize_database_url(url: str) -> str:
    # asyncpg does not accept libpq's sslmode as a query parameter.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _database_url_from_parts() -> str:
    host = _env_str("DB_HOST")
    name = _env_str("DB_NAME")
    if not host or not name:
        return ""

    user = quote(_env_str("DB_USER"), safe="")
    password = quote(_env_str("DB_PASSWORD"), safe="")
    port = _env_str("DB_PORT", "5432")
    credentials = f"{user}:{password}@" if user else ""
    return f"postgres://{credentials}{host}:{port}/{name}"


@dataclass(frozen=True)
class Settings:
    env: str
    port: int
    database_url: str
    pool_min_size: int
    pool_max_size: int
    max_inactive_connection_lifetime_s: float
    command_timeout_s: float
    request_timeout_s: float
    log_level: str
    cors_allow_origins: tuple[str, ...]

    @property
    def is_production(self) -> bool:
        return self.env == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Build settings from the current environment.

    DATABASE_URL wins over the DB_HOST / DB_PORT / DB_NAME / DB_USER /
    DB_PASSWORD set.
    """
    url = _env_str("DATABASE_URL") or _database_url_from_parts()
    origins = tuple(o.strip() for o in _env_str("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip())

    return Settings(
        env=_env_str("ENV", "development").lower(),
        port=_env_int("PORT", 8080),
        database_url=_sanitize_database_url(url) if url else "",
        pool_min_size=_env_int("DB_POOL_MIN_SIZE", 5),
        pool_max_size=_env_int("DB_POOL_MAX_SIZE", 25),
        max_inactive_connection_lifetime_s=_env_float("DB_MAX_INACTIVE_CONNECTION_LIFETIME_S", 1800.0),
        command_timeout_s=_env_float("DB_COMMAND_TIMEOUT_S", 30.0),
        request_timeout_s=_env_float("REQUEST_TIMEOUT_S", 10.0),
        log_level=_env_str("LOG_LEVEL", "info").upper(),
        cors_allow_origins=origins or ("*",),
    )
