from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

VALID_ENVS = {"development", "staging", "production"}
VALID_LOG_LEVELS = {"debug", "info", "warn", "error"}


class ConfigError(ValueError):
    """Raised when environment configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - JWT_SECRET: shared HS256 signing secret (required, at least 32 characters)
    - JWT_EXPIRY_HOURS: token lifetime in hours (default 72)
    - ENV: 'development' (default), 'staging' or 'production'
    - LOG_LEVEL: 'debug', 'info' (default), 'warn' or 'error'
    - PORT: listening port for the bundled server (default 8080)
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/todos.db'
    - DB_POOL_MAX_SIZE, DB_POOL_MAX_LIFETIME_SECONDS, DB_POOL_ACQUIRE_TIMEOUT_SECONDS:
      engine pool bounds for the sqlite backend
    - BCRYPT_COST: bcrypt work factor (default 10)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins
    - SHUTDOWN_GRACE_SECONDS: time given to in-flight requests on shutdown
    """

    jwt_secret: str
    jwt_expiry_hours: int = 72
    env: str = "development"
    log_level: str = "info"
    port: int = 8080
    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/todos.db"
    db_pool_max_size: int = 25
    db_pool_max_lifetime_seconds: float = 3600.0
    db_pool_acquire_timeout_seconds: float = 10.0
    bcrypt_cost: int = 10
    cors_allow_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    shutdown_grace_seconds: int = 30

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def log_format(self) -> str:
        return "json" if self.is_production else "text"

    def validate(self) -> "Settings":
        """Check value ranges. Returns self so calls can be chained."""
        if not self.jwt_secret:
            raise ConfigError("JWT_SECRET is required")
        if len(self.jwt_secret) < 32:
            raise ConfigError("JWT_SECRET must be at least 32 characters long")
        if self.jwt_expiry_hours < 1:
            raise ConfigError("JWT_EXPIRY_HOURS must be at least 1")
        if not (1 <= self.port <= 65535):
            raise ConfigError(f"invalid port: {self.port}")
        if self.env not in VALID_ENVS:
            raise ConfigError(
                f"invalid ENV: {self.env} (must be development, staging, or production)"
            )
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigError(
                f"invalid LOG_LEVEL: {self.log_level} (must be debug, info, warn, or error)"
            )
        if self.db_pool_max_size < 1:
            raise ConfigError("DB_POOL_MAX_SIZE must be at least 1")
        if not (4 <= self.bcrypt_cost <= 31):
            raise ConfigError("BCRYPT_COST must be between 4 and 31")
        return self


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _parse_float(name: str, default: float) -> float:
    raw = _get_env(name, str(default)).strip()
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        # Star will be handled in main via allow_origins=["*"]
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return validated application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    settings = Settings(
        jwt_secret=os.getenv("JWT_SECRET", ""),
        jwt_expiry_hours=_parse_int("JWT_EXPIRY_HOURS", 72),
        env=_get_env("ENV", "development").strip().lower(),
        log_level=_get_env("LOG_LEVEL", "info").strip().lower(),
        port=_parse_int("PORT", 8080),
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        db_pool_max_size=_parse_int("DB_POOL_MAX_SIZE", 25),
        db_pool_max_lifetime_seconds=_parse_float("DB_POOL_MAX_LIFETIME_SECONDS", 3600.0),
        db_pool_acquire_timeout_seconds=_parse_float("DB_POOL_ACQUIRE_TIMEOUT_SECONDS", 10.0),
        bcrypt_cost=_parse_int("BCRYPT_COST", 10),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "http://localhost:3000")),
        shutdown_grace_seconds=_parse_int("SHUTDOWN_GRACE_SECONDS", 30),
    )
    return settings.validate()
