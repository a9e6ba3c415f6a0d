"""Runtime configuration for the review service.

Values are read from environment variables (optionally loaded from a
``.env`` file) once, at import time. Malformed numeric values raise
``ValueError`` immediately so a misconfigured deployment fails on startup
rather than on the first request.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENV_SECRET_KEY = "SECRET_KEY"
ENV_ALGORITHM = "ALGORITHM"
ENV_APP_ENV = "APP_ENV"
ENV_DATABASE_URL = "DATABASE_URL"

PRODUCTION = "production"
DEVELOPMENT = "development"

# Only ever acceptable outside production posture.
DEFAULT_SECRET_KEY = "insecure-development-secret-change-me"

ACCESS_TOKEN_LIFETIME = timedelta(hours=24)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def resolve_secret_key(value: Optional[str], app_env: str) -> str:
    """Return the JWT signing key, refusing the fallback in production.

    Outside production posture a missing key falls back to
    :data:`DEFAULT_SECRET_KEY` with a loud warning, so local runs work but the
    misconfiguration is impossible to miss in the logs.
    """
    if value and value != DEFAULT_SECRET_KEY:
        return value
    if app_env == PRODUCTION:
        raise ValueError(
            f"{ENV_SECRET_KEY} must be set to a non-default value when "
            f"{ENV_APP_ENV}={PRODUCTION}"
        )
    logger.warning(
        "%s is not set; signing tokens with the INSECURE development default. "
        "Never deploy with this key.",
        ENV_SECRET_KEY,
    )
    return DEFAULT_SECRET_KEY


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


APP_ENV: str = os.getenv(ENV_APP_ENV, PRODUCTION).strip().lower()
DEBUG: bool = _env_bool("DEBUG", APP_ENV == DEVELOPMENT)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

SECRET_KEY: str = resolve_secret_key(os.getenv(ENV_SECRET_KEY), APP_ENV)
ALGORITHM: str = os.getenv(ENV_ALGORITHM, "HS256")

DATABASE_URL: Optional[str] = os.getenv(ENV_DATABASE_URL) or None
DB_INIT_ATTEMPTS: int = _env_int("DB_INIT_ATTEMPTS", 3)
DB_INIT_RETRY_DELAY: float = _env_float("DB_INIT_RETRY_DELAY", 2.0)
SQL_ECHO: bool = _env_bool("SQL_ECHO", False)

HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = _env_int("PORT", 3000)
CORS_ORIGINS: List[str] = _split_origins(os.getenv("CORS_ORIGINS", "*"))

ARGON2_TIME_COST: int = _env_int("ARGON2_TIME_COST", 2)
ARGON2_MEMORY_COST: int = _env_int("ARGON2_MEMORY_COST", 102400)
ARGON2_PARALLELISM: int = _env_int("ARGON2_PARALLELISM", 8)
