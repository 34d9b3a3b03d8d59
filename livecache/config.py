"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from livecache.models.config import (
    APIConfig,
    LiveCacheConfig,
    LogConfig,
    ReplayConfig,
    SubscriptionConfig,
)
from livecache.models.subscription import IDENTITY_EQUALITIES


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"LIVECACHE_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_identity_equality(value: str) -> str:
    if value.lower() not in IDENTITY_EQUALITIES:
        raise ValueError(f"Invalid identity equality: {value}. Must be one of {set(IDENTITY_EQUALITIES)}")
    return value.lower()


def _validate_key_field(value: str) -> str:
    if not value.strip(".").strip():
        raise ValueError(f"Invalid replay key field: {value!r}")
    return value


def load_config() -> LiveCacheConfig:
    """Load configuration from LIVECACHE_* environment variables."""
    return LiveCacheConfig(
        subscription=SubscriptionConfig(
            identity_equality=_validate_identity_equality(_env("IDENTITY_EQUALITY", "reference")),
        ),
        replay=ReplayConfig(
            key_field=_validate_key_field(_env("REPLAY_KEY_FIELD", "id")),
        ),
        api=APIConfig(
            host=_env("API_HOST", "127.0.0.1"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
