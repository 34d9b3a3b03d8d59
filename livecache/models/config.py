"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SubscriptionConfig:
    """Subscription manager configuration."""

    identity_equality: str = "reference"


@dataclass
class ReplayConfig:
    """Replay tool configuration."""

    key_field: str = "id"


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class LiveCacheConfig:
    """Top-level livecache configuration."""

    subscription: SubscriptionConfig = field(default_factory=SubscriptionConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
