"""Configuration helpers for the sync engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SyncSettings:
    relay_url: str = "ws://127.0.0.1:9000/rooms"
    reconnect_strategy: str = "backoff"
    max_retries: int = 5
    retry_base_delay: float = 3.0
    reconnect_timeout: float = 10.0
    show_healthy_badge: bool = False
    state_file: str | None = None
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"


def load_settings() -> SyncSettings:
    return SyncSettings(
        relay_url=os.getenv("TRACKERLINK_RELAY_URL", "ws://127.0.0.1:9000/rooms"),
        reconnect_strategy=os.getenv("TRACKERLINK_RECONNECT_STRATEGY", "backoff").strip().lower(),
        max_retries=int(os.getenv("TRACKERLINK_MAX_RETRIES", "5")),
        retry_base_delay=float(os.getenv("TRACKERLINK_RETRY_BASE_DELAY", "3.0")),
        reconnect_timeout=float(os.getenv("TRACKERLINK_RECONNECT_TIMEOUT", "10.0")),
        show_healthy_badge=os.getenv("TRACKERLINK_SHOW_HEALTHY_BADGE", "false").strip().lower() in _TRUTHY,
        state_file=os.getenv("TRACKERLINK_STATE_FILE") or None,
        host=os.getenv("TRACKERLINK_HOST", "127.0.0.1"),
        port=int(os.getenv("TRACKERLINK_PORT", "8000")),
        log_level=os.getenv("TRACKERLINK_LOG_LEVEL", "INFO").upper(),
    )
