"""Reconnection policies consulted by the session on connection loss.

Policies never touch session state. They inspect a RetryContext and return a
RetryDecision which the session applies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .config import SyncSettings
from .state import Phase

EXHAUSTED_MESSAGE = (
    "Connection failed after multiple retries. Please check the Room ID and your connection, then connect manually."
)


class LossKind(str, Enum):
    CLOSED = "closed"
    CHANNEL_ERROR = "channel_error"
    PEER_ERROR = "peer_error"
    SIGNALING_LOST = "signaling_lost"
    UNREACHABLE = "unreachable"
    INIT_FAILED = "init_failed"


class RetryAction(str, Enum):
    IGNORE = "ignore"
    SCHEDULE = "schedule"
    RETRY = "retry"
    RECONNECT = "reconnect"
    RESET = "reset"
    GIVE_UP = "give_up"
    ABANDON = "abandon"


@dataclass(frozen=True)
class RetryContext:
    phase: Phase
    room_id: str | None
    retry_count: int
    timer_pending: bool
    has_model: bool


@dataclass(frozen=True)
class RetryDecision:
    action: RetryAction
    message: str | None = None
    delay: float | None = None
    retry_count: int | None = None


IGNORE = RetryDecision(RetryAction.IGNORE)


class ReconnectPolicy(Protocol):
    max_retries: int

    def on_connection_lost(self, context: RetryContext, kind: LossKind, reason: str) -> RetryDecision:
        """Decide what follows a connection-loss event."""

    def on_timer_expired(self, context: RetryContext) -> RetryDecision:
        """Decide what the single pending timer does when it fires."""

    def on_recovered(self, context: RetryContext, event: str) -> RetryDecision:
        """Decide whether a channel open or data event ends a retry cycle."""


@dataclass
class BackoffReconnectPolicy:
    """Bounded exponential backoff: base_delay * 2^(attempt-1), at most max_retries attempts."""

    max_retries: int = 5
    base_delay: float = 3.0

    def delay_for_attempt(self, attempt: int) -> float:
        return self.base_delay * 2 ** (attempt - 1)

    def on_connection_lost(self, context: RetryContext, kind: LossKind, reason: str) -> RetryDecision:
        if context.timer_pending:
            return IGNORE
        if context.retry_count < self.max_retries and context.room_id:
            attempt = context.retry_count + 1
            delay = self.delay_for_attempt(attempt)
            message = f"{reason.rstrip('.')}. Retrying in {round(delay)}s... (Attempt {attempt}/{self.max_retries})"
            return RetryDecision(RetryAction.SCHEDULE, message=message, delay=delay, retry_count=attempt)
        return RetryDecision(RetryAction.GIVE_UP, message=EXHAUSTED_MESSAGE if context.room_id else reason)

    def on_timer_expired(self, context: RetryContext) -> RetryDecision:
        if not context.room_id:
            return IGNORE
        return RetryDecision(
            RetryAction.RETRY,
            message=f"Reconnecting... (Attempt {context.retry_count}/{self.max_retries})",
        )

    def on_recovered(self, context: RetryContext, event: str) -> RetryDecision:
        if event == "data" and (context.retry_count > 0 or context.timer_pending):
            return RetryDecision(RetryAction.RESET, retry_count=0)
        return IGNORE


@dataclass
class SingleAttemptReconnectPolicy:
    """One immediate reconnect after a mid-session drop, bounded by a timeout."""

    timeout: float = 10.0
    max_retries: int = 1

    def on_connection_lost(self, context: RetryContext, kind: LossKind, reason: str) -> RetryDecision:
        if context.phase is Phase.RECONNECTING:
            if kind in (LossKind.PEER_ERROR, LossKind.CHANNEL_ERROR, LossKind.UNREACHABLE, LossKind.INIT_FAILED):
                return RetryDecision(RetryAction.ABANDON, message=_reconnect_failed(reason))
            return IGNORE
        if context.has_model and context.room_id:
            return RetryDecision(
                RetryAction.RECONNECT,
                message=f"{reason.rstrip('.')}. Reconnecting...",
                delay=self.timeout,
                retry_count=1,
            )
        return RetryDecision(RetryAction.GIVE_UP, message=reason)

    def on_timer_expired(self, context: RetryContext) -> RetryDecision:
        if context.phase is not Phase.RECONNECTING:
            return IGNORE
        return RetryDecision(RetryAction.ABANDON, message=_reconnect_failed("Connection attempt timed out"))

    def on_recovered(self, context: RetryContext, event: str) -> RetryDecision:
        if context.phase is Phase.RECONNECTING:
            return RetryDecision(RetryAction.RESET, retry_count=0)
        return IGNORE


def _reconnect_failed(reason: str) -> str:
    return f"Reconnect failed: {reason.rstrip('.')}. Please connect manually."


def create_reconnect_policy(settings: SyncSettings) -> ReconnectPolicy:
    if settings.reconnect_strategy == "backoff":
        return BackoffReconnectPolicy(max_retries=settings.max_retries, base_delay=settings.retry_base_delay)
    if settings.reconnect_strategy == "single":
        return SingleAttemptReconnectPolicy(timeout=settings.reconnect_timeout)
    raise ValueError(f"Unknown reconnect strategy: {settings.reconnect_strategy!r}")
