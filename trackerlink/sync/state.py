"""Session state owned by the connection state machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .models import DisplayModel


class Phase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    WAITING = "waiting"
    CONNECTED = "connected"
    ERROR = "error"
    RECONNECTING = "reconnecting"


@dataclass
class SessionState:
    phase: Phase = Phase.DISCONNECTED
    room_id: str | None = None
    retry_count: int = 0
    last_error_message: str | None = None


@dataclass(frozen=True)
class SessionSnapshot:
    phase: Phase
    room_id: str | None
    retry_count: int
    error_message: str | None
    model: DisplayModel | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "roomId": self.room_id,
            "retryCount": self.retry_count,
            "errorMessage": self.error_message,
            "tracker": self.model.to_dict() if self.model is not None else None,
        }


def build_initial_state() -> SessionState:
    """Return the state of a session that has never connected."""
    return SessionState()
