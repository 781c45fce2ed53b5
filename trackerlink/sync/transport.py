"""Capability interface for the peer-to-peer transport."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

Listener = Callable[..., None]

# Events emitted by a PeerHandle.
PEER_OPEN = "open"
PEER_ERROR = "error"
PEER_DISCONNECTED = "disconnected"

# Events emitted by a DataChannel.
CHANNEL_OPEN = "open"
CHANNEL_DATA = "data"
CHANNEL_CLOSE = "close"
CHANNEL_ERROR = "error"


class DataChannel(Protocol):
    def on(self, event: str, listener: Listener) -> None:
        """Attach a listener for open, data, close or error."""

    def off(self, event: str) -> None:
        """Detach every listener for event."""

    def close(self) -> None:
        """Close the channel; safe to call more than once."""


class PeerHandle(Protocol):
    destroyed: bool

    def on(self, event: str, listener: Listener) -> None:
        """Attach a listener for open, error or disconnected."""

    def off(self, event: str) -> None:
        """Detach every listener for event."""

    def connect_to(self, remote_id: str, reliable: bool = True) -> DataChannel | None:
        """Open a receive-only channel to remote_id, or None when it cannot be initiated."""

    def destroy(self) -> None:
        """Release the local session."""


class PeerTransport(Protocol):
    def open_local_session(self) -> PeerHandle:
        """Create a local peer session; raises TransportError on failure."""


class EventEmitter:
    """Minimal on/off/emit registry shared by transport implementations."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str) -> None:
        self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            listener(*args)
