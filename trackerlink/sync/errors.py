"""Exceptions raised inside the sync engine."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for the sync engine."""


class PayloadError(SyncError):
    """Raised when a session payload fails structural validation."""


class TransportError(SyncError):
    """Raised or emitted when the peer transport fails."""

    def __init__(self, kind: str, message: str = "") -> None:
        super().__init__(message or kind)
        self.kind = kind
        self.message = message
