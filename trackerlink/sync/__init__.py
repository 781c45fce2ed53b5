"""Peer session sync engine for the tracker companion client."""

from .classifier import Classification, classify, wound_info_for_level
from .config import SyncSettings, load_settings
from .errors import PayloadError, SyncError, TransportError
from .models import Creature, DisplayModel, StatusEffect, WoundInfo
from .normalizer import normalize_payload
from .policy import BackoffReconnectPolicy, ReconnectPolicy, SingleAttemptReconnectPolicy, create_reconnect_policy
from .room_store import FileRoomIdStore, InMemoryRoomIdStore, RoomIdStore, create_room_store, resolve_startup_room
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .session import TrackerSyncSession, create_session
from .state import Phase, SessionSnapshot

__all__ = [
    "AsyncioScheduler",
    "BackoffReconnectPolicy",
    "Classification",
    "classify",
    "create_reconnect_policy",
    "create_room_store",
    "create_session",
    "Creature",
    "DisplayModel",
    "FileRoomIdStore",
    "InMemoryRoomIdStore",
    "load_settings",
    "ManualScheduler",
    "normalize_payload",
    "PayloadError",
    "Phase",
    "ReconnectPolicy",
    "resolve_startup_room",
    "RoomIdStore",
    "Scheduler",
    "SessionSnapshot",
    "SingleAttemptReconnectPolicy",
    "StatusEffect",
    "SyncError",
    "SyncSettings",
    "TrackerSyncSession",
    "TransportError",
    "WoundInfo",
    "wound_info_for_level",
]
