"""Persistence of the last room identifier across restarts."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

log = logging.getLogger(__name__)

FRAGMENT_PREFIX = "#v1:"


class RoomIdStore(Protocol):
    def load(self) -> str | None:
        """Return the remembered room id, if any."""

    def save(self, room_id: str) -> None:
        """Remember room_id for the next start."""

    def clear(self) -> None:
        """Forget the remembered room id."""


@dataclass
class InMemoryRoomIdStore:
    room_id: str | None = None

    def load(self) -> str | None:
        return self.room_id

    def save(self, room_id: str) -> None:
        self.room_id = room_id

    def clear(self) -> None:
        self.room_id = None


@dataclass
class FileRoomIdStore:
    path: Path

    def load(self) -> str | None:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            log.warning("Ignoring unreadable room store %s: %s", self.path, exc)
            return None
        room_id = payload.get("roomId") if isinstance(payload, dict) else None
        return room_id if isinstance(room_id, str) and room_id else None

    def save(self, room_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"roomId": room_id}), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def create_room_store(state_file: str | None) -> RoomIdStore:
    if state_file:
        return FileRoomIdStore(path=Path(state_file).expanduser())
    return InMemoryRoomIdStore()


def format_room_fragment(room_id: str) -> str:
    return f"{FRAGMENT_PREFIX}{room_id}"


def parse_room_fragment(fragment: str | None) -> str | None:
    """Extract the room id from a ``#v1:<roomId>`` fragment (leading '#' optional)."""
    if not fragment:
        return None
    if not fragment.startswith("#"):
        fragment = f"#{fragment}"
    if not fragment.startswith(FRAGMENT_PREFIX):
        return None
    room_id = fragment[len(FRAGMENT_PREFIX):].strip()
    return room_id or None


def resolve_startup_room(fragment: str | None, store: RoomIdStore) -> str | None:
    """Prefer the room id carried by the URL fragment, then the stored one."""
    room_id = parse_room_fragment(fragment)
    if room_id:
        return room_id
    return store.load()
