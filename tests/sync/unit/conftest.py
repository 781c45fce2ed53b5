from __future__ import annotations

import pytest

from trackerlink.sync.errors import TransportError
from trackerlink.sync.policy import BackoffReconnectPolicy, SingleAttemptReconnectPolicy
from trackerlink.sync.room_store import InMemoryRoomIdStore
from trackerlink.sync.scheduler import ManualScheduler
from trackerlink.sync.session import TrackerSyncSession
from trackerlink.sync.transport import EventEmitter


class RecordingEmitter(EventEmitter):
    """Keeps every listener ever attached so tests can replay late callbacks."""

    def __init__(self) -> None:
        super().__init__()
        self.history: dict[str, list] = {}

    def on(self, event: str, listener) -> None:
        super().on(event, listener)
        self.history.setdefault(event, []).append(listener)


class FakeChannel(RecordingEmitter):
    def __init__(self, remote_id: str) -> None:
        super().__init__()
        self.remote_id = remote_id
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1


class FakePeer(RecordingEmitter):
    def __init__(self, refuse_channels: bool = False) -> None:
        super().__init__()
        self.destroyed = False
        self.destroy_calls = 0
        self.refuse_channels = refuse_channels
        self.channels: list[FakeChannel] = []
        self.connect_calls: list[tuple[str, bool]] = []

    @property
    def channel(self) -> FakeChannel:
        return self.channels[-1]

    def connect_to(self, remote_id: str, reliable: bool = True) -> FakeChannel | None:
        self.connect_calls.append((remote_id, reliable))
        if self.refuse_channels:
            return None
        channel = FakeChannel(remote_id)
        self.channels.append(channel)
        return channel

    def destroy(self) -> None:
        self.destroy_calls += 1
        self.destroyed = True


class FakeTransport:
    def __init__(self) -> None:
        self.peers: list[FakePeer] = []
        self.init_failures = 0
        self.refuse_channels = False

    @property
    def peer(self) -> FakePeer:
        return self.peers[-1]

    def open_local_session(self) -> FakePeer:
        if self.init_failures:
            self.init_failures -= 1
            raise TransportError("init", "WebRTC is not available")
        peer = FakePeer(refuse_channels=self.refuse_channels)
        self.peers.append(peer)
        return peer

    def open_channel(self) -> FakeChannel:
        """Drive the newest peer through local open and channel open."""
        self.peer.emit("open", f"local-{len(self.peers)}")
        channel = self.peer.channel
        channel.emit("open")
        return channel


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def room_store() -> InMemoryRoomIdStore:
    return InMemoryRoomIdStore()


@pytest.fixture
def session(transport, scheduler, room_store) -> TrackerSyncSession:
    return TrackerSyncSession(
        transport=transport,
        scheduler=scheduler,
        policy=BackoffReconnectPolicy(max_retries=5, base_delay=3.0),
        room_store=room_store,
    )


@pytest.fixture
def single_session(transport, scheduler, room_store) -> TrackerSyncSession:
    return TrackerSyncSession(
        transport=transport,
        scheduler=scheduler,
        policy=SingleAttemptReconnectPolicy(timeout=10.0),
        room_store=room_store,
    )
