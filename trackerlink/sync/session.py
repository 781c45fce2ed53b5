"""Connection state machine for a read-only tracker session.

TrackerSyncSession is the single writer of SessionState. Transport callbacks,
timer firings and the two user commands (connect, disconnect) are the only
inputs; every change is published to subscribers as a SessionSnapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .config import SyncSettings
from .errors import PayloadError
from .models import DisplayModel
from .normalizer import normalize_payload
from .policy import (
    BackoffReconnectPolicy,
    LossKind,
    ReconnectPolicy,
    RetryAction,
    RetryContext,
    RetryDecision,
    create_reconnect_policy,
)
from .room_store import InMemoryRoomIdStore, RoomIdStore, create_room_store
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .state import Phase, SessionSnapshot, build_initial_state
from .transport import (
    CHANNEL_CLOSE,
    CHANNEL_DATA,
    CHANNEL_ERROR,
    CHANNEL_OPEN,
    PEER_DISCONNECTED,
    PEER_ERROR,
    PEER_OPEN,
    DataChannel,
    PeerHandle,
    PeerTransport,
)
from .wire import extract_state_payload

log = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]

CLOSED_MESSAGE = "Connection to the DM was closed."
SIGNALING_LOST_MESSAGE = "Lost connection to the signaling server."
NO_CHANNEL_MESSAGE = "Failed to initiate connection. The Room ID might be invalid or the peer server is unreachable."
PEER_UNAVAILABLE_MESSAGE = (
    "Could not find a DM with that Room ID. Please double-check the ID and ensure the DM is still hosting."
)
NETWORK_MESSAGE = "Network error. Please check your internet connection and firewall settings."
MISSING_ROOM_MESSAGE = "A Room ID is required to connect."

_CHANNEL_EVENTS = (CHANNEL_OPEN, CHANNEL_DATA, CHANNEL_CLOSE, CHANNEL_ERROR)
_PEER_EVENTS = (PEER_OPEN, PEER_ERROR, PEER_DISCONNECTED)


def describe_peer_error(error: Any) -> str:
    kind = getattr(error, "kind", None) or getattr(error, "type", None)
    if kind == "peer-unavailable":
        return PEER_UNAVAILABLE_MESSAGE
    if kind == "network":
        return NETWORK_MESSAGE
    detail = getattr(error, "message", None) or str(error or "") or kind
    return f"Error: {detail}" if detail else "A peer-to-peer error occurred."


def describe_channel_error(error: Any) -> str:
    detail = getattr(error, "message", None) or str(error or "")
    return f"Connection failed: {detail or 'An unknown error occurred.'}"


class TrackerSyncSession:
    def __init__(
        self,
        transport: PeerTransport,
        scheduler: Scheduler,
        policy: ReconnectPolicy | None = None,
        room_store: RoomIdStore | None = None,
        show_healthy_badge: bool = False,
    ) -> None:
        self._transport = transport
        self._scheduler = scheduler
        self._policy = policy if policy is not None else BackoffReconnectPolicy()
        self._room_store = room_store if room_store is not None else InMemoryRoomIdStore()
        self._show_healthy_badge = show_healthy_badge

        self._state = build_initial_state()
        self._model: DisplayModel | None = None
        self._peer: PeerHandle | None = None
        self._channel: DataChannel | None = None
        self._timer: TimerHandle | None = None
        self._timer_token = 0
        self._generation = 0
        self._listeners: list[SessionListener] = []
        self._last_published: SessionSnapshot | None = None

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def room_id(self) -> str | None:
        return self._state.room_id

    @property
    def retry_count(self) -> int:
        return self._state.retry_count

    @property
    def error_message(self) -> str | None:
        return self._state.last_error_message

    @property
    def model(self) -> DisplayModel | None:
        return self._model

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    @property
    def room_store(self) -> RoomIdStore:
        return self._room_store

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self._state.phase,
            room_id=self._state.room_id,
            retry_count=self._state.retry_count,
            error_message=self._state.last_error_message,
            model=self._model,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register listener for snapshots; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Commands

    def connect(self, room_id: str, is_retry: bool = False) -> None:
        if is_retry:
            if not self._state.room_id or room_id != self._state.room_id:
                log.info("Ignoring retry for %r; session no longer targets it", room_id)
                return
            if self._state.phase is not Phase.RECONNECTING:
                self._state.phase = Phase.CONNECTING
        else:
            room_id = room_id.strip()
            self._cancel_timer()
            if not room_id:
                self._teardown()
                self._model = None
                self._state.room_id = None
                self._state.retry_count = 0
                self._state.phase = Phase.ERROR
                self._state.last_error_message = MISSING_ROOM_MESSAGE
                self._publish()
                return
            self._state.room_id = room_id
            self._state.retry_count = 0
            self._state.last_error_message = None
            self._model = None
            self._state.phase = Phase.CONNECTING
            self._room_store.save(room_id)
            log.info("Connecting to room %s", room_id)

        self._teardown()
        self._open_session()
        self._publish()

    def disconnect(self) -> None:
        self._reset()
        log.info("Disconnected")
        self._publish()

    def close(self) -> None:
        """Release the transport and timer without forgetting the stored room id."""
        self._cancel_timer()
        self._teardown()

    # Transport lifecycle

    def _open_session(self) -> None:
        self._generation += 1
        generation = self._generation
        try:
            peer = self._transport.open_local_session()
        except Exception as exc:
            log.exception("Failed to initialize peer transport")
            detail = (getattr(exc, "message", None) or str(exc)).rstrip(".")
            reason = "Failed to initialize connection service."
            self._connection_lost(LossKind.INIT_FAILED, f"{reason} {detail}." if detail else reason)
            return

        self._peer = peer
        peer.on(PEER_OPEN, self._bind(generation, self._on_peer_open))
        peer.on(PEER_ERROR, self._bind(generation, self._on_peer_error))
        peer.on(PEER_DISCONNECTED, self._bind(generation, self._on_peer_disconnected))

    def _bind(self, generation: int, handler: Callable[..., None]) -> Callable[..., None]:
        def callback(*args: Any) -> None:
            if generation != self._generation:
                log.debug("Dropping late %s callback from a closed attempt", handler.__name__)
                return
            handler(*args)
            self._publish()

        return callback

    def _teardown(self) -> None:
        self._generation += 1
        channel, self._channel = self._channel, None
        if channel is not None:
            for event in _CHANNEL_EVENTS:
                channel.off(event)
            channel.close()
        peer, self._peer = self._peer, None
        if peer is not None:
            for event in _PEER_EVENTS:
                peer.off(event)
            if not peer.destroyed:
                peer.destroy()

    def _reset(self) -> None:
        self._cancel_timer()
        self._room_store.clear()
        self._teardown()
        self._model = None
        self._state.room_id = None
        self._state.retry_count = 0
        self._state.phase = Phase.DISCONNECTED
        self._state.last_error_message = None

    # Transport events

    def _on_peer_open(self, local_id: str) -> None:
        log.info("Peer session initialized with id %s", local_id)
        if self._peer is None or not self._state.room_id:
            return
        channel = self._peer.connect_to(self._state.room_id, reliable=True)
        if channel is None:
            self._connection_lost(LossKind.UNREACHABLE, NO_CHANNEL_MESSAGE)
            return
        self._channel = channel
        generation = self._generation
        channel.on(CHANNEL_OPEN, self._bind(generation, self._on_channel_open))
        channel.on(CHANNEL_DATA, self._bind(generation, self._on_channel_data))
        channel.on(CHANNEL_CLOSE, self._bind(generation, self._on_channel_close))
        channel.on(CHANNEL_ERROR, self._bind(generation, self._on_channel_error))

    def _on_peer_error(self, error: Any) -> None:
        log.error("Peer error: %s", error)
        self._connection_lost(LossKind.PEER_ERROR, describe_peer_error(error))

    def _on_peer_disconnected(self) -> None:
        log.warning("Peer disconnected from the signaling server")
        self._connection_lost(LossKind.SIGNALING_LOST, SIGNALING_LOST_MESSAGE)

    def _on_channel_open(self) -> None:
        log.info("Data channel to room %s is open", self._state.room_id)
        self._apply(self._policy.on_recovered(self._context(), "open"))
        if self._state.phase is not Phase.CONNECTED:
            self._state.phase = Phase.WAITING

    def _on_channel_data(self, packet: Any) -> None:
        self._apply(self._policy.on_recovered(self._context(), "data"))
        payload = extract_state_payload(packet)
        if payload is None:
            return
        try:
            model = normalize_payload(payload, show_healthy_badge=self._show_healthy_badge)
        except PayloadError as exc:
            log.warning("Dropping malformed state payload: %s", exc)
            return
        self._model = model
        if self._state.phase is not Phase.CONNECTED:
            log.info("Receiving tracker state for room %s", self._state.room_id)
            self._state.phase = Phase.CONNECTED
            self._state.last_error_message = None

    def _on_channel_close(self) -> None:
        log.info("Data channel closed")
        self._connection_lost(LossKind.CLOSED, CLOSED_MESSAGE)

    def _on_channel_error(self, error: Any) -> None:
        log.error("Data channel error: %s", error)
        self._connection_lost(LossKind.CHANNEL_ERROR, describe_channel_error(error))

    # Reconnection

    def _context(self) -> RetryContext:
        return RetryContext(
            phase=self._state.phase,
            room_id=self._state.room_id,
            retry_count=self._state.retry_count,
            timer_pending=self._timer is not None,
            has_model=self._model is not None,
        )

    def _connection_lost(self, kind: LossKind, reason: str) -> None:
        log.warning("Connection lost (%s): %s", kind.value, reason)
        self._apply(self._policy.on_connection_lost(self._context(), kind, reason))

    def _apply(self, decision: RetryDecision) -> None:
        action = decision.action
        if action is RetryAction.IGNORE:
            return
        if action is RetryAction.RESET:
            if self._state.retry_count or self._timer is not None:
                log.info("Connection re-established")
            self._cancel_timer()
            self._state.retry_count = 0
            if self._state.phase is Phase.RECONNECTING:
                self._state.phase = Phase.WAITING
            return
        if action is RetryAction.RETRY:
            if self._state.room_id:
                self._state.last_error_message = decision.message
                self.connect(self._state.room_id, is_retry=True)
            return
        if action is RetryAction.ABANDON:
            log.warning("Reconnect abandoned: %s", decision.message)
            self._reset()
            self._state.last_error_message = decision.message
            return

        self._teardown()
        self._cancel_timer()
        self._state.last_error_message = decision.message
        if decision.retry_count is not None:
            self._state.retry_count = decision.retry_count

        if action is RetryAction.GIVE_UP:
            log.warning("Giving up on room %s: %s", self._state.room_id, decision.message)
            self._state.phase = Phase.ERROR
        elif action is RetryAction.SCHEDULE:
            log.info("Scheduling reconnect in %.1f seconds", decision.delay or 0.0)
            self._state.phase = Phase.ERROR
            self._arm_timer(decision.delay or 0.0)
        elif action is RetryAction.RECONNECT:
            log.info("Attempting a single reconnect to room %s", self._state.room_id)
            self._state.phase = Phase.RECONNECTING
            self._arm_timer(decision.delay or 0.0)
            self._open_session()

    def _arm_timer(self, delay: float) -> None:
        self._cancel_timer()
        self._timer_token += 1
        token = self._timer_token
        self._timer = self._scheduler.call_later(delay, lambda: self._on_timer(token))

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _on_timer(self, token: int) -> None:
        if token != self._timer_token or self._timer is None:
            return
        self._timer = None
        self._apply(self._policy.on_timer_expired(self._context()))
        self._publish()

    def _publish(self) -> None:
        snapshot = self.snapshot()
        if snapshot == self._last_published:
            return
        self._last_published = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                log.exception("Session listener failed")


def create_session(
    settings: SyncSettings,
    transport: PeerTransport | None = None,
    scheduler: Scheduler | None = None,
    room_store: RoomIdStore | None = None,
) -> TrackerSyncSession:
    if transport is None:
        from .relay import RelayTransport

        transport = RelayTransport(settings.relay_url)
    return TrackerSyncSession(
        transport=transport,
        scheduler=scheduler if scheduler is not None else AsyncioScheduler(),
        policy=create_reconnect_policy(settings),
        room_store=room_store if room_store is not None else create_room_store(settings.state_file),
        show_healthy_badge=settings.show_healthy_badge,
    )
