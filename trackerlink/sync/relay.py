"""WebSocket relay implementation of the peer transport.

The relay forwards the host's packets for a room to every subscriber of
``<relay_url>/<room_id>``. The client never sends application data.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from typing import Any
from urllib.parse import quote

import websockets
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, InvalidHandshake, InvalidURI

from .errors import TransportError
from .transport import (
    CHANNEL_CLOSE,
    CHANNEL_DATA,
    CHANNEL_ERROR,
    CHANNEL_OPEN,
    PEER_ERROR,
    PEER_OPEN,
    EventEmitter,
)

log = logging.getLogger(__name__)


class RelayDataChannel(EventEmitter):
    def __init__(self, url: str, handle: "RelayPeerHandle") -> None:
        super().__init__()
        self.url = url
        self._handle = handle
        self._task: asyncio.Task[None] | None = None
        self._opened = False
        self._closed = False

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        try:
            async with websockets.connect(self.url) as websocket:
                self._opened = True
                self._emit(CHANNEL_OPEN)
                async for message in websocket:
                    self._emit(CHANNEL_DATA, _decode_frame(message))
        except ConnectionClosedOK:
            pass
        except ConnectionClosedError as exc:
            self._fail(TransportError("network", f"Relay connection dropped: {exc}"))
            return
        except InvalidURI as exc:
            self._fail(TransportError("invalid-id", f"Invalid relay address: {exc}"))
            return
        except InvalidHandshake as exc:
            self._fail(TransportError("peer-unavailable", f"Relay refused room: {exc}"))
            return
        except (asyncio.TimeoutError, TimeoutError):
            self._fail(TransportError("network", "Timed out connecting to the relay"))
            return
        except OSError as exc:
            self._fail(TransportError("network", str(exc)))
            return
        except Exception as exc:
            log.exception("Unexpected relay failure on %s", self.url)
            self._fail(TransportError("network", f"Relay connection failed: {exc}"))
            return
        self._emit(CHANNEL_CLOSE)

    def _emit(self, event: str, *args: Any) -> None:
        if not self._closed:
            self.emit(event, *args)

    def _fail(self, error: TransportError) -> None:
        log.error("Relay channel %s failed: %s", self.url, error)
        # Failures before the channel opened surface on the peer, as a
        # signaling server would report an unknown room.
        if self._opened:
            self._emit(CHANNEL_ERROR, error)
        elif not self._closed:
            self._handle.emit(PEER_ERROR, error)


class RelayPeerHandle(EventEmitter):
    def __init__(self, relay_url: str) -> None:
        super().__init__()
        self.relay_url = relay_url.rstrip("/")
        self.local_id = secrets.token_hex(8)
        self.destroyed = False
        self._channels: list[RelayDataChannel] = []
        asyncio.get_running_loop().call_soon(self._announce)

    def _announce(self) -> None:
        if not self.destroyed:
            self.emit(PEER_OPEN, self.local_id)

    def connect_to(self, remote_id: str, reliable: bool = True) -> RelayDataChannel | None:
        if self.destroyed or not remote_id:
            return None
        channel = RelayDataChannel(url=f"{self.relay_url}/{quote(remote_id, safe='')}", handle=self)
        channel.start()
        self._channels.append(channel)
        return channel

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        for channel in self._channels:
            channel.close()
        self._channels.clear()


class RelayTransport:
    def __init__(self, relay_url: str) -> None:
        self.relay_url = relay_url

    def open_local_session(self) -> RelayPeerHandle:
        try:
            return RelayPeerHandle(self.relay_url)
        except RuntimeError as exc:
            raise TransportError("init", "No running event loop for the relay transport") from exc


def _decode_frame(message: str | bytes) -> Any:
    try:
        return json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return message
