"""FastAPI endpoints publishing the tracker session to a UI over HTTP and websocket."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .config import SyncSettings, load_settings
from .room_store import resolve_startup_room
from .session import TrackerSyncSession, create_session
from .state import SessionSnapshot

log = logging.getLogger(__name__)


class ConnectRequest(BaseModel):
    room_id: str = Field(min_length=1, max_length=200, alias="roomId")


class SessionStateResponse(BaseModel):
    state: dict[str, Any]


class SessionWebSocketHub:
    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)

    async def send_state(self, websocket: WebSocket, snapshot: SessionSnapshot) -> None:
        await websocket.send_json({"type": "session.state", "state": snapshot.to_dict()})

    async def broadcast_state(self, snapshot: SessionSnapshot) -> None:
        stale_connections: list[WebSocket] = []
        for websocket in list(self._connections):
            try:
                await self.send_state(websocket, snapshot)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(websocket)


def create_app(
    session: TrackerSyncSession | None = None,
    settings: SyncSettings | None = None,
    startup_fragment: str | None = None,
) -> FastAPI:
    runtime_settings = settings if settings is not None else load_settings()
    tracker_session = session if session is not None else create_session(runtime_settings)
    websocket_hub = SessionWebSocketHub()
    pending_broadcasts: set[asyncio.Task[None]] = set()

    def publish_state(snapshot: SessionSnapshot) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(websocket_hub.broadcast_state(snapshot))
        pending_broadcasts.add(task)
        task.add_done_callback(pending_broadcasts.discard)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        unsubscribe = tracker_session.subscribe(publish_state)
        room_id = resolve_startup_room(startup_fragment, tracker_session.room_store)
        if room_id:
            log.info("Resuming room %s from saved state", room_id)
            tracker_session.connect(room_id)
        try:
            yield
        finally:
            unsubscribe()
            tracker_session.close()

    app = FastAPI(title="Tracker Link", version="0.1.0", lifespan=lifespan)
    app.state.session = tracker_session
    app.state.websocket_hub = websocket_hub

    def get_session() -> TrackerSyncSession:
        return tracker_session

    @app.get("/api/session", response_model=SessionStateResponse)
    def get_state(local_session: TrackerSyncSession = Depends(get_session)) -> SessionStateResponse:
        return SessionStateResponse(state=local_session.snapshot().to_dict())

    @app.post("/api/session/connect", response_model=SessionStateResponse)
    async def post_connect(
        payload: ConnectRequest,
        local_session: TrackerSyncSession = Depends(get_session),
    ) -> SessionStateResponse:
        local_session.connect(payload.room_id)
        return SessionStateResponse(state=local_session.snapshot().to_dict())

    @app.post("/api/session/disconnect", response_model=SessionStateResponse)
    async def post_disconnect(local_session: TrackerSyncSession = Depends(get_session)) -> SessionStateResponse:
        local_session.disconnect()
        return SessionStateResponse(state=local_session.snapshot().to_dict())

    @app.websocket("/ws/session")
    async def session_ws(
        websocket: WebSocket,
        local_session: TrackerSyncSession = Depends(get_session),
    ) -> None:
        await websocket_hub.connect(websocket)
        await websocket_hub.send_state(websocket, local_session.snapshot())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(websocket)

    return app


_default_app: FastAPI | None = None


def __getattr__(name: str) -> Any:
    # Built from the environment on first access, never at import time.
    global _default_app
    if name == "app":
        if _default_app is None:
            _default_app = create_app()
        return _default_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
