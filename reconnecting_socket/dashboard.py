import asyncio
import json
import logging
import time
from typing import Any, Callable, List, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from reconnecting_socket.observer import EventKind
from reconnecting_socket.utils import describe_error

log = logging.getLogger(__name__)


class Broadcaster:
    """
    Fans socket events out to the websocket clients of /ws/events.

    Listeners fire synchronously, so events go in through submit(), which runs
    publish() as a task and holds on to it until it finishes.
    """

    def __init__(self):
        self._clients: Set[Any] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self._clients.add(ws)

    def disconnect(self, ws: WebSocket):
        self._clients.discard(ws)

    def submit(self, message: dict, loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Task:
        loop = loop or asyncio.get_running_loop()
        task = loop.create_task(self.publish(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self):
        """Wait until every submitted message has been sent."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    async def publish(self, message: dict):
        text = json.dumps(message, default=str)
        dead = []
        for ws in list(self._clients):
            try:
                await ws.send_text(text)
            except Exception:
                log.debug("dropping dashboard client %r", ws, exc_info=True)
                dead.append(ws)
        self._clients.difference_update(dead)


def event_message(name: str, kind: EventKind, payload: Any) -> dict:
    if kind is EventKind.ERROR:
        payload = describe_error(payload)
    elif kind is EventKind.STATE:
        payload = payload.value
    return {"socket": name, "event": kind.value, "data": payload, "ts": int(time.time() * 1000)}


def attach(socket: Any, broadcaster: Broadcaster) -> List[Callable[[], bool]]:
    """
    Forward a socket's state and error events to the broadcaster.
    Must be called with the socket's event loop running. Returns unsubscribe callables.
    """
    loop = asyncio.get_running_loop()

    def forward(kind: EventKind):
        def listener(payload):
            broadcaster.submit(event_message(socket.name, kind, payload), loop)
        return listener

    return [socket.on(kind, forward(kind)) for kind in (EventKind.STATE, EventKind.ERROR)]


def build_router(broadcaster: Broadcaster) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/events")
    async def ws_events(ws: WebSocket):
        """
        WebSocket endpoint streaming socket state/error events.
        Receives no messages; only server->client pushes.
        """
        await broadcaster.connect(ws)
        try:
            while True:
                # keep connection alive; ignore incoming messages
                await ws.receive_text()
        except WebSocketDisconnect:
            log.debug("dashboard client left")
        finally:
            broadcaster.disconnect(ws)

    return router
