"""
WebSocket transport for a ReconnectingSocket, built on aiohttp.

- WebSocketHandle: one websocket session (connect, receive until closed)
- websocket_hooks: HookSet creating one WebSocketHandle per attempt

`on_message(handle, data)` receives TEXT (str) and BINARY (bytes) payloads.
"""
import asyncio
import logging
from typing import Any, Callable, Optional, Union

import aiohttp

from reconnecting_socket.handles import TaskHandle
from reconnecting_socket.hooks import HookSet

log = logging.getLogger(__name__)

MessageCallback = Callable[["WebSocketHandle", Union[str, bytes]], None]


class WebSocketHandle(TaskHandle):
    def __init__(self, core: Any, url: str, on_message: Optional[MessageCallback] = None,
                 heartbeat: Optional[float] = None, connect_timeout: float = 30.0):
        self.url = url
        self.on_message = on_message
        self.heartbeat = heartbeat
        self.connect_timeout = connect_timeout
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        super().__init__(core, url)

    async def send(self, data: Union[str, bytes]) -> None:
        if self._ws is None or self._ws.closed:
            raise ConnectionError(f"{self.label} is not connected")
        if isinstance(data, bytes):
            await self._ws.send_bytes(data)
        else:
            await self._ws.send_str(data)

    def write(self, data: Union[str, bytes]) -> asyncio.Task:
        """Schedule `send` from synchronous code such as an on_open hook."""
        return asyncio.get_running_loop().create_task(self.send(data))

    async def _session(self) -> None:
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=self.connect_timeout, sock_read=None)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.ws_connect(self.url, heartbeat=self.heartbeat) as ws:
                self._ws = ws
                self.opened()
                async for msg in ws:
                    if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                        if self.on_message:
                            self.on_message(self, msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise ws.exception() or ConnectionError(f"websocket error on {self.url}")
                log.debug("%r: websocket closed (code=%s)", self, ws.close_code)


def websocket_hooks(
    url: str,
    on_message: Optional[MessageCallback] = None,
    on_open: Optional[Callable[[WebSocketHandle, bool], None]] = None,
    on_close: Optional[Callable[[WebSocketHandle], None]] = None,
    on_fail: Optional[Callable[[BaseException], None]] = None,
    heartbeat: Optional[float] = None,
    connect_timeout: float = 30.0,
) -> HookSet:
    def create(core, first_open):
        return WebSocketHandle(core, url, on_message=on_message, heartbeat=heartbeat,
                               connect_timeout=connect_timeout)

    def destroy(handle):
        handle.close()

    return HookSet(create=create, destroy=destroy, on_open=on_open, on_close=on_close, on_fail=on_fail)
