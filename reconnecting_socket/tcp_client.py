"""
TCP transport for a ReconnectingSocket, built on asyncio streams.

    sock = ReconnectingSocket(tcp_hooks("127.0.0.1", 8124, on_data=handle_bytes))
    sock.start()

`on_data(handle, data)` receives every chunk read from the connection; write
back with `handle.write(data)`.
"""
import asyncio
import logging
from typing import Any, Callable, Optional

from reconnecting_socket.handles import TaskHandle
from reconnecting_socket.hooks import HookSet

log = logging.getLogger(__name__)

READ_CHUNK = 64 * 1024

DataCallback = Callable[["TcpHandle", bytes], None]


class TcpHandle(TaskHandle):
    def __init__(self, core: Any, host: str, port: int, on_data: Optional[DataCallback] = None,
                 connect_timeout: float = 30.0):
        self.host = host
        self.port = port
        self.on_data = on_data
        self.connect_timeout = connect_timeout
        self._writer: Optional[asyncio.StreamWriter] = None
        super().__init__(core, f"{host}:{port}")

    def write(self, data: bytes) -> None:
        if self._writer is None or self._writer.is_closing():
            raise ConnectionError(f"{self.label} is not connected")
        self._writer.write(data)

    async def _session(self) -> None:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(self.host, self.port), timeout=self.connect_timeout
        )
        self._writer = writer
        try:
            self.opened()
            while True:
                data = await reader.read(READ_CHUNK)
                if not data:
                    log.debug("%r: connection closed by peer", self)
                    break
                if self.on_data:
                    self.on_data(self, data)
        finally:
            writer.close()

    def _release(self) -> None:
        if self._writer is not None:
            self._writer.close()


def tcp_hooks(
    host: str,
    port: int,
    on_data: Optional[DataCallback] = None,
    on_open: Optional[Callable[[TcpHandle, bool], None]] = None,
    on_close: Optional[Callable[[TcpHandle], None]] = None,
    on_fail: Optional[Callable[[BaseException], None]] = None,
    connect_timeout: float = 30.0,
) -> HookSet:
    def create(core, first_open):
        return TcpHandle(core, host, port, on_data=on_data, connect_timeout=connect_timeout)

    def destroy(handle):
        handle.close()

    return HookSet(create=create, destroy=destroy, on_open=on_open, on_close=on_close, on_fail=on_fail)
