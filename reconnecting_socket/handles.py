"""
Handle backed by a single asyncio task.

Subclasses implement `_session()`: connect, call `self.opened()` once the
transport is usable, then consume until the connection ends (return) or breaks
(raise). The task reports error/close to the core tagged with the handle, so a
late event from a replaced handle is ignored. `close()` cancels the task and
silences it: a destroyed handle never reports back.
"""
import asyncio
import logging
from typing import Any

log = logging.getLogger(__name__)


class TaskHandle:
    def __init__(self, core: Any, label: str = ""):
        self.core = core
        self.label = label or type(self).__name__
        self.destroyed = False
        self.connected = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"

    @property
    def done(self) -> bool:
        return self._task.done()

    def opened(self) -> None:
        self.connected = True
        if not self.destroyed:
            self.core.did_open(handle=self)

    def close(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        self._release()
        self._task.cancel()

    async def wait_closed(self) -> None:
        await asyncio.wait({self._task})

    async def _session(self) -> None:
        raise NotImplementedError

    def _release(self) -> None:
        """Drop transport resources synchronously; called by close()."""

    async def _run(self) -> None:
        try:
            await self._session()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.debug("%r: session ended with %r", self, exc)
            if not self.destroyed:
                self.core.did_error(exc, handle=self)
        finally:
            self.connected = False
            if not self.destroyed:
                self.core.did_close(handle=self)
