"""
Reconnecting socket: keeps one caller-defined handle alive.

The caller supplies the transport mechanics as a HookSet; this module decides
when they run. A dead handle is reported to the backoff scheduler, whose timer
brings the socket back through `reopening`, until either a handle opens again
or the configured attempt bound is reached and the socket ends `failed`.
"""
import logging
import random
from typing import Any, Callable, Optional, Union

from reconnecting_socket.backoff import BackoffScheduler
from reconnecting_socket.config import BackoffConfig
from reconnecting_socket.exceptions import BackoffExhaustedError, HookContractError
from reconnecting_socket.hooks import HookSet
from reconnecting_socket.metrics import Counters
from reconnecting_socket.observer import EventKind, EventSource, ObserverChannel
from reconnecting_socket.state import CONNECTING_STATES, ConnectionState
from reconnecting_socket.utils import describe_error, random_name

# states in which a lost handle does not count as a failed attempt
_QUIET_STATES = frozenset({ConnectionState.STOPPED, ConnectionState.CLOSING, ConnectionState.FAILED})


class ReconnectingSocket:
    def __init__(
        self,
        hooks: Any,
        backoff: Optional[Union[BackoffConfig, dict]] = None,
        name: Optional[str] = None,
        name_factory: Callable[[], str] = random_name,
        rng: Optional[random.Random] = None,
        loop: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.hooks = hooks if isinstance(hooks, HookSet) else HookSet.from_object(hooks)
        self.name = name or name_factory()
        self.log = logger or logging.getLogger(__name__)
        if backoff is None or isinstance(backoff, dict):
            backoff = BackoffConfig.from_mapping(backoff)
        self.backoff = BackoffScheduler(
            backoff,
            on_backoff=self._on_backoff,
            on_ready=self._on_ready,
            on_fail=self._on_exhausted,
            rng=rng,
            loop=loop,
            logger=self.log,
        )
        self.metrics = Counters()
        self._channel = ObserverChannel(self.name)

        self._handle = None
        self._state = ConnectionState.STOPPED
        # events reported from inside the create hook, replayed once it returns
        self._creating = False
        self._deferred: list = []
        self._first_open = False
        self._last_error: Optional[BaseException] = None

    def __repr__(self) -> str:
        return f"<ReconnectingSocket {self.name} {self._state.value}>"

    # --- read-only surface ---

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def handle(self) -> Any:
        return self._handle

    @property
    def first_open(self) -> bool:
        return self._first_open

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def attempts(self) -> int:
        return self.backoff.attempts

    @property
    def events(self) -> EventSource:
        return self._channel.view

    def on(self, kind: Union[EventKind, str], listener: Callable[[Any], None]) -> Callable[[], bool]:
        return self._channel.subscribe(kind, listener)

    # --- caller operations ---

    def start(self) -> None:
        if self._state not in (ConnectionState.STOPPED, ConnectionState.FAILED):
            self._info(f"already started ({self._state.value})")
            return
        self._info("starting socket")
        self.backoff.reset()
        self._last_error = None
        self._first_open = True
        self._set_state(ConnectionState.OPENING)
        self._create_handle()

    def stop(self) -> None:
        if self._state is ConnectionState.STOPPED:
            self._info("already stopped")
            return
        self._info("stopping socket")
        if self._handle is not None:
            self._set_state(ConnectionState.CLOSING)
            self._destroy_handle()
        self.backoff.reset()
        self._set_state(ConnectionState.STOPPED)

    # --- callbacks bound to the live handle ---

    def did_open(self, handle: Any = None) -> None:
        if self._defer("did_open", handle=handle):
            return
        if self._is_stale(handle):
            self._info("open from stale handle ignored")
            return
        if self._state not in CONNECTING_STATES:
            self._info(f"unexpected open while {self._state.value}")
            return
        first_open = self._first_open
        self.metrics.increment("opens")
        self._first_open = False
        self.backoff.reset()
        self._set_state(ConnectionState.OPENED)
        self._info("socket opened" if first_open else "socket reopened")
        self._call_hook("on_open", self._handle, first_open)

    def did_close(self, handle: Any = None) -> None:
        if self._defer("did_close", handle=handle):
            return
        if self._is_stale(handle):
            self._info("close from stale handle ignored")
            return
        closed, self._handle = self._handle, None
        self.metrics.increment("closes")
        self._call_hook("on_close", closed)
        self._info("socket closed")
        self._handle_lost()

    def did_error(self, err: BaseException, handle: Any = None) -> None:
        if self._defer("did_error", err, handle=handle):
            return
        if self._is_stale(handle):
            self._info(f"error from stale handle ignored: {describe_error(err)}")
            return
        if self._state in CONNECTING_STATES:
            self._info(f"error during open attempt {self.backoff.attempts + 1}: {describe_error(err)}")
        self.log.info("%s: transient error: %s", self.name, describe_error(err))
        self.metrics.increment("errors")
        self._last_error = err

    # --- internals ---

    def _defer(self, method: str, *args: Any, handle: Any = None) -> bool:
        if not self._creating:
            return False
        self._info(f"{method} during create deferred")
        self._deferred.append((method, args, handle))
        return True

    def _is_stale(self, handle: Any) -> bool:
        if self._handle is None:
            return True
        return handle is not None and handle is not self._handle

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        self.log.debug("%s: state -> %s", self.name, state.value)
        self._channel.publish(EventKind.STATE, state)

    def _info(self, message: str) -> None:
        self.log.debug("%s: %s", self.name, message)
        self._channel.publish(EventKind.INFO, message)

    def _call_hook(self, name: str, *args: Any) -> None:
        hook = getattr(self.hooks, name)
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            self.log.exception("%s: %s hook raised", self.name, name)
            self._info(f"{name} hook raised")

    def _create_handle(self) -> None:
        if self._handle is not None:
            self._info("handle already created")
            return
        self._info("creating new handle")
        self.metrics.increment("creates")
        self._creating = True
        failure = None
        try:
            handle = self.hooks.create(self, self._first_open)
        except OSError as exc:
            handle, failure = None, exc
        finally:
            self._creating = False
            deferred, self._deferred = self._deferred, []
        if failure is not None:
            # the raised error outranks anything reported before it
            self._info(f"create failed: {describe_error(failure)}")
            self.metrics.increment("errors")
            self._last_error = failure
            self._handle_lost()
            return
        if handle is None:
            raise HookContractError("create hook returned no handle", context={"socket": self.name})
        self._handle = handle
        # a close among these detaches the handle, later ones are then stale
        for method, args, reported_by in deferred:
            getattr(self, method)(*args, handle=reported_by)

    def _destroy_handle(self) -> None:
        handle = self._handle
        if handle is None:
            self._info("handle already destroyed")
            return
        # detach first so close events raised by destroy itself are seen as stale
        self._handle = None
        self._info("destroying handle")
        self.metrics.increment("destroys")
        try:
            self.hooks.destroy(handle)
        except Exception:
            self.log.exception("%s: destroy hook raised", self.name)
        self._call_hook("on_close", handle)

    def _handle_lost(self) -> None:
        if self._state in _QUIET_STATES:
            return
        self.backoff.backoff()

    def _reopen(self) -> None:
        self._info("socket reopening")
        self._set_state(ConnectionState.REOPENING)
        if self._handle is not None:
            self._destroy_handle()
        self._create_handle()

    def _fail(self, err: BaseException) -> None:
        if self._handle is not None:
            self._destroy_handle()
        self._set_state(ConnectionState.FAILED)
        self.metrics.increment("failures")
        self.log.error("%s: giving up: %s", self.name, describe_error(err))
        self._call_hook("on_fail", err)
        self._channel.publish(EventKind.ERROR, err)
        self._last_error = None

    # --- scheduler callbacks ---

    def _on_backoff(self, number: int, delay: float) -> None:
        self.metrics.increment("backoffs")
        self._info(f"backing off {delay:.0f} ms (attempt {number})")
        self._set_state(ConnectionState.CLOSED)

    def _on_ready(self, number: int, delay: float) -> None:
        if self._state is not ConnectionState.CLOSED:
            self._info(f"retry timer fired while {self._state.value}; ignored")
            return
        self._info("done waiting")
        self._reopen()

    def _on_exhausted(self, number: int) -> None:
        self._info(f"failed to connect after {number} consecutive tries")
        err = self._last_error
        if err is None:
            err = BackoffExhaustedError(
                f"{self.name}: gave up after {number} attempts",
                context={"attempts": number},
            )
        self._fail(err)
