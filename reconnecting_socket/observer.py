"""
Typed listener registry for the three event kinds a socket publishes:

- info:  str diagnostic, never actionable
- state: ConnectionState, on every transition
- error: terminal error, once per failure episode

Only the owner holds the ObserverChannel; subscribers get an EventSource view
that can add and remove listeners but cannot publish.
"""
from enum import Enum
import logging
from typing import Any, Callable, Dict, List, Union

log = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventKind(str, Enum):
    INFO = "info"
    STATE = "state"
    ERROR = "error"


def _kind(kind: Union[EventKind, str]) -> EventKind:
    try:
        return EventKind(kind)
    except ValueError:
        raise ValueError(f"unknown event kind {kind!r}; expected one of {[k.value for k in EventKind]}") from None


class ObserverChannel:
    def __init__(self, name: str = ""):
        self.name = name
        self._listeners: Dict[EventKind, List[Listener]] = {kind: [] for kind in EventKind}
        self.view = EventSource(self)

    def subscribe(self, kind: Union[EventKind, str], listener: Listener) -> Callable[[], bool]:
        """Add `listener` for `kind`. Returns a callable that unsubscribes it."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        key = _kind(kind)
        self._listeners[key].append(listener)
        return lambda: self.unsubscribe(key, listener)

    def unsubscribe(self, kind: Union[EventKind, str], listener: Listener) -> bool:
        listeners = self._listeners[_kind(kind)]
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listener_count(self, kind: Union[EventKind, str]) -> int:
        return len(self._listeners[_kind(kind)])

    def publish(self, kind: Union[EventKind, str], payload: Any) -> int:
        """Deliver `payload` to every listener of `kind`; returns how many ran cleanly."""
        delivered = 0
        # copy: listeners may unsubscribe while being notified
        for listener in list(self._listeners[_kind(kind)]):
            try:
                listener(payload)
                delivered += 1
            except Exception:
                log.exception("%s: %s listener %r raised", self.name or "channel", _kind(kind).value, listener)
        return delivered


class EventSource:
    """Read-only subscription view over an ObserverChannel."""

    def __init__(self, channel: ObserverChannel):
        self._channel = channel

    def on(self, kind: Union[EventKind, str], listener: Listener) -> Callable[[], bool]:
        return self._channel.subscribe(kind, listener)

    def off(self, kind: Union[EventKind, str], listener: Listener) -> bool:
        return self._channel.unsubscribe(kind, listener)

    def listener_count(self, kind: Union[EventKind, str]) -> int:
        return self._channel.listener_count(kind)
