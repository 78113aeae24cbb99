"""
Thread-safe in-memory counters kept per reconnecting socket.
Counters:
- creates, destroys
- opens, closes
- errors, backoffs, failures

Provides increment(counter, n=1), get(counter) and snapshot().
"""
import threading
from typing import Dict

COUNTERS = ("creates", "destroys", "opens", "closes", "errors", "backoffs", "failures")


class Counters:
    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = dict.fromkeys(COUNTERS, 0)

    def increment(self, name: str, n: int = 1) -> None:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = 0
            self._counters[name] += int(n)

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

