"""
Connection states shared by the lifecycle core, the health endpoint and the CLI.
"""

from enum import Enum


class ConnectionState(str, Enum):
    STOPPED = "stopped"
    OPENING = "opening"
    OPENED = "opened"
    CLOSING = "closing"
    CLOSED = "closed"
    REOPENING = "reopening"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


# states in which a handle is still being established
CONNECTING_STATES = frozenset({ConnectionState.OPENING, ConnectionState.REOPENING})
