"""
reconnecting-socket: keep one caller-defined connection alive with timed, backed-off reconnects.
"""
from reconnecting_socket.api import create_app
from reconnecting_socket.backoff import BackoffScheduler
from reconnecting_socket.config import BackoffConfig
from reconnecting_socket.core import ReconnectingSocket
from reconnecting_socket.exceptions import (
    BackoffError,
    BackoffExhaustedError,
    BackoffInProgressError,
    ConfigError,
    HookContractError,
    ReconnectingSocketError,
)
from reconnecting_socket.hooks import HookSet
from reconnecting_socket.observer import EventKind, EventSource, ObserverChannel
from reconnecting_socket.state import ConnectionState

__all__ = [
    "BackoffConfig",
    "BackoffError",
    "BackoffExhaustedError",
    "BackoffInProgressError",
    "BackoffScheduler",
    "ConfigError",
    "ConnectionState",
    "EventKind",
    "EventSource",
    "HookContractError",
    "HookSet",
    "ObserverChannel",
    "ReconnectingSocket",
    "ReconnectingSocketError",
    "create_app",
]
