"""
Custom exceptions for reconnecting-socket.
"""

from typing import Any, Dict, Optional


class ReconnectingSocketError(Exception):
    """Base exception for all reconnecting-socket errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.context = context or {}
        self.cause = cause


class ConfigError(ReconnectingSocketError):
    """Raised when a backoff or socket configuration is invalid."""
    pass


class HookContractError(ReconnectingSocketError):
    """Raised when the supplied hooks break the create/destroy contract."""
    pass


class BackoffError(ReconnectingSocketError):
    """Base exception for backoff scheduler errors."""
    pass


class BackoffInProgressError(BackoffError):
    """Raised when a failure is signalled while a retry is already pending."""
    pass


class BackoffExhaustedError(BackoffError):
    """Terminal error reported when retries ran out without any recorded error."""
    pass
