"""Exception types raised by the notification broker."""

from __future__ import annotations


class BroadcastError(Exception):
    """Base class for all broker errors."""


class InvalidArgumentError(BroadcastError, ValueError):
    """Raised synchronously when a caller passes an unusable argument."""

    def __init__(self, message: str, argument: str | None = None):
        self.message = message
        self.argument = argument
        super().__init__(self.message)


class BrokerClosedError(BroadcastError, RuntimeError):
    """Raised when publishing through a notification center that was shut down."""

    def __init__(self, message: str = "Notification center has been shut down"):
        self.message = message
        super().__init__(self.message)
