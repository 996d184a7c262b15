# core/errors.py
"""
Error taxonomy for the dispatcher.

Per-message and per-job errors (decode, poll, launch, ack) are logged and
isolated to the message or job they concern. Only FatalConfigError stops
the process, and only at startup.
"""
from typing import Optional


class DispatcherError(Exception):
    """Base class for all dispatcher errors."""


class DecodeError(DispatcherError):
    """Message body is not a notification payload we understand."""

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message)
        self.body = body


class PollError(DispatcherError):
    """Receiving from the queue failed; transient, retried next cycle."""


class AckError(DispatcherError):
    """Deleting a message from the queue failed."""


class LaunchError(DispatcherError):
    """The launch backend rejected a submission."""

    def __init__(self, failure):
        super().__init__(f"{failure.kind.value}: {failure.message}")
        self.failure = failure


class FatalConfigError(DispatcherError):
    """Missing or invalid startup configuration."""
