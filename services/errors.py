"""Exceptions raised by the monitoring services."""

from __future__ import annotations


class InvalidReading(ValueError):
    """A mandatory measurement is missing or not a finite number."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid sensor value for {field!r}: {reason}.")
        self.field = field
        self.reason = reason


class Unauthorized(PermissionError):
    """The reset credential did not match."""


class DownstreamWriteFailure(RuntimeError):
    """A call to the durable store or the notification sender failed."""

    def __init__(self, operation: str, device_id: str, reason: str) -> None:
        super().__init__(f"{operation} failed for device {device_id!r}: {reason}")
        self.operation = operation
        self.device_id = device_id
        self.reason = reason
