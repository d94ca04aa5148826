"""Error kinds reported by the selection and coordination core.

None of these abort the host: the fluent surface catches them, logs the
kind and hands back a usable value so call chains keep working.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    INVALID_SELECTOR = "InvalidSelector"
    NO_DEVICE_AVAILABLE = "NoDeviceAvailable"
    UNKNOWN_CAPABILITY = "UnknownCapability"
    DUPLICATE_DEVICE_ID = "DuplicateDeviceId"
    INVALID_SPEC = "InvalidSpec"


class WeaveError(RuntimeError):
    """Base class for recoverable engine errors."""

    kind: ErrorKind = ErrorKind.INVALID_SPEC

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class InvalidSelectorError(WeaveError):
    """Raised when a selector string cannot be compiled."""

    kind = ErrorKind.INVALID_SELECTOR

    def __init__(self, selector: str, reason: str, position: int | None = None) -> None:
        where = f" at {position}" if position is not None else ""
        super().__init__(f"{reason}{where} in selector {selector!r}")
        self.selector = selector
        self.reason = reason
        self.position = position


class DuplicateDeviceIdError(WeaveError):
    """Raised when a device id is already present in the registry."""

    kind = ErrorKind.DUPLICATE_DEVICE_ID

    def __init__(self, device_id: str) -> None:
        super().__init__(f"device {device_id!r} is already registered")
        self.device_id = device_id


class SpecLoadError(WeaveError):
    """Raised when a device spec file is missing or malformed."""

    kind = ErrorKind.INVALID_SPEC


__all__ = [
    "ErrorKind",
    "WeaveError",
    "InvalidSelectorError",
    "DuplicateDeviceIdError",
    "SpecLoadError",
]
