"""
Transport - the boundary used to reach live (physical) devices.

Messages are fire-and-forget: ``send`` never waits for an acknowledgement
and never raises on delivery failure.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from weave.core.logging_utils import get_module_logger

logger = get_module_logger("Transport")

# Verbs the engine sends to live devices.
VERBS = ("on", "show", "play", "call", "wakeup", "reset", "startApp", "killApp")


@runtime_checkable
class Transport(Protocol):
    def send(self, device_id: str, verb: str, payload: Any = None) -> None:
        ...


class NullTransport:
    """Transport used when no proxy server is running; logs and drops."""

    def send(self, device_id: str, verb: str, payload: Any = None) -> None:
        logger.debug("Dropping %s for %s (no transport)", verb, device_id)


__all__ = ["Transport", "NullTransport", "VERBS"]
