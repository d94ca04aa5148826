"""
Event Manager - correlates per-device occurrences into logical events.

One manager exists per ``Selection.on(event_type, fn)`` call. At creation
it snapshots the selection's member ids into slots; each slot remembers
the last timestamp and value reported by that member.

- default: every occurrence fires the callback directly.
- all: the callback fires once every slot holds an occurrence and the
  spread between the oldest and newest slot timestamp is within the
  selection's time range.
- combine: same window rule, plus ``tap:button`` fires immediately.

The window is only evaluated when an occurrence arrives; nothing expires
on a timer. Slots are not cleared after firing, so a later occurrence can
fire again against the other members' earlier values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Sequence

from weave.core.devices.events import Event
from weave.core.devices.types import TAP_BUTTON_EVENT, SelectionMode
from weave.core.logging_utils import get_module_logger

if TYPE_CHECKING:
    from weave.core.devices.device import Device
    from weave.core.selection import Selection

logger = get_module_logger("EventManager")

EventCallback = Callable[[Event], Any]


class EventManager:
    """Correlation state for one (selection, event type, callback)."""

    def __init__(
        self,
        selection: "Selection",
        event_type: str,
        fn: EventCallback,
        devices: Sequence["Device"] | None = None,
    ):
        self.selection = selection
        self.event_type = event_type
        self.fn = fn

        # Slots cover the subscribed devices, which combine mode narrows
        # to members that can raise the event.
        members = list(devices) if devices is not None else selection.devices
        self.device_ids: list[str] = [d.id for d in members]
        self.timestamps: list[float | None] = [None] * len(members)
        self.values: list[Any] = [None] * len(members)

    def device_num(self) -> int:
        """How many devices this manager's events span (orders listeners)."""
        if self.selection.mode is SelectionMode.DEFAULT:
            return 1
        return self.selection.size()

    def event_triggered(self, event: Event) -> bool:
        """Handle one occurrence. Returns False only for an unknown mode."""
        mode = self.selection.mode

        if mode is SelectionMode.DEFAULT:
            self._fire(event)
            return True

        if mode is SelectionMode.ALL:
            if self._record(event):
                self._fire(self._aggregate(tuple(self.values), event.timestamp))
            return True

        if mode is SelectionMode.COMBINE:
            in_window = self._record(event)
            if in_window or event.event_type == TAP_BUTTON_EVENT:
                self._fire(self._aggregate(tuple(event.values), event.timestamp))
            return True

        return False

    # =========================================================================
    # Internals
    # =========================================================================

    def _record(self, event: Event) -> bool:
        """Store the occurrence in its slot and check the window."""
        device = getattr(event, "device", None)
        if device is None or device.id not in self.device_ids:
            return False

        idx = self.device_ids.index(device.id)
        self.timestamps[idx] = event.timestamp
        self.values[idx] = event.values[0] if event.values else None

        if any(ts is None for ts in self.timestamps):
            return False
        spread = max(self.timestamps) - min(self.timestamps)
        return spread <= self.selection.option.time_range

    def _aggregate(self, values: tuple, timestamp: float) -> Event:
        return Event(
            devices=self.selection.snapshot(),
            event_type=self.event_type,
            timestamp=timestamp,
            values=values,
        )

    def _fire(self, event: Event) -> None:
        try:
            self.fn(event)
        except Exception as e:
            logger.exception(f"Error in {self.event_type} callback: {e}")

    def __repr__(self) -> str:
        return (
            f"EventManager(event_type={self.event_type!r}, "
            f"mode={self.selection.mode.value}, devices={self.device_ids})"
        )


__all__ = ["EventManager", "EventCallback"]
