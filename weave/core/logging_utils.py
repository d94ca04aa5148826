"""Logging helpers for the Weave engine.

Every module logs through ``get_module_logger("<Component>")``. Records go to
stdlib loggers under the ``weave`` namespace and carry a ``[Component]``
prefix. Recoverable engine errors are logged with ``report`` so the message
starts with the ErrorKind value and the record carries an ``error_kind``
attribute that handlers can filter on.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from weave.core.errors import ErrorKind, WeaveError

NAMESPACE = "weave"
DEFAULT_COMPONENT = "Core"

# Level each recoverable error kind is reported at.
KIND_LEVELS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_SELECTOR: logging.ERROR,
    ErrorKind.NO_DEVICE_AVAILABLE: logging.ERROR,
    ErrorKind.UNKNOWN_CAPABILITY: logging.WARNING,
    ErrorKind.DUPLICATE_DEVICE_ID: logging.ERROR,
    ErrorKind.INVALID_SPEC: logging.WARNING,
}


def logger_name(component: Optional[str]) -> str:
    """Full stdlib logger name for a component (``Selection`` -> ``weave.Selection``)."""
    if not component:
        return NAMESPACE
    if component == NAMESPACE or component.startswith(f"{NAMESPACE}."):
        return component
    return f"{NAMESPACE}.{component}"


class StructuredLogger:
    """Component-prefixed facade over a stdlib logger."""

    __slots__ = ("_logger", "_component")

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        self._logger = logger
        if component is None:
            component = logger.name[len(NAMESPACE):].lstrip(".") if logger.name.startswith(NAMESPACE) else logger.name
        self._component = component or DEFAULT_COMPONENT

    def __getattr__(self, item: str) -> Any:
        # isEnabledFor, setLevel, handlers, ... come from the wrapped logger
        return getattr(self._logger, item)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"StructuredLogger({self._logger.name!r})"

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    # ------------------------------------------------------------------
    # Formatting

    def _compose(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} | args={' '.join(str(arg) for arg in args)}"
        prefix = f"[{self._component}]"
        return text if text.startswith(prefix) else f"{prefix} {text}"

    # ------------------------------------------------------------------
    # Logging API

    def log(self, level: int, message: object, *args, **kwargs) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self._compose(message, args), **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self.log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self.log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self.log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self.log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, message, *args, **kwargs)

    def report(
        self,
        kind: Union[ErrorKind, WeaveError],
        message: object = "",
        *args,
        **kwargs,
    ) -> None:
        """Log a recoverable engine error as ``<Kind>: message``.

        ``kind`` may be an ErrorKind, or a caught WeaveError whose own message
        is used.
        """
        if isinstance(kind, WeaveError):
            kind, message, args = kind.kind, kind.message, ()
        extra = dict(kwargs.pop("extra", None) or {})
        extra.setdefault("error_kind", kind.value)
        self.log(KIND_LEVELS.get(kind, logging.ERROR), f"{kind.value}: {message}", *args, extra=extra, **kwargs)


def get_module_logger(component: Optional[str] = None) -> StructuredLogger:
    """Structured logger for ``component`` in the weave namespace."""
    return StructuredLogger(logging.getLogger(logger_name(component)))


__all__ = ["KIND_LEVELS", "StructuredLogger", "get_module_logger", "logger_name"]
