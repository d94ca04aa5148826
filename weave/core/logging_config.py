"""Root logging setup for the Weave host.

Library modules never touch handlers; only the host process calls
``configure_logging``. Component loggers (``weave.Selection``,
``weave.EventManager``, ...) can be given their own levels so a single
subsystem can be traced without turning the whole host up to DEBUG.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from weave.core.logging_utils import logger_name

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 500 * 1024
LOG_BACKUP_COUNT = 2

# Third-party loggers that are only interesting when they fail.
QUIET_LOGGERS = ("aiohttp.access", "aiohttp.server")

LevelLike = Union[int, str]

_configured = False


def coerce_level(level: LevelLike) -> int:
    """``"debug"`` / ``"DEBUG"`` / ``10`` -> 10. Raises ValueError for unknown names."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def parse_component_levels(text: str) -> dict[str, int]:
    """Parse ``"Selection=debug, EventManager=info"`` into component levels."""
    levels: dict[str, int] = {}
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue
        component, sep, level = entry.partition("=")
        if not sep or not component.strip():
            raise ValueError(f"Expected COMPONENT=LEVEL, got '{entry}'")
        levels[component.strip()] = coerce_level(level)
    return levels


def _file_handler(path: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")


def configure_logging(
    level: LevelLike = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
    component_levels: Optional[Mapping[str, LevelLike]] = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Install the host's console and rotating-file handlers on the root logger.

    Args:
        level: Root level (int or name such as "info").
        force: Rebuild handlers even if logging was already configured.
        console: Emit records to stdout.
        log_file: Path for a rotating log file, or None.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.
        component_levels: Per-component overrides, e.g. {"EventManager": "debug"}.
        quiet_loggers: Loggers raised to ERROR.
    """
    global _configured
    root = logging.getLogger()
    root_level = coerce_level(level)

    overrides = {logger_name(name): coerce_level(lvl) for name, lvl in (component_levels or {}).items()}
    # Handlers must pass records from components traced below the root level.
    handler_level = min([root_level, *overrides.values()])

    if force or not _configured:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            with contextlib.suppress(Exception):
                handler.close()

        handlers: list[logging.Handler] = []
        if console:
            handlers.append(logging.StreamHandler(sys.stdout))
        if log_file:
            handlers.append(_file_handler(Path(log_file), max_bytes, backup_count))
        if not handlers:
            handlers.append(logging.NullHandler())

        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)
        _configured = True

    for handler in root.handlers:
        handler.setLevel(handler_level)
    root.setLevel(root_level)

    for name, component_level in overrides.items():
        logging.getLogger(name).setLevel(component_level)
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.ERROR)


__all__ = [
    "configure_logging",
    "coerce_level",
    "parse_component_levels",
    "LOG_FORMAT",
    "LOG_DATEFMT",
]
