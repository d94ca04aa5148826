from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Callable, Optional

from weave.core.devices.catalog import EMULATOR_PRESETS
from weave.core.logging_config import parse_component_levels


LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def add_common_cli_arguments(
    parser: argparse.ArgumentParser,
    *,
    default_log_level: str = "info",
    default_console_output: bool = True,
    include_config: bool = True,
) -> None:
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=default_log_level,
        help="Logging verbosity",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write logs (default: logs/weave.log)",
    )

    if include_config:
        parser.add_argument(
            "--config",
            type=Path,
            default=None,
            help="Configuration file to read instead of config.txt",
        )

    console_group = parser.add_mutually_exclusive_group()
    console_group.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=default_console_output,
        help="Also log to console (in addition to file)",
    )
    console_group.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only (no console output)",
    )


def preset_name(value: str) -> str:
    name = value.strip().lower()
    if name not in EMULATOR_PRESETS:
        raise argparse.ArgumentTypeError(
            f"Unknown preset '{value}'. Available presets: {', '.join(EMULATOR_PRESETS)}"
        )
    return name


def component_levels(value: str) -> dict[str, int]:
    try:
        return parse_component_levels(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _positive_number(value: str, typ: type, name: str):
    """Generic positive number validator for argparse."""
    try:
        parsed = typ(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Value must be a {name}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed

def positive_int(value: str) -> int:
    return _positive_number(value, int, "integer")

def positive_float(value: str) -> float:
    return _positive_number(value, float, "number")


def install_signal_handlers(
    callback: Callable[[], None],
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> None:
    """Run ``callback`` on SIGINT/SIGTERM where the loop supports it."""
    loop = loop or asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, callback)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler


__all__ = [
    "LOG_LEVELS",
    "add_common_cli_arguments",
    "preset_name",
    "component_levels",
    "positive_int",
    "positive_float",
    "install_signal_handlers",
]
