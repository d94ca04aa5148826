"""Centralized path constants for the Weave host."""

from __future__ import annotations

import os
from pathlib import Path

# Project/package roots
PROJECT_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = PROJECT_ROOT / "weave"

# Configuration
CONFIG_PATH = PROJECT_ROOT / "config.txt"
DEFAULT_SPEC_PATH = PROJECT_ROOT / "device" / "deviceSpec.json"

# Logging directories
LOGS_DIR = PROJECT_ROOT / "logs"
HOST_LOG_FILE = LOGS_DIR / "weave.log"

# User-specific state (allows running from read-only project directories)
_USER_STATE_ENV = os.environ.get("WEAVE_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".weave")
USER_CONFIG_OVERRIDES_DIR = USER_STATE_DIR / "config_overrides"


def ensure_directories() -> None:
    """Create necessary directories if they don't exist."""

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    USER_CONFIG_OVERRIDES_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    'PROJECT_ROOT',
    'PACKAGE_ROOT',
    'CONFIG_PATH',
    'DEFAULT_SPEC_PATH',
    'LOGS_DIR',
    'HOST_LOG_FILE',
    'USER_STATE_DIR',
    'USER_CONFIG_OVERRIDES_DIR',
    'ensure_directories',
]
