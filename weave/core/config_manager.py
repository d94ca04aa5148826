"""
Host configuration files.

Configuration is plain ``key = value`` text (``#`` starts a comment, values
may be quoted). The host reads ``config.txt`` at startup; CLI flags then
override what it says. When the project checkout is read-only, writes are
redirected to a per-user override file under ``WEAVE_STATE_DIR`` that is
merged back in on every read.
"""

import asyncio
import errno
import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import aiofiles

from weave.core.devices.types import DEFAULT_TIME_RANGE_MS
from weave.core.logging_utils import get_module_logger
from .paths import PROJECT_ROOT, USER_CONFIG_OVERRIDES_DIR


logger = get_module_logger("ConfigManager")

TRUE_VALUES = ('true', '1', 'yes', 'on')


def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parse ``key = value`` lines; later keys win."""
    config: Dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = (part.strip() for part in line.split('=', 1))
        value = value.split('#', 1)[0].strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        config[key] = value
    return config


def _format_value(value: Any) -> str:
    return str(value).lower() if isinstance(value, bool) else str(value)


@dataclass
class HostConfig:
    """Typed view of the host's ``config.txt``."""
    spec_path: Optional[Path] = None
    host: str = "127.0.0.1"
    port: int = 9999
    log_level: str = "info"
    console_output: bool = True
    log_components: str = ""
    time_range_ms: float = float(DEFAULT_TIME_RANGE_MS)
    emulator_preset: Optional[str] = None
    keep_live: bool = True
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, config: Dict[str, str], manager: "ConfigManager") -> "HostConfig":
        defaults = cls()
        known = {name for name in cls.__dataclass_fields__ if name != "extra"}
        spec_path = manager.get_str(config, "spec_path")
        return cls(
            spec_path=Path(spec_path) if spec_path else None,
            host=manager.get_str(config, "host", defaults.host),
            port=manager.get_int(config, "port", defaults.port),
            log_level=manager.get_str(config, "log_level", defaults.log_level).lower(),
            console_output=manager.get_bool(config, "console_output", defaults.console_output),
            log_components=manager.get_str(config, "log_components"),
            time_range_ms=manager.get_float(config, "time_range_ms", defaults.time_range_ms),
            emulator_preset=manager.get_str(config, "emulator_preset") or None,
            keep_live=manager.get_bool(config, "keep_live", defaults.keep_live),
            extra={k: v for k, v in config.items() if k not in known},
        )


class ConfigManager:
    """Reads and writes host configuration files, with per-user overrides."""

    def __init__(self, overrides_dir: Optional[Path] = None):
        self._overrides_dir = overrides_dir or USER_CONFIG_OVERRIDES_DIR
        try:
            self._project_root = PROJECT_ROOT.resolve()
        except OSError:  # pragma: no cover - unresolvable checkout
            self._project_root = PROJECT_ROOT

    # ------------------------------------------------------------------
    # Override files

    def override_path(self, config_path: Path) -> Path:
        """Where writes to ``config_path`` go when it cannot be written."""
        try:
            relative = config_path.resolve().relative_to(self._project_root)
        except ValueError:
            digest = hashlib.sha1(str(config_path).encode('utf-8')).hexdigest()[:10]
            stem = re.sub(r'[^a-zA-Z0-9._-]+', '_', config_path.stem or 'config')
            relative = Path('external') / f"{stem}_{digest}{config_path.suffix or '.txt'}"
        return self._overrides_dir / relative

    def _read_overrides(self, config_path: Path) -> Dict[str, str]:
        path = self.override_path(config_path)
        if not path.exists():
            return {}
        try:
            return parse_config_lines(path.read_text(encoding='utf-8').splitlines())
        except OSError as exc:
            logger.warning("Failed to read override config %s: %s", path, exc)
            return {}

    def _write_overrides(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        path = self.override_path(config_path)
        merged = self._read_overrides(config_path)
        merged.update({key: _format_value(value) for key, value in updates.items()})
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as fh:
                fh.writelines(f"{key} = {merged[key]}\n" for key in sorted(merged))
        except OSError as exc:
            logger.error("Failed to write config override %s: %s", path, exc)
            return False
        logger.info("Config %s is read-only, stored changes in %s", config_path, path)
        return True

    # ------------------------------------------------------------------
    # Reading

    def read_config(self, config_path: Path) -> Dict[str, str]:
        config: Dict[str, str] = {}
        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as fh:
                    config = parse_config_lines(fh)
            except OSError as exc:
                logger.error("Failed to read config %s: %s", config_path, exc)
        config.update(self._read_overrides(config_path))
        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version for use in async contexts."""
        config: Dict[str, str] = {}
        if await asyncio.to_thread(config_path.exists):
            try:
                async with aiofiles.open(config_path, 'r', encoding='utf-8') as fh:
                    config = parse_config_lines(await fh.readlines())
            except OSError as exc:
                logger.error("Failed to read config %s: %s", config_path, exc)
        config.update(await asyncio.to_thread(self._read_overrides, config_path))
        return config

    def load_host_config(self, config_path: Path) -> HostConfig:
        return HostConfig.from_mapping(self.read_config(config_path), self)

    async def load_host_config_async(self, config_path: Path) -> HostConfig:
        return HostConfig.from_mapping(await self.read_config_async(config_path), self)

    # ------------------------------------------------------------------
    # Writing

    def write_config(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        """Rewrite ``updates`` into ``config_path`` in place, appending new keys."""
        if not config_path.exists():
            logger.error("Config file not found: %s", config_path)
            return False

        try:
            with open(config_path, 'r', encoding='utf-8') as fh:
                lines = fh.readlines()

            pending = dict(updates)
            for idx, line in enumerate(lines):
                stripped = line.strip()
                if not stripped or stripped.startswith('#') or '=' not in stripped:
                    continue
                key = stripped.split('=', 1)[0].strip()
                if key in pending:
                    indent = line[:len(line) - len(line.lstrip())]
                    lines[idx] = f"{indent}{key} = {_format_value(pending.pop(key))}\n"
            lines.extend(f"{key} = {_format_value(value)}\n" for key, value in pending.items())

            with open(config_path, 'w', encoding='utf-8') as fh:
                fh.writelines(lines)
        except OSError as exc:
            if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EROFS):
                return self._write_overrides(config_path, updates)
            logger.error("Failed to write config %s: %s", config_path, exc, exc_info=True)
            return False

        self.override_path(config_path).unlink(missing_ok=True)
        return True

    # ------------------------------------------------------------------
    # Typed getters

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default
        return config[key].lower() in TRUE_VALUES

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        try:
            return int(config[key]) if key in config else default
        except ValueError:
            logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        try:
            return float(config[key]) if key in config else default
        except ValueError:
            logger.warning("Invalid float value for %s: %s, using default %s", key, config[key], default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
