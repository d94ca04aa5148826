import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from weave.cli.common import (
    add_common_cli_arguments,
    component_levels,
    install_signal_handlers,
    positive_float,
    positive_int,
    preset_name,
)
from weave.core.config_manager import get_config_manager
from weave.core.devices.catalog import CapabilityTable
from weave.core.devices.spec_loader import load_device_spec_async
from weave.core.engine import Engine
from weave.core.errors import SpecLoadError
from weave.core.logging_config import configure_logging
from weave.core.logging_utils import get_module_logger
from weave.core.paths import CONFIG_PATH, DEFAULT_SPEC_PATH, HOST_LOG_FILE, ensure_directories
from weave.core.transport.proxy_server import DeviceProxyServer


logger = get_module_logger("WeaveHost")


def _config_path_from_argv(argv: Optional[list[str]]) -> Path:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path, default=None)
    known, _ = pre.parse_known_args(argv)
    return known.config or CONFIG_PATH


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments with config file defaults."""
    config = get_config_manager().load_host_config(_config_path_from_argv(argv))

    parser = argparse.ArgumentParser(
        description="Weave host - device selection and coordination engine"
    )

    parser.add_argument(
        "--spec",
        type=Path,
        default=config.spec_path,
        help=f"Device spec JSON file (default: {DEFAULT_SPEC_PATH.name} if present, else built-in table)",
    )
    parser.add_argument(
        "--preset",
        type=preset_name,
        default=config.emulator_preset,
        help="Emulator preset to populate on startup (e.g. phone-watch-glass)",
    )
    parser.add_argument("--host", type=str, default=config.host, help="Proxy server bind address")
    parser.add_argument("--port", type=positive_int, default=config.port, help="Proxy server port")
    parser.add_argument(
        "--time-range",
        dest="time_range_ms",
        type=positive_float,
        default=config.time_range_ms,
        help="Default correlation window in milliseconds",
    )
    parser.add_argument(
        "--drop-live",
        dest="keep_live",
        action="store_false",
        default=config.keep_live,
        help="Drop live devices when applying the emulator preset",
    )
    parser.add_argument(
        "--log-components",
        type=component_levels,
        default=config.log_components,
        help="Per-component log levels, e.g. 'EventManager=debug,Selection=debug'",
    )

    add_common_cli_arguments(
        parser,
        default_log_level=config.log_level,
        default_console_output=config.console_output,
    )

    return parser.parse_args(argv)


async def load_table(spec: Optional[Path]) -> CapabilityTable:
    """Capability table from ``spec``, the default spec file, or the built-in table."""
    path = spec
    if path is None and DEFAULT_SPEC_PATH.exists():
        path = DEFAULT_SPEC_PATH
    if path is None:
        logger.info("No device spec given, using the built-in capability table")
        return CapabilityTable.builtin()
    logger.info("Loading device spec from %s", path)
    return await load_device_spec_async(path)


async def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)

    ensure_directories()
    log_file = args.log_file or HOST_LOG_FILE
    configure_logging(
        args.log_level,
        force=True,
        console=args.console_output,
        log_file=log_file,
        component_levels=args.log_components,
    )

    logger.info("=" * 60)
    logger.info("Weave host starting")
    logger.info("=" * 60)
    logger.info("Log file: %s", log_file)

    table = await load_table(args.spec)
    engine = Engine(table=table, time_range_ms=args.time_range_ms)
    if args.preset:
        engine.apply_preset(args.preset, keep_live=args.keep_live)

    server = DeviceProxyServer(host=args.host, port=args.port)
    server.set_event_handler(engine.handle_event)
    engine.transport = server

    stop_event = asyncio.Event()
    install_signal_handlers(stop_event.set)

    await server.start()
    try:
        await stop_event.wait()
    finally:
        await server.stop()
        logger.info("=" * 60)
        logger.info("Weave host stopped")
        logger.info("=" * 60)


def run(argv: Optional[list[str]] = None) -> int:
    try:
        asyncio.run(main(argv))
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except SpecLoadError as exc:
        print(f"Cannot start: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:  # pragma: no cover - fatal guard
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
