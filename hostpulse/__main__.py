"""
Entry point for HostPulse.

Usage:
    python -m hostpulse /path/to/config.conf
    python -m hostpulse --once --indent 2
    python -m hostpulse --help
"""

import argparse
import asyncio
import sys
from pathlib import Path

from . import __version__
from .aggregator import CollectionError, collect_snapshot
from .app import merge_log_config, run_app
from .config.loader import ConfigError, ConfigLoader
from .config.schema import Config
from .const import APP_NAME
from .logging import LogConfig, get_logger, setup_logging
from .utils.netif import format_interfaces, get_local_ips, get_network_interfaces

logger = get_logger("main")

DEFAULT_CONFIG = "/etc/hostpulse/config.conf"


def load_optional_config(config_path: Path, explicit: bool) -> Config:
    """
    Load the config file, or defaults when the default path is absent.

    Raises:
        ConfigError: If an explicitly given file is missing or invalid
    """
    if not explicit and not config_path.exists():
        logger.debug(f"{config_path} not found, using defaults")
        return Config()
    return ConfigLoader().load_file(config_path)


def validate_config(config_path: str) -> int:
    """Validate configuration file and print warnings."""
    try:
        loader = ConfigLoader()
        config = loader.load_file(config_path)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    warnings = loader.validate(config)
    if warnings:
        print(f"Configuration warnings ({len(warnings)}):")
        for warning in warnings:
            print(f"  - {warning}")

    print("\nConfiguration summary:")
    for key, value in config.summary().items():
        print(f"  {key}: {value}")

    print("\nConfiguration is valid!")
    return 0


def print_snapshot(config: Config, indent: int | None) -> int:
    """Collect one snapshot and print it as JSON on stdout."""
    try:
        snapshot = collect_snapshot(config.collector)
    except CollectionError as e:
        logger.error(f"Collection failed: {e}")
        return 1
    print(snapshot.to_json(indent=indent))
    return 0


def print_interfaces() -> int:
    interfaces = get_network_interfaces()
    print("Network interfaces:")
    print(format_interfaces(interfaces))
    print(f"Reachable at: {', '.join(get_local_ips(interfaces))}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostpulse",
        description=f"{APP_NAME}: hardware telemetry snapshots published over MQTT",
    )

    parser.add_argument(
        "config",
        nargs="?",
        help=f"Path to configuration file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Collect a single snapshot, print it as JSON and exit",
    )
    parser.add_argument(
        "--indent",
        type=int,
        metavar="N",
        help="Indent JSON output by N spaces (with --once)",
    )
    parser.add_argument(
        "--interfaces",
        action="store_true",
        help="List LAN interfaces and exit",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging (INFO level)")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug logging (DEBUG level)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (only errors)")
    parser.add_argument("--log-file", metavar="PATH", help="Write logs to file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def log_config_from_args(args: argparse.Namespace) -> LogConfig:
    log_config = LogConfig()

    if args.debug:
        log_config.console_level = "debug"
    elif args.verbose:
        log_config.console_level = "info"
    elif args.quiet:
        log_config.console_level = "error"
    else:
        log_config.console_level = "warning"

    if args.no_color:
        log_config.console_colors = False

    if args.log_file:
        log_config.file_enabled = True
        log_config.file_path = args.log_file

    return log_config


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    explicit = args.config is not None
    config_path = Path(args.config or DEFAULT_CONFIG)

    log_config = log_config_from_args(args)
    setup_logging(log_config)

    if args.interfaces:
        return print_interfaces()

    if args.validate:
        return validate_config(str(config_path))

    if args.once:
        try:
            config = load_optional_config(config_path, explicit)
        except ConfigError as e:
            logger.error(f"Configuration error: {e}")
            return 1
        setup_logging(merge_log_config(log_config, config.logging))
        return print_snapshot(config, args.indent)

    if not config_path.exists():
        print(f"Configuration file not found: {config_path}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_app(str(config_path), cli_log_config=log_config))
        return 0
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
