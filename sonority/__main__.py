"""
Sonority - Entry Point

Run with: python -m sonority
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sonority.config import SonorityConfig, load_config
from sonority.server import SonorityServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="sonority",
        description="Sonority - a music service for networked speakers",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML config file (default: packaged sonority.toml)",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (overrides [server] host)",
    )

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        help="HTTP port (overrides [server] port)",
    )

    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the catalog SQLite DB (overrides [library] db_path)",
    )

    parser.add_argument(
        "--scan",
        action="store_true",
        help="Scan music folders on startup",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SonorityConfig:
    """Load the config file and apply command line overrides."""
    config = load_config(args.config)
    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.db is not None:
        config.library.db_path = args.db
    if args.scan:
        config.library.scan_on_start = True
    return config


async def run_server(config: SonorityConfig) -> None:
    """Start and run the Sonority server."""
    server = SonorityServer(config)
    await server.run()


def main() -> int:
    """Main entry point for the application."""
    args = parse_args()
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)
    logger.info("Starting Sonority...")

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        logger.error("Could not load config: %s", e)
        return 2

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
