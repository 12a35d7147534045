"""
Ticket Bridge server entry point.
"""

import argparse
import asyncio
import logging
import sys

import uvicorn

from ticketbridge.api.server import create_app
from ticketbridge.config import (
    create_backend,
    get_printing_config,
    get_server_config,
    get_watcher_config,
    load_config,
)
from ticketbridge.printers.base import PrinterBackend
from ticketbridge.startup import print_startup_banner, run_startup_checks

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def list_printers(backend: PrinterBackend) -> None:
    """Print the printers the backend can see and exit."""
    printers = asyncio.run(backend.enumerate())
    if not printers:
        print("No printers found.")
        return

    for printer in printers:
        default = " (default)" if printer.is_default else ""
        port = f" [{printer.port}]" if printer.port else ""
        print(f"  {printer.name}{default}{port}: {printer.status.value}")


def main():
    parser = argparse.ArgumentParser(description="Ticket Bridge print server")
    parser.add_argument(
        "-c", "--config",
        help="Path to config file (default: config/default.yaml)"
    )
    parser.add_argument(
        "--host",
        help="Override host from config"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Override port from config"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="Skip startup checks (not recommended)"
    )
    parser.add_argument(
        "--list-printers",
        action="store_true",
        help="List printers visible to the backend and exit"
    )
    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        sys.exit(1)

    level = (config.get("logging") or {}).get("level")
    if level:
        logging.getLogger().setLevel(str(level).upper())

    # Apply CLI overrides before validation
    if args.host:
        config.setdefault("server", {})["host"] = args.host
    if args.port:
        config.setdefault("server", {})["port"] = args.port
    if args.debug:
        config.setdefault("server", {})["debug"] = True
        logging.getLogger().setLevel(logging.DEBUG)

    # Set up printer backend
    try:
        backend = create_backend(config)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if args.list_printers:
        list_printers(backend)
        return

    # Run startup checks
    if not args.skip_checks:
        run_startup_checks(config)

    server_config = get_server_config(config)
    printing_config = get_printing_config(config)

    # Create app
    app = create_app(
        backend=backend,
        cors_origins=server_config.get("cors_origins"),
        debug=server_config.get("debug", False),
        cooldown_sec=printing_config["cooldown_sec"],
        history_size=printing_config["history_size"],
        watcher_interval_sec=get_watcher_config(config)["interval_sec"],
    )

    # Print startup banner
    print_startup_banner(config, backend.name)

    # Run server
    try:
        uvicorn.run(
            app,
            host=server_config["host"],
            port=server_config["port"],
            log_level="debug" if server_config.get("debug") else "info"
        )
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
