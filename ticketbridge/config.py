"""
Configuration loading and backend setup.
"""

import os
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

from ticketbridge.printers.base import PrinterBackend
from ticketbridge.printers.cups_adapter import CUPSBackend
from ticketbridge.printers.lp_adapter import LpBackend
from ticketbridge.printers.mock import MockPrinterBackend
from ticketbridge.printers.windows_adapter import WindowsBackend

logger = logging.getLogger(__name__)

# Map backend names to classes
BACKEND_TYPES = {
    "cups": CUPSBackend,
    "lp": LpBackend,
    "windows": WindowsBackend,
    "mock": MockPrinterBackend,
}

DEFAULT_MOCK_PRINTERS = [
    {"name": "Cocina", "default": True, "port": "USB001"},
    {"name": "Barra", "port": "USB002"},
    {"name": "Caja", "port": "USB003"},
]


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from YAML file.

    Looks for config in order:
    1. Explicit path if provided
    2. CONFIG_FILE environment variable
    3. ./config/local.yaml
    4. ./config/default.yaml
    """
    search_paths = []

    if config_path:
        search_paths.append(Path(config_path))

    if env_path := os.environ.get("CONFIG_FILE"):
        search_paths.append(Path(env_path))

    # Default paths relative to project root
    project_root = Path(__file__).parent.parent
    search_paths.extend([
        project_root / "config" / "local.yaml",
        project_root / "config" / "default.yaml",
    ])

    for path in search_paths:
        if path.exists():
            logger.info(f"Loading config from {path}")
            with open(path) as f:
                return yaml.safe_load(f) or {}

    logger.warning("No config file found, using defaults")
    return {}


def get_server_config(config: dict) -> dict:
    """Extract server configuration."""
    server = config.get("server") or {}
    return {
        "host": server.get("host", "0.0.0.0"),
        "port": server.get("port", 3001),
        "debug": server.get("debug", False),
        "cors_origins": server.get("cors_origins", None),
    }


def get_printing_config(config: dict) -> dict:
    """Extract printing configuration."""
    printing = config.get("printing") or {}
    return {
        "backend": printing.get("backend", "auto"),
        "cooldown_sec": printing.get("cooldown_sec", 2.0),
        "history_size": printing.get("history_size", 50),
        "cups_server": printing.get("cups_server", "localhost"),
        "mock_printers": printing.get("mock_printers") or DEFAULT_MOCK_PRINTERS,
        "mock_print_delay": printing.get("mock_print_delay", 0.5),
    }


def get_watcher_config(config: dict) -> dict:
    """Extract printer state watcher configuration."""
    watcher = config.get("watcher") or {}
    return {
        "interval_sec": watcher.get("interval_sec", 5.0),
    }


def resolve_backend_name(name: str, platform: str = sys.platform) -> str:
    """Turn ``auto`` into the platform's native backend."""
    if name != "auto":
        return name
    return "windows" if platform == "win32" else "cups"


def create_backend(config: dict) -> PrinterBackend:
    """
    Create the printer backend from configuration.

    Config format:
        printing:
          backend: cups        # auto | cups | lp | windows | mock
          cups_server: localhost
          mock_printers:
            - name: Cocina
              status: connected
              port: USB001
    """
    printing = get_printing_config(config)
    backend_name = resolve_backend_name(printing["backend"])

    if backend_name not in BACKEND_TYPES:
        raise ValueError(f"Unknown printer backend '{backend_name}'")

    if backend_name == "mock":
        backend_config = {
            "printers": printing["mock_printers"],
            "print_delay": printing["mock_print_delay"],
        }
    else:
        backend_config = {"cups_server": printing["cups_server"]}

    backend = BACKEND_TYPES[backend_name](backend_config)
    if not backend.available:
        logger.warning(f"Printer backend '{backend_name}' is missing its system libraries; printing will fail")
    logger.info(f"Using printer backend: {backend_name}")
    return backend
