"""
Startup checks and validation.

Run before starting the server to catch configuration issues early.
"""

import importlib.util
import logging
import socket
import sys
from typing import Optional

from ticketbridge.config import BACKEND_TYPES, get_printing_config, get_server_config

logger = logging.getLogger(__name__)

# Optional system bindings per backend: distribution name -> import name
OPTIONAL_DEPENDENCIES = {
    "pycups": "cups",
    "pywin32": "win32print",
}


def check_port_available(host: str, port: int) -> tuple[bool, Optional[str]]:
    """
    Check if a port is available for binding.

    Returns:
        (True, None) if available
        (False, error_message) if not
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True, None
    except OSError as e:
        if e.errno == 10048 or e.errno == 98:  # Windows / Linux "address in use"
            return False, f"Port {port} is already in use. Another service may be running on this port."
        elif e.errno == 10049 or e.errno == 99:  # Can't assign address
            return False, f"Cannot bind to {host}:{port}. Check if the host address is valid."
        elif e.errno == 10013 or e.errno == 13:  # Permission denied
            return False, f"Permission denied for port {port}. Ports below 1024 require admin/root privileges."
        else:
            return False, f"Cannot bind to {host}:{port}: {e}"
    finally:
        sock.close()


def validate_config(config: dict) -> tuple[list[str], list[str]]:
    """
    Validate configuration.

    Returns:
        (errors, warnings); both empty if all good
    """
    errors = []
    warnings = []

    port = get_server_config(config)["port"]
    if not isinstance(port, int) or isinstance(port, bool) or port < 1 or port > 65535:
        errors.append(f"Invalid port: {port}. Must be between 1 and 65535.")
    elif port < 1024:
        warnings.append(f"Port {port} is a privileged port. Consider using a port >= 1024.")

    printing = get_printing_config(config)
    backend = printing["backend"]
    if backend != "auto" and backend not in BACKEND_TYPES:
        errors.append(f"Unknown printer backend '{backend}'. Use one of: auto, {', '.join(BACKEND_TYPES)}.")
    elif backend == "mock":
        warnings.append("Using mock printers. Nothing will be printed.")

    cooldown = printing["cooldown_sec"]
    if not isinstance(cooldown, (int, float)) or isinstance(cooldown, bool) or cooldown < 0:
        errors.append(f"Invalid printing.cooldown_sec: {cooldown}. Must be a number >= 0.")

    history_size = printing["history_size"]
    if not isinstance(history_size, int) or history_size < 1:
        errors.append(f"Invalid printing.history_size: {history_size}. Must be a positive integer.")

    return errors, warnings


def check_dependencies() -> dict[str, bool]:
    """
    Check which optional dependencies are available.

    Returns:
        Dict of dependency name -> is_available
    """
    return {
        name: importlib.util.find_spec(module) is not None
        for name, module in OPTIONAL_DEPENDENCIES.items()
    }


def run_startup_checks(config: dict) -> None:
    """
    Run all startup checks. Exits with error if critical issues found.

    Args:
        config: Loaded configuration dict
    """
    logger.info("Running startup checks...")

    server = get_server_config(config)
    errors, warnings = validate_config(config)

    # Only probe the port if it is a valid one
    if not errors:
        available, port_error = check_port_available(server["host"], server["port"])
        if not available:
            errors.append(port_error)

    # Check dependencies
    deps = check_dependencies()
    missing_deps = [name for name, available in deps.items() if not available]
    if missing_deps:
        warnings.append(f"Optional dependencies not installed: {', '.join(missing_deps)}")

    # Report warnings
    for warning in warnings:
        logger.warning(f"  ⚠ {warning}")

    # Report errors and exit if any
    if errors:
        logger.error("Startup checks failed:")
        for error in errors:
            logger.error(f"  ✗ {error}")
        logger.error("")
        logger.error("Fix these issues and try again.")
        sys.exit(1)

    if warnings:
        logger.info(f"Startup checks passed with {len(warnings)} warning(s)")
    else:
        logger.info("Startup checks passed ✓")


def print_startup_banner(config: dict, backend_name: str) -> None:
    """Print a startup banner with useful info."""
    port = get_server_config(config)["port"]

    # Get local IP for convenience
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        local_ip = s.getsockname()[0]
        s.close()
    except OSError:
        local_ip = "unknown"

    print("")
    print("=" * 50)
    print("  Ticket Bridge")
    print("=" * 50)
    print("")
    print(f"  Local URL:    http://localhost:{port}")
    print(f"  Network URL:  http://{local_ip}:{port}")
    print(f"  API Docs:     http://localhost:{port}/docs")
    print(f"  Backend:      {backend_name}")
    print("")
    print("  Endpoints:")
    print("    POST /api/v1/print/ticket   - Print one ticket")
    print("    POST /api/v1/print/batch    - Print an order to several stations")
    print("    POST /api/v1/print/test     - Print a test ticket")
    print("    GET  /api/v1/printers       - Printer status")
    print("    GET  /api/v1/queue          - Print queue")
    print("")
    print("=" * 50)
    print("")
