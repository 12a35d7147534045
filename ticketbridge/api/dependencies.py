"""
Dependency injection for API routes.

The app factory stores the shared instances on ``app.state``; routes get
them through these functions with ``Depends``.
"""

from fastapi import Request

from ticketbridge.health import PrinterStateWatcher
from ticketbridge.printers.base import PrinterBackend
from ticketbridge.queue import PrintScheduler
from ticketbridge.service import PrintService


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized")
    return value


def get_print_service(request: Request) -> PrintService:
    """Get print service instance."""
    return _state(request, "print_service")


def get_scheduler(request: Request) -> PrintScheduler:
    """Get print scheduler instance."""
    return _state(request, "scheduler")


def get_watcher(request: Request) -> PrinterStateWatcher:
    """Get printer state watcher instance."""
    return _state(request, "watcher")


def get_backend(request: Request) -> PrinterBackend:
    return _state(request, "backend")
