"""
FastAPI application factory with printer state watching.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticketbridge import __version__
from ticketbridge.api.routes import router
from ticketbridge.errors import ValidationError
from ticketbridge.health import PrinterStateWatcher
from ticketbridge.printers.base import ONLINE_STATUSES, PrinterBackend, PrinterInfo
from ticketbridge.queue import PrintScheduler, QueuedJob
from ticketbridge.service import PrintService

logger = logging.getLogger(__name__)


def create_app(
    backend: PrinterBackend,
    cors_origins: list[str] = None,
    debug: bool = False,
    cooldown_sec: float = 2.0,
    history_size: int = 50,
    watcher_interval_sec: float = 5.0,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        backend: Printer backend used both to probe and to dispatch
        cors_origins: List of allowed CORS origins (None = allow all)
        debug: Enable debug mode
        cooldown_sec: Pause after every job before the next one starts
        history_size: Finished jobs kept for /queue and /jobs
        watcher_interval_sec: How often to poll printer state (default 5s)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Ticket Bridge",
        description="Local print bridge between POS terminals and receipt printers",
        version=__version__,
        debug=debug
    )

    # CORS configuration
    if cors_origins is None:
        # Development: allow all origins
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def on_job_finished(queued: QueuedJob) -> None:
        if queued.error_code:
            logger.warning(f"Job {queued.job.id} for {queued.job.printer_name} not printed: {queued.error}")

    scheduler = PrintScheduler(
        probe=backend,
        dispatcher=backend,
        cooldown_sec=cooldown_sec,
        history_size=history_size,
        on_job_finished=on_job_finished,
    )
    watcher = PrinterStateWatcher(backend, interval_sec=watcher_interval_sec)
    service = PrintService(scheduler, watcher)

    async def on_printers_changed(printers: list[PrinterInfo]) -> None:
        online = sum(1 for p in printers if p.status in ONLINE_STATUSES)
        logger.debug(f"Printer snapshot updated: {online}/{len(printers)} online")

    service.on_printer_state_changed(on_printers_changed)

    app.state.backend = backend
    app.state.scheduler = scheduler
    app.state.watcher = watcher
    app.state.print_service = service

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info(f"Rejected request to {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=400,
            content={"detail": exc.message, "code": exc.error_code},
        )

    # Include routes
    app.include_router(router)

    @app.on_event("startup")
    async def startup():
        logger.info("Ticket Bridge starting...")
        logger.info(f"Printer backend: {backend.name} (available: {backend.available})")

        # Start printer state watcher
        await watcher.start()

    @app.on_event("shutdown")
    async def shutdown():
        logger.info("Ticket Bridge shutting down...")
        await watcher.stop()
        await scheduler.close()

    return app
