"""
API routes for the ticket bridge.

Base URL: /api/v1
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ticketbridge.api.dependencies import (
    get_backend,
    get_print_service,
    get_scheduler,
    get_watcher,
)
from ticketbridge.api.schemas import (
    BatchRequest,
    PrintTestRequest,
    TicketRequest,
    resolve_data,
    resolve_printer_name,
)
from ticketbridge.health import PrinterStateWatcher
from ticketbridge.printers.base import ONLINE_STATUSES, PrinterBackend
from ticketbridge.queue import PrintScheduler
from ticketbridge.queue.manager import job_to_dict
from ticketbridge.service import BatchItem, PrintService
from ticketbridge.tickets.models import TicketType

router = APIRouter(prefix="/api/v1")

# Track server start time
_server_start_time = datetime.now()


@router.get("/status")
async def get_status(
    detailed: bool = Query(default=False),
    scheduler: PrintScheduler = Depends(get_scheduler),
    watcher: PrinterStateWatcher = Depends(get_watcher),
    backend: PrinterBackend = Depends(get_backend),
):
    """
    Health check endpoint.

    Args:
        detailed: If true, include queue and printer status
    """
    if not detailed:
        return {"status": "ok"}

    printers = watcher.snapshot
    printers_ok = all(p.status in ONLINE_STATUSES for p in printers)
    uptime_seconds = (datetime.now() - _server_start_time).total_seconds()

    return {
        "status": "ok" if printers_ok and backend.available else "degraded",
        "uptime_seconds": int(uptime_seconds),
        "backend": backend.to_dict(),
        "queue": scheduler.get_status(),
        "printers": {
            p.name: {
                "status": p.status.value,
                "online": p.status in ONLINE_STATUSES,
            }
            for p in printers
        },
        "watcher_running": watcher.is_running,
    }


@router.get("/printers")
async def list_printers(
    refresh: bool = Query(default=False, description="Poll the spooler before answering"),
    service: PrintService = Depends(get_print_service),
    watcher: PrinterStateWatcher = Depends(get_watcher),
):
    """List printers as last seen by the state watcher."""
    if refresh or not watcher.snapshot:
        await watcher.check_now()

    return {"printers": [p.to_dict() for p in service.get_printer_snapshot()]}


@router.post("/print/ticket")
async def print_ticket(
    request: TicketRequest,
    service: PrintService = Depends(get_print_service),
):
    """
    Queue one ticket.

    ``printer_name`` may be the spooler name or the POS printer object
    (its ``nombre`` is used). ``data`` may be the ticket object or a list
    whose first element is the ticket object.
    """
    result = await service.submit_ticket(
        request.ticket_type,
        resolve_printer_name(request.printer_name),
        resolve_data(request.data),
        request.translations,
    )

    return {
        "accepted": result.accepted,
        "job_id": result.job_id,
        "warnings": result.warnings,
        "message": "Job queued for printing",
    }


@router.post("/print/batch")
async def print_batch(
    request: BatchRequest,
    service: PrintService = Depends(get_print_service),
):
    """
    Queue one ticket per item, typically one kitchen order split across
    station printers.

    Items whose printer is missing or unreachable are skipped with a
    warning. Returns 503 if no item could be queued.
    """
    items = [
        BatchItem(printer_name=resolve_printer_name(item.printer_name), data=resolve_data(item.data))
        for item in request.items
    ]
    result = await service.submit_batch(
        items,
        request.translations,
        request.ticket_type or TicketType.ORDER_SLIP,
    )

    content = {
        "accepted": result.accepted,
        "success_count": result.success_count,
        "job_ids": result.job_ids,
        "warnings": result.warnings,
    }
    if not result.accepted:
        content["message"] = "No printer in the batch is available"
        return JSONResponse(status_code=503, content=content)

    content["message"] = f"{result.success_count} of {len(items)} tickets queued"
    return content


@router.post("/print/test")
async def print_test(
    request: PrintTestRequest,
    service: PrintService = Depends(get_print_service),
):
    """Print a built-in sample ticket."""
    result = await service.submit_test_print(resolve_printer_name(request.printer_name), request.translations)

    return {
        "accepted": result.accepted,
        "job_id": result.job_id,
        "warnings": result.warnings,
        "message": "Test ticket queued for printing",
    }


@router.get("/queue")
async def get_queue(
    history: int = Query(default=10, ge=0, le=100),
    scheduler: PrintScheduler = Depends(get_scheduler),
):
    """Get the in-flight job, pending jobs in print order and recent history."""
    return {
        "status": scheduler.get_status(),
        "queue": scheduler.get_queue(),
        "history": scheduler.get_history(history) if history else [],
    }


@router.get("/jobs/{job_id}")
async def get_job(
    job_id: str,
    scheduler: PrintScheduler = Depends(get_scheduler),
):
    """Get status of a specific print job."""
    queued = scheduler.get_job(job_id)
    if not queued:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return job_to_dict(queued)
