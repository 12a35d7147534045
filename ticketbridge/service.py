"""
Entry points used by the request and broadcast layers.

Inbound calls turn raw POS data into typed jobs (raising ValidationError
for anything malformed) and hand them to the scheduler. Outbound calls
expose the watcher's printer snapshots.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from ticketbridge.errors import ValidationError
from ticketbridge.health import PrinterStateWatcher
from ticketbridge.health.monitor import SnapshotListener
from ticketbridge.printers.base import ONLINE_STATUSES, PrinterInfo
from ticketbridge.queue import BatchResult, Job, PrintScheduler
from ticketbridge.tickets.models import SAMPLE_TEST_DATA, TicketType, parse_payload
from ticketbridge.tickets.translations import resolve_translations

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """
    Outcome of queueing one ticket.

    Single tickets are queued even if the printer looks down; the scheduler
    checks connectivity at dispatch time. ``warnings`` only reports what the
    last printer snapshot showed.
    """

    accepted: bool
    job_id: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class BatchItem:
    printer_name: str
    data: Any


class PrintService:
    def __init__(self, scheduler: PrintScheduler, watcher: PrinterStateWatcher):
        self.scheduler = scheduler
        self.watcher = watcher

    def _build_job(
        self,
        ticket_type: TicketType,
        printer_name: str,
        data: Any,
        translations: Mapping[str, str],
    ) -> Job:
        return Job(
            ticket_type=ticket_type,
            printer_name=(printer_name or "").strip(),
            payload=parse_payload(ticket_type, data),
            translations=translations,
        )

    async def submit_ticket(
        self,
        ticket_type: Union[str, TicketType],
        printer_name: str,
        data: Any,
        translations: Optional[Mapping[str, Any]] = None,
    ) -> SubmitResult:
        """Queue one ticket. Raises ValidationError if the request is malformed."""
        ticket_type = TicketType.parse(ticket_type)
        if not printer_name or not printer_name.strip():
            raise ValidationError("A printer name is required", "MISSING_PRINTER")

        job = self._build_job(ticket_type, printer_name, data, resolve_translations(translations))
        logger.debug(f"[SUBMIT] {ticket_type.value} ticket for {job.printer_name}")
        warnings = self._snapshot_warnings(job.printer_name)
        accepted = await self.scheduler.submit(job)
        return SubmitResult(accepted=accepted, job_id=job.id, warnings=warnings)

    def _snapshot_warnings(self, printer_name: str) -> list[str]:
        for printer in self.watcher.snapshot:
            if printer_name in (printer.name, printer.description):
                if printer.status in ONLINE_STATUSES:
                    return []
                return [f"Printer '{printer_name}' was last seen {printer.status.value}; ticket may not print"]
        return []

    async def submit_batch(
        self,
        items: list[BatchItem],
        translations: Optional[Mapping[str, Any]] = None,
        ticket_type: Union[str, TicketType] = TicketType.ORDER_SLIP,
    ) -> BatchResult:
        """
        Queue one ticket per item (typically one kitchen order fanned out to
        station printers). Unreachable or unnamed printers only reject their
        own item; see PrintScheduler.submit_batch.
        """
        ticket_type = TicketType.parse(ticket_type)
        if not items:
            raise ValidationError("Batch contains no items", "EMPTY_BATCH")

        labels = resolve_translations(translations)
        jobs = [self._build_job(ticket_type, item.printer_name, item.data, labels) for item in items]
        return await self.scheduler.submit_batch(jobs)

    async def submit_test_print(
        self,
        printer_name: str,
        translations: Optional[Mapping[str, Any]] = None,
    ) -> SubmitResult:
        return await self.submit_ticket(TicketType.TEST_PRINT, printer_name, SAMPLE_TEST_DATA, translations)

    def get_printer_snapshot(self) -> list[PrinterInfo]:
        """Last published printer state, for newly connected subscribers."""
        return list(self.watcher.snapshot)

    def on_printer_state_changed(self, callback: SnapshotListener) -> None:
        """Call ``callback`` with the full printer list whenever it changes."""
        self.watcher.add_listener(callback)
