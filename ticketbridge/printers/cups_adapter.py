"""
CUPS backend for macOS and Linux hosts.

Requires: pycups package
Sends tickets as raw jobs so the ESC/POS stream reaches the printer untouched.
"""

import logging
import os
import tempfile
import threading
from typing import Optional

from .base import (
    DispatchResult,
    PrinterBackend,
    PrinterInfo,
    SpoolerState,
    classify_status,
)

logger = logging.getLogger(__name__)

try:
    import cups
    CUPS_AVAILABLE = True
except ImportError:
    CUPS_AVAILABLE = False
    logger.warning("pycups package not available - CUPSBackend will not function")

# IPP printer-state values
CUPS_STATES = {
    3: SpoolerState.IDLE,
    4: SpoolerState.PROCESSING,
    5: SpoolerState.STOPPED,
}


def resolve_printer_name(printers: dict, requested: str) -> Optional[str]:
    """
    Find the CUPS queue for ``requested``.

    POS terminals may send either the queue name or the description shown
    to users, and queue names cannot contain spaces.
    """
    if requested in printers:
        return requested
    for queue_name, attrs in printers.items():
        if attrs.get("printer-info") == requested:
            return queue_name
    underscored = requested.replace(" ", "_")
    if underscored in printers:
        return underscored
    return None


def spooler_state(attrs: dict) -> SpoolerState:
    reasons = attrs.get("printer-state-reasons") or []
    if any(reason.startswith("offline") for reason in reasons):
        return SpoolerState.OFFLINE
    if attrs.get("printer-is-accepting-jobs") is False:
        return SpoolerState.STOPPED
    return CUPS_STATES.get(attrs.get("printer-state"), SpoolerState.UNKNOWN)


class CUPSBackend(PrinterBackend):
    """
    Backend for CUPS-managed printers.

    Config options:
        cups_server: CUPS server address (default: localhost)
    """

    name = "cups"

    def __init__(self, config: dict = None):
        super().__init__(config)
        self.cups_server = self.config.get("cups_server", "localhost")
        self._conn = None
        # A pycups connection is one libcups HTTP session; executor threads take turns on it
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return CUPS_AVAILABLE

    def _get_connection(self):
        """Get or create CUPS connection."""
        # Caller holds self._lock
        if self._conn is None:
            if self.cups_server != "localhost":
                cups.setServer(self.cups_server)
            self._conn = cups.Connection()
        return self._conn

    def _reset_connection(self) -> None:
        with self._lock:
            self._conn = None

    def _is_reachable(self, printer_name: str) -> bool:
        with self._lock:
            printers = self._get_connection().getPrinters()
        queue_name = resolve_printer_name(printers, printer_name)
        if queue_name is None:
            logger.info(f"Printer '{printer_name}' not found in CUPS")
            return False
        state = spooler_state(printers[queue_name])
        return state in (SpoolerState.IDLE, SpoolerState.PROCESSING)

    async def is_reachable(self, printer_name: str) -> bool:
        if not CUPS_AVAILABLE or not printer_name:
            return False
        try:
            return await self._run_blocking(self._is_reachable, printer_name)
        except Exception as e:
            logger.error(f"Failed to get CUPS status for '{printer_name}': {e}")
            self._reset_connection()
            return False

    def _enumerate(self) -> list[PrinterInfo]:
        with self._lock:
            conn = self._get_connection()
            printers = conn.getPrinters()
            default = conn.getDefault()
            jobs = conn.getJobs(which_jobs="not-completed", requested_attributes=["job-printer-uri"])

        busy_queues = set()
        for attrs in jobs.values():
            uri = attrs.get("job-printer-uri", "")
            busy_queues.add(uri.rsplit("/", 1)[-1])

        result = []
        for queue_name, attrs in printers.items():
            try:
                device_uri = attrs.get("device-uri", "")
                physically_connected = True if device_uri.startswith("usb:") else None
                result.append(PrinterInfo(
                    name=queue_name,
                    status=classify_status(
                        spooler_state(attrs),
                        has_pending_jobs=queue_name in busy_queues,
                        physically_connected=physically_connected,
                    ),
                    is_default=queue_name == default,
                    port=device_uri or None,
                    physically_connected=physically_connected,
                    description=attrs.get("printer-info") or None,
                ))
            except Exception as e:
                logger.debug(f"Skipping CUPS printer {queue_name!r}: {e}")
        return result

    async def enumerate(self) -> list[PrinterInfo]:
        if not CUPS_AVAILABLE:
            return []
        try:
            return await self._run_blocking(self._enumerate)
        except Exception as e:
            logger.error(f"Failed to list CUPS printers: {e}")
            self._reset_connection()
            return []

    def _dispatch(self, printer_name: str, data: bytes, job_id: str) -> DispatchResult:
        # CUPS requires a file path, so we write to temp file
        with tempfile.NamedTemporaryFile(suffix=".bin", delete=False) as f:
            f.write(data)
            temp_path = f.name

        try:
            with self._lock:
                conn = self._get_connection()
                queue_name = resolve_printer_name(conn.getPrinters(), printer_name)
                if queue_name is None:
                    return DispatchResult(
                        success=False,
                        job_id=job_id,
                        message=f"Printer not found: {printer_name}",
                        error_code="NO_PRINTER"
                    )
                cups_job_id = conn.printFile(queue_name, temp_path, f"ticket-{job_id}", {"raw": "true"})
            logger.info(f"Submitted job {job_id} to CUPS queue {queue_name} as job {cups_job_id}")
            return DispatchResult(
                success=True,
                job_id=job_id,
                message=f"Submitted to CUPS (job {cups_job_id})"
            )
        finally:
            os.unlink(temp_path)

    async def dispatch(self, printer_name: str, data: bytes, job_id: str = "") -> DispatchResult:
        if not CUPS_AVAILABLE:
            return DispatchResult(
                success=False,
                job_id=job_id,
                message="pycups package not installed",
                error_code="MISSING_DEPENDENCY"
            )

        try:
            return await self._run_blocking(self._dispatch, printer_name, data, job_id)
        except Exception as e:
            logger.error(f"CUPS print failed for job {job_id}: {e}")
            self._reset_connection()
            return DispatchResult(
                success=False,
                job_id=job_id,
                message=str(e),
                error_code="PRINT_ERROR"
            )
