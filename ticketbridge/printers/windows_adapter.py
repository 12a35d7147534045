"""
Windows spooler backend.

Requires: pywin32 (win32print)
Tickets are written as RAW documents so the spooler driver does not
re-render the ESC/POS stream.
"""

import logging
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
    import win32print
    WIN32_AVAILABLE = True
except ImportError:
    WIN32_AVAILABLE = False

# PRINTER_STATUS_* flags
STATUS_PAUSED = 0x00000001
STATUS_ERROR = 0x00000002
STATUS_PAPER_JAM = 0x00000008
STATUS_PAPER_OUT = 0x00000010
STATUS_OFFLINE = 0x00000080
STATUS_PRINTING = 0x00000400
STATUS_NOT_AVAILABLE = 0x00001000
STATUS_SERVER_UNKNOWN = 0x00800000
ATTRIBUTE_WORK_OFFLINE = 0x00000400

# Cheap POS printers often report STATUS_ERROR while printing fine,
# so only these flags make a printer unreachable.
UNREACHABLE_FLAGS = STATUS_OFFLINE | STATUS_NOT_AVAILABLE | STATUS_SERVER_UNKNOWN


def spooler_state(status: int, attributes: int = 0) -> SpoolerState:
    if status & UNREACHABLE_FLAGS or attributes & ATTRIBUTE_WORK_OFFLINE:
        return SpoolerState.OFFLINE
    if status & STATUS_PAUSED:
        return SpoolerState.STOPPED
    if status & (STATUS_ERROR | STATUS_PAPER_JAM | STATUS_PAPER_OUT):
        return SpoolerState.ERROR
    if status & STATUS_PRINTING:
        return SpoolerState.PROCESSING
    return SpoolerState.IDLE


def printer_info_from_level2(info: dict, default_name: Optional[str]) -> PrinterInfo:
    """Build a PrinterInfo from an EnumPrinters level-2 record."""
    name = info["pPrinterName"]
    port = info.get("pPortName") or None
    physically_connected = True if (port or "").upper().startswith("USB") else None
    return PrinterInfo(
        name=name,
        status=classify_status(
            spooler_state(int(info.get("Status", 0)), int(info.get("Attributes", 0))),
            has_pending_jobs=int(info.get("cJobs", 0)) > 0,
            physically_connected=physically_connected,
        ),
        is_default=name == default_name,
        port=port,
        physically_connected=physically_connected,
        description=info.get("pComment") or None,
    )


class WindowsBackend(PrinterBackend):
    """Backend for printers installed in the Windows spooler."""

    name = "windows"

    @property
    def available(self) -> bool:
        return WIN32_AVAILABLE

    def _is_reachable(self, printer_name: str) -> bool:
        try:
            handle = win32print.OpenPrinter(printer_name)
        except Exception as e:
            logger.info(f"Printer '{printer_name}' not found: {e}")
            return False
        try:
            info = win32print.GetPrinter(handle, 2)
        finally:
            win32print.ClosePrinter(handle)
        state = spooler_state(int(info.get("Status", 0)), int(info.get("Attributes", 0)))
        return state not in (SpoolerState.OFFLINE, SpoolerState.STOPPED)

    async def is_reachable(self, printer_name: str) -> bool:
        if not WIN32_AVAILABLE or not printer_name:
            return False
        try:
            return await self._run_blocking(self._is_reachable, printer_name)
        except Exception as e:
            logger.error(f"Failed to get spooler status for '{printer_name}': {e}")
            return False

    def _enumerate(self) -> list[PrinterInfo]:
        flags = win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
        try:
            default_name = win32print.GetDefaultPrinter()
        except Exception:
            default_name = None

        printers = []
        for info in win32print.EnumPrinters(flags, None, 2):
            try:
                printers.append(printer_info_from_level2(info, default_name))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping spooler entry {info!r}: {e}")
        return printers

    async def enumerate(self) -> list[PrinterInfo]:
        if not WIN32_AVAILABLE:
            return []
        try:
            return await self._run_blocking(self._enumerate)
        except Exception as e:
            logger.error(f"Failed to list Windows printers: {e}")
            return []

    def _dispatch(self, printer_name: str, data: bytes, job_id: str) -> DispatchResult:
        handle = win32print.OpenPrinter(printer_name)
        try:
            spool_id = win32print.StartDocPrinter(handle, 1, (f"ticket-{job_id}", None, "RAW"))
            try:
                win32print.StartPagePrinter(handle)
                win32print.WritePrinter(handle, data)
                win32print.EndPagePrinter(handle)
            finally:
                win32print.EndDocPrinter(handle)
        finally:
            win32print.ClosePrinter(handle)

        logger.info(f"Submitted job {job_id} to {printer_name} as spooler job {spool_id}")
        return DispatchResult(success=True, job_id=job_id, message=f"Submitted to spooler (job {spool_id})")

    async def dispatch(self, printer_name: str, data: bytes, job_id: str = "") -> DispatchResult:
        if not WIN32_AVAILABLE:
            return DispatchResult(
                success=False,
                job_id=job_id,
                message="pywin32 package not installed",
                error_code="MISSING_DEPENDENCY"
            )
        try:
            return await self._run_blocking(self._dispatch, printer_name, data, job_id)
        except Exception as e:
            logger.error(f"Windows print failed for job {job_id}: {e}")
            return DispatchResult(success=False, job_id=job_id, message=str(e), error_code="PRINT_ERROR")
