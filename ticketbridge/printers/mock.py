import asyncio
import logging
import time
from dataclasses import dataclass

from .base import ONLINE_STATUSES, DispatchResult, PrinterBackend, PrinterInfo, PrinterStatus

logger = logging.getLogger(__name__)


@dataclass
class DispatchRecord:
    printer_name: str
    job_id: str
    data: bytes
    started_at: float
    finished_at: float = 0.0


class MockPrinterBackend(PrinterBackend):
    """
    In-memory printers for development and tests.

    Config options:
        printers: list of {name, status, default, port}
        print_delay: seconds each dispatch takes (default 0.5)
        fail_printers: names whose dispatch always fails
    """

    name = "mock"

    def __init__(self, config: dict = None):
        super().__init__(config)
        self._printers: dict[str, PrinterInfo] = {}
        for entry in self.config.get("printers", []):
            self.add_printer(
                entry["name"],
                PrinterStatus(entry.get("status", "connected")),
                is_default=entry.get("default", False),
                port=entry.get("port"),
            )
        self.print_delay = self.config.get("print_delay", 0.5)
        self.fail_printers = set(self.config.get("fail_printers", []))

        self.dispatched: list[DispatchRecord] = []
        self.probed: list[str] = []
        self.max_concurrent = 0
        self._active = 0

    def add_printer(
        self,
        name: str,
        status: PrinterStatus = PrinterStatus.CONNECTED,
        is_default: bool = False,
        port: str = None,
    ) -> None:
        self._printers[name] = PrinterInfo(
            name=name,
            status=status,
            is_default=is_default,
            port=port,
            physically_connected=status not in (PrinterStatus.DISCONNECTED,),
        )

    def set_status(self, name: str, status: PrinterStatus) -> None:
        """Allow tests to change a printer's state."""
        current = self._printers[name]
        self.add_printer(name, status, current.is_default, current.port)

    def remove_printer(self, name: str) -> None:
        self._printers.pop(name, None)

    async def is_reachable(self, printer_name: str) -> bool:
        self.probed.append(printer_name)
        printer = self._printers.get(printer_name)
        return printer is not None and printer.status in ONLINE_STATUSES

    async def enumerate(self) -> list[PrinterInfo]:
        return list(self._printers.values())

    async def dispatch(self, printer_name: str, data: bytes, job_id: str = "") -> DispatchResult:
        record = DispatchRecord(printer_name=printer_name, job_id=job_id, data=data, started_at=time.monotonic())
        self._active += 1
        self.max_concurrent = max(self.max_concurrent, self._active)
        try:
            # Simulate print time
            await asyncio.sleep(self.print_delay)
        finally:
            self._active -= 1
            record.finished_at = time.monotonic()
            self.dispatched.append(record)

        if printer_name in self.fail_printers:
            return DispatchResult(
                success=False,
                job_id=job_id,
                message=f"Printer rejected job (mock): {printer_name}",
                error_code="PRINT_ERROR"
            )

        logger.info(f"[MOCK] Printed job {job_id} on {printer_name} ({len(data)} bytes)")
        return DispatchResult(success=True, job_id=job_id, message="Print job completed (mock)")
