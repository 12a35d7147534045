"""Tests for printer backends and status classification."""

import asyncio
import subprocess
import threading
import time

import pytest

from ticketbridge.printers import PrinterStatus, SpoolerState, classify_status
from ticketbridge.printers import cups_adapter
from ticketbridge.printers.cups_adapter import CUPSBackend, resolve_printer_name, spooler_state
from ticketbridge.printers.lp_adapter import (
    LpBackend,
    parse_lpstat_default,
    parse_lpstat_devices,
    parse_lpstat_jobs,
    parse_lpstat_printers,
    resolve_entry,
)
from ticketbridge.printers.mock import MockPrinterBackend
from ticketbridge.printers.windows_adapter import (
    ATTRIBUTE_WORK_OFFLINE,
    STATUS_ERROR,
    STATUS_NOT_AVAILABLE,
    STATUS_OFFLINE,
    STATUS_PAUSED,
    STATUS_PRINTING,
    WindowsBackend,
    printer_info_from_level2,
)
from ticketbridge.printers.windows_adapter import spooler_state as windows_spooler_state


class TestClassifyStatus:
    @pytest.mark.parametrize("state, has_jobs, connected, expected", [
        (SpoolerState.OFFLINE, True, True, PrinterStatus.DISCONNECTED),
        (SpoolerState.ERROR, False, True, PrinterStatus.ERROR),
        (SpoolerState.STOPPED, True, True, PrinterStatus.INACTIVE),
        (SpoolerState.IDLE, True, True, PrinterStatus.PRINTING),
        (SpoolerState.PROCESSING, False, None, PrinterStatus.PRINTING),
        (SpoolerState.IDLE, False, False, PrinterStatus.DISCONNECTED),
        (SpoolerState.IDLE, False, None, PrinterStatus.CONNECTED),
        (SpoolerState.UNKNOWN, False, True, PrinterStatus.CONNECTED),
        (SpoolerState.UNKNOWN, False, None, PrinterStatus.UNKNOWN),
    ])
    def test_classification(self, state, has_jobs, connected, expected):
        assert classify_status(state, has_jobs, connected) == expected


LPSTAT_PRINTERS = """\
printer Cocina is idle.  enabled since Mon 01 Jan 2024 10:00:00 AM
\tDescription: Cocina principal
\tAlerts: none
\tLocation: Kitchen
printer Barra_1 disabled since Mon 01 Jan 2024 10:00:00 AM -
\treason unknown
\tDescription: Barra 1
printer Caja now printing Caja-12.  enabled since Mon 01 Jan 2024 10:00:00 AM
\tDescription: Caja
printer Terraza is idle.  enabled since Mon 01 Jan 2024 10:00:00 AM
\tAlerts: offline-report
\tDescription: Terraza
garbage line
"""

LPSTAT_DEVICES = """\
device for Cocina: usb://EPSON/TM-T20II?serial=1234
device for Barra_1: socket://192.168.1.50:9100
device for Caja: usb://Star/TSP100
device for Terraza: usb://EPSON/TM-T20III
"""


class TestLpstatParsing:
    def test_printers(self):
        entries = parse_lpstat_printers(LPSTAT_PRINTERS)
        assert [e.name for e in entries] == ["Cocina", "Barra_1", "Caja", "Terraza"]
        assert [e.state for e in entries] == [
            SpoolerState.IDLE, SpoolerState.STOPPED, SpoolerState.PROCESSING, SpoolerState.OFFLINE,
        ]
        assert entries[0].description == "Cocina principal"

    def test_offline_alert_overrides_idle(self):
        """An unplugged USB queue still reads 'idle'; the alerts line says offline."""
        entries = {e.name: e for e in parse_lpstat_printers(LPSTAT_PRINTERS)}
        assert entries["Terraza"].state == SpoolerState.OFFLINE
        assert entries["Terraza"].reasons == ["offline-report"]
        assert entries["Cocina"].state == SpoolerState.IDLE
        assert entries["Cocina"].reasons == []

    def test_default(self):
        assert parse_lpstat_default("system default destination: Cocina\n") == "Cocina"
        assert parse_lpstat_default("no system default destination\n") is None

    def test_devices(self):
        devices = parse_lpstat_devices(LPSTAT_DEVICES)
        assert devices["Cocina"].startswith("usb://")
        assert devices["Barra_1"] == "socket://192.168.1.50:9100"

    def test_jobs(self):
        output = "Caja-12   pos   1024   Mon 01 Jan 2024 10:00:00 AM\nCocina_2-7 pos 10 Mon\n"
        assert parse_lpstat_jobs(output) == {"Caja", "Cocina_2"}

    def test_resolve_by_name_description_or_underscore(self):
        entries = parse_lpstat_printers(LPSTAT_PRINTERS)
        assert resolve_entry(entries, "Cocina").name == "Cocina"
        assert resolve_entry(entries, "Cocina principal").name == "Cocina"
        assert resolve_entry(entries, "Barra 1").name == "Barra_1"
        assert resolve_entry(entries, "Patio") is None


class FakeLp(LpBackend):
    """LpBackend with canned command output."""

    def __init__(self, outputs: dict, returncode: int = 0):
        super().__init__({"lpstat_path": "lpstat", "lp_path": "lp"})
        self.outputs = outputs
        self.returncode = returncode
        self.commands = []

    def _run(self, args, input_data=None):
        self.commands.append((args, input_data))
        if args[0] == "lp":
            return subprocess.CompletedProcess(args, self.returncode, b"request id is Cocina-9 (0 file(s))", b"lp: error")
        return subprocess.CompletedProcess(args, 0, self.outputs.get(args[-1], "").encode(), b"")


class TestLpBackend:
    @pytest.fixture
    def backend(self):
        return FakeLp({
            "-p": LPSTAT_PRINTERS,
            "-d": "system default destination: Cocina\n",
            "-o": "Caja-12 pos 1024 Mon\n",
            "-v": LPSTAT_DEVICES,
        })

    @pytest.mark.asyncio
    async def test_enumerate(self, backend):
        printers = {p.name: p for p in await backend.enumerate()}

        assert printers["Cocina"].status == PrinterStatus.CONNECTED
        assert printers["Cocina"].is_default
        assert printers["Cocina"].physically_connected is True
        assert printers["Barra_1"].status == PrinterStatus.INACTIVE
        assert printers["Barra_1"].physically_connected is None
        assert printers["Caja"].status == PrinterStatus.PRINTING
        assert printers["Terraza"].status == PrinterStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reachability(self, backend):
        assert await backend.is_reachable("Cocina principal")
        assert await backend.is_reachable("Caja")
        assert not await backend.is_reachable("Barra 1")
        assert not await backend.is_reachable("Terraza")
        assert not await backend.is_reachable("Patio")
        assert not await backend.is_reachable("")

    @pytest.mark.asyncio
    async def test_dispatch_sends_raw_bytes(self, backend):
        result = await backend.dispatch("Cocina principal", b"\x1b@hola", "abc")

        assert result.success
        args, data = backend.commands[-1]
        assert args == ["lp", "-d", "Cocina", "-o", "raw", "-t", "ticket-abc"]
        assert data == b"\x1b@hola"

    @pytest.mark.asyncio
    async def test_dispatch_failure(self):
        backend = FakeLp({"-p": LPSTAT_PRINTERS}, returncode=1)
        result = await backend.dispatch("Cocina", b"x", "abc")
        assert not result.success
        assert result.message == "lp: error"


class FakeCupsConnection:
    def __init__(self, printers: dict, jobs: dict = None):
        self.printers = printers
        self.jobs = jobs or {}
        self.printed = []

    def getPrinters(self):
        return self.printers

    def getDefault(self):
        return "Cocina"

    def getJobs(self, which_jobs="not-completed", requested_attributes=None):
        return self.jobs

    def printFile(self, queue_name, path, title, options):
        with open(path, "rb") as f:
            self.printed.append((queue_name, f.read(), title, options))
        return 42


class SlowCupsConnection(FakeCupsConnection):
    """Records how many calls are inside the connection at once."""

    def __init__(self, printers: dict):
        super().__init__(printers)
        self.active = 0
        self.max_active = 0
        self._counter = threading.Lock()

    def _enter(self):
        with self._counter:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.01)
        with self._counter:
            self.active -= 1

    def getPrinters(self):
        self._enter()
        return super().getPrinters()

    def getJobs(self, which_jobs="not-completed", requested_attributes=None):
        self._enter()
        return super().getJobs(which_jobs, requested_attributes)

    def printFile(self, queue_name, path, title, options):
        self._enter()
        return super().printFile(queue_name, path, title, options)


CUPS_PRINTERS = {
    "Cocina": {"printer-state": 3, "printer-info": "Cocina principal", "device-uri": "usb://EPSON/TM-T20"},
    "Barra_1": {"printer-state": 5, "printer-info": "Barra", "device-uri": "socket://10.0.0.5"},
    "Caja": {"printer-state": 3, "printer-state-reasons": ["offline-report"], "device-uri": "usb://Star"},
    "Terraza": {"printer-state": 3, "printer-is-accepting-jobs": False},
}


class TestCupsBackend:
    def test_resolve_printer_name(self):
        assert resolve_printer_name(CUPS_PRINTERS, "Cocina") == "Cocina"
        assert resolve_printer_name(CUPS_PRINTERS, "Cocina principal") == "Cocina"
        assert resolve_printer_name(CUPS_PRINTERS, "Barra 1") == "Barra_1"
        assert resolve_printer_name(CUPS_PRINTERS, "Patio") is None

    def test_spooler_state(self):
        assert spooler_state(CUPS_PRINTERS["Cocina"]) == SpoolerState.IDLE
        assert spooler_state(CUPS_PRINTERS["Barra_1"]) == SpoolerState.STOPPED
        assert spooler_state(CUPS_PRINTERS["Caja"]) == SpoolerState.OFFLINE
        assert spooler_state(CUPS_PRINTERS["Terraza"]) == SpoolerState.STOPPED
        assert spooler_state({"printer-state": 4}) == SpoolerState.PROCESSING

    @pytest.fixture
    def backend(self, monkeypatch):
        monkeypatch.setattr(cups_adapter, "CUPS_AVAILABLE", True)
        backend = CUPSBackend()
        backend._conn = FakeCupsConnection(
            dict(CUPS_PRINTERS),
            jobs={7: {"job-printer-uri": "ipp://localhost/printers/Cocina"}},
        )
        return backend

    @pytest.mark.asyncio
    async def test_enumerate(self, backend):
        printers = {p.name: p for p in await backend.enumerate()}

        assert printers["Cocina"].status == PrinterStatus.PRINTING
        assert printers["Cocina"].is_default
        assert printers["Cocina"].description == "Cocina principal"
        assert printers["Barra_1"].status == PrinterStatus.INACTIVE
        assert printers["Caja"].status == PrinterStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reachability(self, backend):
        assert await backend.is_reachable("Cocina principal")
        assert not await backend.is_reachable("Barra 1")
        assert not await backend.is_reachable("Caja")
        assert not await backend.is_reachable("Patio")

    @pytest.mark.asyncio
    async def test_dispatch(self, backend):
        result = await backend.dispatch("Cocina principal", b"\x1b@hola", "abc")

        assert result.success
        queue_name, data, title, options = backend._conn.printed[0]
        assert queue_name == "Cocina"
        assert data == b"\x1b@hola"
        assert title == "ticket-abc"
        assert options == {"raw": "true"}

    @pytest.mark.asyncio
    async def test_dispatch_unknown_printer(self, backend):
        result = await backend.dispatch("Patio", b"x", "abc")
        assert not result.success
        assert result.error_code == "NO_PRINTER"

    @pytest.mark.asyncio
    async def test_connection_is_used_by_one_thread_at_a_time(self, monkeypatch):
        """Watcher polls, reachability checks and dispatches share one pycups connection."""
        monkeypatch.setattr(cups_adapter, "CUPS_AVAILABLE", True)
        backend = CUPSBackend()
        conn = SlowCupsConnection(dict(CUPS_PRINTERS))
        backend._conn = conn

        results = await asyncio.gather(
            backend.enumerate(),
            backend.is_reachable("Cocina"),
            backend.dispatch("Cocina", b"x", "a"),
            backend.enumerate(),
            backend.is_reachable("Caja"),
            backend.dispatch("Cocina", b"y", "b"),
        )

        assert conn.max_active == 1
        assert results[1] is True
        assert results[4] is False
        assert results[2].success and results[5].success
        assert len(conn.printed) == 2

    @pytest.mark.asyncio
    async def test_unavailable_without_pycups(self, monkeypatch):
        monkeypatch.setattr(cups_adapter, "CUPS_AVAILABLE", False)
        backend = CUPSBackend()

        assert not backend.available
        assert await backend.enumerate() == []
        assert not await backend.is_reachable("Cocina")
        result = await backend.dispatch("Cocina", b"x", "abc")
        assert result.error_code == "MISSING_DEPENDENCY"


class TestWindowsSpooler:
    @pytest.mark.parametrize("status, attributes, expected", [
        (0, 0, SpoolerState.IDLE),
        (STATUS_PRINTING, 0, SpoolerState.PROCESSING),
        (STATUS_PAUSED, 0, SpoolerState.STOPPED),
        (STATUS_ERROR, 0, SpoolerState.ERROR),
        (STATUS_OFFLINE, 0, SpoolerState.OFFLINE),
        (STATUS_NOT_AVAILABLE | STATUS_PRINTING, 0, SpoolerState.OFFLINE),
        (0, ATTRIBUTE_WORK_OFFLINE, SpoolerState.OFFLINE),
    ])
    def test_spooler_state(self, status, attributes, expected):
        assert windows_spooler_state(status, attributes) == expected

    def test_usb_printer_info(self):
        info = printer_info_from_level2(
            {"pPrinterName": "POS-80", "pPortName": "USB001", "Status": 0, "Attributes": 0, "cJobs": 2},
            default_name="POS-80",
        )
        assert info.status == PrinterStatus.PRINTING
        assert info.is_default
        assert info.physically_connected is True

    def test_network_printer_is_not_marked_disconnected(self):
        info = printer_info_from_level2(
            {"pPrinterName": "Barra", "pPortName": "IP_10.0.0.5", "Status": 0, "Attributes": 0, "cJobs": 0},
            default_name=None,
        )
        assert info.status == PrinterStatus.CONNECTED
        assert info.physically_connected is None

    @pytest.mark.asyncio
    async def test_backend_without_pywin32(self, monkeypatch):
        from ticketbridge.printers import windows_adapter
        monkeypatch.setattr(windows_adapter, "WIN32_AVAILABLE", False)
        backend = WindowsBackend()

        assert not backend.available
        assert not await backend.is_reachable("POS-80")
        result = await backend.dispatch("POS-80", b"x", "abc")
        assert not result.success


class TestMockBackend:
    @pytest.mark.asyncio
    async def test_reachable_statuses(self, mock_backend):
        mock_backend.set_status("Barra", PrinterStatus.PRINTING)
        mock_backend.set_status("Caja", PrinterStatus.ERROR)

        assert await mock_backend.is_reachable("Cocina")
        assert await mock_backend.is_reachable("Barra")
        assert not await mock_backend.is_reachable("Caja")
        assert not await mock_backend.is_reachable("Terraza")

    @pytest.mark.asyncio
    async def test_enumerate_and_remove(self, mock_backend):
        mock_backend.remove_printer("Caja")
        printers = await mock_backend.enumerate()
        assert [p.name for p in printers] == ["Cocina", "Barra"]
        assert printers[0].is_default

    @pytest.mark.asyncio
    async def test_dispatch_records(self, mock_backend):
        result = await mock_backend.dispatch("Cocina", b"data", "job-1")
        assert result.success
        record = mock_backend.dispatched[0]
        assert record.job_id == "job-1"
        assert record.finished_at >= record.started_at

    def test_config(self):
        backend = MockPrinterBackend({"printers": [{"name": "X", "status": "inactive"}]})
        assert backend.print_delay == 0.5
        assert backend.to_dict() == {"backend": "mock", "available": True}
