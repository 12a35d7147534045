"""
Backend driving the ``lpstat``/``lp`` command line tools.

For hosts where CUPS is present but pycups cannot be installed (stock
macOS Python builds, minimal containers). Commands run with LC_ALL=C so
lpstat output is parseable regardless of the system language.
"""

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Optional

from .base import (
    DispatchResult,
    PrinterBackend,
    PrinterInfo,
    SpoolerState,
    classify_status,
)

logger = logging.getLogger(__name__)

_PRINTER_LINE = re.compile(r"^printer\s+(\S+)\s+(.*)$")
_DESCRIPTION_LINE = re.compile(r"^\s+Description:\s*(.*)$")
_ALERTS_LINE = re.compile(r"^\s+Alerts:\s*(.*)$")
_DEVICE_LINE = re.compile(r"^device for ([^:\s]+):\s*(\S+)")
_DEFAULT_LINE = re.compile(r"destination:\s*(\S+)")


@dataclass
class LpstatEntry:
    name: str
    state: SpoolerState
    description: Optional[str] = None
    reasons: list[str] = field(default_factory=list)


def _state_from_summary(summary: str) -> SpoolerState:
    summary = summary.lower()
    if "disabled" in summary:
        return SpoolerState.STOPPED
    if "now printing" in summary:
        return SpoolerState.PROCESSING
    if "is idle" in summary:
        return SpoolerState.IDLE
    return SpoolerState.UNKNOWN


def parse_lpstat_printers(output: str) -> list[LpstatEntry]:
    """Parse ``lpstat -l -p`` output. Lines that fit no block are ignored."""
    entries: list[LpstatEntry] = []
    current: Optional[LpstatEntry] = None

    for line in output.splitlines():
        match = _PRINTER_LINE.match(line)
        if match:
            current = LpstatEntry(name=match.group(1), state=_state_from_summary(match.group(2)))
            entries.append(current)
            continue
        if current is None:
            continue
        match = _DESCRIPTION_LINE.match(line)
        if match:
            current.description = match.group(1).strip() or None
            continue
        match = _ALERTS_LINE.match(line)
        if match:
            current.reasons = [r for r in re.split(r"[\s,]+", match.group(1)) if r and r != "none"]
            # CUPS leaves an unplugged queue "idle"; only the alerts say it is offline
            if any(reason.startswith("offline") for reason in current.reasons):
                current.state = SpoolerState.OFFLINE

    return entries


def parse_lpstat_default(output: str) -> Optional[str]:
    match = _DEFAULT_LINE.search(output)
    return match.group(1) if match else None


def parse_lpstat_devices(output: str) -> dict[str, str]:
    """Device URIs by queue name, from ``lpstat -v``."""
    devices = {}
    for line in output.splitlines():
        match = _DEVICE_LINE.match(line)
        if match:
            devices[match.group(1)] = match.group(2)
    return devices


def parse_lpstat_jobs(output: str) -> set[str]:
    """Queue names with pending jobs, from ``lpstat -o`` (job ids are ``<queue>-<n>``)."""
    queues = set()
    for line in output.splitlines():
        parts = line.split()
        if parts and "-" in parts[0]:
            queues.add(parts[0].rsplit("-", 1)[0])
    return queues


def resolve_entry(entries: list[LpstatEntry], requested: str) -> Optional[LpstatEntry]:
    underscored = requested.replace(" ", "_")
    for entry in entries:
        if entry.name == requested:
            return entry
    for entry in entries:
        if entry.description == requested or entry.name == underscored:
            return entry
    return None


class LpBackend(PrinterBackend):
    """
    Backend shelling out to lpstat/lp.

    Config options:
        lpstat_path: lpstat executable (default: found on PATH)
        lp_path: lp executable (default: found on PATH)
    """

    name = "lp"

    def __init__(self, config: dict = None):
        super().__init__(config)
        self.lpstat_path = self.config.get("lpstat_path") or shutil.which("lpstat") or "lpstat"
        self.lp_path = self.config.get("lp_path") or shutil.which("lp") or "lp"

    @property
    def available(self) -> bool:
        return bool(shutil.which(self.lpstat_path) and shutil.which(self.lp_path))

    def _run(self, args: list[str], input_data: bytes = None) -> subprocess.CompletedProcess:
        env = dict(os.environ, LC_ALL="C", LANG="C")
        return subprocess.run(args, input=input_data, capture_output=True, env=env)

    def _lpstat(self, *args: str) -> str:
        result = self._run([self.lpstat_path, *args])
        return result.stdout.decode(errors="replace")

    def _is_reachable(self, printer_name: str) -> bool:
        entry = resolve_entry(parse_lpstat_printers(self._lpstat("-l", "-p")), printer_name)
        if entry is None:
            logger.info(f"Printer '{printer_name}' not found by lpstat")
            return False
        return entry.state in (SpoolerState.IDLE, SpoolerState.PROCESSING)

    async def is_reachable(self, printer_name: str) -> bool:
        if not printer_name:
            return False
        try:
            return await self._run_blocking(self._is_reachable, printer_name)
        except Exception as e:
            logger.error(f"lpstat failed for '{printer_name}': {e}")
            return False

    def _enumerate(self) -> list[PrinterInfo]:
        entries = parse_lpstat_printers(self._lpstat("-l", "-p"))
        default = parse_lpstat_default(self._lpstat("-d"))
        busy = parse_lpstat_jobs(self._lpstat("-o"))
        devices = parse_lpstat_devices(self._lpstat("-v"))

        printers = []
        for entry in entries:
            device_uri = devices.get(entry.name)
            physically_connected = True if (device_uri or "").startswith("usb:") else None
            printers.append(PrinterInfo(
                name=entry.name,
                status=classify_status(entry.state, entry.name in busy, physically_connected),
                is_default=entry.name == default,
                port=device_uri,
                physically_connected=physically_connected,
                description=entry.description,
            ))
        return printers

    async def enumerate(self) -> list[PrinterInfo]:
        try:
            return await self._run_blocking(self._enumerate)
        except Exception as e:
            logger.error(f"Failed to list printers with lpstat: {e}")
            return []

    def _dispatch(self, printer_name: str, data: bytes, job_id: str) -> DispatchResult:
        entry = resolve_entry(parse_lpstat_printers(self._lpstat("-l", "-p")), printer_name)
        queue_name = entry.name if entry else printer_name.replace(" ", "_")

        result = self._run([self.lp_path, "-d", queue_name, "-o", "raw", "-t", f"ticket-{job_id}"], data)
        if result.returncode != 0:
            message = result.stderr.decode(errors="replace").strip() or f"lp exited with {result.returncode}"
            return DispatchResult(success=False, job_id=job_id, message=message, error_code="PRINT_ERROR")

        output = result.stdout.decode(errors="replace").strip()
        logger.info(f"Submitted job {job_id} to {queue_name} via lp: {output}")
        return DispatchResult(success=True, job_id=job_id, message=output or "Submitted via lp")

    async def dispatch(self, printer_name: str, data: bytes, job_id: str = "") -> DispatchResult:
        try:
            return await self._run_blocking(self._dispatch, printer_name, data, job_id)
        except Exception as e:
            logger.error(f"lp print failed for job {job_id}: {e}")
            return DispatchResult(success=False, job_id=job_id, message=str(e), error_code="PRINT_ERROR")
