import asyncio
import functools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class PrinterStatus(Enum):
    CONNECTED = "connected"
    PRINTING = "printing"
    INACTIVE = "inactive"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    UNKNOWN = "unknown"


ONLINE_STATUSES = (PrinterStatus.CONNECTED, PrinterStatus.PRINTING)


class SpoolerState(Enum):
    """Queue state as reported by the OS spooler, before classification."""

    IDLE = "idle"
    PROCESSING = "processing"
    STOPPED = "stopped"
    OFFLINE = "offline"
    ERROR = "error"
    UNKNOWN = "unknown"


def classify_status(
    spooler_state: SpoolerState,
    has_pending_jobs: bool = False,
    physically_connected: Optional[bool] = None,
) -> PrinterStatus:
    """Derive a PrinterStatus from the signals a backend could gather."""
    if spooler_state == SpoolerState.OFFLINE:
        return PrinterStatus.DISCONNECTED
    if spooler_state == SpoolerState.ERROR:
        return PrinterStatus.ERROR
    if spooler_state == SpoolerState.STOPPED:
        return PrinterStatus.INACTIVE
    if has_pending_jobs or spooler_state == SpoolerState.PROCESSING:
        return PrinterStatus.PRINTING
    if physically_connected is False:
        return PrinterStatus.DISCONNECTED
    if spooler_state == SpoolerState.IDLE or physically_connected:
        return PrinterStatus.CONNECTED
    return PrinterStatus.UNKNOWN


@dataclass(frozen=True)
class PrinterInfo:
    name: str
    status: PrinterStatus = PrinterStatus.UNKNOWN
    is_default: bool = False
    port: Optional[str] = None
    physically_connected: Optional[bool] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        """Return printer info as dict for API responses."""
        return {
            "name": self.name,
            "status": self.status.value,
            "default": self.is_default,
            "port": self.port,
            "physically_connected": self.physically_connected,
            "description": self.description,
        }


@dataclass
class DispatchResult:
    success: bool
    job_id: str = ""
    message: str = ""
    error_code: Optional[str] = None


class DeviceProbe(ABC):
    """Connectivity checks against the host's printers."""

    @abstractmethod
    async def is_reachable(self, printer_name: str) -> bool:
        """True only if the printer exists and is online. Never raises."""
        pass

    @abstractmethod
    async def enumerate(self) -> list[PrinterInfo]:
        """List every printer the spooler knows, skipping unparsable entries."""
        pass


class DispatchAdapter(ABC):
    """Hands rendered bytes to the OS print facility."""

    @abstractmethod
    async def dispatch(self, printer_name: str, data: bytes, job_id: str = "") -> DispatchResult:
        """Submit ``data`` once. Failures are returned, not raised."""
        pass


class PrinterBackend(DeviceProbe, DispatchAdapter):
    """One host printing facility, probing and dispatching through the same API."""

    name = "base"

    def __init__(self, config: dict = None):
        self.config = config or {}

    @property
    def available(self) -> bool:
        """Whether the libraries/tools this backend needs are present."""
        return True

    async def _run_blocking(self, func: Callable[..., T], *args) -> T:
        # Spooler calls block; keep them off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def to_dict(self) -> dict:
        return {"backend": self.name, "available": self.available}
