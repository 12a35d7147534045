"""
Background watcher for printer state.

Periodically enumerates printers and publishes the snapshot to listeners
only when it differs from the last published one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ticketbridge.printers.base import DeviceProbe, PrinterInfo

logger = logging.getLogger(__name__)


# Type alias for snapshot listeners
SnapshotListener = Callable[[list[PrinterInfo]], Awaitable[None]]

DEFAULT_INTERVAL_SEC = 5.0


class PrinterStateWatcher:
    """
    Background task that samples the device probe.

    Features:
    - Periodic enumeration of all printers known to the spooler
    - Value comparison against the last published snapshot
    - Listeners are only called when something changed
    - A failed probe keeps the previous snapshot
    """

    def __init__(
        self,
        probe: DeviceProbe,
        interval_sec: float = DEFAULT_INTERVAL_SEC,
    ):
        """
        Initialize the watcher.

        Args:
            probe: DeviceProbe whose enumerate() is polled
            interval_sec: How often to poll (default 5s)
        """
        self.probe = probe
        self.interval_sec = interval_sec

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._snapshot: tuple[PrinterInfo, ...] = ()
        self._listeners: list[SnapshotListener] = []

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register an async callback receiving each new snapshot."""
        self._listeners.append(listener)

    @property
    def snapshot(self) -> tuple[PrinterInfo, ...]:
        """Last published snapshot."""
        return self._snapshot

    async def start(self) -> None:
        """Start the watcher background task."""
        if self._running:
            logger.warning("Printer state watcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._watch_loop())
        logger.info(f"Printer state watcher started (interval: {self.interval_sec}s)")

    async def stop(self) -> None:
        """Stop the watcher."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Printer state watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def check_now(self) -> bool:
        """
        Poll once and publish if the state changed.

        Returns True if a new snapshot was published.
        """
        try:
            printers = await self.probe.enumerate()
        except Exception as e:
            logger.error(f"Printer enumeration failed: {e}")
            # Don't update the snapshot on error - preserve previous state
            return False

        current = tuple(printers)
        if current == self._snapshot:
            return False

        self._log_changes(self._snapshot, current)
        self._snapshot = current
        await self._publish(list(current))
        return True

    async def _watch_loop(self) -> None:
        """Main polling loop."""
        while self._running:
            try:
                await self.check_now()
                await asyncio.sleep(self.interval_sec)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Printer state check error: {e}")

    async def _publish(self, printers: list[PrinterInfo]) -> None:
        for listener in self._listeners:
            try:
                await listener(printers)
            except Exception as e:
                logger.error(f"Printer state listener failed: {e}")

    def _log_changes(self, old: tuple[PrinterInfo, ...], new: tuple[PrinterInfo, ...]) -> None:
        previous = {p.name: p.status for p in old}
        for printer in new:
            before = previous.pop(printer.name, None)
            if before is None:
                logger.info(f"[PRINTER_STATE] {printer.name}: {printer.status.value}")
            elif before != printer.status:
                logger.info(f"[PRINTER_STATE] {printer.name}: {before.value} -> {printer.status.value}")
        for name in previous:
            logger.info(f"[PRINTER_STATE] {name}: removed")
