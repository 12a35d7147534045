"""
Priority print scheduler for a shared printer channel.

One scheduler per process. Jobs are ordered by priority tier and then by
submission order. Exactly one job is in flight at a time, and the printer
gets a cool-down pause after every job. Nothing is persisted and nothing is
retried: a job runs once, and a crash loses whatever is still queued.

Failures of a job (printer unreachable, render error, dispatch error) are
recorded on the job and logged; they never escape the scheduler or stall
the jobs behind it.
"""

import asyncio
import heapq
import inspect
import itertools
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from ticketbridge.errors import (
    DISPATCH_FAILURE,
    DispatchError,
    PrinterUnavailableError,
    RenderError,
    TicketBridgeError,
)
from ticketbridge.printers.base import DeviceProbe, DispatchAdapter, DispatchResult
from ticketbridge.rendering import render_ticket
from ticketbridge.tickets.models import TicketPayload, TicketType, priority_tier

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SEC = 2.0


@dataclass
class Job:
    ticket_type: TicketType
    printer_name: str
    payload: TicketPayload
    translations: Mapping[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    enqueued_at: Optional[datetime] = None

    @property
    def priority_tier(self) -> int:
        return priority_tier(self.ticket_type)


class JobStatus(Enum):
    QUEUED = "queued"
    PRINTING = "printing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class QueuedJob:
    job: Job
    sequence: int
    status: JobStatus = JobStatus.QUEUED
    queued_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[DispatchResult] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class BatchItemOutcome:
    index: int
    printer_name: str
    accepted: bool
    job_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class BatchResult:
    accepted: bool
    success_count: int
    warnings: list[str]
    outcomes: list[BatchItemOutcome]

    @property
    def job_ids(self) -> list[str]:
        return [o.job_id for o in self.outcomes if o.accepted]

    @classmethod
    def from_outcomes(cls, outcomes: list[BatchItemOutcome]) -> "BatchResult":
        success_count = sum(1 for o in outcomes if o.accepted)
        return cls(
            accepted=success_count > 0,
            success_count=success_count,
            warnings=[o.reason for o in outcomes if not o.accepted],
            outcomes=outcomes,
        )


JobCallback = Callable[[QueuedJob], Any]


def render_job(job: Job) -> bytes:
    return render_ticket(job.ticket_type, job.payload, job.translations)


class PrintScheduler:
    """
    Serializes print jobs onto a single device channel.

    ``submit`` and the post-job completion step are the only places that
    touch the pending heap and the busy flag, and both do so under one lock.
    """

    def __init__(
        self,
        probe: DeviceProbe,
        dispatcher: DispatchAdapter,
        cooldown_sec: float = DEFAULT_COOLDOWN_SEC,
        history_size: int = 50,
        on_job_finished: Optional[JobCallback] = None,
        renderer: Callable[[Job], bytes] = render_job,
    ):
        self.probe = probe
        self.dispatcher = dispatcher
        self.cooldown_sec = cooldown_sec
        self._on_job_finished = on_job_finished
        self._render = renderer

        self._pending: list[tuple[int, int, QueuedJob]] = []
        self._sequence = itertools.count()
        self._busy = False
        self._current: Optional[QueuedJob] = None
        self._history: deque[QueuedJob] = deque(maxlen=history_size)
        self._lock = asyncio.Lock()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def submit(self, job: Job) -> bool:
        """Queue a job. Always accepted; there is no capacity bound."""
        async with self._lock:
            queued = QueuedJob(job=job, sequence=next(self._sequence))
            job.enqueued_at = queued.queued_at
            heapq.heappush(self._pending, (job.priority_tier, queued.sequence, queued))
            logger.info(
                f"[JOB_QUEUED] Job {job.id} ({job.ticket_type.value}, tier {job.priority_tier}) "
                f"for {job.printer_name}; {len(self._pending)} pending"
            )
            self._drain_locked()
        return True

    async def submit_batch(self, jobs: list[Job]) -> BatchResult:
        """
        Submit related jobs with partial-success semantics.

        Each job is checked on its own: it must name a printer and that
        printer must be reachable right now. Jobs that pass are queued;
        every job that does not adds one warning. The batch is accepted if
        at least one job was queued.
        """
        outcomes = []
        for index, job in enumerate(jobs):
            printer_name = (job.printer_name or "").strip()
            if not printer_name:
                outcomes.append(BatchItemOutcome(
                    index=index,
                    printer_name="",
                    accepted=False,
                    reason=f"Item {index + 1}: no printer name given",
                ))
                continue

            if not await self._probe(printer_name):
                outcomes.append(BatchItemOutcome(
                    index=index,
                    printer_name=printer_name,
                    accepted=False,
                    reason=f"Printer '{printer_name}' is not connected or inactive; ticket not printed",
                ))
                continue

            await self.submit(job)
            outcomes.append(BatchItemOutcome(index=index, printer_name=printer_name, accepted=True, job_id=job.id))

        result = BatchResult.from_outcomes(outcomes)
        logger.info(f"[BATCH] {result.success_count}/{len(jobs)} jobs queued, {len(result.warnings)} rejected")
        for warning in result.warnings:
            logger.warning(f"[BATCH] {warning}")
        return result

    def _drain_locked(self) -> None:
        """Start the head job if the channel is free. Caller holds the lock."""
        if self._busy or not self._pending or self._closed:
            return

        _, _, queued = heapq.heappop(self._pending)
        self._busy = True
        self._current = queued
        self._idle.clear()
        self._task = asyncio.create_task(self._run(queued), name=f"print-job-{queued.job.id}")

    async def _run(self, queued: QueuedJob) -> None:
        await self._execute(queued)

        # Let the printer settle before the next job
        await asyncio.sleep(self.cooldown_sec)

        async with self._lock:
            self._busy = False
            self._current = None
            self._drain_locked()
            if not self._busy:
                self._idle.set()

    async def _probe(self, printer_name: str) -> bool:
        try:
            return await self.probe.is_reachable(printer_name)
        except Exception as e:
            logger.error(f"Connectivity check for '{printer_name}' failed: {e}")
            return False

    async def _execute(self, queued: QueuedJob) -> None:
        job = queued.job
        queued.status = JobStatus.PRINTING
        queued.started_at = datetime.now()
        logger.info(f"Processing job {job.id} on {job.printer_name}")

        try:
            if not await self._probe(job.printer_name):
                raise PrinterUnavailableError(f"Printer '{job.printer_name}' is not connected or inactive")

            try:
                data = self._render(job)
            except Exception as e:
                raise RenderError(f"Could not render {job.ticket_type.value} ticket: {e}") from e

            try:
                result = await self.dispatcher.dispatch(job.printer_name, data, job.id)
            except Exception as e:
                result = DispatchResult(success=False, job_id=job.id, message=str(e), error_code=DISPATCH_FAILURE)
            queued.result = result
            if not result.success:
                raise DispatchError(result.message or "Print command failed")

            queued.status = JobStatus.COMPLETED
            logger.info(f"[JOB_COMPLETED] Job {job.id} printed on {job.printer_name}")

        except TicketBridgeError as e:
            self._fail(queued, e.error_code, e.message)
        except Exception as e:
            self._fail(queued, DISPATCH_FAILURE, str(e))

        finally:
            queued.completed_at = datetime.now()
            self._history.append(queued)
            await self._notify(queued)

    def _fail(self, queued: QueuedJob, error_code: str, message: str) -> None:
        queued.status = JobStatus.FAILED
        queued.error = message
        queued.error_code = error_code
        logger.error(f"[JOB_FAILED] Job {queued.job.id} ({error_code}): {message}")

    async def _notify(self, queued: QueuedJob) -> None:
        if not self._on_job_finished:
            return
        try:
            outcome = self._on_job_finished(queued)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Job finished callback failed: {e}")

    async def wait_idle(self) -> None:
        """Wait until nothing is queued or printing."""
        await self._idle.wait()

    async def close(self) -> None:
        """Stop scheduling; the in-flight job is cancelled, pending jobs are dropped."""
        self._closed = True
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        dropped = len(self._pending)
        self._pending.clear()
        self._idle.set()
        if dropped:
            logger.warning(f"Scheduler closed with {dropped} pending jobs dropped")

    def get_status(self) -> dict:
        """Get queue status."""
        return {
            "queued": len(self._pending),
            "processing": self._current is not None,
            "current_job": self._current.job.id if self._current else None,
            "busy": self._busy,
            "cooldown_sec": self.cooldown_sec,
        }

    def get_queue(self) -> list[dict]:
        """Get the in-flight job followed by pending jobs in print order."""
        jobs = []

        if self._current:
            jobs.append(job_to_dict(self._current))

        for _, _, queued in sorted(self._pending, key=lambda entry: entry[:2]):
            jobs.append(job_to_dict(queued))

        return jobs

    def get_history(self, limit: int = 10) -> list[dict]:
        """Get recent job history."""
        return [job_to_dict(j) for j in list(self._history)[-limit:]]

    def get_job(self, job_id: str) -> Optional[QueuedJob]:
        """Get a specific job by ID."""
        if self._current and self._current.job.id == job_id:
            return self._current

        for _, _, queued in self._pending:
            if queued.job.id == job_id:
                return queued

        for completed in self._history:
            if completed.job.id == job_id:
                return completed

        return None


def job_to_dict(queued: QueuedJob) -> dict:
    """Convert QueuedJob to API response dict."""
    return {
        "id": queued.job.id,
        "printer_name": queued.job.printer_name,
        "ticket_type": queued.job.ticket_type.value,
        "priority_tier": queued.job.priority_tier,
        "status": queued.status.value,
        "queued_at": queued.queued_at.isoformat(),
        "started_at": queued.started_at.isoformat() if queued.started_at else None,
        "completed_at": queued.completed_at.isoformat() if queued.completed_at else None,
        "error": queued.error,
        "error_code": queued.error_code,
    }
