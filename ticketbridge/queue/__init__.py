from .manager import BatchItemOutcome, BatchResult, Job, JobStatus, PrintScheduler, QueuedJob

__all__ = ["BatchItemOutcome", "BatchResult", "Job", "JobStatus", "PrintScheduler", "QueuedJob"]
