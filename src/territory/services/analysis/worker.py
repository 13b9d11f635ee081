"""Background execution of analysis runs.

A single worker thread consumes jobs and posts one-shot messages
(``progress``, ``result``, ``error``) to an outbox queue. Nothing mutable is
shared with the caller; a newer submission simply makes the registry ignore
late messages from the job it replaced.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import CacheEntry, PotentialClient
from .pipeline import AnalysisOptions, AnalysisResult, ProgressUpdate, run_analysis

MESSAGE_PROGRESS = "progress"
MESSAGE_RESULT = "result"
MESSAGE_ERROR = "error"

STATUS_QUEUED = "queued"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_SUPERSEDED = "superseded"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkerMessage:
    job_id: str
    kind: str
    payload: Any = None


@dataclass(slots=True)
class AnalysisJob:
    job_id: str
    table: Sequence[Sequence[Any]]
    potential_clients: Sequence[PotentialClient] = ()
    cache_entries: Optional[Mapping[str, Sequence[CacheEntry]]] = None
    options: Optional[AnalysisOptions] = None


@dataclass(slots=True)
class JobStatus:
    job_id: str
    status: str = STATUS_QUEUED
    progress: Optional[ProgressUpdate] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    reference_errors: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AnalysisWorker:
    """Runs analysis jobs one at a time on a daemon thread."""

    def __init__(
        self,
        outbox: Optional[queue.Queue] = None,
        runner: Callable[..., AnalysisResult] = run_analysis,
    ) -> None:
        self.outbox: queue.Queue = outbox if outbox is not None else queue.Queue()
        self._runner = runner
        self._inbox: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    def start(self) -> None:
        with self._start_lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run, name="analysis-worker", daemon=True)
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._thread is None:
            return
        self._inbox.put(None)
        self._thread.join(timeout)
        self._thread = None

    def submit(self, job: AnalysisJob) -> None:
        self.start()
        self._inbox.put(job)

    def _run(self) -> None:
        while True:
            job = self._inbox.get()
            if job is None:
                return
            self._execute(job)

    def _execute(self, job: AnalysisJob) -> None:
        def report(update: ProgressUpdate) -> None:
            self.outbox.put(WorkerMessage(job.job_id, MESSAGE_PROGRESS, update))

        try:
            result = self._runner(
                job.table,
                job.potential_clients,
                job.cache_entries,
                job.options,
                report,
            )
        except Exception as exc:  # reported to the caller through the outbox
            logger.warning("Analysis job %s failed: %s", job.job_id, exc)
            self.outbox.put(WorkerMessage(job.job_id, MESSAGE_ERROR, str(exc)))
            return
        self.outbox.put(WorkerMessage(job.job_id, MESSAGE_RESULT, result))


class AnalysisJobRegistry:
    """Tracks the latest job and applies worker messages to its status.

    At most ``max_jobs`` statuses are kept; the oldest are dropped first.
    """

    def __init__(self, worker: Optional[AnalysisWorker] = None, max_jobs: Optional[int] = None) -> None:
        self.worker = worker or AnalysisWorker()
        self.max_jobs = max(1, max_jobs if max_jobs is not None else settings.analysis_max_jobs)
        self._jobs: dict[str, JobStatus] = {}
        self._current_job_id: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def current_job_id(self) -> Optional[str]:
        return self._current_job_id

    def submit(
        self,
        table: Sequence[Sequence[Any]],
        potential_clients: Sequence[PotentialClient] = (),
        cache_entries: Optional[Mapping[str, Sequence[CacheEntry]]] = None,
        options: Optional[AnalysisOptions] = None,
        reference_errors: Sequence[str] = (),
    ) -> str:
        job_id = uuid.uuid4().hex
        with self._lock:
            previous = self._jobs.get(self._current_job_id or "")
            if previous is not None and previous.status in (STATUS_QUEUED, STATUS_RUNNING):
                previous.status = STATUS_SUPERSEDED
                previous.progress = None
            self._jobs[job_id] = JobStatus(job_id=job_id, reference_errors=list(reference_errors))
            self._current_job_id = job_id
            self._evict()
        self.worker.submit(AnalysisJob(job_id, table, potential_clients, cache_entries, options))
        return job_id

    def _evict(self) -> None:
        # Oldest first; the current job is always the newest entry.
        while len(self._jobs) > self.max_jobs:
            oldest = next(iter(self._jobs))
            del self._jobs[oldest]
            logger.debug("Evicted analysis job %s", oldest)

    def apply(self, message: WorkerMessage) -> bool:
        """Apply one message; returns False when it belongs to a replaced job."""

        with self._lock:
            if message.job_id != self._current_job_id:
                logger.debug("Ignoring %s message for stale job %s", message.kind, message.job_id)
                return False
            status = self._jobs[message.job_id]
            if message.kind == MESSAGE_PROGRESS:
                status.status = STATUS_RUNNING
                status.progress = message.payload
            elif message.kind == MESSAGE_RESULT:
                status.status = STATUS_COMPLETED
                status.result = message.payload
                if isinstance(status.result, AnalysisResult):
                    status.result.reference_errors = list(status.reference_errors)
            elif message.kind == MESSAGE_ERROR:
                status.status = STATUS_FAILED
                status.error = message.payload
            return True

    def poll(self) -> None:
        while True:
            try:
                message = self.worker.outbox.get_nowait()
            except queue.Empty:
                return
            self.apply(message)

    def get(self, job_id: str) -> Optional[JobStatus]:
        self.poll()
        with self._lock:
            return self._jobs.get(job_id)
