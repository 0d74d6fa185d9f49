from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional

from siteaudit.config import AUDIT_QUEUE_SIZE, AUDIT_WORKERS
from siteaudit.errors import AuditError, PersistenceError, QueueFullError
from siteaudit.models import AuditStatus, utcnow
from siteaudit.pipeline import AuditPipeline

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass(frozen=True)
class AuditJob:
    audit_id: str


class AuditWorkerPool:
    """Fixed set of worker threads pulling audit jobs from a bounded queue."""

    def __init__(
        self,
        pipeline: AuditPipeline,
        workers: int = AUDIT_WORKERS,
        max_queue: int = AUDIT_QUEUE_SIZE,
    ):
        self.pipeline = pipeline
        self.workers = max(1, workers)
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue)
        self._threads: list[threading.Thread] = []
        self._closed = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        with self._lock:
            if self._threads:
                return
            for i in range(self.workers):
                t = threading.Thread(target=self._work, name=f"audit-worker-{i}", daemon=True)
                t.start()
                self._threads.append(t)
        logger.info("Started %d audit worker(s)", self.workers)

    def enqueue(self, job: AuditJob) -> None:
        if self._closed:
            raise QueueFullError("Worker pool is shut down")
        try:
            self._queue.put_nowait(job)
        except queue.Full:
            raise QueueFullError(f"Audit queue is full ({self._queue.maxsize} jobs)") from None

    def pending(self) -> int:
        return self._queue.qsize()

    def shutdown(self, drain: bool = True, timeout: Optional[float] = None) -> None:
        """Stop accepting jobs, then either finish or reject what is queued."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            threads = list(self._threads)

        if not drain:
            self._reject_queued()

        for _ in threads:
            self._queue.put(_STOP)
        for t in threads:
            t.join(timeout)
        logger.info("Audit workers stopped")

    def _reject_queued(self) -> None:
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                return
            try:
                if job is not _STOP:
                    self.pipeline.store.update(job.audit_id, {
                        "status": AuditStatus.FAILED,
                        "error": "rejected: worker pool shutting down",
                        "completed_at": utcnow(),
                    }, expected_status=AuditStatus.PENDING)
            except AuditError as e:
                logger.warning("Could not reject audit %s: %s", job.audit_id, e)
            finally:
                self._queue.task_done()

    def _work(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    return
                self.pipeline.run(job.audit_id)
            except PersistenceError:
                logger.exception("Audit %s could not be persisted; left for reconciliation", job.audit_id)
            except Exception:
                logger.exception("Audit worker crashed on %s", job.audit_id)
            finally:
                self._queue.task_done()
