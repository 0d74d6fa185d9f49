"""Runs one audit job through its lifecycle.

``pending -> processing -> completed | failed``. The page fetch is the only
step whose failure is fatal on its own; every extractor runs in isolation and
a failing one only leaves its fact sub-record empty. The whole job is bounded
by ``PIPELINE_TIMEOUT``.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from siteaudit.config import EXTRACTOR_WORKERS, PIPELINE_TIMEOUT
from siteaudit.errors import (
    ExtractionError,
    FetchError,
    InvalidTransition,
    PersistenceError,
    PipelineTimeoutError,
)
from siteaudit.extractors import DOCUMENT_EXTRACTORS, SECONDARY_EXTRACTORS, apply_link_results
from siteaudit.fetcher import FetchedPage, PageFetcher
from siteaudit.link_checker import LinkChecker
from siteaudit.models import Audit, AuditStatus, AuditSummary, FactBundle, utcnow
from siteaudit.scoring import score_bundle
from siteaudit.store import AuditStore

logger = logging.getLogger(__name__)


class _Deadline:
    def __init__(self, seconds: float):
        self.seconds = seconds
        self._ends = time.monotonic() + seconds

    def remaining(self) -> float:
        left = self._ends - time.monotonic()
        if left <= 0:
            raise PipelineTimeoutError(self.seconds)
        return left


class AuditPipeline:
    def __init__(
        self,
        store: AuditStore,
        fetcher_factory: Callable[[], PageFetcher] = PageFetcher,
        link_checker: Optional[LinkChecker] = None,
        scorer: Callable[[FactBundle], AuditSummary] = score_bundle,
        timeout: float = PIPELINE_TIMEOUT,
        document_extractors: Optional[dict] = None,
        secondary_extractors: Optional[dict] = None,
        extractor_workers: int = EXTRACTOR_WORKERS,
    ):
        self.store = store
        self.fetcher_factory = fetcher_factory
        self.link_checker = link_checker or LinkChecker()
        self.scorer = scorer
        self.timeout = timeout
        self.document_extractors = DOCUMENT_EXTRACTORS if document_extractors is None else document_extractors
        self.secondary_extractors = SECONDARY_EXTRACTORS if secondary_extractors is None else secondary_extractors
        self.extractor_workers = extractor_workers

    def run(self, audit_id: str) -> Audit:
        audit = self.store.update(
            audit_id, {"status": AuditStatus.PROCESSING}, expected_status=AuditStatus.PENDING
        )
        logger.info("Audit %s processing %s", audit_id, audit.website_url)

        deadline = _Deadline(self.timeout)
        cancel_event = threading.Event()
        executor = ThreadPoolExecutor(max_workers=max(1, self.extractor_workers))
        try:
            with self.fetcher_factory() as fetcher:
                results, summary = self._analyze(audit, fetcher, executor, deadline, cancel_event)
            completed = self.store.update(audit_id, {
                "status": AuditStatus.COMPLETED,
                "results": results,
                "summary": summary,
                "completed_at": utcnow(),
            }, expected_status=AuditStatus.PROCESSING)
        except FetchError as e:
            return self._fail(audit_id, f"Could not fetch {audit.website_url}: {e}")
        except PipelineTimeoutError as e:
            return self._fail(audit_id, str(e))
        except (PersistenceError, InvalidTransition):
            raise
        except Exception as e:
            logger.exception("Audit %s failed unexpectedly", audit_id)
            return self._fail(audit_id, str(e) or type(e).__name__)
        finally:
            cancel_event.set()
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info("Audit %s completed with score %d", audit_id, summary.score)
        return completed

    def _fail(self, audit_id: str, message: str) -> Audit:
        logger.warning("Audit %s failed: %s", audit_id, message)
        return self.store.update(audit_id, {
            "status": AuditStatus.FAILED,
            "error": message,
            "completed_at": utcnow(),
        }, expected_status=AuditStatus.PROCESSING)

    def _await(self, future: Future, deadline: _Deadline):
        try:
            return future.result(timeout=deadline.remaining())
        except FutureTimeoutError:
            raise PipelineTimeoutError(deadline.seconds) from None

    def _analyze(
        self,
        audit: Audit,
        fetcher: PageFetcher,
        executor: ThreadPoolExecutor,
        deadline: _Deadline,
        cancel_event: threading.Event,
    ) -> tuple[FactBundle, AuditSummary]:
        page = self._await(executor.submit(fetcher.fetch, audit.website_url), deadline)
        logger.debug("Fetched %s in %dms", page.final_url, page.timing_ms)

        bundle = self._extract(page, fetcher, executor, deadline)

        if bundle.links is not None:
            checked = self._await(
                executor.submit(self.link_checker.check, bundle.links.records, cancel_event), deadline
            )
            bundle.links = apply_link_results(bundle.links, checked)

        deadline.remaining()
        return bundle, self.scorer(bundle)

    def _extract(
        self,
        page: FetchedPage,
        fetcher: PageFetcher,
        executor: ThreadPoolExecutor,
        deadline: _Deadline,
    ) -> FactBundle:
        futures: dict[Future, str] = {}
        for name, fn in self.document_extractors.items():
            futures[executor.submit(fn, page)] = name
        for name, fn in self.secondary_extractors.items():
            futures[executor.submit(fn, page, fetcher)] = name

        done, not_done = wait(futures, timeout=deadline.remaining())
        if not_done:
            raise PipelineTimeoutError(deadline.seconds)

        facts = {}
        for future in done:
            name = futures[future]
            try:
                facts[name] = future.result()
            except Exception as e:
                error = ExtractionError(name, e)
                logger.warning("%s; leaving it out of the results", error)

        bundle = FactBundle(**facts)
        if bundle.missing():
            logger.info("Fact bundle missing: %s", ", ".join(bundle.missing()))
        return bundle
