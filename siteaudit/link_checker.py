"""Concurrent reachability probes for extracted links."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from urllib.parse import urldefrag, urlparse

import requests

from siteaudit.config import LINK_CHECK_CONCURRENCY, LINK_TIMEOUT, MAX_LINKS_TO_CHECK, USER_AGENT
from siteaudit.errors import LinkProbeError
from siteaudit.models import LinkRecord

logger = logging.getLogger(__name__)

PROBE_SCHEMES = ("http", "https")
# HEAD not supported -> retry with GET
HEAD_FALLBACK_STATUSES = {405, 501}


def is_probeable(href: str) -> bool:
    return urlparse(href).scheme.lower() in PROBE_SCHEMES


class ProbeResult:
    def __init__(self, outcome: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        self.outcome = outcome
        self.status_code = status_code
        self.reason = reason


class LinkChecker:
    def __init__(
        self,
        timeout: float = LINK_TIMEOUT,
        max_workers: int = LINK_CHECK_CONCURRENCY,
        max_links: int = MAX_LINKS_TO_CHECK,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.max_workers = max_workers
        self.max_links = max_links
        self.session = session

    def _request(self, session: requests.Session, url: str) -> int:
        try:
            resp = session.head(url, timeout=self.timeout, allow_redirects=True)
            if resp.status_code in HEAD_FALLBACK_STATUSES:
                with session.get(url, timeout=self.timeout, allow_redirects=True, stream=True) as get_resp:
                    return get_resp.status_code
            return resp.status_code
        except requests.RequestException as e:
            raise LinkProbeError(url, f"{type(e).__name__}: {str(e)[:150]}") from e

    def _probe(self, session: requests.Session, url: str, cancel_event: Optional[threading.Event]) -> ProbeResult:
        if cancel_event is not None and cancel_event.is_set():
            return ProbeResult("skipped", reason="cancelled")
        try:
            status = self._request(session, url)
        except LinkProbeError as e:
            return ProbeResult("error", reason=e.reason)
        if status >= 400:
            return ProbeResult("broken", status_code=status, reason=f"HTTP {status}")
        return ProbeResult("reachable", status_code=status)

    def check(self, records: list[LinkRecord], cancel_event: Optional[threading.Event] = None) -> list[LinkRecord]:
        """Probe every http(s) link once and return updated copies of ``records``."""
        targets: list[str] = []
        for record in records:
            if is_probeable(record.href):
                url = urldefrag(record.href)[0]
                if url not in targets:
                    targets.append(url)
        to_probe = targets[:self.max_links]

        session = self.session or requests.Session()
        session.headers.update({"User-Agent": USER_AGENT})
        results: dict[str, ProbeResult] = {}
        executor = ThreadPoolExecutor(max_workers=max(1, self.max_workers))
        try:
            futures = {url: executor.submit(self._probe, session, url, cancel_event) for url in to_probe}
            for url, future in futures.items():
                results[url] = future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            if self.session is None:
                session.close()

        checked: list[LinkRecord] = []
        for record in records:
            if not is_probeable(record.href):
                checked.append(record.model_copy(update={"outcome": "skipped", "reason": "not an http(s) link"}))
                continue
            result = results.get(urldefrag(record.href)[0])
            if result is None:
                checked.append(record.model_copy(update={"outcome": "skipped", "reason": "probe limit"}))
                continue
            checked.append(record.model_copy(update={
                "outcome": result.outcome,
                "status_code": result.status_code,
                "reason": result.reason,
            }))

        broken = sum(1 for r in checked if r.is_broken)
        logger.info("Checked %d link(s), %d broken", len(results), broken)
        return checked
