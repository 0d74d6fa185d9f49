from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from siteaudit.config import MAX_REDIRECTS, REQUEST_TIMEOUT, USER_AGENT
from siteaudit.errors import FetchError

logger = logging.getLogger(__name__)

_DNS_MARKERS = (
    "NameResolutionError",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
    "No address associated with hostname",
)


class FetchedPage:
    def __init__(
        self,
        url: str,
        response: requests.Response,
        timing_ms: int,
        soup: Optional[BeautifulSoup] = None,
    ):
        self.url = url
        self.response = response
        self.final_url = response.url or url
        self.status_code = response.status_code
        self.headers = response.headers
        self.content = response.content
        self.timing_ms = timing_ms
        self.redirect_count = len(response.history)
        self.soup = soup

        length = response.headers.get("Content-Length", "")
        self.page_size_bytes = int(length) if length.isdigit() else len(self.content)

        parsed = urlparse(self.final_url)
        self.scheme = parsed.scheme
        self.domain = parsed.netloc
        self.hostname = (parsed.hostname or "").lower()
        self.base_url = f"{parsed.scheme}://{parsed.netloc}"

    @property
    def text(self) -> str:
        return self.response.text


def classify_request_error(exc: requests.RequestException) -> str:
    if isinstance(exc, requests.TooManyRedirects):
        return "redirect_loop"
    if isinstance(exc, requests.Timeout):
        return "timeout"
    if isinstance(exc, requests.exceptions.SSLError):
        return "tls"
    if isinstance(exc, requests.HTTPError):
        return "http4xx5xx"
    if isinstance(exc, requests.ConnectionError):
        if any(marker in str(exc) for marker in _DNS_MARKERS):
            return "dns"
        return "network"
    return "network"


class PageFetcher:
    """Fetches pages over a private ``requests.Session``.

    Use one instance per audit job as a context manager; the session is closed
    on exit.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        max_redirects: int = MAX_REDIRECTS,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.max_redirects = max_redirects
        self.session.headers.update({"User-Agent": USER_AGENT})

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fetch(self, url: str, timeout: Optional[float] = None, parse: bool = True) -> FetchedPage:
        started = time.monotonic()
        try:
            resp = self.session.get(url, timeout=timeout or self.timeout, allow_redirects=True)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError("http4xx5xx", f"HTTP {status}", url=url, status_code=status) from e
        except requests.RequestException as e:
            reason = classify_request_error(e)
            logger.debug("Fetch of %s failed (%s): %s", url, reason, e)
            raise FetchError(reason, str(e)[:200], url=url) from e
        timing_ms = int((time.monotonic() - started) * 1000)

        soup = BeautifulSoup(resp.content, "lxml") if parse else None
        return FetchedPage(url=url, response=resp, timing_ms=timing_ms, soup=soup)
