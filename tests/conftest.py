import threading
import time

import pytest
import requests
from bs4 import BeautifulSoup
from requests.structures import CaseInsensitiveDict

from siteaudit.errors import FetchError
from siteaudit.fetcher import FetchedPage
from siteaudit.link_checker import LinkChecker
from siteaudit.models import Audit
from siteaudit.pipeline import AuditPipeline
from siteaudit.service import AuditService
from siteaudit.store import MemoryAuditStore
from siteaudit.worker import AuditWorkerPool


def make_response(url, body="", status=200, headers=None, history=None):
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp._content = body.encode("utf-8") if isinstance(body, str) else body
    resp._content_consumed = True
    resp.encoding = "utf-8"
    resp.headers = CaseInsensitiveDict(headers or {"Content-Type": "text/html; charset=utf-8"})
    resp.history = history or []
    return resp


def make_page(html, url="https://example.com/", headers=None, timing_ms=120, history=None):
    resp = make_response(url, html, headers=headers, history=history)
    return FetchedPage(url=url, response=resp, timing_ms=timing_ms, soup=BeautifulSoup(resp.content, "lxml"))


class FakeFetcher:
    """Serves canned responses; unknown URLs answer 404."""

    def __init__(self, routes=None, delays=None, timing_ms=120):
        self.routes = routes or {}
        self.delays = delays or {}
        self.timing_ms = timing_ms
        self.calls = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def fetch(self, url, timeout=None, parse=True):
        self.calls.append(url)
        if url in self.delays:
            time.sleep(self.delays[url])
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            raise FetchError("http4xx5xx", "HTTP 404", url=url, status_code=404)
        body, headers = route if isinstance(route, tuple) else (route, None)
        resp = make_response(url, body, headers=headers)
        soup = BeautifulSoup(resp.content, "lxml") if parse else None
        return FetchedPage(url=url, response=resp, timing_ms=self.timing_ms, soup=soup)


class FakeSession:
    """Stands in for requests.Session in link probes.

    ``routes`` maps URL -> status code or exception; HEAD and GET can be
    given separately through ``head_routes``.
    """

    def __init__(self, routes=None, head_routes=None, delay=0):
        self.routes = routes or {}
        self.head_routes = head_routes or {}
        self.delay = delay
        self.headers = {}
        self.calls = []
        self._lock = threading.Lock()

    def _answer(self, method, url, table):
        with self._lock:
            self.calls.append((method, url))
        if self.delay:
            time.sleep(self.delay)
        outcome = table.get(url, self.routes.get(url, 200))
        if isinstance(outcome, Exception):
            raise outcome
        return make_response(url, "", status=outcome)

    def head(self, url, **kwargs):
        return self._answer("HEAD", url, self.head_routes)

    def get(self, url, **kwargs):
        return self._answer("GET", url, self.routes)

    def close(self):
        pass


SEO_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Acme Widgets - Handmade widgets shipped worldwide today</title>
  <meta name="description" content="Acme makes handmade widgets from recycled steel. Browse the catalogue, compare models and order online with free shipping on all orders.">
  <meta name="keywords" content="widgets, steel, handmade">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="canonical" href="/">
  <link rel="icon" href="/favicon.ico">
  <meta property="og:title" content="Acme Widgets">
  <meta name="twitter:card" content="summary">
  <script type="application/ld+json">{"@context": "https://schema.org", "@type": "Organization", "name": "Acme"}</script>
</head>
<body>
  <header><nav><a href="/about">About us</a></nav></header>
  <main>
    <h1>Handmade widgets</h1>
    <h2>Catalogue</h2>
    <img src="/img/widget.png" alt="A steel widget">
    <a href="https://partner.example.org/page">Partner</a>
    <a href="mailto:sales@example.com">Email sales</a>
  </main>
</body>
</html>
"""

BARE_PAGE = """<html><head></head><body>
<h1>Welcome</h1>
<img src="a.png"><img src="b.png"><img src="c.png" alt="">
</body></html>
"""


@pytest.fixture
def seo_page():
    return make_page(SEO_PAGE)


@pytest.fixture
def store():
    return MemoryAuditStore()


@pytest.fixture
def pending_audit(store):
    audit = Audit(website_url="https://example.com/", email="owner@example.com", name="Owner")
    store.create(audit)
    return audit


def make_service(routes=None, workers=2, max_queue=10, fetcher_factory=None):
    store = MemoryAuditStore()
    routes = {"https://example.com/": SEO_PAGE} if routes is None else routes
    factory = fetcher_factory or (lambda: FakeFetcher(routes))
    pipeline = AuditPipeline(store, fetcher_factory=factory, link_checker=LinkChecker(session=FakeSession()))
    return AuditService(store, AuditWorkerPool(pipeline, workers=workers, max_queue=max_queue))
