import pytest
import requests
from conftest import make_response

from siteaudit.errors import FetchError
from siteaudit.fetcher import PageFetcher, classify_request_error


class StubSession(requests.Session):
    def __init__(self, outcome):
        super().__init__()
        self.outcome = outcome
        self.closed = False
        self.last_kwargs = None

    def get(self, url, **kwargs):
        self.last_kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def close(self):
        self.closed = True
        super().close()


def test_fetch_returns_page_with_metadata():
    redirect = make_response("http://example.com/", status=301)
    resp = make_response(
        "https://example.com/",
        "<html><head><title>Hi</title></head></html>",
        headers={"Content-Type": "text/html", "Server": "nginx"},
        history=[redirect],
    )
    session = StubSession(resp)
    page = PageFetcher(timeout=7, session=session).fetch("http://example.com/")

    assert page.url == "http://example.com/"
    assert page.final_url == "https://example.com/"
    assert page.scheme == "https"
    assert page.hostname == "example.com"
    assert page.base_url == "https://example.com"
    assert page.redirect_count == 1
    assert page.status_code == 200
    assert page.headers["Server"] == "nginx"
    assert page.soup.find("title").get_text() == "Hi"
    assert page.timing_ms >= 0
    assert session.last_kwargs["timeout"] == 7


def test_fetch_without_parsing():
    session = StubSession(make_response("https://example.com/robots.txt", "User-agent: *"))
    page = PageFetcher(session=session).fetch("https://example.com/robots.txt", timeout=2, parse=False)

    assert page.soup is None
    assert page.text == "User-agent: *"
    assert session.last_kwargs["timeout"] == 2


def test_redirect_cap_is_applied_to_session():
    session = StubSession(make_response("https://example.com/"))
    PageFetcher(max_redirects=10, session=session)
    assert session.max_redirects == 10


def test_http_error_status():
    session = StubSession(make_response("https://example.com/missing", status=404))
    with pytest.raises(FetchError) as exc_info:
        PageFetcher(session=session).fetch("https://example.com/missing")

    assert exc_info.value.reason == "http4xx5xx"
    assert exc_info.value.status_code == 404


@pytest.mark.parametrize("exc, reason", [
    (requests.Timeout("read timed out"), "timeout"),
    (requests.TooManyRedirects("Exceeded 10 redirects."), "redirect_loop"),
    (requests.exceptions.SSLError("certificate verify failed"), "tls"),
    (requests.ConnectionError("Failed to resolve 'nope.invalid' (NameResolutionError)"), "dns"),
    (requests.ConnectionError("Connection refused"), "network"),
])
def test_request_errors_are_classified(exc, reason):
    assert classify_request_error(exc) == reason

    with pytest.raises(FetchError) as exc_info:
        PageFetcher(session=StubSession(exc)).fetch("https://example.com/")
    assert exc_info.value.reason == reason


def test_context_manager_closes_session():
    session = StubSession(make_response("https://example.com/"))
    with PageFetcher(session=session) as fetcher:
        fetcher.fetch("https://example.com/")
    assert session.closed
