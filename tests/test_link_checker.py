import threading
import time

import requests
from conftest import FakeSession

from siteaudit.link_checker import LinkChecker, is_probeable
from siteaudit.models import LinkRecord


def _records(*hrefs):
    return [LinkRecord(href=h, text=h, is_internal=False) for h in hrefs]


def test_non_http_links_are_never_probed():
    session = FakeSession()
    checked = LinkChecker(session=session).check(
        _records("mailto:someone@example.com", "tel:+123456", "ftp://example.com/file")
    )

    assert session.calls == []
    assert [r.outcome for r in checked] == ["skipped", "skipped", "skipped"]
    assert not any(r.is_broken for r in checked)
    assert not is_probeable("mailto:someone@example.com")


def test_outcomes():
    session = FakeSession(routes={
        "https://example.com/ok": 200,
        "https://example.com/gone": 404,
        "https://example.com/down": 503,
        "https://nope.invalid/": requests.ConnectionError("Name or service not known"),
        "https://slow.example.com/": requests.Timeout("read timed out"),
    })
    checked = LinkChecker(session=session).check(_records(
        "https://example.com/ok",
        "https://example.com/gone",
        "https://example.com/down",
        "https://nope.invalid/",
        "https://slow.example.com/",
    ))
    by_href = {r.href: r for r in checked}

    assert by_href["https://example.com/ok"].outcome == "reachable"
    assert by_href["https://example.com/gone"].outcome == "broken"
    assert by_href["https://example.com/gone"].status_code == 404
    assert by_href["https://example.com/down"].is_broken
    assert by_href["https://nope.invalid/"].outcome == "error"
    assert "ConnectionError" in by_href["https://nope.invalid/"].reason
    assert by_href["https://slow.example.com/"].outcome == "error"


def test_falls_back_to_get_when_head_not_allowed():
    session = FakeSession(
        routes={"https://example.com/page": 200},
        head_routes={"https://example.com/page": 405},
    )
    checked = LinkChecker(session=session).check(_records("https://example.com/page"))

    assert checked[0].outcome == "reachable"
    assert session.calls == [("HEAD", "https://example.com/page"), ("GET", "https://example.com/page")]


def test_duplicate_urls_probed_once():
    session = FakeSession()
    checked = LinkChecker(session=session).check(
        _records("https://example.com/a", "https://example.com/a#top", "https://example.com/a")
    )

    assert session.calls == [("HEAD", "https://example.com/a")]
    assert all(r.outcome == "reachable" for r in checked)


def test_probe_limit():
    session = FakeSession()
    checked = LinkChecker(session=session, max_links=2).check(
        _records("https://example.com/1", "https://example.com/2", "https://example.com/3")
    )

    assert len(session.calls) == 2
    assert checked[2].outcome == "skipped"
    assert checked[2].reason == "probe limit"


def test_cancelled_probes_are_skipped():
    cancel = threading.Event()
    cancel.set()
    session = FakeSession()
    checked = LinkChecker(session=session).check(_records("https://example.com/a"), cancel_event=cancel)

    assert session.calls == []
    assert checked[0].outcome == "skipped"
    assert checked[0].reason == "cancelled"


def test_probes_run_concurrently():
    session = FakeSession(delay=0.2)
    hrefs = [f"https://example.com/{i}" for i in range(10)]

    started = time.monotonic()
    LinkChecker(session=session, max_workers=10).check(_records(*hrefs))
    elapsed = time.monotonic() - started

    assert len(session.calls) == 10
    assert elapsed < 1.5


def test_input_records_untouched():
    records = _records("https://example.com/gone")
    LinkChecker(session=FakeSession(routes={"https://example.com/gone": 404})).check(records)
    assert records[0].outcome == "unchecked"
