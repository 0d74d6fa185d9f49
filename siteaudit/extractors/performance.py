from siteaudit.fetcher import FetchedPage
from siteaudit.models import PerformanceFacts


def extract_performance(page: FetchedPage) -> PerformanceFacts:
    # Best-effort numbers from the single page fetch, not a resource-timing trace
    soup = page.soup
    external_scripts = soup.find_all("script", attrs={"src": True})
    blocking = [s for s in external_scripts if not s.has_attr("async") and not s.has_attr("defer")]
    stylesheets = [
        link for link in soup.find_all("link", href=True)
        if "stylesheet" in (link.get("rel") or [])
    ]

    return PerformanceFacts(
        page_size_bytes=page.page_size_bytes,
        load_time_ms=page.timing_ms,
        render_blocking_scripts=len(blocking),
        script_count=len(soup.find_all("script")),
        stylesheet_count=len(stylesheets),
    )
