from siteaudit.fetcher import FetchedPage
from siteaudit.models import ResponseHeaders, TechnicalFacts


def extract_technical(page: FetchedPage) -> TechnicalFacts:
    headers = page.headers
    viewport = page.soup.find("meta", attrs={"name": "viewport"})
    return TechnicalFacts(
        ssl=page.scheme == "https",
        status_code=page.status_code,
        headers=ResponseHeaders(
            server=headers.get("Server"),
            content_type=headers.get("Content-Type"),
            cache_control=headers.get("Cache-Control"),
        ),
        redirect_count=page.redirect_count,
        response_time_ms=page.timing_ms,
        has_viewport=bool(viewport and viewport.get("content")),
    )
