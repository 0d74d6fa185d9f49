from urllib.parse import urljoin, urlparse

from siteaudit.config import ROBOTS_MAX_CHARS, SECONDARY_TIMEOUT
from siteaudit.errors import FetchError
from siteaudit.fetcher import FetchedPage, PageFetcher
from siteaudit.models import RobotsTxtFacts


def _directive(line: str) -> tuple[str, str]:
    key, _, value = line.partition(":")
    return key.strip().lower(), value.strip()


def extract_robots(page: FetchedPage, fetcher: PageFetcher) -> RobotsTxtFacts:
    robots_url = urljoin(page.base_url, "/robots.txt")
    try:
        resp = fetcher.fetch(robots_url, timeout=SECONDARY_TIMEOUT, parse=False)
    except FetchError as e:
        return RobotsTxtFacts(exists=False, error=f"Could not fetch {robots_url}: {e}")

    text = resp.text
    lines = [line.split("#", 1)[0].strip() for line in text.splitlines()]
    directives = [_directive(line) for line in lines if ":" in line]

    disallow = [value for key, value in directives if key == "disallow"]
    allow = [value for key, value in directives if key == "allow"]
    sitemaps = [value for key, value in directives if key == "sitemap" and value]

    # Check if the audited path is disallowed (prefix match, any user-agent)
    path = urlparse(page.final_url).path or "/"
    blocks_page = any(rule and path.startswith(rule) for rule in disallow)

    return RobotsTxtFacts(
        exists=True,
        content=text[:ROBOTS_MAX_CHARS],
        has_sitemap=bool(sitemaps),
        sitemaps=sitemaps,
        disallow_count=len(disallow),
        allow_count=len(allow),
        blocks_page=blocks_page,
    )
