from urllib.parse import urljoin

from bs4 import BeautifulSoup

from siteaudit.config import SECONDARY_TIMEOUT
from siteaudit.errors import FetchError
from siteaudit.fetcher import FetchedPage, PageFetcher
from siteaudit.models import SitemapFacts


def extract_sitemap(page: FetchedPage, fetcher: PageFetcher) -> SitemapFacts:
    sitemap_url = urljoin(page.base_url, "/sitemap.xml")
    try:
        resp = fetcher.fetch(sitemap_url, timeout=SECONDARY_TIMEOUT, parse=False)
    except FetchError as e:
        return SitemapFacts(exists=False, error=f"Could not fetch {sitemap_url}: {e}")

    sitemap_soup = BeautifulSoup(resp.content, "lxml-xml")
    sub_sitemaps = sitemap_soup.find_all("sitemap")
    url_entries = sitemap_soup.find_all("url")

    return SitemapFacts(
        exists=True,
        url_count=len(url_entries),
        is_index=bool(sub_sitemaps),
        sitemap_count=len(sub_sitemaps),
    )
