from typing import Optional
from urllib.parse import urljoin

from siteaudit.config import (
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from siteaudit.fetcher import FetchedPage
from siteaudit.models import MetaFacts, TextFact


def length_status(length: int, min_length: int, max_length: int) -> str:
    if length == 0:
        return "missing"
    if length < min_length:
        return "too_short"
    if length > max_length:
        return "too_long"
    return "good"


def _text_fact(content: str, min_length: int, max_length: int) -> TextFact:
    return TextFact(
        content=content or None,
        length=len(content),
        status=length_status(len(content), min_length, max_length),
    )


def _link_href(page: FetchedPage, rel_values: set[str]) -> Optional[str]:
    for link in page.soup.find_all("link", href=True):
        rel = link.get("rel", [])
        if isinstance(rel, str):
            rel = rel.split()
        if rel_values & {r.lower() for r in rel}:
            try:
                return urljoin(page.final_url, link["href"])
            except ValueError:
                return link["href"]
    return None


def extract_meta(page: FetchedPage) -> MetaFacts:
    soup = page.soup

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    desc_tag = soup.find("meta", attrs={"name": "description"})
    desc = desc_tag.get("content", "").strip() if desc_tag else ""

    keywords_tag = soup.find("meta", attrs={"name": "keywords"})
    keywords_raw = keywords_tag.get("content", "") if keywords_tag else ""
    keywords = [k.strip() for k in keywords_raw.split(",") if k.strip()]

    robots_tag = soup.find("meta", attrs={"name": "robots"})
    html_tag = soup.find("html")

    return MetaFacts(
        title=_text_fact(title, TITLE_MIN_LENGTH, TITLE_MAX_LENGTH),
        description=_text_fact(desc, DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH),
        keywords=keywords,
        canonical=_link_href(page, {"canonical"}),
        favicon=_link_href(page, {"icon", "apple-touch-icon"}),
        lang=(html_tag.get("lang") or None) if html_tag else None,
        robots=robots_tag.get("content") if robots_tag else None,
    )
