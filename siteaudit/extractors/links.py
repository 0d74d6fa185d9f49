from urllib.parse import urljoin, urlparse

from siteaudit.fetcher import FetchedPage
from siteaudit.models import LinkRecord, LinksFacts


def is_internal(href: str, hostname: str) -> bool:
    parsed = urlparse(href)
    if parsed.scheme not in ("http", "https"):
        return False
    return (parsed.hostname or "").lower() == hostname


def extract_links(page: FetchedPage) -> LinksFacts:
    """Enumerate anchors and classify them by hostname. Reachability is filled in later."""
    records: list[LinkRecord] = []
    invalid = 0

    for a in page.soup.find_all("a"):
        href = (a.get("href") or "").strip()
        if not href or href == "#" or href.lower().startswith("javascript:"):
            invalid += 1
            continue

        try:
            full = urljoin(page.final_url, href)
            internal = is_internal(full, page.hostname)
        except ValueError:
            invalid += 1
            continue
        records.append(LinkRecord(
            href=full,
            text=a.get_text(" ", strip=True),
            is_internal=internal,
        ))

    internal = sum(1 for r in records if r.is_internal)
    return LinksFacts(
        records=records,
        total=len(records),
        internal=internal,
        external=len(records) - internal,
        invalid=invalid,
    )


def apply_link_results(facts: LinksFacts, checked: list[LinkRecord]) -> LinksFacts:
    probed = [r for r in checked if r.outcome not in ("unchecked", "skipped")]
    return facts.model_copy(update={
        "records": checked,
        "checked": len(probed),
        "broken": [r for r in checked if r.is_broken],
    })
