from urllib.parse import urljoin

from siteaudit.fetcher import FetchedPage
from siteaudit.models import ImageFact, ImagesFacts


def extract_images(page: FetchedPage) -> ImagesFacts:
    items: list[ImageFact] = []
    for img in page.soup.find_all("img"):
        src = img.get("src") or img.get("data-src") or ""
        alt = img.get("alt")
        if src:
            try:
                src = urljoin(page.final_url, src)
            except ValueError:
                pass  # unparseable, keep as written
        items.append(ImageFact(
            src=src,
            alt=alt,
            has_alt=bool(alt and alt.strip()),
        ))

    return ImagesFacts(
        items=items,
        total=len(items),
        missing_alt=sum(1 for i in items if not i.has_alt),
    )
