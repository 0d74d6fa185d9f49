from siteaudit.fetcher import FetchedPage
from siteaudit.models import Heading, HeadingIssue, HeadingsFacts

LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")


def extract_headings(page: FetchedPage) -> HeadingsFacts:
    soup = page.soup
    found: dict[str, list[Heading]] = {}
    for tag_name in LEVELS:
        found[tag_name] = [
            Heading(content=text, length=len(text))
            for text in (tag.get_text(" ", strip=True) for tag in soup.find_all(tag_name))
        ]

    issues: list[HeadingIssue] = []
    h1_count = len(found["h1"])
    if h1_count == 0:
        issues.append(HeadingIssue(severity="critical", message="No H1 tag found"))
    elif h1_count > 1:
        issues.append(HeadingIssue(severity="warning", message=f"Multiple H1 tags found ({h1_count})"))

    # Detect skipped levels by checking order of first appearances
    seen_levels = [int(name[1]) for name in LEVELS if found[name]]
    skipped = []
    for i in range(1, len(seen_levels)):
        if seen_levels[i] - seen_levels[i - 1] > 1:
            skipped.append(f"h{seen_levels[i - 1]}->h{seen_levels[i]}")
            issues.append(HeadingIssue(
                severity="warning",
                message=f"Heading hierarchy skips from H{seen_levels[i - 1]} to H{seen_levels[i]}",
            ))

    return HeadingsFacts(**found, skipped_levels=skipped, issues=issues)
