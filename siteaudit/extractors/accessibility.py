"""Local accessibility checks on the parsed DOM (no external service)."""

import re

from siteaudit.fetcher import FetchedPage
from siteaudit.models import AccessibilityFacts

LANDMARK_ROLES = re.compile(r"^(main|navigation|banner|contentinfo|search|complementary)$")
LANDMARK_TAGS = ["main", "nav", "header", "footer", "aside"]
UNLABELLED_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}


def _has_aria_name(el) -> bool:
    return bool(el.get("aria-label") or el.get("aria-labelledby") or el.get("title"))


def extract_accessibility(page: FetchedPage) -> AccessibilityFacts:
    soup = page.soup

    html_tag = soup.find("html")
    images_missing_alt = sum(1 for img in soup.find_all("img") if img.get("alt") is None)

    inputs_without_label = 0
    for inp in soup.find_all(["input", "select", "textarea"]):
        if inp.name == "input" and inp.get("type", "text").lower() in UNLABELLED_INPUT_TYPES:
            continue
        input_id = inp.get("id")
        has_label = bool(input_id and soup.find("label", attrs={"for": input_id}))
        wrapped = inp.find_parent("label") is not None
        if not (has_label or wrapped or _has_aria_name(inp)):
            inputs_without_label += 1

    links_without_text = 0
    for a in soup.find_all("a", href=True):
        if a.get_text(strip=True) or _has_aria_name(a):
            continue
        if any(img.get("alt", "").strip() for img in a.find_all("img")):
            continue
        links_without_text += 1

    buttons_without_name = sum(
        1 for b in soup.find_all("button")
        if not b.get_text(strip=True) and not _has_aria_name(b)
    )

    landmarks = len(soup.find_all(attrs={"role": LANDMARK_ROLES})) + len(soup.find_all(LANDMARK_TAGS))

    return AccessibilityFacts(
        has_lang=bool(html_tag and html_tag.get("lang")),
        images_missing_alt=images_missing_alt,
        inputs_without_label=inputs_without_label,
        links_without_text=links_without_text,
        buttons_without_name=buttons_without_name,
        landmarks=landmarks,
    )
