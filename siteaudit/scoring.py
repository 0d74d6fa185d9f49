"""Score and recommendations derived from a fact bundle.

Scoring starts at 100 and subtracts a fixed penalty per detected issue. Each
check that fires also yields a recommendation whose severity follows its
penalty: structural omissions are critical, length/quantity issues are
warnings, unpenalised findings are info. Sub-records that are absent (their
extractor failed) are skipped entirely.
"""

from siteaudit.config import (
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    PENALTY_DESCRIPTION_TOO_LONG,
    PENALTY_IMAGE_MISSING_ALT,
    PENALTY_IMAGES_MAX,
    PENALTY_MISSING_DESCRIPTION,
    PENALTY_MISSING_H1,
    PENALTY_MISSING_TITLE,
    PENALTY_MULTIPLE_H1,
    PENALTY_SLOW_LOAD,
    PENALTY_TITLE_TOO_LONG,
    SLOW_LOAD_TIME_MS,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from siteaudit.models import AuditSummary, FactBundle, Recommendation


def clamp_score(score: int) -> int:
    return max(0, min(100, score))


def _rec(type_: str, severity: str, description: str, impact: str, how_to_fix: str) -> Recommendation:
    return Recommendation(
        type=type_, severity=severity, description=description, impact=impact, how_to_fix=how_to_fix,
    )


def _meta_checks(bundle: FactBundle) -> list[tuple[int, Recommendation]]:
    meta = bundle.meta
    if meta is None:
        return []
    found = []

    title = meta.title
    if title.status == "missing":
        found.append((PENALTY_MISSING_TITLE, _rec(
            "meta_title", "critical", "Missing meta title tag",
            "Crucial for SEO and social sharing",
            f"Add a descriptive title tag between {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters",
        )))
    elif title.status == "too_long":
        found.append((PENALTY_TITLE_TOO_LONG, _rec(
            "meta_title", "warning", f"Title too long ({title.length} chars)",
            "Search engines truncate long titles in results",
            f"Shorten the title to at most {TITLE_MAX_LENGTH} characters",
        )))
    elif title.status == "too_short":
        found.append((0, _rec(
            "meta_title", "info", f"Title is short ({title.length} chars)",
            "Short titles leave out useful keywords",
            f"Expand the title to {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters",
        )))

    desc = meta.description
    if desc.status == "missing":
        found.append((PENALTY_MISSING_DESCRIPTION, _rec(
            "meta_description", "critical", "Missing meta description tag",
            "Important for search result snippets",
            f"Add a compelling meta description between {DESCRIPTION_MIN_LENGTH}-{DESCRIPTION_MAX_LENGTH} characters",
        )))
    elif desc.status == "too_long":
        found.append((PENALTY_DESCRIPTION_TOO_LONG, _rec(
            "meta_description", "warning", f"Meta description too long ({desc.length} chars)",
            "Search engines truncate long descriptions in snippets",
            f"Shorten the meta description to at most {DESCRIPTION_MAX_LENGTH} characters",
        )))
    elif desc.status == "too_short":
        found.append((0, _rec(
            "meta_description", "info", f"Meta description is short ({desc.length} chars)",
            "Short descriptions make weak search snippets",
            f"Expand the meta description to {DESCRIPTION_MIN_LENGTH}-{DESCRIPTION_MAX_LENGTH} characters",
        )))

    if not meta.canonical:
        found.append((0, _rec(
            "canonical", "info", "No canonical URL declared",
            "Duplicate URLs may split ranking signals",
            'Add <link rel="canonical" href="..."> pointing to the preferred URL',
        )))
    return found


def _heading_checks(bundle: FactBundle) -> list[tuple[int, Recommendation]]:
    headings = bundle.headings
    if headings is None:
        return []
    if headings.h1_count == 0:
        return [(PENALTY_MISSING_H1, _rec(
            "headings", "critical", "No H1 heading found",
            "The H1 tells search engines and readers what the page is about",
            "Add exactly one H1 heading describing the page topic",
        ))]
    if headings.h1_count > 1:
        return [(PENALTY_MULTIPLE_H1, _rec(
            "headings", "warning", f"Multiple H1 headings found ({headings.h1_count})",
            "Several H1s dilute the main topic of the page",
            "Keep a single H1 and demote the others to H2",
        ))]
    return []


def _image_checks(bundle: FactBundle) -> list[tuple[int, Recommendation]]:
    images = bundle.images
    if images is None or images.missing_alt == 0:
        return []
    penalty = min(PENALTY_IMAGES_MAX, images.missing_alt * PENALTY_IMAGE_MISSING_ALT)
    return [(penalty, _rec(
        "images", "warning", f"{images.missing_alt} images missing alt text",
        "Affects accessibility and image SEO",
        "Add descriptive alt text to all images",
    ))]


def _performance_checks(bundle: FactBundle) -> list[tuple[int, Recommendation]]:
    perf = bundle.performance
    if perf is None or perf.load_time_ms <= SLOW_LOAD_TIME_MS:
        return []
    return [(PENALTY_SLOW_LOAD, _rec(
        "performance", "warning", f"Slow page load ({perf.load_time_ms}ms)",
        "Slow pages rank lower and lose visitors",
        f"Reduce server response time and page weight to load in under {SLOW_LOAD_TIME_MS}ms",
    ))]


def _info_checks(bundle: FactBundle) -> list[tuple[int, Recommendation]]:
    found = []
    if bundle.links is not None and bundle.links.broken:
        found.append((0, _rec(
            "links", "info", f"{len(bundle.links.broken)} broken links found",
            "Broken links waste crawl budget and frustrate visitors",
            "Fix or remove links that return errors",
        )))
    if bundle.technical is not None and not bundle.technical.ssl:
        found.append((0, _rec(
            "technical", "info", "Page is not served over HTTPS",
            "Browsers flag plain HTTP pages as not secure",
            "Serve the site over HTTPS and redirect HTTP traffic",
        )))
    if bundle.robots_txt is not None and not bundle.robots_txt.exists:
        found.append((0, _rec(
            "robots_txt", "info", "robots.txt not found",
            "Crawlers get no guidance on what to index",
            "Publish a robots.txt at the site root",
        )))
    if bundle.sitemap is not None and not bundle.sitemap.exists:
        found.append((0, _rec(
            "sitemap", "info", "sitemap.xml not found",
            "Search engines may miss pages without a sitemap",
            "Publish a sitemap.xml and reference it from robots.txt",
        )))
    return found


CHECKS = (_meta_checks, _heading_checks, _image_checks, _performance_checks, _info_checks)


def score_bundle(bundle: FactBundle) -> AuditSummary:
    score = 100
    recommendations: list[Recommendation] = []
    for check in CHECKS:
        for penalty, rec in check(bundle):
            score -= penalty
            recommendations.append(rec)

    return AuditSummary(
        score=clamp_score(score),
        critical_issues=sum(1 for r in recommendations if r.severity == "critical"),
        warnings=sum(1 for r in recommendations if r.severity == "warning"),
        passed=sum(1 for r in recommendations if r.severity == "info"),
        recommendations=recommendations,
    )
