import re

from siteaudit.fetcher import FetchedPage
from siteaudit.models import TrackingFacts

# tool name -> (script src markers, inline script markers)
PIXELS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "facebook_pixel": (("connect.facebook.net",), ("fbq(",)),
    "linkedin_insight": (("snap.licdn.com",), ("_linkedin_partner_id",)),
    "tiktok_pixel": (("analytics.tiktok.com",), ("ttq.load",)),
    "pinterest_tag": (("s.pinimg.com",), ("pintrk",)),
    "bing_uet": (("bat.bing.com",), ("bat.bing.com",)),
    "hotjar": (("hotjar.com",), ("hotjar.com",)),
    "microsoft_clarity": (("clarity.ms",), ("clarity.ms",)),
}

GTM_CONTAINER = re.compile(r"GTM-[A-Z0-9]+")
UA_PROPERTY = re.compile(r"UA-\d{4,10}-\d{1,4}")


def extract_tracking(page: FetchedPage) -> TrackingFacts:
    soup = page.soup
    html = page.text

    scripts = soup.find_all("script")
    script_srcs = [s.get("src", "") for s in scripts if s.get("src")]
    inline_js = " ".join(s.get_text() for s in scripts if not s.get("src"))

    tools: list[str] = []

    ga4 = ("gtag(" in inline_js and "G-" in inline_js) or any(
        "googletagmanager.com/gtag" in src for src in script_srcs
    )
    if ga4:
        tools.append("google_analytics_4")
    if UA_PROPERTY.search(html):
        tools.append("universal_analytics")

    container = GTM_CONTAINER.search(html)
    if container or any("gtm.js" in src for src in script_srcs):
        tools.append("google_tag_manager")

    for name, (src_markers, inline_markers) in PIXELS.items():
        in_src = any(m in src for src in script_srcs for m in src_markers)
        in_inline = any(m in inline_js for m in inline_markers)
        if in_src or in_inline:
            tools.append(name)

    gsc_meta = soup.find("meta", attrs={"name": "google-site-verification"})

    return TrackingFacts(
        tools=tools,
        gtm_container=container.group(0) if container else None,
        search_console_verified=bool(gsc_meta and gsc_meta.get("content")),
    )
