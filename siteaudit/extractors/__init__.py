from .meta import extract_meta
from .headings import extract_headings
from .images import extract_images
from .links import extract_links, apply_link_results
from .technical import extract_technical
from .performance import extract_performance
from .social import extract_social
from .tracking import extract_tracking
from .structured_data import extract_structured_data
from .accessibility import extract_accessibility
from .robots import extract_robots
from .sitemap import extract_sitemap

# FactBundle field -> fn(page)
DOCUMENT_EXTRACTORS = {
    "meta": extract_meta,
    "headings": extract_headings,
    "images": extract_images,
    "links": extract_links,
    "technical": extract_technical,
    "performance": extract_performance,
    "social": extract_social,
    "tracking": extract_tracking,
    "structured_data": extract_structured_data,
    "accessibility": extract_accessibility,
}

# FactBundle field -> fn(page, fetcher); these make their own network request
SECONDARY_EXTRACTORS = {
    "robots_txt": extract_robots,
    "sitemap": extract_sitemap,
}

__all__ = [
    "DOCUMENT_EXTRACTORS",
    "SECONDARY_EXTRACTORS",
    "extract_meta",
    "extract_headings",
    "extract_images",
    "extract_links",
    "apply_link_results",
    "extract_technical",
    "extract_performance",
    "extract_social",
    "extract_tracking",
    "extract_structured_data",
    "extract_accessibility",
    "extract_robots",
    "extract_sitemap",
]
