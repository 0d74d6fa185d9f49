import logging

import extruct
from extruct.jsonld import JsonLdExtractor

from siteaudit.fetcher import FetchedPage
from siteaudit.models import SchemaFacts

logger = logging.getLogger(__name__)


def _jsonld_types(data) -> list[str]:
    if isinstance(data, list):
        return [t for item in data for t in _jsonld_types(item)]
    if not isinstance(data, dict):
        return []
    if "@graph" in data:
        return _jsonld_types(data["@graph"])
    t = data.get("@type", "unknown")
    return [str(x) for x in t] if isinstance(t, list) else [str(t)]


def _microdata_type(item: dict) -> str:
    t = item.get("type") or "unknown"
    return ",".join(t) if isinstance(t, list) else t


def extract_structured_data(page: FetchedPage) -> SchemaFacts:
    # JSON-LD blocks are parsed one at a time so a broken block only counts as invalid
    jsonld = JsonLdExtractor()
    scripts = page.soup.find_all("script", attrs={"type": "application/ld+json"})
    types: list[str] = []
    invalid = 0
    for script in scripts:
        try:
            types.extend(_jsonld_types(jsonld.extract(str(script), base_url=page.final_url)))
        except ValueError as e:
            logger.debug("Invalid JSON-LD block on %s: %s", page.final_url, e)
            invalid += 1

    extracted = extruct.extract(
        page.text, base_url=page.final_url, errors="log", syntaxes=["microdata", "rdfa"],
    )
    microdata = extracted.get("microdata", [])
    # og:/twitter: meta tags show up as untyped RDFa nodes
    rdfa = [item for item in extracted.get("rdfa", []) if item.get("@type")]

    return SchemaFacts(
        json_ld_blocks=len(scripts),
        types=types,
        invalid_blocks=invalid,
        microdata_types=[_microdata_type(m) for m in microdata],
        has_rdfa=bool(rdfa),
    )
