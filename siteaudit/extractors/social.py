from siteaudit.fetcher import FetchedPage
from siteaudit.models import SocialFacts

OPEN_GRAPH_FIELDS = ("og:title", "og:description", "og:image", "og:url", "og:type")
TWITTER_FIELDS = ("twitter:card", "twitter:title", "twitter:description", "twitter:image")
REQUIRED_OPEN_GRAPH = ("og:title", "og:description", "og:image", "og:url")


def extract_social(page: FetchedPage) -> SocialFacts:
    soup = page.soup

    open_graph = {}
    for field in OPEN_GRAPH_FIELDS:
        tag = soup.find("meta", attrs={"property": field})
        if tag and tag.get("content"):
            open_graph[field] = tag["content"].strip()

    twitter = {}
    for field in TWITTER_FIELDS:
        # Twitter tags show up under both name= and property=
        tag = soup.find("meta", attrs={"name": field}) or soup.find("meta", attrs={"property": field})
        if tag and tag.get("content"):
            twitter[field] = tag["content"].strip()

    return SocialFacts(
        open_graph=open_graph,
        twitter=twitter,
        missing_open_graph=[f for f in REQUIRED_OPEN_GRAPH if f not in open_graph],
    )
