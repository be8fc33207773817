"""Page metadata extractor: fetch a URL and read its SEO / social metadata.

Extracts basic SEO tags, Open Graph, Facebook, Twitter Card, technical and
article tags, hreflang alternates, and probes robots.txt plus the
conventional sitemap locations. Probes never abort an extraction: a failing
probe only leaves the related fields empty.
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from errors import ExternalServiceError, FetchError
from models import MetadataResult

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; MetaLens/1.0; +https://metalens.dev)"
_REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

# requests applies these per phase: connecting, then each socket read.
# They bound a stalled peer, not the total transfer time.
CONNECT_TIMEOUT_SECONDS = float(os.getenv("CONNECT_TIMEOUT_SECONDS", "5"))
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "12"))
PROBE_TIMEOUT_SECONDS = float(os.getenv("PROBE_TIMEOUT_SECONDS", "5"))
FETCH_TIMEOUT = (CONNECT_TIMEOUT_SECONDS, FETCH_TIMEOUT_SECONDS)
PROBE_TIMEOUT = (CONNECT_TIMEOUT_SECONDS, PROBE_TIMEOUT_SECONDS)

# Order is priority: the first path that answers successfully wins.
SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap/",
    "/sitemap/sitemap.xml",
)

_SITEMAP_DIRECTIVE = re.compile(r"Sitemap:\s*(.+)", re.IGNORECASE)


class MetaAttr(str, Enum):
    """Attribute holding the key of a <meta> tag."""

    NAME = "name"
    PROPERTY = "property"


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one best-effort GET against an auxiliary resource."""

    url: str
    found: bool
    body: str | None = None
    reason: str = ""


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _get_meta(soup: BeautifulSoup, key: str, attr: MetaAttr = MetaAttr.NAME) -> str | None:
    tag = soup.select_one(f'meta[{attr.value}="{key}"]')
    return _clean(tag.get("content")) if tag else None


def _get_link(soup: BeautifulSoup, rel: str) -> str | None:
    tag = soup.select_one(f'link[rel="{rel}"]')
    return _clean(tag.get("href")) if tag else None


def _alternate_urls(soup: BeautifulSoup) -> dict[str, str]:
    alternates: dict[str, str] = {}
    for link in soup.select('link[rel="alternate"]'):
        hreflang = _clean(link.get("hreflang"))
        href = _clean(link.get("href"))
        if hreflang and href:
            alternates[hreflang] = href
    return alternates


def _base_url(url: str) -> str:
    """Scheme and host of `url`, without any user:password@ credentials."""
    parsed = urlparse(url)
    host = parsed.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parsed.port is not None:
        host = f"{host}:{parsed.port}"
    return f"{parsed.scheme}://{host}"


def probe(url: str, read_body: bool = False) -> ProbeOutcome:
    """
    GET `url`; report found/not-found instead of raising.

    The body is downloaded only when `read_body` is set. Otherwise the
    connection is closed once the status line and headers are in.
    """
    try:
        with requests.get(url, headers=_REQUEST_HEADERS, timeout=PROBE_TIMEOUT, stream=True) as response:
            if not response.ok:
                return ProbeOutcome(url=url, found=False, reason=f"HTTP {response.status_code}")
            return ProbeOutcome(url=url, found=True, body=response.text if read_body else None)
    except requests.RequestException as exc:
        return ProbeOutcome(url=url, found=False, reason=f"{type(exc).__name__}: {exc}")


def sitemap_candidates(base_url: str) -> Iterator[str]:
    for path in SITEMAP_PATHS:
        yield f"{base_url}{path}"


def first_found(outcomes: Iterable[ProbeOutcome]) -> ProbeOutcome | None:
    """Consume probe outcomes lazily and stop at the first success."""
    for outcome in outcomes:
        logger.debug("Probe %s found=%s %s", outcome.url, outcome.found, outcome.reason)
        if outcome.found:
            return outcome
    return None


def _fetch_html(url: str) -> str:
    try:
        response = requests.get(url, headers=_REQUEST_HEADERS, timeout=FETCH_TIMEOUT)
    except requests.RequestException as exc:
        raise ExternalServiceError("target site", f"Could not reach {url}: {exc}") from exc

    if not response.ok:
        raise FetchError(url, response.status_code, response.reason or "")

    response.encoding = response.apparent_encoding or "utf-8"
    return response.text


def _sitemap_and_robots(base_url: str) -> dict:
    result: dict = {"sitemapExists": False, "robotsTxtExists": False}

    robots = probe(f"{base_url}/robots.txt", read_body=True)
    logger.debug("Probe %s found=%s %s", robots.url, robots.found, robots.reason)
    if robots.found:
        result["robotsTxtExists"] = True
        content = robots.body or ""
        if content:
            result["robotsTxtContent"] = content
        match = _SITEMAP_DIRECTIVE.search(content)
        sitemap_url = _clean(match.group(1)) if match else None
        if sitemap_url:
            result["sitemapUrl"] = sitemap_url
            result["sitemapExists"] = True
            return result

    sitemap = first_found(probe(candidate) for candidate in sitemap_candidates(base_url))
    if sitemap is not None:
        result["sitemapUrl"] = sitemap.url
        result["sitemapExists"] = True
    return result


def fetch_metadata(url: str) -> MetadataResult:
    """
    Fetch the page at `url` and return its extracted metadata.

    Raises FetchError on a non-success status and ExternalServiceError when
    the page cannot be reached at all. robots.txt / sitemap probes never raise.
    """
    html = _fetch_html(url)
    soup = BeautifulSoup(html, "html.parser")

    def meta(key: str) -> str | None:
        return _get_meta(soup, key, MetaAttr.NAME)

    def prop(key: str) -> str | None:
        return _get_meta(soup, key, MetaAttr.PROPERTY)

    og_title = prop("og:title")
    og_description = prop("og:description")
    og_image = prop("og:image")
    og_type = prop("og:type")

    # --- Title / charset / lang ---
    title = _clean(soup.title.get_text()) if soup.title else None
    charset_tag = soup.select_one("meta[charset]")
    charset = _clean(charset_tag.get("charset")) if charset_tag else None
    html_tag = soup.find("html")
    language = _clean(html_tag.get("lang")) if html_tag else None

    alternates = _alternate_urls(soup)

    fields: dict[str, object] = {
        # Basic SEO
        "title": title,
        "description": meta("description"),
        "keywords": meta("keywords"),
        "author": meta("author"),
        "generator": meta("generator"),
        "themeColor": meta("theme-color"),
        # Open Graph
        "ogTitle": og_title,
        "ogDescription": og_description,
        "ogImage": og_image,
        "ogImageWidth": prop("og:image:width"),
        "ogImageHeight": prop("og:image:height"),
        "ogImageAlt": prop("og:image:alt"),
        "ogUrl": prop("og:url"),
        "ogType": og_type,
        "ogSiteName": prop("og:site_name"),
        "ogLocale": prop("og:locale"),
        "ogVideo": prop("og:video"),
        "ogAudio": prop("og:audio"),
        # Facebook
        "fbAppId": prop("fb:app_id"),
        "fbPages": prop("fb:pages"),
        "fbDomainVerification": meta("facebook-domain-verification"),
        # Twitter Cards
        "twitterCard": meta("twitter:card"),
        "twitterTitle": meta("twitter:title"),
        "twitterDescription": meta("twitter:description"),
        "twitterImage": meta("twitter:image"),
        "twitterImageAlt": meta("twitter:image:alt"),
        "twitterSite": meta("twitter:site"),
        "twitterCreator": meta("twitter:creator"),
        "twitterDomainVerification": meta("twitter:domain-verification"),
        # Technical
        "canonicalUrl": _get_link(soup, "canonical"),
        "robots": meta("robots"),
        "viewport": meta("viewport"),
        "charset": charset,
        "language": language,
        "favicon": _get_link(soup, "icon") or _get_link(soup, "shortcut icon"),
        "appleTouchIcon": _get_link(soup, "apple-touch-icon"),
        "manifest": _get_link(soup, "manifest"),
        # Article
        "articlePublishedTime": prop("article:published_time"),
        "articleModifiedTime": prop("article:modified_time"),
        "articleAuthor": prop("article:author"),
        "articleSection": prop("article:section"),
        "articleTags": prop("article:tag"),
        # Additional SEO
        "alternateUrls": alternates or None,
        "prevPage": _get_link(soup, "prev"),
        "nextPage": _get_link(soup, "next"),
        "rating": meta("rating"),
        "referrer": meta("referrer"),
        # Discord / Slack read Open Graph first
        "discordTitle": og_title or meta("title"),
        "discordDescription": og_description or meta("description"),
        "discordImage": og_image,
        "discordType": og_type,
        "slackTitle": og_title or meta("title"),
        "slackDescription": og_description or meta("description"),
        "slackImage": og_image,
        "slackType": og_type,
    }

    result: MetadataResult = {key: value for key, value in fields.items() if value is not None}
    result.update(_sitemap_and_robots(_base_url(url)))

    logger.info(
        "Extracted %d metadata fields from %s (robots.txt=%s, sitemap=%s)",
        len(result),
        url,
        result["robotsTxtExists"],
        result["sitemapExists"],
    )
    return result
