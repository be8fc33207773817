"""Data models and types used across the backend.

Keys are the camelCase names of the JSON wire format. Optional fields are
represented by omission: a key is either present with a non-empty string or
missing entirely.
"""

from typing import Literal, TypedDict, get_type_hints

Importance = Literal["critical", "high", "medium", "low"]


class _RequiredFlags(TypedDict):
    sitemapExists: bool
    robotsTxtExists: bool


class MetadataResult(_RequiredFlags, total=False):
    """Structured output of the metadata extractor."""

    # Basic SEO
    title: str
    description: str
    keywords: str
    author: str
    generator: str
    themeColor: str

    # Open Graph
    ogTitle: str
    ogDescription: str
    ogImage: str
    ogImageWidth: str
    ogImageHeight: str
    ogImageAlt: str
    ogUrl: str
    ogType: str
    ogSiteName: str
    ogLocale: str
    ogVideo: str
    ogAudio: str

    # Facebook
    fbAppId: str
    fbPages: str
    fbDomainVerification: str

    # Twitter Cards
    twitterCard: str
    twitterTitle: str
    twitterDescription: str
    twitterImage: str
    twitterImageAlt: str
    twitterSite: str
    twitterCreator: str
    twitterDomainVerification: str

    # Technical
    canonicalUrl: str
    robots: str
    viewport: str
    charset: str
    language: str
    favicon: str
    appleTouchIcon: str
    manifest: str

    # Article
    articlePublishedTime: str
    articleModifiedTime: str
    articleAuthor: str
    articleSection: str
    articleTags: str

    # Additional SEO
    alternateUrls: dict[str, str]
    prevPage: str
    nextPage: str
    rating: str
    referrer: str

    # Sitemap / robots
    sitemapUrl: str
    robotsTxtContent: str

    # Discord (mirrors Open Graph)
    discordTitle: str
    discordDescription: str
    discordImage: str
    discordType: str

    # Slack (mirrors Open Graph)
    slackTitle: str
    slackDescription: str
    slackImage: str
    slackType: str


class MissingField(TypedDict):
    field: str
    importance: Importance
    reason: str
    recommendation: str


class AIAnalysis(TypedDict):
    """Critique block returned alongside generated metadata."""

    missingFields: list[MissingField]
    improvements: list[str]
    seoScore: int
    summary: str


class GeneratedMetadata(MetadataResult, total=False):
    aiAnalysis: AIAnalysis


STRING_FIELDS: tuple[str, ...] = tuple(
    name
    for name, annotation in get_type_hints(MetadataResult).items()
    if annotation is str
)
