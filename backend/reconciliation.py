"""Merge AI-generated metadata with metadata extracted from the live page.

The model writes copy (titles, descriptions, keywords). Verifiable fields
such as image URLs, icons, the canonical URL and sitemap state are always
pinned to what the extractor actually found.
"""

from dataclasses import dataclass
from enum import Enum

from models import GeneratedMetadata, MetadataResult, MissingField


class MergePolicy(Enum):
    TAKE_EXTRACTED = "take_extracted"
    PREFER_EXTRACTED = "prefer_extracted"
    REDERIVE_FROM_GENERATED = "rederive_from_generated"


@dataclass(frozen=True)
class FieldRule:
    """`field` receives the first present value among `sources`.

    Sources are read from the extracted metadata for the *_EXTRACTED
    policies and from the generated metadata otherwise.
    """

    field: str
    policy: MergePolicy
    sources: tuple[str, ...]


def _take(field: str, source: str | None = None) -> FieldRule:
    return FieldRule(field, MergePolicy.TAKE_EXTRACTED, (source or field,))


def _rederive(field: str, source: str) -> FieldRule:
    return FieldRule(field, MergePolicy.REDERIVE_FROM_GENERATED, (source,))


FIELD_RULES: tuple[FieldRule, ...] = (
    _take("ogImage"),
    _take("ogImageWidth"),
    _take("ogImageHeight"),
    _take("twitterImage"),
    _take("favicon"),
    _take("appleTouchIcon"),
    _take("manifest"),
    _take("canonicalUrl"),
    FieldRule("ogUrl", MergePolicy.PREFER_EXTRACTED, ("ogUrl", "canonicalUrl")),
    _take("sitemapUrl"),
    _take("sitemapExists"),
    _take("robotsTxtExists"),
    _take("robotsTxtContent"),
    _take("alternateUrls"),
    _take("prevPage"),
    _take("nextPage"),
    _rederive("discordTitle", "ogTitle"),
    _rederive("discordDescription", "ogDescription"),
    _take("discordImage", "ogImage"),
    _rederive("discordType", "ogType"),
    _rederive("slackTitle", "ogTitle"),
    _rederive("slackDescription", "ogDescription"),
    _take("slackImage", "ogImage"),
    _rederive("slackType", "ogType"),
)

# Appended to missingFields when the live page lacks the asset.
ASSET_ADVISORIES: tuple[MissingField, ...] = (
    {
        "field": "ogImage",
        "importance": "critical",
        "reason": (
            "Social media platforms require images for rich previews. Without an OG image, "
            "your links will appear as plain text, significantly reducing click-through rates."
        ),
        "recommendation": (
            "Create a 1200x630px image (aspect ratio 1.91:1) featuring your logo, primary message, "
            "and brand colors. Optimal file size: under 8MB. Formats: JPG or PNG. Tools: Canva, "
            "Figma, or Adobe Express. Ensure text is readable when scaled down to thumbnail size."
        ),
    },
    {
        "field": "twitterImage",
        "importance": "high",
        "reason": (
            "Twitter uses its own image tag for card previews. Falls back to OG image, but "
            "dedicated Twitter images can be optimized for the platform."
        ),
        "recommendation": (
            "Use the same 1200x630px image as OG image, or create a Twitter-specific version "
            "optimized for the platform's audience. Consider adding Twitter handle or hashtag "
            "to the image."
        ),
    },
    {
        "field": "favicon",
        "importance": "medium",
        "reason": (
            "Favicon appears in browser tabs, bookmarks, and mobile home screens. Missing "
            "favicon makes your site look unprofessional."
        ),
        "recommendation": (
            "Create a 32x32px (minimum) or 512x512px (recommended) square icon in ICO, PNG, or "
            "SVG format. Use your logo or brand mark. Ensure it's recognizable at small sizes. "
            "Generate multiple sizes (16x16, 32x32, 192x192, 512x512) for best cross-platform support."
        ),
    },
)


def _is_present(value: object) -> bool:
    return value is not None and value != "" and value != {}


def resolve(rule: FieldRule, generated: GeneratedMetadata, existing: MetadataResult) -> object:
    """Value `rule.field` should hold after merging, or None for absent."""
    source = generated if rule.policy is MergePolicy.REDERIVE_FROM_GENERATED else existing
    for key in rule.sources:
        value = source.get(key)
        if _is_present(value):
            return value
    return None


def apply_field_rules(generated: GeneratedMetadata, existing: MetadataResult) -> None:
    # Every rule reads the pre-merge state.
    resolved = {rule.field: resolve(rule, generated, existing) for rule in FIELD_RULES}
    for field, value in resolved.items():
        if value is None:
            generated.pop(field, None)
        else:
            generated[field] = value


def add_asset_advisories(generated: GeneratedMetadata, existing: MetadataResult) -> None:
    analysis = generated.get("aiAnalysis")
    if analysis is None:
        return

    missing_fields = analysis.setdefault("missingFields", [])
    for advisory in ASSET_ADVISORIES:
        field = advisory["field"]
        if _is_present(existing.get(field)):
            continue
        if any(entry.get("field") == field for entry in missing_fields):
            continue
        missing_fields.append(dict(advisory))


def reconcile(generated: GeneratedMetadata, existing: MetadataResult | None = None) -> GeneratedMetadata:
    """Pin technical fields to extracted values; mutates and returns `generated`."""
    if existing is not None:
        apply_field_rules(generated, existing)
        add_asset_advisories(generated, existing)

    generated.setdefault("sitemapExists", False)
    generated.setdefault("robotsTxtExists", False)
    return generated
