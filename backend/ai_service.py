"""
Claude API key must be defined in a .env file in the backend root (or in the
process environment):

ANTHROPIC_API_KEY=your_real_key_here

The key is read on every request, so a missing key is reported as a
configuration error instead of failing at startup.
"""

from dotenv import load_dotenv
import json
import math
import logging
import os
from pathlib import Path
import re

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

from anthropic import Anthropic, APIError

from errors import AIResponseParseError, AppError, ConfigurationError, ExternalServiceError
from models import AIAnalysis, GeneratedMetadata, MetadataResult, MissingField, STRING_FIELDS
from reconciliation import reconcile
from scraper import fetch_metadata

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
TEMPERATURE = 0.7
MAX_TOKENS = int(os.getenv("CLAUDE_MAX_TOKENS", "4096"))
TIMEOUT_SECONDS = float(os.getenv("CLAUDE_TIMEOUT_SECONDS", "60"))

IMPORTANCE_LEVELS = ("critical", "high", "medium", "low")

SYSTEM_MESSAGE = """You are an expert SEO consultant and metadata specialist.
Return ONLY one valid raw JSON object that matches the requested schema.
Do not include markdown, code fences, or text outside JSON."""

BASE_PROMPT = """You are an expert SEO consultant and metadata specialist. Analyze the webpage content and existing metadata, then provide:

1. **Complete optimized metadata** following best practices
2. **Detailed analysis** of what's missing or needs improvement
3. **Actionable recommendations** with clear reasoning

CRITICAL RULES:
- For images (ogImage, twitterImage, favicon, etc): NEVER generate fake URLs or placeholder values
- Instead, provide recommendations like: "Should be a 1200x630px image showcasing [description]"
- Only include actual image URLs if they exist in the current metadata
- Be specific and actionable in all recommendations
- Consider the actual page content and context

Return ONLY valid JSON (no markdown, no code blocks) with this exact structure:
{
  "metadata": {
    // Basic SEO
    "title": "Compelling, keyword-rich title (50-60 chars)",
    "description": "Persuasive meta description with clear value prop (150-160 chars)",
    "keywords": "primary keyword, secondary keyword, long-tail keyword",
    "author": "Author name if applicable",
    "generator": "Generator if applicable",
    "themeColor": "#hex-color for brand",

    // Open Graph - Critical for social sharing
    "ogTitle": "Engaging OG title (may differ from SEO title)",
    "ogDescription": "Compelling OG description (may differ from meta)",
    "ogImage": null,  // NEVER generate fake URLs
    "ogImageWidth": null,
    "ogImageHeight": null,
    "ogImageAlt": "Descriptive alt text for OG image",
    "ogUrl": "canonical URL",
    "ogType": "website or article",
    "ogSiteName": "Brand/site name",
    "ogLocale": "en_US or appropriate locale",
    "ogVideo": null,  // Only if video exists
    "ogAudio": null,  // Only if audio exists

    // Facebook
    "fbAppId": null,  // Only if FB integration exists
    "fbPages": null,
    "fbDomainVerification": null,

    // Twitter Cards - Critical for Twitter sharing
    "twitterCard": "summary_large_image",
    "twitterTitle": "Twitter-optimized title",
    "twitterDescription": "Twitter-optimized description",
    "twitterImage": null,  // NEVER generate fake URLs
    "twitterImageAlt": "Descriptive alt text for Twitter image",
    "twitterSite": "@username if applicable",
    "twitterCreator": "@username if applicable",
    "twitterDomainVerification": null,

    // Technical SEO
    "canonicalUrl": "canonical URL",
    "robots": "index, follow",
    "viewport": "width=device-width, initial-scale=1",
    "charset": "UTF-8",
    "language": "en or appropriate lang code",
    "favicon": null,  // Only if exists
    "appleTouchIcon": null,  // Only if exists
    "manifest": null,  // Only if exists

    // Article Specific (if type is article)
    "articlePublishedTime": null,
    "articleModifiedTime": null,
    "articleAuthor": null,
    "articleSection": null,
    "articleTags": null,

    // Additional SEO
    "alternateUrls": null,
    "prevPage": null,
    "nextPage": null,
    "rating": null,
    "referrer": "origin-when-cross-origin",

    // Discord & Slack (uses OG by default)
    "discordTitle": "same as ogTitle",
    "discordDescription": "same as ogDescription",
    "discordImage": null,
    "discordType": "same as ogType",
    "slackTitle": "same as ogTitle",
    "slackDescription": "same as ogDescription",
    "slackImage": null,
    "slackType": "same as ogType"
  },

  "aiAnalysis": {
    "missingFields": [
      {
        "field": "ogImage",
        "importance": "critical",
        "reason": "Social media platforms will not display rich previews without an image",
        "recommendation": "Create a 1200x630px image with your logo, key message, and brand colors. Image should be under 8MB and in JPG/PNG format."
      }
    ],
    "improvements": [
      "Current title is too generic - make it more specific and include primary keyword",
      "Description lacks a clear call-to-action",
      "Missing structured data (JSON-LD) for better search appearance"
    ],
    "seoScore": 75,  // Integer score out of 100
    "summary": "Overall assessment and priority actions"
  }
}"""

EXISTING_METADATA_TEMPLATE = """{base}

**CURRENT PAGE METADATA:**
{metadata}

**YOUR TASK:**
1. Analyze what's missing, weak, or incorrect
2. Generate IMPROVED versions of all fields
3. Provide specific, actionable recommendations
4. For images: describe what SHOULD be there, don't generate fake URLs
5. Explain WHY each change improves SEO/social sharing
6. Give a realistic SEO score and improvement roadmap

Focus on:
- Making titles more compelling and click-worthy
- Writing descriptions that drive action
- Ensuring all critical fields for social sharing are optimized
- Identifying technical SEO issues
- Providing clear next steps for the user"""

USER_PROMPT_TEMPLATE = """{base}

**USER REQUEST:**
{prompt}

**YOUR TASK:**
Generate complete, professional metadata for a webpage about: "{prompt}"

Consider:
- Target audience and search intent
- Competitive keywords
- Social media best practices
- Technical SEO requirements
- Brand voice and tone

Provide actionable recommendations for each field, especially for images and technical setup."""

_CODE_FENCE = re.compile(r"```[A-Za-z0-9_-]*\n?")
_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def build_prompt(existing_metadata: MetadataResult | None = None, user_prompt: str | None = None) -> str:
    """Build the generation prompt; existing page metadata wins over a free-text prompt."""
    if existing_metadata:
        return EXISTING_METADATA_TEMPLATE.format(
            base=BASE_PROMPT,
            metadata=json.dumps(existing_metadata, indent=2, ensure_ascii=False),
        )

    if user_prompt:
        return USER_PROMPT_TEMPLATE.format(base=BASE_PROMPT, prompt=user_prompt)

    return BASE_PROMPT


def extract_json(text: str) -> dict:
    """
    Recover the JSON object from raw model output.

    Strips code fences, trims, narrows to the outermost {...} span and parses.
    Raises AIResponseParseError when no JSON object can be read.
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()

    match = _OBJECT_SPAN.search(cleaned)
    if match:
        cleaned = match.group(0)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AIResponseParseError(details=str(exc)) from exc

    if not isinstance(parsed, dict):
        raise AIResponseParseError(details=f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _extract_response_text(response: object) -> str:
    content = ""
    for block in getattr(response, "content", []) or []:
        text = getattr(block, "text", None)
        if text:
            content += text
    return content.strip()


def _model_name() -> str:
    return os.getenv("CLAUDE_MODEL", "").strip() or DEFAULT_MODEL


def _call_claude(client: Anthropic, prompt: str) -> str:
    model = _model_name()
    try:
        response = client.messages.create(
            model=model,
            max_tokens=MAX_TOKENS,
            system=SYSTEM_MESSAGE,
            messages=[{"role": "user", "content": prompt}],
            temperature=TEMPERATURE,
        )
    except APIError as exc:
        raise ExternalServiceError("anthropic", f"AI provider request failed: {exc}") from exc

    if getattr(response, "stop_reason", None) == "max_tokens":
        logger.warning("Claude output hit max_tokens (model=%s, max_tokens=%d)", model, MAX_TOKENS)

    content = _extract_response_text(response)
    if not content:
        raise ExternalServiceError("anthropic", "No response from AI")
    return content


def _normalize_metadata(raw: object) -> GeneratedMetadata:
    if not isinstance(raw, dict):
        return {}

    out: GeneratedMetadata = {}
    for key in STRING_FIELDS:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            out[key] = value.strip()

    alternates = raw.get("alternateUrls")
    if isinstance(alternates, dict):
        cleaned = {
            str(lang): href.strip()
            for lang, href in alternates.items()
            if isinstance(href, str) and href.strip()
        }
        if cleaned:
            out["alternateUrls"] = cleaned

    for flag in ("sitemapExists", "robotsTxtExists"):
        if isinstance(raw.get(flag), bool):
            out[flag] = raw[flag]
    return out


def _normalize_analysis(raw: object) -> AIAnalysis | None:
    if not isinstance(raw, dict):
        return None

    def text(v) -> str:
        return str(v).strip() if v is not None else ""

    def score(v) -> int:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            return 0
        return int(min(100, max(0, round(v))))

    missing_fields: list[MissingField] = []
    items = raw.get("missingFields")
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict) or not text(item.get("field")):
            continue
        importance = text(item.get("importance")).lower()
        missing_fields.append(
            {
                "field": text(item.get("field")),
                "importance": importance if importance in IMPORTANCE_LEVELS else "medium",
                "reason": text(item.get("reason")),
                "recommendation": text(item.get("recommendation")),
            }
        )

    improvements = raw.get("improvements")
    return {
        "missingFields": missing_fields,
        "improvements": [text(x) for x in improvements if text(x)] if isinstance(improvements, list) else [],
        "seoScore": score(raw.get("seoScore")),
        "summary": text(raw.get("summary")),
    }


def _normalize_result(raw: dict) -> GeneratedMetadata:
    """Shape parsed model output into GeneratedMetadata, dropping nulls and non-strings."""
    generated = _normalize_metadata(raw.get("metadata"))
    analysis = _normalize_analysis(raw.get("aiAnalysis"))
    if analysis is not None:
        generated["aiAnalysis"] = analysis
    return generated


def _require_api_key() -> str:
    api_key = (os.getenv("ANTHROPIC_API_KEY") or "").strip()
    if not api_key:
        raise ConfigurationError("Anthropic API key is not configured")
    return api_key


def generate_metadata(url: str | None = None, prompt: str | None = None) -> GeneratedMetadata:
    """
    Generate improved metadata plus an SEO critique with Claude.

    When `url` is given the live page is extracted first; if that fails the
    error is logged and generation continues without page context. Technical
    fields are then reconciled against the extracted values.
    """
    api_key = _require_api_key()

    existing: MetadataResult | None = None
    if url:
        try:
            existing = fetch_metadata(url)
        except AppError as exc:
            logger.warning("Error fetching existing metadata for %s, generating without it: %s", url, exc.message)

    client = Anthropic(api_key=api_key, timeout=TIMEOUT_SECONDS, max_retries=0)
    content = _call_claude(client, build_prompt(existing, prompt))
    logger.debug("Raw Claude response: %s", content)

    generated = _normalize_result(extract_json(content))
    return reconcile(generated, existing)
