"""
Unit tests for reconciliation of generated metadata against the live page.
"""

import copy

import pytest

from reconciliation import (
    ASSET_ADVISORIES,
    FIELD_RULES,
    FieldRule,
    MergePolicy,
    reconcile,
    resolve,
)


@pytest.fixture
def extracted():
    return {
        "title": "Live title",
        "ogTitle": "Live OG title",
        "ogImage": "https://example.com/og.png",
        "ogImageWidth": "1200",
        "twitterImage": "https://example.com/tw.png",
        "favicon": "/favicon.ico",
        "canonicalUrl": "https://example.com/page",
        "alternateUrls": {"de": "https://example.com/de/page"},
        "sitemapUrl": "https://example.com/sitemap.xml",
        "sitemapExists": True,
        "robotsTxtExists": True,
        "robotsTxtContent": "User-agent: *",
    }


@pytest.fixture
def generated():
    return {
        "title": "AI title",
        "ogTitle": "AI OG title",
        "ogDescription": "AI OG description",
        "ogType": "website",
        "ogImage": "https://invented.example/og.png",
        "ogImageHeight": "999",
        "canonicalUrl": "https://invented.example/",
        "ogUrl": "https://invented.example/",
        "manifest": "/invented.webmanifest",
        "discordImage": "https://invented.example/discord.png",
        "sitemapExists": False,
        "aiAnalysis": {
            "missingFields": [],
            "improvements": [],
            "seoScore": 60,
            "summary": "ok",
        },
    }


def _fields(result):
    return [entry["field"] for entry in result["aiAnalysis"]["missingFields"]]


class TestFieldRules:
    """Tests for the merge-policy table."""

    def test_technical_fields_pinned_to_extracted(self, generated, extracted):
        result = reconcile(generated, extracted)

        assert result["ogImage"] == "https://example.com/og.png"
        assert result["ogImageWidth"] == "1200"
        assert result["canonicalUrl"] == "https://example.com/page"
        assert result["alternateUrls"] == {"de": "https://example.com/de/page"}
        assert result["sitemapUrl"] == "https://example.com/sitemap.xml"
        assert result["sitemapExists"] is True
        assert result["robotsTxtContent"] == "User-agent: *"

    def test_model_values_removed_when_page_has_none(self, generated, extracted):
        result = reconcile(generated, extracted)

        assert "ogImageHeight" not in result
        assert "manifest" not in result

    def test_copy_fields_keep_generated_values(self, generated, extracted):
        result = reconcile(generated, extracted)

        assert result["title"] == "AI title"
        assert result["ogTitle"] == "AI OG title"

    def test_og_url_prefers_extracted_og_url(self, generated, extracted):
        extracted["ogUrl"] = "https://example.com/og-url"

        assert reconcile(generated, extracted)["ogUrl"] == "https://example.com/og-url"

    def test_og_url_falls_back_to_canonical(self, generated, extracted):
        assert reconcile(generated, extracted)["ogUrl"] == "https://example.com/page"

    def test_og_url_absent_when_neither_extracted(self, generated, extracted):
        del extracted["canonicalUrl"]

        assert "ogUrl" not in reconcile(generated, extracted)

    def test_social_previews_rederived_from_generated_og(self, generated, extracted):
        result = reconcile(generated, extracted)

        for prefix in ("discord", "slack"):
            assert result[f"{prefix}Title"] == "AI OG title"
            assert result[f"{prefix}Description"] == "AI OG description"
            assert result[f"{prefix}Type"] == "website"
            assert result[f"{prefix}Image"] == "https://example.com/og.png"

    def test_social_image_never_invented(self, generated, extracted):
        del extracted["ogImage"]

        result = reconcile(generated, extracted)

        assert "discordImage" not in result
        assert "slackImage" not in result

    def test_every_rule_targets_a_distinct_field(self):
        targets = [rule.field for rule in FIELD_RULES]
        assert len(targets) == len(set(targets))

    def test_resolve_reads_source_by_policy(self):
        generated = {"ogTitle": "generated"}
        existing = {"ogTitle": "extracted"}

        rederive = FieldRule("discordTitle", MergePolicy.REDERIVE_FROM_GENERATED, ("ogTitle",))
        take = FieldRule("discordTitle", MergePolicy.TAKE_EXTRACTED, ("ogTitle",))

        assert resolve(rederive, generated, existing) == "generated"
        assert resolve(take, generated, existing) == "extracted"


class TestAssetAdvisories:
    """Tests for the hardcoded missing-asset advisories."""

    def test_missing_og_image_adds_critical_entry(self, generated, extracted):
        del extracted["ogImage"]

        result = reconcile(generated, extracted)

        entries = [e for e in result["aiAnalysis"]["missingFields"] if e["field"] == "ogImage"]
        assert len(entries) == 1
        assert entries[0]["importance"] == "critical"
        assert entries[0]["recommendation"]

    def test_existing_model_entry_is_not_duplicated(self, generated, extracted):
        del extracted["ogImage"]
        generated["aiAnalysis"]["missingFields"].append(
            {"field": "ogImage", "importance": "high", "reason": "model", "recommendation": "model"}
        )

        result = reconcile(generated, extracted)

        entries = [e for e in result["aiAnalysis"]["missingFields"] if e["field"] == "ogImage"]
        assert entries == [{"field": "ogImage", "importance": "high", "reason": "model", "recommendation": "model"}]

    def test_all_three_assets_flagged_in_order(self, generated):
        result = reconcile(generated, {"sitemapExists": False, "robotsTxtExists": False})

        assert _fields(result) == ["ogImage", "twitterImage", "favicon"]
        importance = {e["field"]: e["importance"] for e in result["aiAnalysis"]["missingFields"]}
        assert importance == {"ogImage": "critical", "twitterImage": "high", "favicon": "medium"}

    def test_reconcile_is_idempotent(self, generated):
        existing = {"sitemapExists": False, "robotsTxtExists": False}

        once = reconcile(generated, existing)
        snapshot = copy.deepcopy(once)
        twice = reconcile(once, existing)

        assert twice == snapshot
        assert _fields(twice).count("ogImage") == 1

    def test_no_advisories_when_assets_exist(self, generated, extracted):
        assert _fields(reconcile(generated, extracted)) == []

    def test_no_analysis_block_is_left_alone(self, generated):
        del generated["aiAnalysis"]

        result = reconcile(generated, {"sitemapExists": False, "robotsTxtExists": False})

        assert "aiAnalysis" not in result

    def test_advisory_templates_are_not_shared(self, generated):
        result = reconcile(generated, {"sitemapExists": False, "robotsTxtExists": False})
        result["aiAnalysis"]["missingFields"][0]["reason"] = "edited"

        assert ASSET_ADVISORIES[0]["reason"] != "edited"


class TestWithoutExtractedMetadata:
    """Only the boolean defaults apply when no page was extracted."""

    def test_booleans_default_to_false(self):
        result = reconcile({"title": "x"})

        assert result == {"title": "x", "sitemapExists": False, "robotsTxtExists": False}

    def test_generated_values_untouched(self, generated):
        result = reconcile(generated)

        assert result["ogImage"] == "https://invented.example/og.png"
        assert result["sitemapExists"] is False
        assert _fields(result) == []

    def test_returns_same_object(self, generated):
        assert reconcile(generated) is generated
