"""
Shared pytest fixtures for MetaLens API tests.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

BASE_URL = "https://example.com"
PAGE_URL = f"{BASE_URL}/blog/post"


@pytest.fixture
def page_url():
    return PAGE_URL


@pytest.fixture
def full_page_html():
    """A page carrying most of the tags the extractor reads."""
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="utf-8">
        <title>10 Python Tips | Example Blog</title>
        <meta name="description" content="Learn essential Python tips">
        <meta name="keywords" content="python, tips">
        <meta name="author" content="Jane Developer">
        <meta name="theme-color" content="#112233">
        <meta name="viewport" content="width=device-width, initial-scale=1">
        <meta name="robots" content="index, follow">
        <meta property="og:title" content="10 Python Tips You Should Know">
        <meta property="og:description" content="Tips for everyday Python">
        <meta property="og:image" content="https://example.com/og.png">
        <meta property="og:image:width" content="1200">
        <meta property="og:image:height" content="630">
        <meta property="og:type" content="article">
        <meta property="og:url" content="https://example.com/blog/post">
        <meta property="fb:app_id" content="12345">
        <meta name="twitter:card" content="summary_large_image">
        <meta name="twitter:site" content="@example">
        <meta name="twitter:image" content="https://example.com/tw.png">
        <meta property="article:published_time" content="2024-12-15T10:00:00Z">
        <link rel="canonical" href="https://example.com/blog/post">
        <link rel="icon" href="/favicon.ico">
        <link rel="apple-touch-icon" href="/apple-touch-icon.png">
        <link rel="manifest" href="/site.webmanifest">
        <link rel="prev" href="https://example.com/blog/previous">
        <link rel="alternate" hreflang="de" href="https://example.com/de/blog/post">
        <link rel="alternate" hreflang="fr" href="https://example.com/fr/blog/post">
        <link rel="alternate" type="application/rss+xml" href="/feed.xml">
    </head>
    <body><h1>10 Python Tips</h1></body>
    </html>
    """


@pytest.fixture
def bare_page_html():
    """A page with a title and generic meta tags but no Open Graph."""
    return """
    <html>
    <head>
        <title>Bare page</title>
        <meta name="title" content="Generic meta title">
        <meta name="description" content="Generic meta description">
    </head>
    <body><p>Hello</p></body>
    </html>
    """


@pytest.fixture
def ai_payload():
    """A well-formed model answer."""
    return {
        "metadata": {
            "title": "Improved title",
            "description": "Improved description",
            "ogTitle": "Improved OG title",
            "ogDescription": "Improved OG description",
            "ogType": "article",
            "ogImage": "https://invented.example/fake.png",
            "canonicalUrl": "https://invented.example/",
            "favicon": "https://invented.example/favicon.ico",
            "ogVideo": None,
            "sitemapExists": True,
        },
        "aiAnalysis": {
            "missingFields": [
                {
                    "field": "twitterCreator",
                    "importance": "low",
                    "reason": "No creator attribution",
                    "recommendation": "Add twitter:creator",
                }
            ],
            "improvements": ["Make the title more specific"],
            "seoScore": 72,
            "summary": "Decent baseline.",
        },
    }


def claude_response(text: str, stop_reason: str = "end_turn"):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)], stop_reason=stop_reason)


@pytest.fixture
def mock_anthropic(monkeypatch, ai_payload):
    """Patch the Anthropic client used by ai_service; returns the client mock."""
    import ai_service

    client = MagicMock()
    client.messages.create.return_value = claude_response(json.dumps(ai_payload))
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(ai_service, "Anthropic", factory)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    return client
