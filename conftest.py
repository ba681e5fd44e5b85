"""Root conftest for pytest configuration and shared fixtures.

Loaded before the colocated domain tests under contentscope/, so its
fixtures are available everywhere.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any contentscope module import.
# Uses setdefault so real env vars are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ANALYTICS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")


ARTICLE = "api::article.article"
WRITER = "api::writer.writer"
TAG = "api::tag.tag"
SEO = "shared.seo"
QUOTE = "shared.quote"

CONTENT_TYPES = {
    ARTICLE: {
        "displayName": "Article",
        "draftAndPublish": True,
        "attributes": {
            "title": {"type": "string"},
            "status": {"type": "string"},
            "views": {"type": "integer"},
            "secret": {"type": "string", "private": True},
            "author": {"type": "relation", "relation": "manyToOne", "target": WRITER},
            "tags": {"type": "relation", "relation": "manyToMany", "target": TAG},
            "cover": {"type": "media"},
            "seo": {"type": "component", "component": SEO},
            "blocks": {"type": "dynamiczone", "components": [QUOTE, SEO]},
            "related": {"type": "relation", "relation": "morphToMany"},
        },
    },
    WRITER: {
        "displayName": "Writer",
        "attributes": {
            "name": {"type": "string"},
            "email": {"type": "email"},
            "bio": {"type": "text"},
        },
    },
    TAG: {
        "displayName": "Tag",
        "draftAndPublish": True,
        "attributes": {"label": {"type": "string"}},
    },
    SEO: {
        "displayName": "Seo",
        "attributes": {
            "metaTitle": {"type": "string"},
            "metaDescription": {"type": "text"},
        },
    },
    QUOTE: {
        "displayName": "Quote",
        "attributes": {
            "text": {"type": "text"},
            "by": {"type": "string"},
        },
    },
}


# ---------------------------------------------------------------------------
# Shared registry and fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def schema_registry():
    """SchemaRegistry built from the shared test content types."""
    from contentscope.domains.schemas.registry import SchemaRegistry

    registry = SchemaRegistry()
    registry.build(CONTENT_TYPES)
    return registry


@pytest.fixture
def fake_analytics():
    """Fake analytics tracker that records tracked events."""
    from contentscope.adapters.analytics.fake import FakeAnalyticsTracker

    return FakeAnalyticsTracker()


@pytest.fixture
def recording_trace():
    """Trace hook that records every traced step."""
    from contentscope.core.fakes.trace_hook import RecordingTraceHook

    return RecordingTraceHook()


@pytest.fixture
def entity_manager(schema_registry):
    """In-memory entity manager over the shared schemas."""
    from contentscope.domains.entities.fakes.entity_manager import InMemoryEntityManager

    return InMemoryEntityManager(schema_registry)
