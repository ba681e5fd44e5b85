"""Tests for the container factory."""

import pytest

from contentscope.adapters.analytics.fake import FakeAnalyticsTracker
from contentscope.adapters.analytics.posthog import PostHogTracker
from contentscope.core.config import Environment, Settings
from contentscope.core.container import create_container
from contentscope.core.context import AdminUser, RequestContext
from contentscope.core.tracing import LoggingTraceHook, NullTraceHook
from contentscope.domains.abilities.ability import GrantAbility
from contentscope.domains.content_manager.service import ContentManagerService


def _settings(**overrides) -> Settings:
    return Settings(ENVIRONMENT=Environment.TEST, **overrides)


def test_factory_wires_content_manager(schema_registry, entity_manager, fake_analytics):
    container = create_container(_settings(), schema_registry, entity_manager, fake_analytics)

    assert isinstance(container.content_manager, ContentManagerService)
    assert container.analytics is fake_analytics
    assert container.entity_manager is entity_manager
    assert isinstance(container.trace, NullTraceHook)


def test_factory_defaults_to_posthog(schema_registry, entity_manager):
    container = create_container(_settings(), schema_registry, entity_manager)

    assert isinstance(container.analytics, PostHogTracker)
    assert container.analytics.enabled is False


def test_factory_enables_populate_tracing(schema_registry, entity_manager):
    container = create_container(
        _settings(POPULATE_TRACE_ENABLED=True), schema_registry, entity_manager
    )

    assert isinstance(container.trace, LoggingTraceHook)


def test_replace_returns_new_container(schema_registry, entity_manager):
    container = create_container(_settings(), schema_registry, entity_manager)
    tracker = FakeAnalyticsTracker()

    replaced = container.replace(analytics=tracker)

    assert replaced.analytics is tracker
    assert container.analytics is not tracker


@pytest.mark.asyncio
async def test_container_serves_requests(schema_registry, entity_manager):
    container = create_container(
        _settings(), schema_registry, entity_manager, FakeAnalyticsTracker()
    )
    ctx = RequestContext(
        user=AdminUser(id=1),
        ability=GrantAbility.from_dicts(
            [
                {"action": "plugin::content-manager.explorer.create", "subject": "api::tag.tag"},
                {"action": "plugin::content-manager.explorer.read", "subject": "api::tag.tag"},
            ]
        ),
    )

    outcome = await container.content_manager.create(ctx, "api::tag.tag", {"label": "x"})

    assert outcome.is_ok
    assert outcome.payload["label"] == "x"
    assert container.analytics.has("didCreateFirstContentTypeEntry")
