"""Unit tests for ContentManagerService.

Uses fakes for every dependency: the in-memory entity manager records each
storage call, the analytics fake records tracked events. No database.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from contentscope.adapters.analytics.fake import FailingAnalyticsTracker
from contentscope.core.config import Settings
from contentscope.core.context import AdminUser, RequestContext
from contentscope.core.exceptions import StorageError
from contentscope.core.logging import logger
from contentscope.domains.abilities.ability import GrantAbility
from contentscope.domains.content_manager.outcomes import OutcomeKind
from contentscope.domains.content_manager.service import ContentManagerService
from contentscope.domains.permissions.checker import PermissionCheckerFactory
from contentscope.domains.queries.populate import PopulateDeriver
from contentscope.domains.queries.types import And, Predicate
from contentscope.domains.schemas.exceptions import SchemaNotFoundError

ARTICLE = "api::article.article"
WRITER = "api::writer.writer"
TAG = "api::tag.tag"
PREFIX = "plugin::content-manager.explorer."

USER_ID = 1
OTHER_ID = 2
FIRST_ENTRY = "didCreateFirstContentTypeEntry"

MUTATIONS = {"create", "update", "delete", "delete_many", "publish", "unpublish"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _grant(action: str, subject: str = ARTICLE, fields=None, conditions=None) -> dict:
    return {
        "action": f"{PREFIX}{action}",
        "subject": subject,
        "fields": fields,
        "conditions": conditions,
    }


def _ctx(*grants: dict) -> RequestContext:
    return RequestContext(
        user=AdminUser(id=USER_ID, email="editor@example.com"),
        ability=GrantAbility.from_dicts(grants),
        request_id="test-req",
        logger=logger.with_context(request_id="test-req"),
    )


def _fake_settings() -> MagicMock:
    s = MagicMock(spec=Settings)
    s.FIRST_ENTRY_EVENT = FIRST_ENTRY
    return s


def _build_service(schema_registry, entity_manager, analytics) -> ContentManagerService:
    return ContentManagerService(
        entity_manager=entity_manager,
        checker_factory=PermissionCheckerFactory(schema_registry),
        deriver=PopulateDeriver(schema_registry),
        analytics=analytics,
        settings=_fake_settings(),
    )


@pytest.fixture
def service(schema_registry, entity_manager, fake_analytics):
    return _build_service(schema_registry, entity_manager, fake_analytics)


@pytest.fixture
def seeded(entity_manager):
    entity_manager.seed(WRITER, {"id": 1, "name": "Ada", "email": "ada@x.io"})
    entity_manager.seed(
        ARTICLE,
        {
            "id": 1,
            "title": "Mine",
            "status": "draft",
            "secret": "s",
            "publishedAt": None,
            "createdBy": {"id": USER_ID},
            "author": {"id": 1, "name": "Ada", "email": "ada@x.io"},
        },
    )
    entity_manager.seed(
        ARTICLE,
        {
            "id": 2,
            "title": "Theirs",
            "status": "published",
            "publishedAt": None,
            "createdBy": {"id": OTHER_ID},
        },
    )
    entity_manager.calls.clear()
    return entity_manager


OWN = {"createdBy": {"id": USER_ID}}


# ---------------------------------------------------------------------------
# Precheck: a denied collection-level check never reaches storage
# ---------------------------------------------------------------------------


@dataclass
class PrecheckCase:
    desc: str
    operation: str
    args: tuple = ()


PRECHECK_CASES = [
    PrecheckCase(desc="find", operation="find"),
    PrecheckCase(desc="find_one", operation="find_one", args=(1,)),
    PrecheckCase(desc="create", operation="create", args=({"title": "x"},)),
    PrecheckCase(desc="update", operation="update", args=(1, {"title": "x"})),
    PrecheckCase(desc="delete", operation="delete", args=(1,)),
    PrecheckCase(desc="publish", operation="publish", args=(1,)),
    PrecheckCase(desc="unpublish", operation="unpublish", args=(1,)),
    PrecheckCase(desc="bulk_delete", operation="bulk_delete", args=({"ids": [1, 2]},)),
    PrecheckCase(desc="count_draft_relations", operation="count_draft_relations", args=(1,)),
]


@pytest.mark.parametrize("case", PRECHECK_CASES, ids=lambda c: c.desc)
@pytest.mark.asyncio
async def test_precheck_denied_makes_no_storage_call(case: PrecheckCase, service, seeded):
    ctx = _ctx(_grant("read", subject=WRITER))

    outcome = await getattr(service, case.operation)(ctx, ARTICLE, *case.args)

    assert outcome.kind is OutcomeKind.FORBIDDEN
    assert seeded.calls == []


# ---------------------------------------------------------------------------
# Record check: denied after fetch, before mutation
# ---------------------------------------------------------------------------


@dataclass
class RecordCheckCase:
    desc: str
    operation: str
    grant: str
    args: tuple = ()
    forbidden_call: Optional[str] = None


RECORD_CHECK_CASES = [
    RecordCheckCase(desc="find_one", operation="find_one", grant="read", args=(2,)),
    RecordCheckCase(
        desc="update",
        operation="update",
        grant="update",
        args=(2, {"title": "x"}),
        forbidden_call="update",
    ),
    RecordCheckCase(
        desc="delete", operation="delete", grant="delete", args=(2,), forbidden_call="delete"
    ),
    RecordCheckCase(
        desc="publish", operation="publish", grant="publish", args=(2,), forbidden_call="publish"
    ),
    RecordCheckCase(
        desc="unpublish",
        operation="unpublish",
        grant="publish",
        args=(2,),
        forbidden_call="unpublish",
    ),
    RecordCheckCase(
        desc="count_draft_relations",
        operation="count_draft_relations",
        grant="read",
        args=(2,),
        forbidden_call="count_draft_relations",
    ),
]


@pytest.mark.parametrize("case", RECORD_CHECK_CASES, ids=lambda c: c.desc)
@pytest.mark.asyncio
async def test_record_check_denied(case: RecordCheckCase, service, seeded):
    ctx = _ctx(_grant(case.grant, conditions=OWN))

    outcome = await getattr(service, case.operation)(ctx, ARTICLE, *case.args)

    assert outcome.kind is OutcomeKind.FORBIDDEN
    assert seeded.called("find_one")
    assert not any(seeded.called(m) for m in MUTATIONS)
    if case.forbidden_call:
        assert not seeded.called(case.forbidden_call)
    assert seeded.stored(ARTICLE, 2)["title"] == "Theirs"


# ---------------------------------------------------------------------------
# Not found: only after the fetch, never record-checked
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "operation, grant, args",
    [
        ("find_one", "read", (99,)),
        ("update", "update", (99, {"title": "x"})),
        ("delete", "delete", (99,)),
        ("publish", "publish", (99,)),
        ("unpublish", "publish", (99,)),
        ("count_draft_relations", "read", (99,)),
    ],
    ids=["find_one", "update", "delete", "publish", "unpublish", "count_draft_relations"],
)
@pytest.mark.asyncio
async def test_missing_record_is_not_found(operation, grant, args, service, seeded):
    ability = MagicMock(wraps=GrantAbility.from_dicts([_grant(grant)]))
    ctx = RequestContext(user=AdminUser(id=USER_ID), ability=ability)

    outcome = await getattr(service, operation)(ctx, ARTICLE, *args)

    assert outcome.kind is OutcomeKind.NOT_FOUND
    ability.can_record.assert_not_called()
    assert [call[0] for call in seeded.calls] == ["find_one"]


# ---------------------------------------------------------------------------
# find
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_find_sanitizes_each_result_in_order(service, seeded):
    ctx = _ctx(_grant("read", fields=["title"]))

    outcome = await service.find(ctx, ARTICLE, {"sort": "title:desc"})

    assert outcome.is_ok
    assert outcome.payload.results == [{"id": 2, "title": "Theirs"}, {"id": 1, "title": "Mine"}]
    assert outcome.payload.pagination.total == 2


@pytest.mark.asyncio
async def test_find_strips_forbidden_filters_before_storage(service, seeded):
    ctx = _ctx(_grant("read", fields=["title"]))

    outcome = await service.find(ctx, ARTICLE, {"filters": {"status": "published"}})

    (_, _, query, _) = seeded.calls_to("find_page")[0]
    assert query.filters is None
    assert outcome.payload.pagination.total == 2


@pytest.mark.asyncio
async def test_find_returns_relation_counts(service, entity_manager):
    entity_manager.seed(ARTICLE, {"title": "Tagged", "tags": [{"id": 1}, {"id": 2}]})
    ctx = _ctx(_grant("read", fields=["title", "tags"]), _grant("read", subject=TAG))

    outcome = await service.find(ctx, ARTICLE)

    (_, _, _, with_counts) = entity_manager.calls_to("find_page")[0]
    assert with_counts is True
    assert outcome.payload.results == [{"id": 1, "title": "Tagged", "tags": {"count": 2}}]


@pytest.mark.asyncio
async def test_find_hides_counts_of_unreadable_relations(service, entity_manager):
    entity_manager.seed(ARTICLE, {"title": "Tagged", "tags": [{"id": 1}]})
    ctx = _ctx(_grant("read", fields=["title", "tags"]))

    outcome = await service.find(ctx, ARTICLE)

    assert outcome.payload.results == [{"id": 1, "title": "Tagged"}]


@pytest.mark.asyncio
async def test_find_malformed_filters_is_client_error(service, seeded):
    ctx = _ctx(_grant("read"))

    outcome = await service.find(ctx, ARTICLE, {"filters": {"title": {"$like": "x"}}})

    assert outcome.kind is OutcomeKind.CLIENT_ERROR
    assert outcome.details
    assert seeded.calls == []


@pytest.mark.asyncio
async def test_unknown_content_type_propagates(service, seeded):
    with pytest.raises(SchemaNotFoundError):
        await service.find(_ctx(_grant("read")), "api::missing.missing")


# ---------------------------------------------------------------------------
# find_one
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_find_one_populates_from_sanitized_filters(service, seeded):
    ctx = _ctx(_grant("read"), _grant("read", subject=WRITER, fields=["name"]))

    outcome = await service.find_one(
        ctx, ARTICLE, 1, {"filters": {"author": {"name": "Ada"}, "blocks": {"text": "x"}}}
    )

    assert outcome.is_ok
    (_, _, _, populate, _) = seeded.calls_to("find_one")[0]
    assert list(populate) == ["author", "createdBy", "updatedBy"]
    assert populate["author"].fields == ("name",)
    assert outcome.payload["author"] == {"id": 1, "name": "Ada"}
    assert "secret" not in outcome.payload


@pytest.mark.asyncio
async def test_find_one_without_filters_fetches_only_creators(service, seeded):
    ctx = _ctx(_grant("read"))

    outcome = await service.find_one(ctx, ARTICLE, 1)

    assert outcome.is_ok
    (_, _, _, populate, _) = seeded.calls_to("find_one")[0]
    assert list(populate) == ["createdBy", "updatedBy"]
    assert populate["createdBy"].fields == ()
    assert "author" not in outcome.payload
    assert outcome.payload["title"] == "Mine"


@pytest.mark.asyncio
async def test_find_one_owner_condition_without_filters(service, seeded):
    ctx = _ctx(_grant("read", conditions=OWN))

    mine = await service.find_one(ctx, ARTICLE, 1)
    theirs = await service.find_one(ctx, ARTICLE, 2)

    assert mine.is_ok
    assert mine.payload["title"] == "Mine"
    assert "createdBy" not in mine.payload
    assert theirs.kind is OutcomeKind.FORBIDDEN


@pytest.mark.asyncio
async def test_find_one_condition_on_unpopulated_relation_is_forbidden(service, seeded):
    ctx = _ctx(_grant("read", conditions={"author": {"name": "Ada"}}))

    outcome = await service.find_one(ctx, ARTICLE, 1)

    assert outcome.kind is OutcomeKind.FORBIDDEN


@pytest.mark.asyncio
async def test_find_one_condition_satisfied_when_filter_populates_it(service, seeded):
    ctx = _ctx(_grant("read", conditions=OWN), _grant("read", subject="admin::user"))

    outcome = await service.find_one(ctx, ARTICLE, 1, {"filters": {"createdBy": {"id": USER_ID}}})

    assert outcome.is_ok
    assert outcome.payload["createdBy"] == {"id": USER_ID}


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_runs_input_pipeline(service, entity_manager, fake_analytics):
    entity_manager.seed(ARTICLE, {"title": "existing"})
    ctx = _ctx(_grant("create", fields=["title"]), _grant("read", fields=["title", "createdBy"]))

    outcome = await service.create(
        ctx,
        ARTICLE,
        {"title": "New", "status": "published", "createdBy": 99, "id": 50},
    )

    assert outcome.is_ok
    (_, _, data) = entity_manager.calls_to("create")[0]
    assert data["title"] == "New"
    assert data["createdBy"] == USER_ID
    assert data["updatedBy"] == USER_ID
    assert "status" not in data
    assert "id" not in data
    assert outcome.payload["title"] == "New"
    assert not fake_analytics.has(FIRST_ENTRY)


@pytest.mark.asyncio
async def test_owner_round_trip_on_created_record(service, entity_manager):
    ctx = _ctx(
        _grant("create"),
        _grant("read", conditions=OWN),
        _grant("update", conditions=OWN),
        _grant("delete", conditions=OWN),
    )
    theirs = {"createdBy": {"id": OTHER_ID}}
    other = RequestContext(
        user=AdminUser(id=OTHER_ID),
        ability=GrantAbility.from_dicts([_grant("read", conditions=theirs)]),
    )

    created = await service.create(ctx, ARTICLE, {"title": "Mine"})
    entry_id = created.payload["id"]

    assert entity_manager.stored(ARTICLE, entry_id)["createdBy"] == {"id": USER_ID}
    assert (await service.find_one(ctx, ARTICLE, entry_id)).payload["title"] == "Mine"
    assert (await service.find_one(other, ARTICLE, entry_id)).kind is OutcomeKind.FORBIDDEN

    updated = await service.update(ctx, ARTICLE, entry_id, {"title": "Edited"})
    assert updated.is_ok
    assert updated.payload["title"] == "Edited"
    assert entity_manager.stored(ARTICLE, entry_id)["updatedBy"] == {"id": USER_ID}

    deleted = await service.delete(ctx, ARTICLE, entry_id)
    assert deleted.is_ok
    assert entity_manager.stored(ARTICLE, entry_id) is None


@pytest.mark.asyncio
async def test_create_first_entry_signals_telemetry(service, entity_manager, fake_analytics):
    ctx = _ctx(_grant("create"), _grant("read"))

    await service.create(ctx, ARTICLE, {"title": "first"})
    await service.create(ctx, ARTICLE, {"title": "second"})

    event = fake_analytics.get(FIRST_ENTRY)
    assert event.properties == {"model": ARTICLE}
    assert event.distinct_id == str(USER_ID)
    assert len(fake_analytics.get_all(FIRST_ENTRY)) == 1
    assert [c[0] for c in entity_manager.calls][:2] == ["count", "create"]


@pytest.mark.asyncio
async def test_create_survives_telemetry_failure(schema_registry, entity_manager):
    tracker = FailingAnalyticsTracker()
    service = _build_service(schema_registry, entity_manager, tracker)

    outcome = await service.create(_ctx(_grant("create"), _grant("read")), ARTICLE, {"title": "a"})

    assert outcome.is_ok
    assert tracker.attempts == 1
    assert entity_manager.stored(ARTICLE, outcome.payload["id"]) is not None


@pytest.mark.asyncio
async def test_storage_error_propagates(service, entity_manager):
    async def broken_create(data, uid):
        raise StorageError("disk full")

    entity_manager.create = broken_create

    with pytest.raises(StorageError):
        await service.create(_ctx(_grant("create"), _grant("read")), ARTICLE, {"title": "a"})


# ---------------------------------------------------------------------------
# update / delete / publish / unpublish
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_uses_permissions_for_existing_record(service, seeded):
    ctx = _ctx(
        _grant("update", fields=["title"], conditions=OWN),
        _grant("update", fields=["status"], conditions={"status": "published"}),
        _grant("read"),
    )

    outcome = await service.update(ctx, ARTICLE, 1, {"title": "Edited", "status": "published"})

    assert outcome.is_ok
    (_, _, _, data) = seeded.calls_to("update")[0]
    assert data["title"] == "Edited"
    assert "status" not in data
    assert data["updatedBy"] == USER_ID
    assert seeded.stored(ARTICLE, 1)["status"] == "draft"
    assert "secret" not in outcome.payload


@pytest.mark.asyncio
async def test_delete_returns_sanitized_record(service, seeded):
    ctx = _ctx(_grant("delete", conditions=OWN), _grant("read", fields=["title"]))

    outcome = await service.delete(ctx, ARTICLE, 1)

    assert outcome.payload == {"id": 1, "title": "Mine"}
    assert seeded.stored(ARTICLE, 1) is None


@pytest.mark.parametrize("operation", ["publish", "unpublish"])
@pytest.mark.asyncio
async def test_publish_transitions_stamp_editor(operation, service, seeded):
    ctx = _ctx(_grant("publish"), _grant("read"))

    outcome = await getattr(service, operation)(ctx, ARTICLE, 1)

    assert outcome.is_ok
    (_, _, _, stamp) = seeded.calls_to(operation)[0]
    assert stamp["updatedBy"] == USER_ID
    assert "createdBy" not in stamp
    assert (outcome.payload["publishedAt"] is None) is (operation == "unpublish")


# ---------------------------------------------------------------------------
# bulk_delete
# ---------------------------------------------------------------------------


@dataclass
class BulkInvalidCase:
    desc: str
    body: Any
    grants: list = field(default_factory=lambda: [_grant("delete")])


BULK_INVALID_CASES = [
    BulkInvalidCase(desc="empty ids", body={"ids": []}),
    BulkInvalidCase(desc="missing ids", body={}),
    BulkInvalidCase(desc="ids not a list", body={"ids": "1,2"}),
    BulkInvalidCase(desc="no body", body=None),
    BulkInvalidCase(desc="invalid before permission work", body={"ids": []}, grants=[]),
]


@pytest.mark.parametrize("case", BULK_INVALID_CASES, ids=lambda c: c.desc)
@pytest.mark.asyncio
async def test_bulk_delete_invalid_input_is_client_error(case: BulkInvalidCase, service, seeded):
    outcome = await service.bulk_delete(_ctx(*case.grants), ARTICLE, case.body)

    assert outcome.kind is OutcomeKind.CLIENT_ERROR
    assert outcome.details["errors"]
    assert seeded.calls == []


@pytest.mark.asyncio
async def test_bulk_delete_scopes_ids_with_sanitized_filters(service, seeded):
    ctx = _ctx(_grant("delete", fields=["status"]))

    outcome = await service.bulk_delete(
        ctx,
        ARTICLE,
        {"ids": [1, 2, 3]},
        {"filters": {"status": "draft", "title": "ignored"}},
    )

    assert outcome.is_ok
    assert outcome.payload.count == 1
    assert seeded.stored(ARTICLE, 1) is None
    assert seeded.stored(ARTICLE, 2) is not None
    (_, _, query) = seeded.calls_to("delete_many")[0]
    assert query.filters == And(
        (Predicate("id", "$in", (1, 2, 3)), And((Predicate("status", "$eq", "draft"),)))
    )
    assert not seeded.called("find_one")


@pytest.mark.asyncio
async def test_bulk_delete_without_filters(service, seeded):
    outcome = await service.bulk_delete(_ctx(_grant("delete")), ARTICLE, {"ids": [2]})

    assert outcome.payload.count == 1
    (_, _, query) = seeded.calls_to("delete_many")[0]
    assert query.filters == And((Predicate("id", "$in", (2,)),))


# ---------------------------------------------------------------------------
# count_draft_relations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_count_draft_relations(service, entity_manager):
    entity_manager.seed("api::tag.tag", {"id": 1, "label": "t", "publishedAt": None})
    entity_manager.seed(ARTICLE, {"id": 5, "title": "x", "tags": [{"id": 1}]})
    ctx = _ctx(_grant("read"))

    outcome = await service.count_draft_relations(ctx, ARTICLE, 5)

    assert outcome.is_ok
    assert outcome.payload == 1
    (_, _, _, _, with_counts) = entity_manager.calls_to("find_one")[0]
    assert with_counts is True
