import json
import uuid
from collections import deque
from datetime import datetime, timezone

import pytest

from simplecontent.models import (
    CONTENT_STATUS_CREATED,
    NIL_UUID,
    Content,
    ContentMetadata,
    CreateDerivedContentParams,
    DeleteDerivedContentParams,
    GetDerivedContentByLevelParams,
    ListDerivedContentParams,
    NotFoundError,
)
from simplecontent.psql_base import NoRowsError
from simplecontent.psql_content import PSQLContentMetadataRepository, PSQLContentRepository

STAMP = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
LATER = datetime(2024, 1, 2, 3, 4, 6, tzinfo=timezone.utc)


class FakeDB:
    """Records every call and answers from queued responses."""

    def __init__(self, rows=(), results=(), affected=()):
        self.calls = []
        self._rows = deque(rows)
        self._results = deque(results)
        self._affected = deque(affected)

    @staticmethod
    def _answer(queue, query, args):
        response = queue.popleft()
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(query, args)
        return response

    def execute(self, query, *args):
        self.calls.append(("execute", query, args))
        return self._answer(self._affected, query, args)

    def query(self, query, *args):
        self.calls.append(("query", query, args))
        return self._answer(self._results, query, args)

    def query_row(self, query, *args):
        self.calls.append(("query_row", query, args))
        return self._answer(self._rows, query, args)


def _content_row(content_id, tenant_id, owner_id, name="Test Content"):
    return (
        content_id,
        tenant_id,
        owner_id,
        "user",
        name,
        "Test Description",
        "document",
        "created",
        "original",
        STAMP,
        STAMP,
    )


def _echo_insert(query, args):
    return (args[0], args[9], args[10])


def test_create_fills_id_timestamps_and_status():
    db = FakeDB(rows=[_echo_insert])
    repo = PSQLContentRepository(db)
    content = Content(
        tenant_id=uuid.uuid4(),
        owner_id=uuid.uuid4(),
        owner_type="user",
        name="Test Content",
        description="Test Description",
        document_type="document",
        derivation_type="original",
    )
    repo.create(content)
    assert content.id != NIL_UUID
    assert content.status == CONTENT_STATUS_CREATED
    assert content.created_at is not None
    assert content.created_at == content.updated_at
    kind, query, args = db.calls[0]
    assert kind == "query_row"
    assert "INSERT INTO content.content" in query
    assert args[:3] == (content.id, content.tenant_id, content.owner_id)
    assert args[7] == CONTENT_STATUS_CREATED


def test_create_takes_values_returned_by_database():
    returned_id = uuid.uuid4()
    db = FakeDB(rows=[(str(returned_id), STAMP, LATER)])
    repo = PSQLContentRepository(db)
    content = Content(status="uploaded", created_at=LATER, updated_at=LATER)
    repo.create(content)
    assert content.id == returned_id
    assert content.created_at == STAMP
    assert content.updated_at == LATER
    assert db.calls[0][2][7] == "uploaded"


def test_get_maps_row():
    content_id, tenant_id, owner_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    db = FakeDB(rows=[_content_row(content_id, tenant_id, owner_id)])
    repo = PSQLContentRepository(db)
    content = repo.get(content_id)
    assert content == Content(
        id=content_id,
        tenant_id=tenant_id,
        owner_id=owner_id,
        owner_type="user",
        name="Test Content",
        description="Test Description",
        document_type="document",
        status="created",
        derivation_type="original",
        created_at=STAMP,
        updated_at=STAMP,
    )
    assert db.calls[0][2] == (content_id,)
    assert "deleted_at IS NULL" in db.calls[0][1]


def test_get_missing_raises_not_found():
    db = FakeDB(rows=[NoRowsError("no rows in result set")])
    repo = PSQLContentRepository(db)
    with pytest.raises(NotFoundError, match="content not found"):
        repo.get(uuid.uuid4())


def test_update_sends_fields_and_stores_returned_time():
    db = FakeDB(rows=[(LATER,)])
    repo = PSQLContentRepository(db)
    content = Content(
        id=uuid.uuid4(),
        name="Updated Content",
        description="Updated Description",
        status="uploaded",
        updated_at=STAMP,
    )
    repo.update(content)
    assert content.updated_at == LATER
    _, query, args = db.calls[0]
    assert "UPDATE content.content" in query
    assert args[0] == content.id
    assert args[4] == "Updated Content"
    assert args[5] == "Updated Description"
    assert args[7] == "uploaded"


def test_update_missing_raises_not_found():
    db = FakeDB(rows=[NoRowsError("no rows in result set")])
    repo = PSQLContentRepository(db)
    with pytest.raises(NotFoundError, match="content not found"):
        repo.update(Content(id=uuid.uuid4()))


def test_delete_soft_deletes():
    content_id = uuid.uuid4()
    db = FakeDB(affected=[1])
    PSQLContentRepository(db).delete(content_id)
    kind, query, args = db.calls[0]
    assert kind == "execute"
    assert "SET deleted_at = $2" in query
    assert args[0] == content_id
    assert isinstance(args[1], datetime)


def test_delete_without_rows_raises():
    db = FakeDB(affected=[0])
    with pytest.raises(NotFoundError, match="content not found or already deleted"):
        PSQLContentRepository(db).delete(uuid.uuid4())


def test_list_without_filters_returns_empty_and_skips_query():
    db = FakeDB()
    assert PSQLContentRepository(db).list(NIL_UUID, NIL_UUID) == []
    assert db.calls == []


def test_list_by_tenant_only():
    tenant_id = uuid.uuid4()
    rows = [
        _content_row(uuid.uuid4(), tenant_id, uuid.uuid4(), "Content 1"),
        _content_row(uuid.uuid4(), tenant_id, uuid.uuid4(), "Content 2"),
    ]
    db = FakeDB(results=[rows])
    result = PSQLContentRepository(db).list(NIL_UUID, tenant_id)
    assert [c.name for c in result] == ["Content 1", "Content 2"]
    _, query, args = db.calls[0]
    assert " AND tenant_id = $1" in query
    assert "owner_id = $" not in query
    assert query.endswith("ORDER BY created_at DESC")
    assert args == (tenant_id,)


def test_list_by_owner_and_tenant():
    owner_id, tenant_id = uuid.uuid4(), uuid.uuid4()
    db = FakeDB(results=[[_content_row(uuid.uuid4(), tenant_id, owner_id)]])
    result = PSQLContentRepository(db).list(owner_id, tenant_id)
    assert len(result) == 1
    assert result[0].owner_id == owner_id
    _, query, args = db.calls[0]
    assert " AND owner_id = $1" in query
    assert " AND tenant_id = $2" in query
    assert args == (owner_id, tenant_id)


def _derived_row(parent_id, content_id, derivation_type, params=None):
    return (
        parent_id,
        content_id,
        derivation_type,
        params,
        None,
        STAMP,
        STAMP,
        "thumbnail",
        "created",
    )


def test_list_derived_content_single_parent():
    parent_id, child_id = uuid.uuid4(), uuid.uuid4()
    db = FakeDB(results=[[_derived_row(parent_id, child_id, "thumbnail_720", b'{"width": 720}')]])
    params = ListDerivedContentParams(parent_ids=[parent_id], derivation_type=["thumbnail_720"])
    result = PSQLContentRepository(db).list_derived_content(params)
    assert len(result) == 1
    assert result[0].parent_id == parent_id
    assert result[0].content_id == child_id
    assert result[0].derivation_params == {"width": 720}
    assert result[0].processing_metadata == {}
    assert result[0].document_type == "thumbnail"
    _, query, args = db.calls[0]
    assert " AND cd.parent_content_id = $2" in query
    assert args == (["thumbnail_720"], parent_id)


def test_list_derived_content_many_parents_and_tenant():
    parents = [uuid.uuid4(), uuid.uuid4()]
    tenant_id = uuid.uuid4()
    db = FakeDB(results=[[]])
    params = ListDerivedContentParams(
        parent_ids=parents,
        derivation_type=["thumbnail_720", "thumbnail_480"],
        tenant_id=tenant_id,
    )
    assert PSQLContentRepository(db).list_derived_content(params) == []
    _, query, args = db.calls[0]
    assert " AND cd.parent_content_id = ANY($2)" in query
    assert " AND c.tenant_id = $3" in query
    assert query.endswith(" ORDER BY c.created_at DESC")
    assert args == (["thumbnail_720", "thumbnail_480"], parents, tenant_id)


def test_list_derived_content_tenant_only():
    tenant_id = uuid.uuid4()
    db = FakeDB(results=[[]])
    params = ListDerivedContentParams(tenant_id=tenant_id, derivation_type=["thumbnail_720"])
    PSQLContentRepository(db).list_derived_content(params)
    _, query, args = db.calls[0]
    assert " AND c.tenant_id = $2" in query
    assert "parent_content_id = $" not in query
    assert args == (["thumbnail_720"], tenant_id)


def test_create_derived_relationship_rejects_same_ids():
    same = uuid.uuid4()
    db = FakeDB()
    params = CreateDerivedContentParams(parent_id=same, derived_content_id=same)
    with pytest.raises(ValueError, match="invalid content ID"):
        PSQLContentRepository(db).create_derived_content_relationship(params)
    assert db.calls == []


def test_create_derived_relationship_round_trips_params():
    parent_id, child_id = uuid.uuid4(), uuid.uuid4()

    def echo(query, args):
        return (uuid.uuid4(), args[0], args[1], args[2], args[3], args[4])

    db = FakeDB(rows=[echo])
    derivation_params = {"width": 720, "height": 480, "format": "jpg"}
    processing_metadata = {
        "processor": "thumbnail-service",
        "processingTime": 1.5,
        "status": "completed",
    }
    result = PSQLContentRepository(db).create_derived_content_relationship(
        CreateDerivedContentParams(
            parent_id=parent_id,
            derived_content_id=child_id,
            derivation_type="thumbnail_480",
            derivation_params=derivation_params,
            processing_metadata=processing_metadata,
        )
    )
    assert result.parent_id == parent_id
    assert result.content_id == child_id
    assert result.derivation_type == "thumbnail_480"
    assert result.derivation_params == derivation_params
    assert result.processing_metadata == processing_metadata
    assert result.created_at == result.updated_at
    assert "INSERT INTO content.content_derived" in db.calls[0][1]


def test_create_derived_relationship_propagates_database_error():
    db = FakeDB(rows=[RuntimeError("duplicate key value violates unique constraint")])
    params = CreateDerivedContentParams(
        parent_id=uuid.uuid4(), derived_content_id=uuid.uuid4(), derivation_type="thumbnail_720"
    )
    with pytest.raises(RuntimeError, match="duplicate key"):
        PSQLContentRepository(db).create_derived_content_relationship(params)


def test_delete_derived_relationship_passes_ids_and_ignores_count():
    parent_id, child_id = uuid.uuid4(), uuid.uuid4()
    db = FakeDB(affected=[0])
    PSQLContentRepository(db).delete_derived_content_relationship(
        DeleteDerivedContentParams(parent_id=parent_id, derived_content_id=child_id)
    )
    kind, query, args = db.calls[0]
    assert kind == "execute"
    assert "UPDATE content.content_derived" in query
    assert args[:2] == (parent_id, child_id)


def test_get_derived_content_by_level_maps_parents_and_levels():
    tenant_id = uuid.uuid4()
    root_id, child_id = uuid.uuid4(), uuid.uuid4()
    rows = [
        _content_row(root_id, tenant_id, uuid.uuid4(), "Root Content") + (0, None),
        _content_row(child_id, tenant_id, uuid.uuid4(), "Level 1 Content 1") + (1, root_id),
    ]
    db = FakeDB(results=[rows])
    result = PSQLContentRepository(db).get_derived_content_by_level(
        GetDerivedContentByLevelParams(root_id=root_id, level=1)
    )
    by_id = {item.content.id: item for item in result}
    assert by_id[root_id].parent_id == NIL_UUID
    assert by_id[root_id].level == 0
    assert by_id[child_id].parent_id == root_id
    assert by_id[child_id].level == 1
    _, query, args = db.calls[0]
    assert "WITH RECURSIVE derivation_tree" in query
    assert args == (root_id, 10, 1)


def test_get_derived_content_by_level_with_tenant_and_depth():
    root_id, tenant_id = uuid.uuid4(), uuid.uuid4()
    db = FakeDB(results=[[]])
    result = PSQLContentRepository(db).get_derived_content_by_level(
        GetDerivedContentByLevelParams(root_id=root_id, level=2, max_depth=3, tenant_id=tenant_id)
    )
    assert result == []
    _, query, args = db.calls[0]
    assert query.endswith(" AND tenant_id = $4")
    assert args == (root_id, 3, 2, tenant_id)


def _sample_metadata(content_id):
    return ContentMetadata(
        content_id=content_id,
        mime_type="text/plain",
        file_name="test.txt",
        checksum="abc123",
        checksum_algorithm="SHA-256",
        tags=["test", "sample"],
        file_size=1024,
        metadata={"author": "Test User", "description": "Test file description"},
    )


def test_metadata_set_inserts_when_missing():
    content_id = uuid.uuid4()
    db = FakeDB(rows=[(False,), (STAMP,)])
    metadata = _sample_metadata(content_id)
    PSQLContentMetadataRepository(db).set(metadata)
    assert metadata.created_at == STAMP
    assert metadata.updated_at == STAMP
    _, exists_query, exists_args = db.calls[0]
    assert "SELECT EXISTS" in exists_query
    assert exists_args == (content_id,)
    _, query, args = db.calls[1]
    assert "INSERT INTO content.content_metadata" in query
    assert args[:7] == (content_id, ["test", "sample"], 1024, "test.txt", "text/plain", "abc123", "SHA-256")
    assert json.loads(args[7]) == metadata.metadata


def test_metadata_set_updates_when_present():
    content_id = uuid.uuid4()
    db = FakeDB(rows=[(True,), (LATER,)])
    metadata = _sample_metadata(content_id)
    metadata.created_at = STAMP
    PSQLContentMetadataRepository(db).set(metadata)
    assert metadata.created_at == STAMP
    assert metadata.updated_at == LATER
    assert "UPDATE content.content_metadata" in db.calls[1][1]


def test_metadata_get_maps_row():
    content_id = uuid.uuid4()
    row = (
        content_id,
        ["test", "sample"],
        1024,
        "test.txt",
        "text/plain",
        "abc123",
        "SHA-256",
        b'{"author": "Test User", "description": "Test file description"}',
        STAMP,
        LATER,
    )
    db = FakeDB(rows=[row])
    retrieved = PSQLContentMetadataRepository(db).get(content_id)
    assert retrieved.content_id == content_id
    assert retrieved.mime_type == "text/plain"
    assert retrieved.file_name == "test.txt"
    assert retrieved.checksum == "abc123"
    assert retrieved.checksum_algorithm == "SHA-256"
    assert sorted(retrieved.tags) == sorted(["test", "sample"])
    assert retrieved.file_size == 1024
    assert retrieved.metadata["author"] == "Test User"
    assert retrieved.metadata["description"] == "Test file description"
    assert (retrieved.created_at, retrieved.updated_at) == (STAMP, LATER)


def test_metadata_get_null_columns_become_defaults():
    content_id = uuid.uuid4()
    db = FakeDB(rows=[(content_id, None, None, None, None, None, None, None, STAMP, STAMP)])
    retrieved = PSQLContentMetadataRepository(db).get(content_id)
    assert retrieved == ContentMetadata(content_id=content_id, created_at=STAMP, updated_at=STAMP)


def test_metadata_get_missing_raises_not_found():
    db = FakeDB(rows=[NoRowsError("no rows in result set")])
    with pytest.raises(NotFoundError, match="content metadata not found"):
        PSQLContentMetadataRepository(db).get(uuid.uuid4())