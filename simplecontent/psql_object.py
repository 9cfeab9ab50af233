"""SQL-backed repositories for stored objects and their metadata."""

from __future__ import annotations

import json
import uuid
from typing import Any, Sequence

from simplecontent.models import (
    NIL_UUID,
    OBJECT_STATUS_CREATED,
    NotFoundError,
    Object,
    ObjectMetadata,
)
from simplecontent.psql_base import BaseRepository, NoRowsError
from simplecontent.psql_content import _as_uuid, _decode_json, _now

_OBJECT_COLUMNS = (
    "id, content_id, storage_backend_name, storage_class, object_key, file_name, "
    "version, object_type,\n\t\t\tstatus, created_at, updated_at"
)


def _object_from_row(row: Sequence[Any]) -> Object:
    (
        object_id,
        content_id,
        storage_backend_name,
        storage_class,
        object_key,
        file_name,
        version,
        object_type,
        status,
        created_at,
        updated_at,
    ) = row[:11]
    return Object(
        id=_as_uuid(object_id),
        content_id=_as_uuid(content_id),
        storage_backend_name=storage_backend_name or "",
        storage_class=storage_class or "",
        object_key=object_key or "",
        file_name=file_name or "",
        version=int(version) if version is not None else 0,
        object_type=object_type or "",
        status=status or "",
        created_at=created_at,
        updated_at=updated_at,
    )


class PSQLObjectRepository(BaseRepository):
    """Objects stored in PostgreSQL."""

    def create(self, obj: Object) -> None:
        """Insert an object, filling in id, timestamps and status when unset."""
        query = (
            "\n\t\tINSERT INTO content.object (\n"
            "\t\t\tid, content_id, storage_backend_name, storage_class, object_key, \n"
            "\t\t\tfile_name, version, object_type, status, created_at, updated_at\n"
            "\t\t) VALUES (\n"
            "\t\t\t$1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11\n"
            "\t\t) RETURNING id, created_at, updated_at\n\t"
        )
        if obj.id == NIL_UUID:
            obj.id = uuid.uuid4()
        now = _now()
        if obj.created_at is None:
            obj.created_at = now
        if obj.updated_at is None:
            obj.updated_at = now
        if not obj.status:
            obj.status = OBJECT_STATUS_CREATED

        row = self.db.query_row(
            query,
            obj.id,
            obj.content_id,
            obj.storage_backend_name,
            obj.storage_class,
            obj.object_key,
            obj.file_name,
            obj.version,
            obj.object_type,
            obj.status,
            obj.created_at,
            obj.updated_at,
        )
        obj.id = _as_uuid(row[0])
        obj.created_at = row[1]
        obj.updated_at = row[2]

    def get(self, object_id: uuid.UUID) -> Object:
        """Return the non-deleted object with the given id."""
        query = (
            f"\n\t\tSELECT \n\t\t\t{_OBJECT_COLUMNS}\n"
            "\t\tFROM content.object\n"
            "\t\tWHERE id = $1 AND deleted_at IS NULL\n\t"
        )
        try:
            row = self.db.query_row(query, object_id)
        except NoRowsError as err:
            raise NotFoundError(f"object not found: {err}") from err
        return _object_from_row(row)

    def get_by_content_id(self, content_id: uuid.UUID) -> list[Object]:
        """Non-deleted objects of a content, ordered by version then newest first."""
        query = (
            f"\n\t\tSELECT \n\t\t\t{_OBJECT_COLUMNS}\n"
            "\t\tFROM content.object\n"
            "\t\tWHERE content_id = $1 AND deleted_at IS NULL\n"
            "\t\tORDER BY version, created_at DESC\n\t"
        )
        return [_object_from_row(row) for row in self.db.query(query, content_id)]

    def update(self, obj: Object) -> None:
        """Overwrite a non-deleted object and refresh its update time."""
        query = (
            "\n\t\tUPDATE content.object\n"
            "\t\tSET \n"
            "\t\t\tstorage_backend_name = $2,\n"
            "\t\t\tstorage_class = $3,\n"
            "\t\t\tobject_key = $4,\n"
            "\t\t\tfile_name = $5,\n"
            "\t\t\tversion = $6,\n"
            "\t\t\tobject_type = $7,\n"
            "\t\t\tstatus = $8,\n"
            "\t\t\tupdated_at = $9\n"
            "\t\tWHERE id = $1 AND deleted_at IS NULL\n"
            "\t\tRETURNING updated_at\n\t"
        )
        obj.updated_at = _now()
        try:
            row = self.db.query_row(
                query,
                obj.id,
                obj.storage_backend_name,
                obj.storage_class,
                obj.object_key,
                obj.file_name,
                obj.version,
                obj.object_type,
                obj.status,
                obj.updated_at,
            )
        except NoRowsError as err:
            raise NotFoundError(f"object not found: {err}") from err
        obj.updated_at = row[0]

    def delete(self, object_id: uuid.UUID) -> None:
        """Soft-delete an object; a missing one is not an error."""
        query = (
            "\n\t\tUPDATE content.object\n"
            "\t\tSET deleted_at = $1\n"
            "\t\tWHERE id = $2\n\t"
        )
        self.db.execute(query, _now(), object_id)

    def get_by_object_key_and_storage_backend_name(
        self, object_key: str, storage_backend_name: str
    ) -> Object:
        """The highest-version non-deleted object with this key in this backend."""
        query = (
            "\n\t\tSELECT \n"
            "\t\t\tid, content_id, storage_backend_name, status, object_key\n"
            "\t\tFROM content.object\n"
            "\t\tWHERE object_key = $1 AND storage_backend_name = $2 AND deleted_at IS NULL\n"
            "\t\tORDER BY version DESC\n"
            "\t\tLIMIT 1\n\t"
        )
        try:
            row = self.db.query_row(query, object_key, storage_backend_name)
        except NoRowsError:
            raise NotFoundError("object not found") from None
        object_id, content_id, backend_name, status, key = row[:5]
        return Object(
            id=_as_uuid(object_id),
            content_id=_as_uuid(content_id),
            storage_backend_name=backend_name or "",
            status=status or "",
            object_key=key or "",
        )


class PSQLObjectMetadataRepository(BaseRepository):
    """Object metadata stored in PostgreSQL."""

    def set(self, metadata: ObjectMetadata) -> None:
        """Insert or update the metadata of an existing object and record its timestamps."""
        object_exists = bool(
            self.db.query_row(
                "SELECT EXISTS(SELECT 1 FROM content.object WHERE id = $1 AND deleted_at IS NULL)",
                metadata.object_id,
            )[0]
        )
        if not object_exists:
            raise NotFoundError("object not found")

        exists = bool(
            self.db.query_row(
                "SELECT EXISTS(SELECT 1 FROM content.object_metadata WHERE object_id = $1)",
                metadata.object_id,
            )[0]
        )
        metadata_json = json.dumps(metadata.metadata)

        now = _now()
        if metadata.updated_at is None:
            metadata.updated_at = now
        if not exists and metadata.created_at is None:
            metadata.created_at = now

        if exists:
            query = (
                "\n\t\t\tUPDATE content.object_metadata\n"
                "\t\t\tSET \n"
                "\t\t\t\tsize_bytes = $2,\n"
                "\t\t\t\tmime_type = $3,\n"
                "\t\t\t\tetag = $4,\n"
                "\t\t\t\tmetadata = $5,\n"
                "\t\t\t\tupdated_at = $6\n"
                "\t\t\tWHERE object_id = $1\n"
                "\t\t\tRETURNING updated_at\n\t\t"
            )
            row = self.db.query_row(
                query,
                metadata.object_id,
                metadata.size_bytes,
                metadata.mime_type,
                metadata.etag,
                metadata_json,
                metadata.updated_at,
            )
            metadata.updated_at = row[0]
        else:
            query = (
                "\n\t\t\tINSERT INTO content.object_metadata (\n"
                "\t\t\t\tobject_id, size_bytes, mime_type, etag, metadata, created_at, updated_at\n"
                "\t\t\t) VALUES (\n"
                "\t\t\t\t$1, $2, $3, $4, $5, $6, $6\n"
                "\t\t\t) RETURNING created_at, updated_at\n\t\t"
            )
            row = self.db.query_row(
                query,
                metadata.object_id,
                metadata.size_bytes,
                metadata.mime_type,
                metadata.etag,
                metadata_json,
                metadata.created_at,
            )
            metadata.created_at = row[0]
            metadata.updated_at = row[1]

    def get(self, object_id: uuid.UUID) -> ObjectMetadata:
        """Return the non-deleted metadata of an object."""
        query = (
            "\n\t\tSELECT \n"
            "\t\t\tobject_id, size_bytes, mime_type, etag, metadata, created_at, updated_at\n"
            "\t\tFROM content.object_metadata\n"
            "\t\tWHERE object_id = $1 AND deleted_at IS NULL\n\t"
        )
        try:
            row = self.db.query_row(query, object_id)
        except NoRowsError as err:
            raise NotFoundError(f"object metadata not found: {err}") from err
        stored_id, size_bytes, mime_type, etag, metadata_json, created_at, updated_at = row[:7]
        return ObjectMetadata(
            object_id=_as_uuid(stored_id),
            size_bytes=int(size_bytes) if size_bytes is not None else 0,
            mime_type=mime_type or "",
            etag=etag or "",
            metadata=_decode_json(metadata_json),
            created_at=created_at,
            updated_at=updated_at,
        )