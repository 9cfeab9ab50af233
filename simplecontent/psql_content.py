"""SQL-backed repositories for contents, derivations and content metadata."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from simplecontent.models import (
    CONTENT_STATUS_CREATED,
    NIL_UUID,
    Content,
    ContentMetadata,
    ContentWithParent,
    CreateDerivedContentParams,
    DeleteDerivedContentParams,
    DerivedContent,
    GetDerivedContentByLevelParams,
    ListDerivedContentParams,
    NotFoundError,
)
from simplecontent.psql_base import BaseRepository, NoRowsError

_DEFAULT_MAX_DEPTH = 10

_CONTENT_COLUMNS = (
    "id, tenant_id, owner_id, owner_type, name, description, document_type,\n"
    "\t\t\tstatus, derivation_type, created_at, updated_at"
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_uuid(value: Any) -> uuid.UUID:
    if value is None:
        return NIL_UUID
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def _decode_json(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8")
    decoded = json.loads(value)
    return decoded if decoded is not None else {}


def _content_from_row(row: Sequence[Any]) -> Content:
    (
        content_id,
        tenant_id,
        owner_id,
        owner_type,
        name,
        description,
        document_type,
        status,
        derivation_type,
        created_at,
        updated_at,
    ) = row[:11]
    return Content(
        id=_as_uuid(content_id),
        tenant_id=_as_uuid(tenant_id),
        owner_id=_as_uuid(owner_id),
        owner_type=owner_type or "",
        name=name or "",
        description=description or "",
        document_type=document_type or "",
        status=status or "",
        derivation_type=derivation_type or "",
        created_at=created_at,
        updated_at=updated_at,
    )


class PSQLContentRepository(BaseRepository):
    """Contents and their derivation relationships stored in PostgreSQL."""

    def create(self, content: Content) -> None:
        """Insert a content, filling in id, timestamps and status when unset."""
        query = (
            "\n\t\tINSERT INTO content.content (\n"
            "\t\t\tid, tenant_id, owner_id, owner_type, name, description, document_type,\n"
            "\t\t\tstatus, derivation_type, created_at, updated_at\n"
            "\t\t) VALUES (\n"
            "\t\t\t$1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11\n"
            "\t\t) RETURNING id, created_at, updated_at\n\t"
        )
        if content.id == NIL_UUID:
            content.id = uuid.uuid4()
        now = _now()
        if content.created_at is None:
            content.created_at = now
        if content.updated_at is None:
            content.updated_at = now
        if not content.status:
            content.status = CONTENT_STATUS_CREATED

        row = self.db.query_row(
            query,
            content.id,
            content.tenant_id,
            content.owner_id,
            content.owner_type,
            content.name,
            content.description,
            content.document_type,
            content.status,
            content.derivation_type,
            content.created_at,
            content.updated_at,
        )
        content.id = _as_uuid(row[0])
        content.created_at = row[1]
        content.updated_at = row[2]

    def get(self, content_id: uuid.UUID) -> Content:
        """Return the non-deleted content with the given id."""
        query = (
            f"\n\t\tSELECT \n\t\t\t{_CONTENT_COLUMNS}\n"
            "\t\tFROM content.content\n"
            "\t\tWHERE id = $1 AND deleted_at IS NULL\n\t"
        )
        try:
            row = self.db.query_row(query, content_id)
        except NoRowsError as err:
            raise NotFoundError(f"content not found: {err}") from err
        return _content_from_row(row)

    def update(self, content: Content) -> None:
        """Overwrite a non-deleted content and refresh its update time."""
        query = (
            "\n\t\tUPDATE content.content\n"
            "\t\tSET \n"
            "\t\t\ttenant_id = $2,\n"
            "\t\t\towner_id = $3,\n"
            "\t\t\towner_type = $4,\n"
            "\t\t\tname = $5,\n"
            "\t\t\tdescription = $6,\n"
            "\t\t\tdocument_type = $7,\n"
            "\t\t\tstatus = $8,\n"
            "\t\t\tderivation_type = $9,\n"
            "\t\t\tupdated_at = $10\n"
            "\t\tWHERE id = $1 AND deleted_at IS NULL\n"
            "\t\tRETURNING updated_at\n\t"
        )
        content.updated_at = _now()
        try:
            row = self.db.query_row(
                query,
                content.id,
                content.tenant_id,
                content.owner_id,
                content.owner_type,
                content.name,
                content.description,
                content.document_type,
                content.status,
                content.derivation_type,
                content.updated_at,
            )
        except NoRowsError as err:
            raise NotFoundError(f"content not found: {err}") from err
        content.updated_at = row[0]

    def delete(self, content_id: uuid.UUID) -> None:
        """Soft-delete a content."""
        query = (
            "\n\t\tUPDATE content.content\n"
            "\t\tSET deleted_at = $2\n"
            "\t\tWHERE id = $1 AND deleted_at IS NULL\n\t"
        )
        if self.db.execute(query, content_id, _now()) == 0:
            raise NotFoundError("content not found or already deleted")

    def list(self, owner_id: uuid.UUID, tenant_id: uuid.UUID) -> list[Content]:
        """Contents of an owner and/or tenant, newest first; empty when neither is given."""
        if owner_id == NIL_UUID and tenant_id == NIL_UUID:
            return []
        conditions = []
        args: list[Any] = []
        for column, value in (("owner_id", owner_id), ("tenant_id", tenant_id)):
            if value != NIL_UUID:
                args.append(value)
                conditions.append(f" AND {column} = ${len(args)}")
        query = (
            f"\n\t\tSELECT \n\t\t\t{_CONTENT_COLUMNS}\n"
            "\t\tFROM content.content\n"
            "\t\tWHERE deleted_at IS NULL\n\t"
            + "".join(conditions)
            + "\n\t\tORDER BY created_at DESC"
        )
        return [_content_from_row(row) for row in self.db.query(query, *args)]

    def list_derived_content(self, params: ListDerivedContentParams) -> list[DerivedContent]:
        """Derivation relationships of the given types, newest derived content first."""
        base = (
            "\n\t\tSELECT \n"
            "\t\t\tcd.parent_content_id, cd.derived_content_id, cd.derivation_type, "
            "cd.derivation_params, cd.processing_metadata, c.created_at, c.updated_at, "
            "c.document_type, c.status\n"
            "\t\tFROM content.content_derived cd\n"
            "\t\tJOIN content.content c ON cd.derived_content_id = c.id\n"
            "\t\tWHERE c.deleted_at IS NULL AND cd.deleted_at IS NULL\n"
            "\t\tAND cd.derivation_type = ANY($1)\n\t"
        )
        args: list[Any] = [list(params.derivation_type)]
        conditions = []
        if len(params.parent_ids) == 1:
            args.append(params.parent_ids[0])
            conditions.append(f" AND cd.parent_content_id = ${len(args)}")
        elif params.parent_ids:
            args.append(list(params.parent_ids))
            conditions.append(f" AND cd.parent_content_id = ANY(${len(args)})")
        if params.tenant_id != NIL_UUID:
            args.append(params.tenant_id)
            conditions.append(f" AND c.tenant_id = ${len(args)}")
        query = base + "".join(conditions) + " ORDER BY c.created_at DESC"

        return [
            DerivedContent(
                parent_id=_as_uuid(parent_id),
                content_id=_as_uuid(content_id),
                derivation_type=derivation_type or "",
                derivation_params=_decode_json(derivation_params),
                processing_metadata=_decode_json(processing_metadata),
                created_at=created_at,
                updated_at=updated_at,
                document_type=document_type or "",
                status=status or "",
            )
            for (
                parent_id,
                content_id,
                derivation_type,
                derivation_params,
                processing_metadata,
                created_at,
                updated_at,
                document_type,
                status,
            ) in self.db.query(query, *args)
        ]

    def create_derived_content_relationship(
        self, params: CreateDerivedContentParams
    ) -> DerivedContent:
        """Record that one content was derived from another."""
        if params.parent_id == params.derived_content_id:
            raise ValueError("invalid content ID")
        query = (
            "\n\t\tINSERT INTO content.content_derived (\n"
            "\t\t\tparent_content_id, derived_content_id, derivation_type, derivation_params, "
            "processing_metadata, created_at, updated_at\n"
            "\t\t) VALUES (\n"
            "\t\t\t$1, $2, $3, $4, $5, $6, $7\n"
            "\t\t) RETURNING id, parent_content_id, derived_content_id, derivation_type, "
            "derivation_params, processing_metadata\n\t"
        )
        now = _now()
        row = self.db.query_row(
            query,
            params.parent_id,
            params.derived_content_id,
            params.derivation_type,
            json.dumps(params.derivation_params),
            json.dumps(params.processing_metadata),
            now,
            now,
        )
        _, parent_id, derived_id, derivation_type, derivation_params, processing_metadata = row[:6]
        return DerivedContent(
            parent_id=_as_uuid(parent_id),
            content_id=_as_uuid(derived_id),
            derivation_type=derivation_type or "",
            derivation_params=_decode_json(derivation_params),
            processing_metadata=_decode_json(processing_metadata),
            created_at=now,
            updated_at=now,
        )

    def delete_derived_content_relationship(self, params: DeleteDerivedContentParams) -> None:
        """Soft-delete a derivation relationship; a missing one is not an error."""
        query = (
            "\n\t\tUPDATE content.content_derived\n"
            "\t\tSET deleted_at = $3\n"
            "\t\tWHERE parent_content_id = $1 AND derived_content_id = $2\n"
            "\t\tAND deleted_at IS NULL\n\t"
        )
        self.db.execute(query, params.parent_id, params.derived_content_id, _now())

    def get_derived_content_by_level(
        self, params: GetDerivedContentByLevelParams
    ) -> list[ContentWithParent]:
        """Contents from the root down to params.level, each with its parent and depth."""
        max_depth = params.max_depth if params.max_depth > 0 else _DEFAULT_MAX_DEPTH
        query = (
            "\n\t\tWITH RECURSIVE derivation_tree AS (\n"
            "\t\t\tSELECT \n"
            "\t\t\t\tc.id, c.tenant_id, c.owner_id, c.owner_type, c.name, c.description, \n"
            "\t\t\t\tc.document_type, c.status, c.derivation_type, c.created_at, c.updated_at,\n"
            "\t\t\t\t0 AS level, NULL::uuid AS parent_id\n"
            "\t\t\tFROM content.content c\n"
            "\t\t\tWHERE c.id = $1 AND c.deleted_at IS NULL\n"
            "\t\t\t\n"
            "\t\t\tUNION ALL\n"
            "\t\t\t\n"
            "\t\t\tSELECT \n"
            "\t\t\t\tc.id, c.tenant_id, c.owner_id, c.owner_type, c.name, c.description, \n"
            "\t\t\t\tc.document_type, c.status, c.derivation_type, c.created_at, c.updated_at,\n"
            "\t\t\t\tdt.level + 1, cd.parent_content_id\n"
            "\t\t\tFROM content.content c\n"
            "\t\t\tJOIN content.content_derived cd ON c.id = cd.derived_content_id\n"
            "\t\t\tJOIN derivation_tree dt ON cd.parent_content_id = dt.id\n"
            "\t\t\tWHERE c.deleted_at IS NULL AND cd.deleted_at IS NULL\n"
            "\t\t\tAND dt.level < $2\n"
            "\t\t)\n"
            "\t\tSELECT * FROM derivation_tree WHERE level <= $3\n\t"
        )
        args: list[Any] = [params.root_id, max_depth, params.level]
        if params.tenant_id != NIL_UUID:
            args.append(params.tenant_id)
            query += f" AND tenant_id = ${len(args)}"

        return [
            ContentWithParent(
                content=_content_from_row(row),
                parent_id=_as_uuid(row[12]),
                level=int(row[11]),
            )
            for row in self.db.query(query, *args)
        ]


class PSQLContentMetadataRepository(BaseRepository):
    """Content metadata stored in PostgreSQL."""

    def set(self, metadata: ContentMetadata) -> None:
        """Insert or update the metadata of a content and record its timestamps."""
        exists = bool(
            self.db.query_row(
                "SELECT EXISTS(SELECT 1 FROM content.content_metadata WHERE content_id = $1)",
                metadata.content_id,
            )[0]
        )
        metadata_json = json.dumps(metadata.metadata)
        if exists:
            query = (
                "\n\t\t\tUPDATE content.content_metadata\n"
                "\t\t\tSET \n"
                "\t\t\t\ttags = $2,\n"
                "\t\t\t\tfile_size = $3,\n"
                "\t\t\t\tfile_name = $4,\n"
                "\t\t\t\tmime_type = $5,\n"
                "\t\t\t\tchecksum = $6,\n"
                "\t\t\t\tchecksum_algorithm = $7,\n"
                "\t\t\t\tmetadata = $8,\n"
                "\t\t\t\tupdated_at = $9\n"
                "\t\t\tWHERE content_id = $1\n"
                "\t\t\tRETURNING updated_at\n\t\t"
            )
        else:
            query = (
                "\n\t\t\tINSERT INTO content.content_metadata (\n"
                "\t\t\t\tcontent_id, tags, file_size, file_name, mime_type, checksum, "
                "checksum_algorithm, \n"
                "\t\t\t\tmetadata, created_at, updated_at\n"
                "\t\t\t) VALUES (\n"
                "\t\t\t\t$1, $2, $3, $4, $5, $6, $7, $8, $9, $9\n"
                "\t\t\t) RETURNING updated_at\n\t\t"
            )
        row = self.db.query_row(
            query,
            metadata.content_id,
            list(metadata.tags),
            metadata.file_size,
            metadata.file_name,
            metadata.mime_type,
            metadata.checksum,
            metadata.checksum_algorithm,
            metadata_json,
            _now(),
        )
        metadata.updated_at = row[0]
        if not exists:
            metadata.created_at = row[0]

    def get(self, content_id: uuid.UUID) -> ContentMetadata:
        """Return the non-deleted metadata of a content."""
        query = (
            "\n\t\tSELECT \n"
            "\t\t\tcontent_id, tags, file_size, file_name, mime_type, checksum, "
            "checksum_algorithm,\n"
            "\t\t\tmetadata, created_at, updated_at\n"
            "\t\tFROM content.content_metadata\n"
            "\t\tWHERE content_id = $1 AND deleted_at IS NULL\n\t"
        )
        try:
            row = self.db.query_row(query, content_id)
        except NoRowsError as err:
            raise NotFoundError(f"content metadata not found: {err}") from err
        (
            stored_id,
            tags,
            file_size,
            file_name,
            mime_type,
            checksum,
            checksum_algorithm,
            metadata_json,
            created_at,
            updated_at,
        ) = row[:10]
        return ContentMetadata(
            content_id=_as_uuid(stored_id),
            tags=list(tags) if tags else [],
            file_size=file_size if file_size is not None else 0,
            file_name=file_name or "",
            mime_type=mime_type or "",
            checksum=checksum or "",
            checksum_algorithm=checksum_algorithm or "",
            metadata=_decode_json(metadata_json),
            created_at=created_at,
            updated_at=updated_at,
        )