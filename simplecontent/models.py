"""Domain records, query parameters and errors shared by the repositories."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

NIL_UUID = uuid.UUID(int=0)

CONTENT_STATUS_CREATED = "created"
OBJECT_STATUS_CREATED = "created"


class RepositoryError(Exception):
    """Base class for repository failures."""


class NotFoundError(RepositoryError, LookupError):
    """The requested record does not exist."""


class AlreadyExistsError(RepositoryError):
    """A record with the same key is already stored."""


@dataclass
class Content:
    """A logical piece of content owned by a tenant and an owner."""

    id: uuid.UUID = NIL_UUID
    tenant_id: uuid.UUID = NIL_UUID
    owner_id: uuid.UUID = NIL_UUID
    owner_type: str = ""
    name: str = ""
    description: str = ""
    document_type: str = ""
    status: str = ""
    derivation_type: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ContentMetadata:
    """Descriptive metadata attached to a content."""

    content_id: uuid.UUID = NIL_UUID
    tags: list[str] = field(default_factory=list)
    file_size: int = 0
    file_name: str = ""
    mime_type: str = ""
    checksum: str = ""
    checksum_algorithm: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Object:
    """A stored binary object belonging to a content."""

    id: uuid.UUID = NIL_UUID
    content_id: uuid.UUID = NIL_UUID
    storage_backend_name: str = ""
    storage_class: str = ""
    object_key: str = ""
    file_name: str = ""
    version: int = 0
    object_type: str = ""
    status: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ObjectMetadata:
    """Metadata describing a stored object."""

    object_id: uuid.UUID = NIL_UUID
    size_bytes: int = 0
    mime_type: str = ""
    etag: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class StorageBackend:
    """A named place where objects are stored."""

    name: str = ""
    type: str = ""
    config: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DerivedContent:
    """A relationship from a parent content to a content derived from it."""

    parent_id: uuid.UUID = NIL_UUID
    content_id: uuid.UUID = NIL_UUID
    derivation_type: str = ""
    derivation_params: dict[str, Any] = field(default_factory=dict)
    processing_metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    document_type: str = ""
    status: str = ""


@dataclass
class ContentWithParent:
    """A content found in a derivation tree, with its parent and depth."""

    content: Content
    parent_id: uuid.UUID = NIL_UUID
    level: int = 0


@dataclass
class ListDerivedContentParams:
    """Filters for listing derived content relationships."""

    parent_ids: list[uuid.UUID] = field(default_factory=list)
    derivation_type: list[str] = field(default_factory=list)
    tenant_id: uuid.UUID = NIL_UUID


@dataclass
class CreateDerivedContentParams:
    """Values for a new derived content relationship."""

    parent_id: uuid.UUID = NIL_UUID
    derived_content_id: uuid.UUID = NIL_UUID
    derivation_type: str = ""
    derivation_params: dict[str, Any] = field(default_factory=dict)
    processing_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeleteDerivedContentParams:
    """Identifies a derived content relationship to remove."""

    parent_id: uuid.UUID = NIL_UUID
    derived_content_id: uuid.UUID = NIL_UUID


@dataclass
class GetDerivedContentByLevelParams:
    """Parameters for walking a derivation tree down to a level."""

    root_id: uuid.UUID = NIL_UUID
    level: int = 0
    max_depth: int = 0
    tenant_id: uuid.UUID = NIL_UUID