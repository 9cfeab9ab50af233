"""Thread-safe in-memory repositories."""

from __future__ import annotations

import threading
import uuid
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone

from simplecontent.models import (
    NIL_UUID,
    AlreadyExistsError,
    Content,
    ContentMetadata,
    ContentWithParent,
    CreateDerivedContentParams,
    DeleteDerivedContentParams,
    DerivedContent,
    GetDerivedContentByLevelParams,
    ListDerivedContentParams,
    NotFoundError,
    Object,
    ObjectMetadata,
    StorageBackend,
)

_DEFAULT_MAX_DEPTH = 10


class MemoryContentRepository:
    """Stores contents and their derivation relationships in memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._contents: dict[uuid.UUID, Content] = {}
        self._derived: dict[uuid.UUID, list[DerivedContent]] = {}

    def create(self, content: Content) -> None:
        with self._lock:
            if content.id in self._contents:
                raise AlreadyExistsError("content already exists")
            self._contents[content.id] = content

    def get(self, content_id: uuid.UUID) -> Content:
        with self._lock:
            try:
                return self._contents[content_id]
            except KeyError:
                raise NotFoundError("content not found") from None

    def update(self, content: Content) -> None:
        with self._lock:
            if content.id not in self._contents:
                raise NotFoundError("content not found")
            self._contents[content.id] = content

    def delete(self, content_id: uuid.UUID) -> None:
        with self._lock:
            if self._contents.pop(content_id, None) is None:
                raise NotFoundError("content not found")

    def list(self, owner_id: uuid.UUID, tenant_id: uuid.UUID) -> list[Content]:
        """Contents matching the owner and/or tenant; empty when neither is given."""
        with self._lock:
            if owner_id == NIL_UUID and tenant_id == NIL_UUID:
                return []
            return [
                content
                for content in self._contents.values()
                if (owner_id == NIL_UUID or content.owner_id == owner_id)
                and (tenant_id == NIL_UUID or content.tenant_id == tenant_id)
            ]

    def get_derived_content_tree(self, root_id: uuid.UUID, max_depth: int) -> list[Content]:
        """The root content followed by its descendants down to max_depth."""
        with self._lock:
            if root_id not in self._contents:
                raise NotFoundError("root content not found")
            return [item.content for item in self._walk(root_id, max_depth)]

    def _walk(self, root_id: uuid.UUID, max_depth: int):
        queue = deque([ContentWithParent(self._contents[root_id], NIL_UUID, 0)])
        while queue:
            item = queue.popleft()
            yield item
            if item.level >= max_depth:
                continue
            for relation in self._derived.get(item.content.id, []):
                child = self._contents.get(relation.content_id)
                if child is not None:
                    queue.append(ContentWithParent(child, item.content.id, item.level + 1))

    def _matches(self, relation: DerivedContent, params: ListDerivedContentParams) -> bool:
        if params.derivation_type and relation.derivation_type not in params.derivation_type:
            return False
        if params.tenant_id != NIL_UUID:
            content = self._contents.get(relation.content_id)
            if content is None or content.tenant_id != params.tenant_id:
                return False
        return True

    def list_derived_content(self, params: ListDerivedContentParams) -> list[DerivedContent]:
        """Copies of the stored relationships that pass the given filters."""
        with self._lock:
            if params.parent_ids:
                groups = [self._derived.get(pid, []) for pid in params.parent_ids]
            else:
                groups = list(self._derived.values())
            return [
                replace(relation)
                for relations in groups
                for relation in relations
                if self._matches(relation, params)
            ]

    def create_derived_content_relationship(
        self, params: CreateDerivedContentParams
    ) -> DerivedContent:
        with self._lock:
            if params.parent_id not in self._contents:
                raise NotFoundError("parent content not found")
            derived = self._contents.get(params.derived_content_id)
            if derived is None:
                raise NotFoundError("derived content not found")
            now = datetime.now(timezone.utc)
            relationship = DerivedContent(
                parent_id=params.parent_id,
                content_id=params.derived_content_id,
                derivation_type=params.derivation_type,
                derivation_params=params.derivation_params,
                processing_metadata=params.processing_metadata,
                created_at=now,
                updated_at=now,
                document_type=derived.document_type,
                status=derived.status,
            )
            self._derived.setdefault(params.parent_id, []).append(relationship)
            return replace(relationship)

    def delete_derived_content_relationship(self, params: DeleteDerivedContentParams) -> None:
        """Remove matching relationships; missing ones are ignored."""
        with self._lock:
            relations = self._derived.get(params.parent_id)
            if not relations:
                return
            kept = [r for r in relations if r.content_id != params.derived_content_id]
            if kept:
                self._derived[params.parent_id] = kept
            else:
                del self._derived[params.parent_id]

    def get_derived_content_by_level(
        self, params: GetDerivedContentByLevelParams
    ) -> list[ContentWithParent]:
        """Contents from the root down to params.level, each with its parent."""
        with self._lock:
            if params.root_id not in self._contents:
                return []
            max_depth = params.max_depth if params.max_depth > 0 else _DEFAULT_MAX_DEPTH
            return [
                item
                for item in self._walk(params.root_id, max_depth)
                if item.level <= params.level
                and (params.tenant_id == NIL_UUID or item.content.tenant_id == params.tenant_id)
            ]


class MemoryContentMetadataRepository:
    """Stores content metadata keyed by content id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._metadata: dict[uuid.UUID, ContentMetadata] = {}

    def set(self, metadata: ContentMetadata) -> None:
        with self._lock:
            self._metadata[metadata.content_id] = metadata

    def get(self, content_id: uuid.UUID) -> ContentMetadata:
        with self._lock:
            try:
                return self._metadata[content_id]
            except KeyError:
                raise NotFoundError("metadata not found for content") from None


class MemoryObjectRepository:
    """Stores objects keyed by id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._objects: dict[uuid.UUID, Object] = {}

    def create(self, obj: Object) -> None:
        with self._lock:
            if obj.id in self._objects:
                raise AlreadyExistsError("object already exists")
            self._objects[obj.id] = obj

    def get(self, object_id: uuid.UUID) -> Object:
        with self._lock:
            try:
                return self._objects[object_id]
            except KeyError:
                raise NotFoundError("object not found") from None

    def get_by_content_id(self, content_id: uuid.UUID) -> list[Object]:
        with self._lock:
            return [obj for obj in self._objects.values() if obj.content_id == content_id]

    def get_by_object_key_and_storage_backend_name(
        self, object_key: str, storage_backend_name: str
    ) -> Object:
        with self._lock:
            for obj in self._objects.values():
                if obj.object_key == object_key and obj.storage_backend_name == storage_backend_name:
                    return obj
            raise NotFoundError("object not found")

    def update(self, obj: Object) -> None:
        with self._lock:
            if obj.id not in self._objects:
                raise NotFoundError("object not found")
            self._objects[obj.id] = obj

    def delete(self, object_id: uuid.UUID) -> None:
        with self._lock:
            if self._objects.pop(object_id, None) is None:
                raise NotFoundError("object not found")


class MemoryObjectMetadataRepository:
    """Stores object metadata keyed by object id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._metadata: dict[uuid.UUID, ObjectMetadata] = {}

    def set(self, metadata: ObjectMetadata) -> None:
        with self._lock:
            self._metadata[metadata.object_id] = metadata

    def get(self, object_id: uuid.UUID) -> ObjectMetadata:
        with self._lock:
            try:
                return self._metadata[object_id]
            except KeyError:
                raise NotFoundError("metadata not found for object") from None


class MemoryStorageBackendRepository:
    """Stores storage backends keyed by name."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._backends: dict[str, StorageBackend] = {}

    def create(self, backend: StorageBackend) -> None:
        with self._lock:
            if backend.name in self._backends:
                raise AlreadyExistsError("storage backend with this name already exists")
            self._backends[backend.name] = backend

    def get(self, name: str) -> StorageBackend:
        with self._lock:
            try:
                return self._backends[name]
            except KeyError:
                raise NotFoundError("storage backend not found") from None

    def update(self, backend: StorageBackend) -> None:
        with self._lock:
            if backend.name not in self._backends:
                raise NotFoundError("storage backend not found")
            self._backends[backend.name] = backend

    def delete(self, name: str) -> None:
        with self._lock:
            if self._backends.pop(name, None) is None:
                raise NotFoundError("storage backend not found")

    def list(self) -> list[StorageBackend]:
        with self._lock:
            return list(self._backends.values())