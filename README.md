# simplecontent

Repositories for a content store. A *content* is a logical item owned by an
owner within a tenant. It has stored *objects*, each kept in a named *storage
backend*. Contents and objects carry metadata. A content may be derived from
another one, for example a thumbnail made from an image.

The domain records and the errors are dataclasses and exceptions in
`simplecontent.models`: `Content`, `ContentMetadata`, `Object`,
`ObjectMetadata`, `StorageBackend`, `DerivedContent` and `ContentWithParent`,
with the parameter records `ListDerivedContentParams`,
`CreateDerivedContentParams`, `DeleteDerivedContentParams` and
`GetDerivedContentByLevelParams`.

There are two sets of repositories:

- `simplecontent.memory` keeps everything in process memory behind a lock:
  `MemoryContentRepository`, `MemoryContentMetadataRepository`,
  `MemoryObjectRepository`, `MemoryObjectMetadataRepository` and
  `MemoryStorageBackendRepository`.
- `simplecontent.psql_content` (`PSQLContentRepository`,
  `PSQLContentMetadataRepository`) and `simplecontent.psql_object`
  (`PSQLObjectRepository`, `PSQLObjectMetadataRepository`) run SQL against a
  PostgreSQL database. `simplecontent.factory.RepositoryFactory` builds all four
  over one database handle.

## Installation

```
pip install simplecontent
```

## In-memory use

```python
import uuid

from simplecontent.memory import (
    MemoryContentMetadataRepository,
    MemoryContentRepository,
)
from simplecontent.models import (
    Content,
    ContentMetadata,
    CreateDerivedContentParams,
    GetDerivedContentByLevelParams,
    NotFoundError,
)

contents = MemoryContentRepository()
image = Content(id=uuid.uuid4(), tenant_id=uuid.uuid4(), derivation_type="original")
thumb = Content(id=uuid.uuid4(), tenant_id=image.tenant_id, derivation_type="derived")
contents.create(image)
contents.create(thumb)

contents.create_derived_content_relationship(
    CreateDerivedContentParams(
        parent_id=image.id,
        derived_content_id=thumb.id,
        derivation_type="thumbnail_720",
    )
)
tree = contents.get_derived_content_by_level(
    GetDerivedContentByLevelParams(root_id=image.id, level=1)
)
print([(item.level, item.parent_id == image.id) for item in tree])

metadata_repo = MemoryContentMetadataRepository()
metadata_repo.set(ContentMetadata(content_id=image.id, mime_type="image/png"))
print(metadata_repo.get(image.id).mime_type)

try:
    contents.get(uuid.uuid4())
except NotFoundError as exc:
    print(exc)  # content not found
```

A nil identifier (`simplecontent.models.NIL_UUID`, that is `uuid.UUID(int=0)`)
means "no filter" wherever an owner or tenant id is optional; `list` with both
nil returns an empty list.

The memory repositories store and return the records you give them, not
copies; `list_derived_content` and `create_derived_content_relationship` return
copies of the relationships. A derivation tree is walked breadth first; when
`max_depth` is not positive, `get_derived_content_by_level` uses 10.

## PostgreSQL use

The SQL repositories take any object that follows the `DBTX` protocol in
`simplecontent.psql_base`. Statements use `$1`, `$2`, ... placeholders.

- `execute(query, *args)` runs a statement and returns the number of rows it
  affected.
- `query(query, *args)` returns the rows as sequences of column values.
- `query_row(query, *args)` returns the first row, and raises
  `simplecontent.psql_base.NoRowsError` when there is none.

```python
from simplecontent.factory import RepositoryFactory

factory = RepositoryFactory(db)          # db follows the DBTX protocol
contents = factory.new_content_repository()
content_metadata = factory.new_content_metadata_repository()
objects = factory.new_object_repository()
object_metadata = factory.new_object_metadata_repository()
```

The tables live in the `content` schema: `content`, `content_metadata`,
`content_derived`, `object` and `object_metadata`. Metadata maps and
derivation parameters are written as JSON text. On `create`, a nil id is
replaced by a new random UUID, missing timestamps are set to the current UTC
time and an empty status becomes `"created"`. Deletes are soft: rows get a
`deleted_at` timestamp and are no longer returned.

## Errors

- `simplecontent.models.NotFoundError` (a `RepositoryError` and a
  `LookupError`) when a record is missing, including deleting a content that
  is already deleted.
- `simplecontent.models.AlreadyExistsError` (a `RepositoryError`) when a
  memory repository already holds a record with the same key.
- `ValueError` from `PSQLContentRepository.create_derived_content_relationship`
  when the parent and derived ids are the same.
- Other errors from the database handle, such as a `NoRowsError` from an
  insert or constraint violations, pass through unchanged.

Deleting a derivation relationship or a SQL object that does not exist is not
an error.

## What this package does not do

It keeps records about contents and objects; it does not store or transfer
the bytes of files, and it has no storage-backend clients, HTTP server or
command-line tool. It ships no PostgreSQL driver and does not create the
database schema: you supply a connection that follows `DBTX` and tables that
match the queries.

## Running the tests

```
pip install -e ".[test]"
pytest
```