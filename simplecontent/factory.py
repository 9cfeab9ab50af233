"""Builds the SQL-backed repositories over one shared database handle."""

from __future__ import annotations

from simplecontent.psql_base import DBTX
from simplecontent.psql_content import PSQLContentMetadataRepository, PSQLContentRepository
from simplecontent.psql_object import PSQLObjectMetadataRepository, PSQLObjectRepository


class RepositoryFactory:
    """Creates repositories that all use the same connection or transaction."""

    def __init__(self, db: DBTX) -> None:
        self.db = db

    def new_content_repository(self) -> PSQLContentRepository:
        return PSQLContentRepository(self.db)

    def new_content_metadata_repository(self) -> PSQLContentMetadataRepository:
        return PSQLContentMetadataRepository(self.db)

    def new_object_repository(self) -> PSQLObjectRepository:
        return PSQLObjectRepository(self.db)

    def new_object_metadata_repository(self) -> PSQLObjectMetadataRepository:
        return PSQLObjectMetadataRepository(self.db)