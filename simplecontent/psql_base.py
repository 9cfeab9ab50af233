"""Database access contract shared by the SQL-backed repositories."""

from __future__ import annotations

from typing import Any, Iterable, Protocol, Sequence, runtime_checkable


class NoRowsError(LookupError):
    """A query that must return one row returned none."""


@runtime_checkable
class DBTX(Protocol):
    """A connection or transaction that can run statements with positional arguments.

    Statements use ``$1``, ``$2`` ... placeholders.
    """

    def execute(self, query: str, *args: Any) -> int:
        """Run a statement and return the number of rows it affected."""

    def query(self, query: str, *args: Any) -> Iterable[Sequence[Any]]:
        """Run a statement and return its rows as sequences of column values."""

    def query_row(self, query: str, *args: Any) -> Sequence[Any]:
        """Run a statement and return its first row; raise NoRowsError if there is none."""


class BaseRepository:
    """Holds the database handle used by a repository."""

    def __init__(self, db: DBTX) -> None:
        self.db = db