from contextlib import AbstractContextManager
from typing import Any, List, Protocol, Sequence, Tuple
import sqlite3


class DBAdapter(Protocol):
    """Abstract database adapter for read-only access to one database file."""

    name: str
    dialect: str

    def connect(self) -> AbstractContextManager[sqlite3.Connection]:
        """Open a read-only connection that is closed when the block exits."""

    def execute(
        self, sql: str, params: Sequence[Any] = ()
    ) -> Tuple[List[Tuple[Any, ...]], List[str]]:
        """Execute a SELECT query and return (rows, columns)."""

    def ping(self) -> None:
        """Raise if the database cannot be opened and read."""
