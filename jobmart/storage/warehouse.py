"""
DuckDB warehouse handle.

Every pipeline step receives a Warehouse explicitly; there is no module-level
connection. The handle owns one DuckDB connection and a transaction depth so
that a step and the merges it runs share a single BEGIN/COMMIT.
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)

MEMORY = ':memory:'


class Warehouse:
    """Explicit storage handle around a DuckDB connection."""

    def __init__(self, path: str = MEMORY, read_only: bool = False):
        if path != MEMORY:
            directory = os.path.dirname(os.path.abspath(path))
            os.makedirs(directory, exist_ok=True)
        self.path = path
        self.conn = duckdb.connect(path, read_only=read_only)
        self._depth = 0

    def __enter__(self) -> 'Warehouse':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"Warehouse({self.path!r})"

    def close(self):
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> duckdb.DuckDBPyConnection:
        if params is None:
            return self.conn.execute(sql)
        return self.conn.execute(sql, params)

    def fetch_df(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        return self.execute(sql, params).fetchdf()

    def scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        row = self.execute(sql, params).fetchone()
        return row[0] if row else None

    def table_exists(self, table: str, schema: str = 'main') -> bool:
        count = self.scalar("""
            SELECT COUNT(*) FROM information_schema.tables
            WHERE table_schema = ? AND table_name = ?
        """, [schema, table])
        return bool(count)

    @contextmanager
    def registered(self, name: str, df: pd.DataFrame) -> Iterator[str]:
        """Expose a DataFrame as a relation for the duration of the block."""
        self.conn.register(name, df)
        try:
            yield name
        finally:
            self.conn.unregister(name)

    @contextmanager
    def transaction(self) -> Iterator['Warehouse']:
        """
        All-or-nothing unit of work.

        Nested calls join the outermost transaction: only the outermost block
        commits, and an exception anywhere rolls back everything.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self.conn.execute("BEGIN TRANSACTION")
        self._depth = 1
        try:
            yield self
            self.conn.execute("COMMIT")
        except BaseException:
            self._rollback()
            raise
        finally:
            self._depth = 0

    def _rollback(self):
        try:
            self.conn.execute("ROLLBACK")
        except duckdb.Error as e:
            # A failed COMMIT has already closed the transaction
            logger.debug(f"Rollback skipped: {e}")


def get_warehouse(path: Optional[str] = None) -> Warehouse:
    """Open the configured warehouse file."""
    from jobmart.config import WAREHOUSE_CONFIG

    return Warehouse(path or WAREHOUSE_CONFIG['path'])
