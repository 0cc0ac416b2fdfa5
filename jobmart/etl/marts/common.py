"""
Helpers shared by the mart builders.
"""

import logging
from typing import Dict, Iterable

from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)


def rebuild_schema(wh: Warehouse, schema: str, statements: Iterable[str]):
    """Drop and recreate a mart schema, then run its build statements in order."""
    wh.execute(f"DROP SCHEMA IF EXISTS {schema} CASCADE")
    wh.execute(f"CREATE SCHEMA {schema}")
    for stmt in statements:
        wh.execute(stmt)


def table_counts(wh: Warehouse, schema: str, tables: Iterable[str]) -> Dict[str, int]:
    counts = {}
    for table in tables:
        counts[table] = int(wh.scalar(f"SELECT COUNT(*) FROM {schema}.{table}"))
    logger.info(f"{schema}: " + ', '.join(f"{t}={n}" for t, n in counts.items()))
    return counts
