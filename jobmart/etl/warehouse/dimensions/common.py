"""
Shared anti-join insert for name-keyed dimensions.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional

import pandas as pd

from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)


def next_key_offset(wh: Warehouse, table: str, key_column: str) -> int:
    """Current max surrogate key, ignoring sentinel rows (< 1)."""
    return int(wh.scalar(
        f"SELECT COALESCE(MAX({key_column}), 0) FROM {table} WHERE {key_column} > 0"
    ))


def insert_new_members(
    wh: Warehouse,
    table: str,
    key_column: str,
    name_column: str,
    names: Iterable[str],
    attributes: Optional[Mapping[str, Mapping[str, Optional[str]]]] = None
) -> Dict[str, int]:
    """
    Insert names not yet present in a dimension.

    New surrogate keys continue contiguously from the current max, assigned in
    name order. Existing rows are never touched, so a rerun inserts nothing.
    attributes maps column -> {name: value} for extra descriptive columns.
    """
    stats = {'candidates': 0, 'inserted': 0, 'unchanged': 0}
    attributes = attributes or {}

    distinct = sorted({n for n in names if isinstance(n, str) and n})
    stats['candidates'] = len(distinct)
    if not distinct:
        return stats

    candidates = pd.DataFrame({'name': pd.Series(distinct, dtype=object)})
    for column, values in attributes.items():
        candidates[column] = pd.Series([values.get(n) for n in distinct], dtype=object)

    extra = list(attributes)
    insert_cols = ', '.join([key_column, name_column] + extra)
    select_extra = ''.join(f", CAST(s.{c} AS VARCHAR)" for c in extra)

    before = wh.scalar(f"SELECT COUNT(*) FROM {table}")
    offset = next_key_offset(wh, table, key_column)

    with wh.registered('dim_candidates', candidates):
        wh.execute(f"""
            INSERT INTO {table} ({insert_cols})
            SELECT ? + ROW_NUMBER() OVER (ORDER BY s.name), s.name{select_extra}
            FROM dim_candidates s
            LEFT JOIN {table} d ON d.{name_column} = s.name
            WHERE d.{key_column} IS NULL
        """, [offset])

    stats['inserted'] = wh.scalar(f"SELECT COUNT(*) FROM {table}") - before
    stats['unchanged'] = stats['candidates'] - stats['inserted']
    return stats
