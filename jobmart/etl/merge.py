"""
Incremental upsert (merge) of a source batch into a keyed target table.

Phases, all inside one transaction:
1. match  - validate the batch, count new / changed / unchanged / stale keys
2. insert - source keys absent from the target
3. update - matched keys whose tracked columns differ (IS DISTINCT FROM)
4. delete - target keys absent from the source, only when delete_unmatched

Unchanged rows are never written, so re-applying a batch is a no-op and
does not move updated_at.
"""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

import duckdb
import pandas as pd

from jobmart.etl.errors import MergeError
from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
QUALIFIED_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$')

SOURCE_VIEW = 'merge_source_df'


@dataclass(frozen=True)
class MergeSpec:
    """What to merge: target table, business key and the columns it controls."""
    target: str
    key_columns: Tuple[str, ...]
    tracked_columns: Tuple[str, ...]
    # Source columns written on insert only (never compared or updated)
    insert_columns: Tuple[str, ...] = ()
    created_at_column: Optional[str] = None
    updated_at_column: Optional[str] = None
    delete_unmatched: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'key_columns', tuple(self.key_columns))
        object.__setattr__(self, 'tracked_columns', tuple(self.tracked_columns))
        object.__setattr__(self, 'insert_columns', tuple(self.insert_columns))

    @property
    def source_columns(self) -> Tuple[str, ...]:
        return self.key_columns + self.tracked_columns + self.insert_columns

    def validate(self):
        if not QUALIFIED_RE.match(self.target or ''):
            raise MergeError(f"Invalid target table name: {self.target!r}")
        if not self.key_columns:
            raise MergeError(f"Merge into {self.target} needs at least one key column")

        names = list(self.source_columns)
        names += [c for c in (self.created_at_column, self.updated_at_column) if c]
        for name in names:
            if not IDENTIFIER_RE.match(name or ''):
                raise MergeError(f"Invalid column name: {name!r}")
        if len(set(names)) != len(names):
            raise MergeError(f"Columns listed more than once in merge into {self.target}")


@dataclass
class MergeResult:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0

    @property
    def changed(self) -> int:
        return self.inserted + self.updated + self.deleted

    def __add__(self, other: 'MergeResult') -> 'MergeResult':
        return MergeResult(
            inserted=self.inserted + other.inserted,
            updated=self.updated + other.updated,
            deleted=self.deleted + other.deleted,
            unchanged=self.unchanged + other.unchanged,
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _relation_columns(wh: Warehouse, relation: str) -> List[str]:
    return [d[0] for d in wh.execute(f"SELECT * FROM {relation} LIMIT 0").description]


def _key_join(keys: Sequence[str], left: str = 't', right: str = 's') -> str:
    return ' AND '.join(f"{left}.{k} = {right}.{k}" for k in keys)


def _changed_predicate(tracked: Sequence[str]) -> str:
    return ' OR '.join(f"t.{c} IS DISTINCT FROM s.{c}" for c in tracked)


def _check_columns(wh: Warehouse, spec: MergeSpec, source: str):
    source_cols = set(_relation_columns(wh, source))
    missing = [c for c in spec.source_columns if c not in source_cols]
    if missing:
        raise MergeError(f"Merge source is missing columns: {', '.join(missing)}")

    target_cols = set(_relation_columns(wh, spec.target))
    needed = list(spec.source_columns)
    needed += [c for c in (spec.created_at_column, spec.updated_at_column) if c]
    missing = [c for c in needed if c not in target_cols]
    if missing:
        raise MergeError(f"Merge target {spec.target} is missing columns: {', '.join(missing)}")


def _check_keys(wh: Warehouse, spec: MergeSpec, source: str):
    keys = ', '.join(spec.key_columns)
    null_filter = ' OR '.join(f"{k} IS NULL" for k in spec.key_columns)

    nulls = wh.scalar(f"SELECT COUNT(*) FROM {source} WHERE {null_filter}")
    if nulls:
        raise MergeError(f"Merge source has {nulls} rows with NULL key ({keys})")

    duplicates = wh.scalar(f"""
        SELECT COUNT(*) FROM (
            SELECT {keys} FROM {source} GROUP BY {keys} HAVING COUNT(*) > 1
        )
    """)
    if duplicates:
        raise MergeError(f"Merge source has {duplicates} duplicate keys ({keys})")


def _match(wh: Warehouse, spec: MergeSpec, source: str) -> MergeResult:
    """Counts from the pre-merge state."""
    join = _key_join(spec.key_columns)
    changed = _changed_predicate(spec.tracked_columns) if spec.tracked_columns else 'FALSE'

    matched, updated = wh.execute(f"""
        SELECT COUNT(*), COALESCE(SUM(CASE WHEN {changed} THEN 1 ELSE 0 END), 0)
        FROM {spec.target} t JOIN {source} s ON {join}
    """).fetchone()
    total = wh.scalar(f"SELECT COUNT(*) FROM {source}")

    deleted = 0
    if spec.delete_unmatched:
        deleted = wh.scalar(f"""
            SELECT COUNT(*) FROM {spec.target} t
            WHERE NOT EXISTS (SELECT 1 FROM {source} s WHERE {join})
        """)

    return MergeResult(
        inserted=int(total - matched),
        updated=int(updated),
        deleted=int(deleted),
        unchanged=int(matched - updated),
    )


def _insert(wh: Warehouse, spec: MergeSpec, source: str, now: datetime):
    columns = list(spec.source_columns)
    values = [f"s.{c}" for c in columns]
    params = []
    for stamp in (spec.created_at_column, spec.updated_at_column):
        if stamp:
            columns.append(stamp)
            values.append('?')
            params.append(now)

    wh.execute(f"""
        INSERT INTO {spec.target} ({', '.join(columns)})
        SELECT {', '.join(values)}
        FROM {source} s
        WHERE NOT EXISTS (
            SELECT 1 FROM {spec.target} t WHERE {_key_join(spec.key_columns)}
        )
    """, params)


def _update(wh: Warehouse, spec: MergeSpec, source: str, now: datetime):
    if not spec.tracked_columns:
        return

    assignments = [f"{c} = s.{c}" for c in spec.tracked_columns]
    params = []
    if spec.updated_at_column:
        assignments.append(f"{spec.updated_at_column} = ?")
        params.append(now)

    wh.execute(f"""
        UPDATE {spec.target} AS t
        SET {', '.join(assignments)}
        FROM {source} AS s
        WHERE {_key_join(spec.key_columns)}
          AND ({_changed_predicate(spec.tracked_columns)})
    """, params)


def _delete(wh: Warehouse, spec: MergeSpec, source: str):
    wh.execute(f"""
        DELETE FROM {spec.target} AS t
        WHERE NOT EXISTS (
            SELECT 1 FROM {source} s WHERE {_key_join(spec.key_columns)}
        )
    """)


def _apply(wh: Warehouse, spec: MergeSpec, source: str, now: datetime) -> MergeResult:
    with wh.transaction():
        try:
            _check_columns(wh, spec, source)
            _check_keys(wh, spec, source)
            result = _match(wh, spec, source)

            if result.inserted:
                _insert(wh, spec, source, now)
            if result.updated:
                _update(wh, spec, source, now)
            if result.deleted:
                _delete(wh, spec, source)
        except duckdb.Error as e:
            raise MergeError(f"Merge into {spec.target} failed: {e}") from e

    return result


def merge_upsert(
    wh: Warehouse,
    spec: MergeSpec,
    source: Union[pd.DataFrame, str],
    now: Optional[datetime] = None
) -> MergeResult:
    """
    Merge a source batch (DataFrame or table/view name) into spec.target.

    Raises MergeError, with nothing applied, on NULL or duplicate source keys,
    missing columns, or any engine error. Unmatched target rows are kept
    unless spec.delete_unmatched is set.
    """
    spec.validate()
    now = now or datetime.now()

    if isinstance(source, pd.DataFrame):
        with wh.registered(SOURCE_VIEW, source):
            result = _apply(wh, spec, SOURCE_VIEW, now)
    else:
        if not QUALIFIED_RE.match(source or ''):
            raise MergeError(f"Invalid source relation name: {source!r}")
        result = _apply(wh, spec, source, now)

    logger.info(
        f"Merge {spec.target}: inserted={result.inserted}, updated={result.updated}, "
        f"deleted={result.deleted}, unchanged={result.unchanged}"
    )
    return result
