"""Unit tests for the incremental merge."""
import pytest
import sys
import os
from datetime import datetime

import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from jobmart.etl.errors import MergeError
from jobmart.etl.merge import MergeResult, MergeSpec, merge_upsert

T0 = datetime(2024, 1, 1, 9, 0, 0)
T1 = datetime(2024, 1, 2, 9, 0, 0)


def source(rows):
    return pd.DataFrame(rows, columns=['k', 'val'])


class TestMergeUpsert:
    """Tests for merge_upsert function."""

    def setup_method(self):
        """Setup test fixtures."""
        self.spec = MergeSpec(
            target='target',
            key_columns=('k',),
            tracked_columns=('val',),
            created_at_column='first_seen_at',
            updated_at_column='updated_at',
        )

    @pytest.fixture(autouse=True)
    def target(self, bare_wh):
        bare_wh.execute("""
            CREATE TABLE target (
                k INTEGER PRIMARY KEY,
                val VARCHAR,
                first_seen_at TIMESTAMP,
                updated_at TIMESTAMP
            )
        """)
        self.wh = bare_wh

    def rows(self):
        return self.wh.execute(
            "SELECT k, val, first_seen_at, updated_at FROM target ORDER BY k"
        ).fetchall()

    def test_update_and_insert(self):
        """Should give {(1, B), (2, C)} from target {(1, A)} and source {(1, B), (2, C)}."""
        merge_upsert(self.wh, self.spec, source([(1, 'A')]), now=T0)
        result = merge_upsert(self.wh, self.spec, source([(1, 'B'), (2, 'C')]), now=T1)

        assert result == MergeResult(inserted=1, updated=1, deleted=0, unchanged=0)
        assert [(k, v) for k, v, _, _ in self.rows()] == [(1, 'B'), (2, 'C')]

    def test_second_apply_is_noop(self):
        """Should change nothing when the same batch is applied again."""
        batch = source([(1, 'A'), (2, 'B')])
        merge_upsert(self.wh, self.spec, batch, now=T0)
        before = self.rows()

        result = merge_upsert(self.wh, self.spec, batch, now=T1)

        assert result == MergeResult(inserted=0, updated=0, deleted=0, unchanged=2)
        assert result.changed == 0
        assert self.rows() == before

    def test_update_preserves_first_seen(self):
        """Should keep first_seen_at and move updated_at on change only."""
        merge_upsert(self.wh, self.spec, source([(1, 'A'), (2, 'B')]), now=T0)
        merge_upsert(self.wh, self.spec, source([(1, 'Z'), (2, 'B')]), now=T1)

        rows = {k: (v, first, upd) for k, v, first, upd in self.rows()}
        assert rows[1] == ('Z', T0, T1)
        assert rows[2] == ('B', T0, T0)

    def test_insert_columns_written_once(self):
        """Should set insert-only columns on insert and leave them alone on update."""
        self.wh.execute("CREATE TABLE sourced (k INTEGER PRIMARY KEY, val VARCHAR, source_file VARCHAR)")
        spec = MergeSpec('sourced', ('k',), ('val',), insert_columns=('source_file',))

        def batch(rows):
            return pd.DataFrame(rows, columns=['k', 'val', 'source_file'])

        merge_upsert(self.wh, spec, batch([(1, 'A', 'jan.csv')]))
        result = merge_upsert(self.wh, spec, batch([(1, 'B', 'feb.csv')]))

        assert result == MergeResult(inserted=0, updated=1, deleted=0, unchanged=0)
        assert self.wh.execute("SELECT k, val, source_file FROM sourced").fetchall() == [(1, 'B', 'jan.csv')]

    def test_insert_columns_not_compared(self):
        """Should count a row unchanged when only an insert-only column differs."""
        self.wh.execute("CREATE TABLE sourced (k INTEGER PRIMARY KEY, val VARCHAR, source_file VARCHAR)")
        spec = MergeSpec('sourced', ('k',), ('val',), insert_columns=('source_file',))
        rows = pd.DataFrame([(1, 'A', 'jan.csv')], columns=['k', 'val', 'source_file'])
        merge_upsert(self.wh, spec, rows)

        rows['source_file'] = 'feb.csv'
        result = merge_upsert(self.wh, spec, rows)

        assert result.unchanged == 1
        assert self.wh.scalar("SELECT source_file FROM sourced") == 'jan.csv'

    def test_null_change_detected(self):
        """Should treat NULL -> value and value -> NULL as changes."""
        merge_upsert(self.wh, self.spec, source([(1, None), (2, 'B')]), now=T0)
        result = merge_upsert(self.wh, self.spec, source([(1, 'A'), (2, None)]), now=T1)
        assert result.updated == 2

    def test_unmatched_target_kept_by_default(self):
        """Should not delete target rows missing from the batch."""
        merge_upsert(self.wh, self.spec, source([(1, 'A'), (2, 'B')]), now=T0)
        result = merge_upsert(self.wh, self.spec, source([(1, 'A')]), now=T1)

        assert result.deleted == 0
        assert len(self.rows()) == 2

    def test_unmatched_target_deleted_when_enabled(self):
        """Should delete target rows missing from the batch when enabled."""
        spec = MergeSpec('target', ('k',), ('val',), delete_unmatched=True)
        merge_upsert(self.wh, spec, source([(1, 'A'), (2, 'B'), (3, 'C')]))
        result = merge_upsert(self.wh, spec, source([(2, 'B')]))

        assert result == MergeResult(inserted=0, updated=0, deleted=2, unchanged=1)
        assert [k for k, _, _, _ in self.rows()] == [2]

    def test_duplicate_source_keys_rejected(self):
        """Should reject a batch with duplicate keys and apply nothing."""
        merge_upsert(self.wh, self.spec, source([(1, 'A')]), now=T0)
        with pytest.raises(MergeError, match="duplicate"):
            merge_upsert(self.wh, self.spec, source([(1, 'B'), (2, 'C'), (2, 'D')]), now=T1)
        assert [(k, v) for k, v, _, _ in self.rows()] == [(1, 'A')]

    def test_null_source_keys_rejected(self):
        """Should reject a batch with NULL keys."""
        batch = pd.DataFrame({'k': pd.Series([1, None], dtype='Int64'), 'val': ['A', 'B']})
        with pytest.raises(MergeError, match="NULL"):
            merge_upsert(self.wh, self.spec, batch)
        assert self.rows() == []

    def test_missing_source_column_rejected(self):
        """Should reject a batch without a tracked column."""
        with pytest.raises(MergeError, match="val"):
            merge_upsert(self.wh, self.spec, pd.DataFrame({'k': [1]}))

    def test_engine_error_rolls_back_whole_batch(self):
        """Should roll back inserts when a later phase fails."""
        self.wh.execute("CREATE TABLE checked (k INTEGER PRIMARY KEY, val VARCHAR CHECK (val <> 'bad'))")
        spec = MergeSpec('checked', ('k',), ('val',))
        merge_upsert(self.wh, spec, source([(1, 'A')]))

        # Key 2 is inserted before the update of key 1 violates the check
        with pytest.raises(MergeError):
            merge_upsert(self.wh, spec, source([(1, 'bad'), (2, 'B')]))

        assert self.wh.execute("SELECT k, val FROM checked").fetchall() == [(1, 'A')]

    def test_invalid_identifier_rejected(self):
        """Should reject table names that are not plain identifiers."""
        spec = MergeSpec('target; DROP TABLE target', ('k',), ('val',))
        with pytest.raises(MergeError):
            merge_upsert(self.wh, spec, source([(1, 'A')]))

    def test_source_by_table_name(self):
        """Should accept an existing relation as source."""
        self.wh.execute("CREATE TABLE batch AS SELECT 1 AS k, 'A' AS val")
        result = merge_upsert(self.wh, self.spec, 'batch', now=T0)
        assert result.inserted == 1

    def test_joins_outer_transaction(self):
        """Should roll back with the caller's transaction."""
        with pytest.raises(RuntimeError):
            with self.wh.transaction():
                merge_upsert(self.wh, self.spec, source([(1, 'A')]), now=T0)
                raise RuntimeError("step failed after merge")
        assert self.rows() == []


class TestMergeResult:
    """Tests for MergeResult."""

    def test_add(self):
        """Should add counts field by field."""
        total = MergeResult(1, 2, 3, 4) + MergeResult(1, 1, 1, 1)
        assert total == MergeResult(2, 3, 4, 5)
        assert total.changed == 9
