"""
Per-step run metrics, written to the warehouse table etl_step_metrics.

One row per (run_id, step_name). Writing a metrics row never fails a step:
if the table is missing (before create_schema) or the insert errors, the
row is dropped with a warning.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional

import duckdb

from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)

METRICS_TABLE = 'etl_step_metrics'
METRICS_COLUMNS = [
    'run_id', 'step_name', 'status', 'started_at', 'completed_at',
    'duration_seconds', 'rows_in', 'rows_out', 'rows_inserted',
    'rows_updated', 'rows_failed', 'error_message',
]


@dataclass
class ETLMetrics:
    """One etl_step_metrics row."""
    run_id: str
    step_name: str
    status: str = 'running'
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    rows_in: int = 0
    rows_out: int = 0
    rows_inserted: int = 0
    rows_updated: int = 0
    rows_failed: int = 0
    error_message: Optional[str] = None

    def record_stats(self, stats: Mapping[str, Any]):
        """Fill row counts from a step's stats dict."""
        merged = stats.get('merged')
        if merged is not None and hasattr(merged, 'unchanged'):
            self.rows_in = merged.inserted + merged.updated + merged.unchanged
            self.rows_inserted = merged.inserted
            self.rows_updated = merged.updated
            self.rows_out = self.rows_in - merged.deleted
        else:
            self.rows_inserted = int(stats.get('inserted', stats.get('created', 0)) or 0)
            self.rows_out = int(stats.get('rows_loaded', self.rows_inserted) or 0)
        self.rows_failed = sum((stats.get('skipped') or {}).values())

    def as_row(self) -> list:
        return [getattr(self, c) for c in METRICS_COLUMNS]


class ETLMetricsLogger:
    """Writes ETLMetrics rows through a Warehouse handle."""

    def __init__(self, wh: Warehouse):
        self.wh = wh

    def log(self, metrics: ETLMetrics) -> bool:
        try:
            if not self.wh.table_exists(METRICS_TABLE):
                logger.debug(f"{METRICS_TABLE} not created yet, no metrics for {metrics.step_name}")
                return False

            placeholders = ', '.join('?' for _ in METRICS_COLUMNS)
            self.wh.execute(
                f"INSERT INTO {METRICS_TABLE} ({', '.join(METRICS_COLUMNS)}) VALUES ({placeholders})",
                metrics.as_row()
            )
        except duckdb.Error as e:
            logger.warning(f"Could not write {METRICS_TABLE} row for {metrics.step_name}: {e}")
            return False

        logger.debug(
            f"Metrics {metrics.step_name}: {metrics.status}, "
            f"{metrics.rows_out} rows, {metrics.duration_seconds:.2f}s"
        )
        return True

    @contextmanager
    def track(self, run_id: str, step_name: str) -> Iterator[ETLMetrics]:
        """Time the block and write its metrics row, success or failure."""
        metrics = ETLMetrics(run_id=run_id, step_name=step_name, started_at=datetime.now())
        started = time.monotonic()

        try:
            yield metrics
        except Exception as e:
            metrics.status = 'failed'
            metrics.error_message = str(e)
            raise
        else:
            metrics.status = 'success'
        finally:
            metrics.completed_at = datetime.now()
            metrics.duration_seconds = time.monotonic() - started
            self.log(metrics)
