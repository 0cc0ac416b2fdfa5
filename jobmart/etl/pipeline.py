"""
ETL Pipeline: flat file -> staging -> star schema -> marts.
Main orchestrator for the ETL process.

Steps run strictly in order, each inside its own transaction. The first
failing step stops the run; everything committed before it stays in place
and re-running the pipeline is safe because every step is idempotent.
"""

import logging
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from jobmart.config import MERGE_DELETE_UNMATCHED, PRIORITY_ROLES, WAREHOUSE_CONFIG
from jobmart.monitoring import ETLMetricsLogger
from jobmart.quality import QualityGate, StagingValidator, ValidationConfig, WarehouseValidator
from jobmart.storage.warehouse import Warehouse, get_warehouse
from .errors import PipelineError, PipelineStepError
from .merge import MergeResult
from .marts import (
    build_company_mart,
    build_flat_mart,
    build_priority_mart,
    build_skills_mart,
    refresh_priority_snapshot,
)
from .staging import get_staging_df, load_staging
from .warehouse import (
    init_dimension_caches,
    process_company_dim,
    process_job_postings_fact,
    process_skills_bridge,
    process_skills_dim,
    setup_schema,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineSettings:
    """Per-run settings. Defaults come from the environment."""
    delete_unmatched: bool = MERGE_DELETE_UNMATCHED
    priority_roles: Dict[str, int] = field(default_factory=lambda: dict(PRIORITY_ROLES))
    quality: ValidationConfig = field(default_factory=ValidationConfig)
    staging_table: str = WAREHOUSE_CONFIG['staging_table']


@dataclass
class PipelineContext:
    """What steps share during one run."""
    source: Union[str, pd.DataFrame, None]
    settings: PipelineSettings
    run_id: str
    state: Dict[str, Any] = field(default_factory=dict)

    def staging(self, wh: Warehouse) -> pd.DataFrame:
        """Staging rows loaded by this run, or left by a previous one."""
        if 'staging_df' not in self.state:
            if not wh.table_exists(self.settings.staging_table):
                raise PipelineError(
                    f"Staging table {self.settings.staging_table} does not exist, run load_staging first"
                )
            self.state['staging_df'] = get_staging_df(wh, self.settings.staging_table)
        return self.state['staging_df']


StepFn = Callable[[Warehouse, PipelineContext], Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class Step:
    name: str
    run: StepFn
    depends_on: Tuple[str, ...] = ()


# =============================================================================
# STEPS
# =============================================================================

def _create_schema(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return setup_schema(wh)


def _load_staging(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    if ctx.source is None:
        raise PipelineError("No source given for load_staging")

    stats = load_staging(wh, ctx.source, ctx.settings.staging_table)
    ctx.state.pop('staging_df', None)
    staging_df = ctx.staging(wh)

    validation = StagingValidator().validate(staging_df)
    gate = QualityGate(ctx.settings.quality).evaluate(validation)

    stats.update({
        'valid_rate': validation.valid_rate,
        'duplicate_rate': validation.duplicate_rate,
        'quality_status': gate.status,
    })
    return stats


def _build_company_dim(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return process_company_dim(wh, ctx.staging(wh))


def _build_skills_dim(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return process_skills_dim(wh, ctx.staging(wh))


def _build_job_postings_fact(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    caches = init_dimension_caches(wh)
    stats = process_job_postings_fact(wh, ctx.staging(wh), caches)
    ctx.state['skipped_keys'] = stats.pop('skipped_keys')
    return stats


def _build_skills_bridge(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    caches = init_dimension_caches(wh)
    return process_skills_bridge(wh, ctx.staging(wh), caches, ctx.state.get('skipped_keys'))


def _verify_warehouse(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    result = WarehouseValidator().validate(wh)
    QualityGate(ctx.settings.quality).evaluate_integrity(result)
    return {'table_counts': result.table_counts, 'orphans': result.orphans}


def _build_flat_mart(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return build_flat_mart(wh)


def _build_skills_mart(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return build_skills_mart(wh)


def _build_company_mart(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return build_company_mart(wh)


def _build_priority_mart(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return build_priority_mart(wh, ctx.settings.priority_roles)


def _refresh_priority_snapshot(wh: Warehouse, ctx: PipelineContext) -> Dict[str, Any]:
    return {'merged': refresh_priority_snapshot(wh, delete_unmatched=ctx.settings.delete_unmatched)}


PIPELINE_STEPS: List[Step] = [
    Step('create_schema', _create_schema),
    Step('load_staging', _load_staging, ('create_schema',)),
    Step('build_company_dim', _build_company_dim, ('load_staging',)),
    Step('build_skills_dim', _build_skills_dim, ('load_staging',)),
    Step('build_job_postings_fact', _build_job_postings_fact, ('build_company_dim',)),
    Step('build_skills_bridge', _build_skills_bridge, ('build_skills_dim', 'build_job_postings_fact')),
    Step('verify_warehouse', _verify_warehouse, ('build_skills_bridge',)),
    Step('build_flat_mart', _build_flat_mart, ('verify_warehouse',)),
    Step('build_skills_mart', _build_skills_mart, ('verify_warehouse',)),
    Step('build_company_mart', _build_company_mart, ('verify_warehouse',)),
    Step('build_priority_mart', _build_priority_mart, ('verify_warehouse',)),
    Step('refresh_priority_snapshot', _refresh_priority_snapshot, ('build_priority_mart',)),
]

WAREHOUSE_STEP_NAMES = [s.name for s in PIPELINE_STEPS[:7]]
MART_STEP_NAMES = [s.name for s in PIPELINE_STEPS[7:]]


def validate_steps(steps: Sequence[Step], satisfied: Iterable[str] = ()):
    """
    Check step order. Every dependency must be an earlier step, or listed in
    satisfied (done by an earlier run). Raises ValueError otherwise.
    """
    done = set(satisfied)
    seen = set()
    for step in steps:
        if step.name in seen:
            raise ValueError(f"Duplicate step name: {step.name}")
        for dep in step.depends_on:
            if dep not in seen and dep not in done:
                raise ValueError(f"Step '{step.name}' depends on '{dep}', which has not run before it")
        seen.add(step.name)


def select_steps(steps: Sequence[Step], step_names: Optional[Iterable[str]] = None) -> List[Step]:
    """
    Pick a subset of steps, keeping pipeline order. Unselected steps are
    taken as done by an earlier run.
    """
    steps = list(steps)
    if step_names is None:
        validate_steps(steps)
        return steps

    wanted = list(step_names)
    known = {s.name for s in steps}
    unknown = [n for n in wanted if n not in known]
    if unknown:
        raise ValueError(f"Unknown step(s): {', '.join(unknown)}")

    selected = [s for s in steps if s.name in wanted]
    validate_steps(steps)
    validate_steps(selected, satisfied=known - set(wanted))
    return selected


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class StepReport:
    name: str
    status: str = 'pending'  # 'success', 'failed'
    duration_seconds: float = 0.0
    stats: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class RunReport:
    """What one run did: loaded, skipped (by reason), merged, per step."""
    run_id: str
    source: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    success: bool = False
    failed_step: Optional[str] = None
    error: Optional[str] = None
    rows_loaded: int = 0
    rows_skipped: Dict[str, int] = field(default_factory=dict)
    merged: Dict[str, MergeResult] = field(default_factory=dict)
    steps: List[StepReport] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def total_skipped(self) -> int:
        return sum(self.rows_skipped.values())

    @property
    def merge_totals(self) -> MergeResult:
        total = MergeResult()
        for result in self.merged.values():
            total = total + result
        return total

    def record(self, step_name: str, stats: Dict[str, Any]):
        if 'rows_loaded' in stats:
            self.rows_loaded += int(stats['rows_loaded'])
        for reason, count in (stats.get('skipped') or {}).items():
            self.rows_skipped[reason] = self.rows_skipped.get(reason, 0) + int(count)
        if isinstance(stats.get('merged'), MergeResult):
            self.merged[step_name] = stats['merged']

    def summary_lines(self) -> List[str]:
        status = 'SUCCESS' if self.success else 'FAILED'
        lines = [
            f"Run {self.run_id}: {status} in {self.duration_seconds:.2f}s",
            f"Source: {self.source}",
            f"Rows loaded: {self.rows_loaded}",
            f"Rows skipped: {self.total_skipped}",
        ]
        for reason, count in sorted(self.rows_skipped.items()):
            lines.append(f"  {reason}: {count}")

        totals = self.merge_totals
        lines.append(
            f"Rows merged: inserted={totals.inserted}, updated={totals.updated}, deleted={totals.deleted}"
        )
        for step_name, result in self.merged.items():
            lines.append(
                f"  {step_name}: inserted={result.inserted}, updated={result.updated}, "
                f"deleted={result.deleted}, unchanged={result.unchanged}"
            )

        for step in self.steps:
            lines.append(f"[{step.status.upper():7}] {step.name} ({step.duration_seconds:.2f}s)")
        if self.failed_step:
            lines.append(self.error or f"Step '{self.failed_step}' failed")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'source': self.source,
            'success': self.success,
            'failed_step': self.failed_step,
            'error': self.error,
            'start_time': self.started_at.isoformat(),
            'end_time': self.finished_at.isoformat() if self.finished_at else None,
            'duration_seconds': self.duration_seconds,
            'rows_loaded': self.rows_loaded,
            'rows_skipped': dict(self.rows_skipped),
            'merged': {k: v.to_dict() for k, v in self.merged.items()},
            'steps': {s.name: s.status for s in self.steps},
        }


# =============================================================================
# DRIVER
# =============================================================================

def _normalize_stats(stats: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    stats = dict(stats or {})
    if isinstance(stats.get('skipped'), Counter):
        stats['skipped'] = dict(stats['skipped'])
    return stats


def _run_step(wh: Warehouse, step: Step, context: PipelineContext,
              metrics_logger: ETLMetricsLogger, step_report: StepReport) -> Dict[str, Any]:
    start = time.time()
    try:
        with metrics_logger.track(context.run_id, step.name) as metrics:
            with wh.transaction():
                stats = _normalize_stats(step.run(wh, context))
            metrics.record_stats(stats)
    except Exception as e:
        step_report.status = 'failed'
        step_report.error = str(e)
        step_report.duration_seconds = time.time() - start
        raise PipelineStepError(step.name, e) from e

    step_report.status = 'success'
    step_report.stats = stats
    step_report.duration_seconds = time.time() - start
    return stats


def run_pipeline(
    source: Union[str, pd.DataFrame, None],
    db_path: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
    steps: Optional[Sequence[Step]] = None,
    step_names: Optional[Iterable[str]] = None,
    warehouse: Optional[Warehouse] = None
) -> RunReport:
    """
    Run the pipeline against a warehouse.

    Flow:
    1. Create schema (idempotent)
    2. Load source into staging + quality gate
    3. Build dimensions, facts, bridges; verify integrity
    4. Rebuild flat / skills / company marts
    5. Sync priority roles, merge priority snapshot

    Never raises for a step failure: the report carries failed_step and error.
    Raises ValueError for an invalid step list.
    """
    settings = settings or PipelineSettings()
    selected = select_steps(steps if steps is not None else PIPELINE_STEPS, step_names)

    started_at = datetime.now()
    run_id = f"{started_at:%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:6]}"
    report = RunReport(
        run_id=run_id,
        source='<DataFrame>' if isinstance(source, pd.DataFrame) else str(source),
        started_at=started_at
    )

    owns_warehouse = warehouse is None
    wh = warehouse if warehouse is not None else get_warehouse(db_path)
    metrics_logger = ETLMetricsLogger(wh)
    context = PipelineContext(source=source, settings=settings, run_id=run_id)

    try:
        logger.info("=" * 60)
        logger.info(f"PIPELINE START: {started_at} (run {run_id}, {wh.path})")
        logger.info("=" * 60)

        for i, step in enumerate(selected, start=1):
            logger.info(f"[{i}/{len(selected)}] {step.name}")
            step_report = StepReport(step.name)
            report.steps.append(step_report)

            stats = _run_step(wh, step, context, metrics_logger, step_report)
            report.record(step.name, stats)

        report.success = True

    except PipelineStepError as e:
        report.failed_step = e.step_name
        report.error = str(e)
        logger.error(f"Pipeline failed: {e}", exc_info=True)

    finally:
        report.finished_at = datetime.now()
        if owns_warehouse:
            wh.close()

        logger.info("=" * 60)
        logger.info(f"PIPELINE END: Duration {report.duration_seconds:.2f}s")
        logger.info(f"Status: {'SUCCESS' if report.success else 'FAILED'}")
        logger.info("=" * 60)

    return report
