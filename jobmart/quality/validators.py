"""Data Quality Validators for staging batches and the warehouse."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict

import pandas as pd

from jobmart.config import (
    DQ_MAX_DUPLICATE_RATE,
    DQ_MIN_ROWS,
    DQ_SUCCESS_THRESHOLD,
    DQ_WARNING_THRESHOLD,
)
from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)


@dataclass
class ValidationConfig:
    """Validation thresholds."""
    min_row_count: int = DQ_MIN_ROWS
    hard_fail_duplicate_rate: float = DQ_MAX_DUPLICATE_RATE
    success_threshold: float = DQ_SUCCESS_THRESHOLD
    warning_threshold: float = DQ_WARNING_THRESHOLD


@dataclass
class ValidationResult:
    """Validation result."""
    validation_type: str
    timestamp: datetime
    total_rows: int
    unique_postings: int
    duplicate_rate: float
    valid_rows: int
    valid_rate: float
    field_missing_rates: Dict[str, float] = field(default_factory=dict)


class StagingValidator:
    """Validator for a staged batch of postings."""

    CHECKED_FIELDS = ['job_title', 'company_name', 'job_posted_date', 'job_skills', 'salary_year_avg']

    def validate(self, df: pd.DataFrame) -> ValidationResult:
        """A row is valid when it has a title and a parseable posted date."""
        if df.empty:
            return ValidationResult(
                validation_type='staging', timestamp=datetime.now(),
                total_rows=0, unique_postings=0, duplicate_rate=0.0,
                valid_rows=0, valid_rate=0.0
            )

        total = len(df)
        unique = df['posting_key'].nunique()

        present = {}
        for col in self.CHECKED_FIELDS:
            if col in df.columns:
                present[col] = pd.Series([isinstance(v, str) and v.strip() != '' for v in df[col]], index=df.index)
            else:
                present[col] = pd.Series(False, index=df.index)

        posted = pd.to_datetime(df['job_posted_date'], errors='coerce')
        valid = present['job_title'] & posted.notna()
        valid_count = int(valid.sum())

        result = ValidationResult(
            validation_type='staging',
            timestamp=datetime.now(),
            total_rows=total, unique_postings=unique,
            duplicate_rate=(total - unique) / total,
            valid_rows=valid_count, valid_rate=valid_count / total,
            field_missing_rates={k: float((~v).sum()) / total for k, v in present.items()}
        )
        logger.info(f"Staging validation: {total} rows, {result.valid_rate:.1%} valid, {result.duplicate_rate:.1%} duplicate")
        return result


@dataclass
class IntegrityResult:
    """Warehouse integrity check result."""
    timestamp: datetime
    table_counts: Dict[str, int]
    orphans: Dict[str, int]

    @property
    def total_orphans(self) -> int:
        return sum(self.orphans.values())


class WarehouseValidator:
    """Row counts and foreign key checks on the star schema."""

    ORPHAN_CHECKS = {
        'fact_company': """
            SELECT COUNT(*) FROM job_postings_fact f
            LEFT JOIN company_dim c ON f.company_id = c.company_id
            WHERE c.company_id IS NULL
        """,
        'bridge_job': """
            SELECT COUNT(*) FROM skills_job_bridge b
            LEFT JOIN job_postings_fact f ON b.job_id = f.job_id
            WHERE f.job_id IS NULL
        """,
        'bridge_skill': """
            SELECT COUNT(*) FROM skills_job_bridge b
            LEFT JOIN skills_dim s ON b.skill_id = s.skill_id
            WHERE s.skill_id IS NULL
        """,
    }

    TABLES = ['company_dim', 'skills_dim', 'job_postings_fact', 'skills_job_bridge']

    def validate(self, wh: Warehouse) -> IntegrityResult:
        counts = {t: int(wh.scalar(f"SELECT COUNT(*) FROM {t}")) for t in self.TABLES}
        orphans = {name: int(wh.scalar(sql)) for name, sql in self.ORPHAN_CHECKS.items()}

        result = IntegrityResult(timestamp=datetime.now(), table_counts=counts, orphans=orphans)
        logger.info(
            "Warehouse counts: " + ', '.join(f"{t}={n}" for t, n in counts.items())
            + f"; orphans={result.total_orphans}"
        )
        return result
