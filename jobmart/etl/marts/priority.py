"""
priority_mart: postings for the roles we watch, refreshed incrementally.

Unlike the other marts this one is NOT rebuilt. priority_roles is synced
from settings and priority_jobs_snapshot is merged from the warehouse on
every run, so first_seen_at survives reloads.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from jobmart.etl.merge import MergeResult, MergeSpec, merge_upsert
from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)

SCHEMA = 'priority_mart'
SNAPSHOT_SOURCE = 'src_priority_jobs'

ROLES_SPEC = MergeSpec(
    target='priority_mart.priority_roles',
    key_columns=('role_name',),
    tracked_columns=('priority_lvl',),
    updated_at_column='updated_at',
    # The configured role list is the whole role set
    delete_unmatched=True,
)

SNAPSHOT_COLUMNS = (
    'job_title_short', 'company_name', 'job_posted_date', 'salary_year_avg', 'priority_lvl'
)

CREATE_STATEMENTS = [
    "CREATE SCHEMA IF NOT EXISTS priority_mart",
    """
    CREATE TABLE IF NOT EXISTS priority_mart.priority_roles (
        role_name       VARCHAR PRIMARY KEY,
        priority_lvl    INTEGER NOT NULL,
        updated_at      TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS priority_mart.priority_jobs_snapshot (
        job_id              INTEGER PRIMARY KEY,
        job_title_short     VARCHAR,
        company_name        VARCHAR,
        job_posted_date     TIMESTAMP,
        salary_year_avg     DOUBLE,
        priority_lvl        INTEGER,
        first_seen_at       TIMESTAMP,
        updated_at          TIMESTAMP
    )
    """,
]


def snapshot_spec(delete_unmatched: bool = False) -> MergeSpec:
    return MergeSpec(
        target='priority_mart.priority_jobs_snapshot',
        key_columns=('job_id',),
        tracked_columns=SNAPSHOT_COLUMNS,
        created_at_column='first_seen_at',
        updated_at_column='updated_at',
        delete_unmatched=delete_unmatched,
    )


def build_priority_mart(wh: Warehouse, roles: Mapping[str, int],
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    """Create priority_mart tables if missing and sync priority_roles."""
    for stmt in CREATE_STATEMENTS:
        wh.execute(stmt)

    roles_df = pd.DataFrame(
        {
            'role_name': pd.Series(list(roles.keys()), dtype=object),
            'priority_lvl': pd.Series([int(v) for v in roles.values()], dtype='int64'),
        }
    )
    result = merge_upsert(wh, ROLES_SPEC, roles_df, now=now)

    logger.info(f"priority_roles synced: {len(roles)} roles")
    return {'roles': len(roles), 'merged': result}


def refresh_priority_snapshot(wh: Warehouse, delete_unmatched: bool = False,
                              now: Optional[datetime] = None) -> MergeResult:
    """
    Merge current priority postings into priority_jobs_snapshot.

    Postings that no longer match a priority role are only removed when
    delete_unmatched is set.
    """
    wh.execute(f"""
        CREATE OR REPLACE TEMP TABLE {SNAPSHOT_SOURCE} AS
        SELECT
            jpf.job_id,
            jpf.job_title_short,
            cd.company_name,
            jpf.job_posted_date,
            jpf.salary_year_avg,
            r.priority_lvl
        FROM job_postings_fact AS jpf
        LEFT JOIN company_dim AS cd ON jpf.company_id = cd.company_id
        INNER JOIN priority_mart.priority_roles AS r ON jpf.job_title_short = r.role_name
    """)
    try:
        result = merge_upsert(wh, snapshot_spec(delete_unmatched), SNAPSHOT_SOURCE, now=now)
    finally:
        wh.execute(f"DROP TABLE IF EXISTS {SNAPSHOT_SOURCE}")

    return result
