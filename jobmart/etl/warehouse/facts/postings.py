"""
job_postings_fact processor.

Grain: one row per posting (posting_key). Postings already in the fact
table are left as they are, so re-running a load adds nothing.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

import pandas as pd

from jobmart.etl.staging.cleaners import clean_company_name, clean_text, clean_title
from jobmart.storage.warehouse import Warehouse
from ..dimensions import next_key_offset
from ..schema import UNKNOWN_COMPANY_ID

logger = logging.getLogger(__name__)

TEXT_COLUMNS = [
    'job_title_short', 'job_title', 'job_location', 'job_via',
    'job_schedule_type', 'search_location', 'job_country', 'salary_rate',
]
BOOLEAN_COLUMNS = ['job_work_from_home', 'job_no_degree_mention', 'job_health_insurance']
NUMERIC_COLUMNS = ['salary_year_avg', 'salary_hour_avg', 'salary_min', 'salary_max']

FACT_COLUMNS = (
    ['job_id', 'posting_key', 'company_id'] + TEXT_COLUMNS + BOOLEAN_COLUMNS
    + ['job_posted_date'] + NUMERIC_COLUMNS + ['loaded_at']
)


def resolve_company_id(company_name, company_cache: Dict[str, int]) -> Optional[int]:
    """Blank -> Unknown sentinel, unknown name -> None."""
    name = clean_company_name(company_name)
    if name is None:
        return UNKNOWN_COMPANY_ID
    return company_cache.get(name)


def _fact_select_list() -> str:
    cols = ['CAST(job_id AS INTEGER)', 'posting_key', 'CAST(company_id AS INTEGER)']
    cols += [f"CAST({c} AS VARCHAR)" for c in TEXT_COLUMNS]
    cols += [f"TRY_CAST({c} AS BOOLEAN)" for c in BOOLEAN_COLUMNS]
    cols += ["TRY_CAST(job_posted_date AS TIMESTAMP)"]
    cols += [f"TRY_CAST({c} AS DOUBLE)" for c in NUMERIC_COLUMNS]
    cols += ["CAST(loaded_at AS TIMESTAMP)"]
    return ',\n                '.join(cols)


def process_job_postings_fact(
    wh: Warehouse,
    staging_df: pd.DataFrame,
    caches: Dict[str, Dict]
) -> Dict[str, Any]:
    """
    Process job_postings_fact.

    Row-level problems are skipped with a warning and counted by reason:
    - unresolved_company: company name not in company_dim
    - duplicate_posting: posting_key repeated within the batch
    Returns stats plus skipped_keys (posting keys not loaded).
    """
    stats = {'inserted': 0, 'already_loaded': 0, 'skipped': Counter(), 'skipped_keys': set()}

    if staging_df.empty:
        return stats

    company_cache = caches.get('company', {})
    posting_cache = caches.setdefault('posting', {})
    loaded_at = datetime.now()

    seen: Set[str] = set()
    rows: List[Dict[str, Any]] = []

    for _, job in staging_df.iterrows():
        posting_key = job['posting_key']

        if posting_key in seen:
            stats['skipped']['duplicate_posting'] += 1
            logger.warning(f"Row {job['source_row']}: duplicate posting {posting_key}, skipped")
            continue
        seen.add(posting_key)

        if posting_key in posting_cache:
            stats['already_loaded'] += 1
            continue

        company_id = resolve_company_id(job['company_name'], company_cache)
        if company_id is None:
            stats['skipped']['unresolved_company'] += 1
            stats['skipped_keys'].add(posting_key)
            logger.warning(f"Row {job['source_row']}: company {job['company_name']!r} not in company_dim, skipped")
            continue

        row = {'posting_key': posting_key, 'company_id': company_id, 'loaded_at': loaded_at}
        for col in TEXT_COLUMNS:
            row[col] = clean_title(job[col]) if col in ('job_title', 'job_title_short') else clean_text(job[col])
        for col in BOOLEAN_COLUMNS + ['job_posted_date'] + NUMERIC_COLUMNS:
            row[col] = clean_text(job[col])
        rows.append(row)

    if rows:
        offset = next_key_offset(wh, 'job_postings_fact', 'job_id')
        for i, row in enumerate(rows, start=1):
            row['job_id'] = offset + i

        facts = pd.DataFrame(rows, columns=FACT_COLUMNS).astype(object)
        facts['loaded_at'] = pd.to_datetime(facts['loaded_at'])

        with wh.registered('fact_candidates', facts):
            wh.execute(f"""
                INSERT INTO job_postings_fact ({', '.join(FACT_COLUMNS)})
                SELECT
                {_fact_select_list()}
                FROM fact_candidates
                ORDER BY job_id
            """)

        posting_cache.update({row['posting_key']: row['job_id'] for row in rows})
        stats['inserted'] = len(rows)

    skipped = sum(stats['skipped'].values())
    logger.info(
        f"job_postings_fact: inserted={stats['inserted']}, "
        f"already_loaded={stats['already_loaded']}, skipped={skipped}"
    )
    return stats
