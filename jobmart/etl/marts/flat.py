"""
flat_mart: one denormalized row per posting with its skills inlined.
"""

from typing import Dict

from jobmart.storage.warehouse import Warehouse
from .common import rebuild_schema, table_counts

SCHEMA = 'flat_mart'

CREATE_JOB_POSTINGS = """
    CREATE TABLE flat_mart.job_postings (
        job_id                  INTEGER PRIMARY KEY,
        job_title_short         VARCHAR,
        job_title               VARCHAR,
        job_location            VARCHAR,
        job_via                 VARCHAR,
        job_schedule_type       VARCHAR,
        job_work_from_home      BOOLEAN,
        search_location         VARCHAR,
        job_posted_date         TIMESTAMP,
        job_no_degree_mention   BOOLEAN,
        job_health_insurance    BOOLEAN,
        job_country             VARCHAR,
        salary_rate             VARCHAR,
        salary_year_avg         DOUBLE,
        salary_hour_avg         DOUBLE,
        salary_min              DOUBLE,
        salary_max              DOUBLE,
        company_id              INTEGER,
        company_name            VARCHAR,
        skills_and_types        STRUCT(type VARCHAR, name VARCHAR)[]
    )
"""

# Postings without skills get NULL skills_and_types
LOAD_JOB_POSTINGS = """
    INSERT INTO flat_mart.job_postings
    SELECT
        jpf.job_id,
        jpf.job_title_short,
        jpf.job_title,
        jpf.job_location,
        jpf.job_via,
        jpf.job_schedule_type,
        jpf.job_work_from_home,
        jpf.search_location,
        jpf.job_posted_date,
        jpf.job_no_degree_mention,
        jpf.job_health_insurance,
        jpf.job_country,
        jpf.salary_rate,
        jpf.salary_year_avg,
        jpf.salary_hour_avg,
        jpf.salary_min,
        jpf.salary_max,
        cd.company_id,
        cd.company_name,
        ARRAY_AGG(
            STRUCT_PACK(type := sd.skill_type, name := sd.skill)
            ORDER BY sd.skill
        ) FILTER (WHERE sd.skill_id IS NOT NULL) AS skills_and_types
    FROM job_postings_fact AS jpf
    LEFT JOIN company_dim AS cd ON jpf.company_id = cd.company_id
    LEFT JOIN skills_job_bridge AS sjb ON jpf.job_id = sjb.job_id
    LEFT JOIN skills_dim AS sd ON sjb.skill_id = sd.skill_id
    GROUP BY ALL
"""


def build_flat_mart(wh: Warehouse) -> Dict[str, int]:
    """Rebuild flat_mart.job_postings from the warehouse."""
    rebuild_schema(wh, SCHEMA, [CREATE_JOB_POSTINGS, LOAD_JOB_POSTINGS])
    return table_counts(wh, SCHEMA, ['job_postings'])
