"""
skills_mart: monthly skill demand by job_title_short.
"""

from typing import Dict

from jobmart.storage.warehouse import Warehouse
from .common import rebuild_schema, table_counts

SCHEMA = 'skills_mart'
TABLES = ['dim_skill', 'dim_date_month', 'fact_skill_demand_monthly']

STATEMENTS = [
    """
    CREATE TABLE skills_mart.dim_skill (
        skill_id    INTEGER PRIMARY KEY,
        skill       VARCHAR,
        skill_type  VARCHAR
    )
    """,
    """
    INSERT INTO skills_mart.dim_skill (skill_id, skill, skill_type)
    SELECT skill_id, skill, skill_type FROM skills_dim
    """,
    """
    CREATE TABLE skills_mart.dim_date_month (
        month_start_date    DATE PRIMARY KEY,
        year                INTEGER,
        month               INTEGER,
        quarter             INTEGER,
        quarter_name        VARCHAR,
        year_quarter        VARCHAR
    )
    """,
    """
    INSERT INTO skills_mart.dim_date_month
    SELECT DISTINCT
        DATE_TRUNC('month', job_posted_date)::DATE,
        EXTRACT(year FROM job_posted_date),
        EXTRACT(month FROM job_posted_date),
        EXTRACT(quarter FROM job_posted_date),
        'Q' || CAST(EXTRACT(quarter FROM job_posted_date) AS VARCHAR),
        CAST(EXTRACT(year FROM job_posted_date) AS VARCHAR) || '-Q'
            || CAST(EXTRACT(quarter FROM job_posted_date) AS VARCHAR)
    FROM job_postings_fact
    WHERE job_posted_date IS NOT NULL
    """,
    """
    CREATE TABLE skills_mart.fact_skill_demand_monthly (
        skill_id                        INTEGER,
        month_start_date                DATE,
        job_title_short                 VARCHAR,
        postings_count                  INTEGER,
        remote_postings_count           INTEGER,
        health_insurance_postings_count INTEGER,
        no_degree_mention_count         INTEGER,
        PRIMARY KEY (skill_id, month_start_date, job_title_short)
    )
    """,
    """
    INSERT INTO skills_mart.fact_skill_demand_monthly
    WITH prepared AS (
        SELECT
            sjb.skill_id,
            DATE_TRUNC('month', jpf.job_posted_date)::DATE AS month_start_date,
            COALESCE(jpf.job_title_short, 'Unknown') AS job_title_short,
            CASE WHEN jpf.job_work_from_home THEN 1 ELSE 0 END AS is_remote,
            CASE WHEN jpf.job_health_insurance THEN 1 ELSE 0 END AS has_health_insurance,
            CASE WHEN jpf.job_no_degree_mention THEN 1 ELSE 0 END AS no_degree_mention
        FROM job_postings_fact jpf
        INNER JOIN skills_job_bridge sjb ON jpf.job_id = sjb.job_id
        WHERE jpf.job_posted_date IS NOT NULL
    )
    SELECT
        skill_id,
        month_start_date,
        job_title_short,
        COUNT(*),
        SUM(is_remote),
        SUM(has_health_insurance),
        SUM(no_degree_mention)
    FROM prepared
    GROUP BY skill_id, month_start_date, job_title_short
    """,
]


def build_skills_mart(wh: Warehouse) -> Dict[str, int]:
    """Rebuild skills_mart from the warehouse."""
    rebuild_schema(wh, SCHEMA, STATEMENTS)
    return table_counts(wh, SCHEMA, TABLES)
