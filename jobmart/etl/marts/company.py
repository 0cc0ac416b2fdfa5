"""
company_mart: monthly hiring per company, title and location.
"""

from typing import Dict

from jobmart.storage.warehouse import Warehouse
from .common import rebuild_schema, table_counts

SCHEMA = 'company_mart'
TABLES = [
    'dim_company', 'dim_job_title_short', 'dim_job_title', 'dim_location',
    'dim_date_month', 'bridge_company_location', 'bridge_job_title',
    'fact_company_hiring_monthly',
]

STATEMENTS = [
    # Dimensions
    """
    CREATE TABLE company_mart.dim_company (
        company_id      INTEGER PRIMARY KEY,
        company_name    VARCHAR
    )
    """,
    """
    INSERT INTO company_mart.dim_company
    SELECT company_id, company_name FROM company_dim
    """,
    """
    CREATE TABLE company_mart.dim_job_title_short (
        job_title_short_id  INTEGER PRIMARY KEY,
        job_title_short     VARCHAR
    )
    """,
    """
    INSERT INTO company_mart.dim_job_title_short
    SELECT ROW_NUMBER() OVER (ORDER BY job_title_short), job_title_short
    FROM (SELECT DISTINCT job_title_short FROM job_postings_fact WHERE job_title_short IS NOT NULL)
    """,
    """
    CREATE TABLE company_mart.dim_job_title (
        job_title_id    INTEGER PRIMARY KEY,
        job_title       VARCHAR
    )
    """,
    """
    INSERT INTO company_mart.dim_job_title
    SELECT ROW_NUMBER() OVER (ORDER BY job_title), job_title
    FROM (SELECT DISTINCT job_title FROM job_postings_fact WHERE job_title IS NOT NULL)
    """,
    """
    CREATE TABLE company_mart.dim_location (
        location_id     INTEGER PRIMARY KEY,
        job_country     VARCHAR,
        job_location    VARCHAR
    )
    """,
    """
    INSERT INTO company_mart.dim_location
    SELECT ROW_NUMBER() OVER (ORDER BY job_country, job_location), job_country, job_location
    FROM (
        SELECT DISTINCT job_country, job_location
        FROM job_postings_fact
        WHERE job_country IS NOT NULL AND job_location IS NOT NULL
    )
    """,
    """
    CREATE TABLE company_mart.dim_date_month (
        month_start_date    DATE PRIMARY KEY,
        year                INTEGER,
        month               INTEGER
    )
    """,
    """
    INSERT INTO company_mart.dim_date_month
    SELECT DISTINCT
        DATE_TRUNC('month', job_posted_date)::DATE,
        EXTRACT(year FROM job_posted_date),
        EXTRACT(month FROM job_posted_date)
    FROM job_postings_fact
    WHERE job_posted_date IS NOT NULL
    """,
    # Bridges
    """
    CREATE TABLE company_mart.bridge_company_location (
        company_id      INTEGER,
        location_id     INTEGER,
        PRIMARY KEY (company_id, location_id)
    )
    """,
    """
    INSERT INTO company_mart.bridge_company_location
    SELECT DISTINCT jpf.company_id, loc.location_id
    FROM job_postings_fact jpf
    INNER JOIN company_mart.dim_location loc
        ON jpf.job_country = loc.job_country
        AND jpf.job_location = loc.job_location
    """,
    """
    CREATE TABLE company_mart.bridge_job_title (
        job_title_short_id  INTEGER,
        job_title_id        INTEGER,
        PRIMARY KEY (job_title_short_id, job_title_id)
    )
    """,
    """
    INSERT INTO company_mart.bridge_job_title
    SELECT DISTINCT djs.job_title_short_id, djt.job_title_id
    FROM job_postings_fact jpf
    INNER JOIN company_mart.dim_job_title_short djs ON jpf.job_title_short = djs.job_title_short
    INNER JOIN company_mart.dim_job_title djt ON jpf.job_title = djt.job_title
    """,
    # Fact
    """
    CREATE TABLE company_mart.fact_company_hiring_monthly (
        company_id                  INTEGER,
        job_title_short_id          INTEGER,
        location_id                 INTEGER,
        month_start_date            DATE,
        postings_count              INTEGER,
        median_salary_year          DOUBLE,
        min_salary_year             DOUBLE,
        max_salary_year             DOUBLE,
        remote_share                DOUBLE,
        health_insurance_share      DOUBLE,
        no_degree_mention_share     DOUBLE,
        PRIMARY KEY (company_id, job_title_short_id, location_id, month_start_date)
    )
    """,
    """
    INSERT INTO company_mart.fact_company_hiring_monthly
    WITH prepared AS (
        SELECT
            jpf.company_id,
            djs.job_title_short_id,
            loc.location_id,
            DATE_TRUNC('month', jpf.job_posted_date)::DATE AS month_start_date,
            jpf.salary_year_avg,
            CASE WHEN jpf.job_work_from_home THEN 1.0 ELSE 0.0 END AS is_remote,
            CASE WHEN jpf.job_health_insurance THEN 1.0 ELSE 0.0 END AS has_health_insurance,
            CASE WHEN jpf.job_no_degree_mention THEN 1.0 ELSE 0.0 END AS no_degree_required
        FROM job_postings_fact jpf
        INNER JOIN company_mart.dim_job_title_short djs ON jpf.job_title_short = djs.job_title_short
        INNER JOIN company_mart.dim_location loc
            ON jpf.job_country = loc.job_country
            AND jpf.job_location = loc.job_location
        WHERE jpf.job_posted_date IS NOT NULL
    )
    SELECT
        company_id,
        job_title_short_id,
        location_id,
        month_start_date,
        COUNT(*),
        MEDIAN(salary_year_avg),
        MIN(salary_year_avg),
        MAX(salary_year_avg),
        AVG(is_remote),
        AVG(has_health_insurance),
        AVG(no_degree_required)
    FROM prepared
    GROUP BY company_id, job_title_short_id, location_id, month_start_date
    """,
]


def build_company_mart(wh: Warehouse) -> Dict[str, int]:
    """Rebuild company_mart from the warehouse."""
    rebuild_schema(wh, SCHEMA, STATEMENTS)
    return table_counts(wh, SCHEMA, TABLES)
