"""
pytest shared fixtures.

In-memory DuckDB warehouses and builders for flat job postings batches.
"""

import os
import sys

import pandas as pd
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from jobmart.etl.warehouse import setup_schema
from jobmart.storage.warehouse import Warehouse


DEFAULT_POSTING = {
    'job_title_short': 'Data Engineer',
    'job_title': 'Senior Data Engineer',
    'job_location': 'New York, NY',
    'job_via': 'via LinkedIn',
    'job_schedule_type': 'Full-time',
    'job_work_from_home': 'False',
    'search_location': 'New York, NY',
    'job_posted_date': '2023-01-15 10:00:00',
    'job_no_degree_mention': 'False',
    'job_health_insurance': 'True',
    'job_country': 'United States',
    'salary_rate': 'year',
    'salary_year_avg': '120000.0',
    'salary_hour_avg': None,
    'company_name': 'Acme Corp',
    'job_skills': "['sql', 'python']",
    'job_type_skills': "{'programming': ['sql', 'python']}",
}


def build_postings(rows):
    """Rows are dicts of overrides on DEFAULT_POSTING."""
    return pd.DataFrame([{**DEFAULT_POSTING, **row} for row in rows], dtype=object)


@pytest.fixture
def wh():
    """Empty in-memory warehouse with the star schema created."""
    warehouse = Warehouse()
    setup_schema(warehouse)
    yield warehouse
    warehouse.close()


@pytest.fixture
def bare_wh():
    """In-memory warehouse without any tables."""
    warehouse = Warehouse()
    yield warehouse
    warehouse.close()


@pytest.fixture
def make_postings():
    return build_postings


@pytest.fixture
def hundred_postings():
    """100 postings, 95 distinct companies (5 names used twice)."""
    rows = []
    for i in range(100):
        company = f"Company {i:03d}" if i < 95 else f"Company {i - 95:03d}"
        rows.append({
            'job_title': f"Data Engineer {i}",
            'company_name': company,
            'job_posted_date': f"2023-{(i % 12) + 1:02d}-10 09:00:00",
            'job_work_from_home': 'True' if i % 2 else 'False',
        })
    return build_postings(rows)


@pytest.fixture
def write_csv(tmp_path):
    """Write a DataFrame to a CSV under tmp_path and return the path."""
    def _write(df, name='job_postings_flat.csv'):
        path = tmp_path / name
        df.to_csv(path, index=False)
        return str(path)
    return _write
