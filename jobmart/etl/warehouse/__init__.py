"""
Warehouse (star schema) ETL module.

Structure:
├── schema.sql / schema.py  - Table DDL + Unknown company sentinel
├── cache.py                - Dimension caches
├── dimensions/             - Dimension processors
│   ├── common.py          - Anti-join insert, contiguous keys
│   ├── company.py         - company_dim
│   └── skill.py           - skills_dim
└── facts/                 - Fact processors
    ├── postings.py        - job_postings_fact
    └── bridge.py          - skills_job_bridge
"""

from .schema import setup_schema, UNKNOWN_COMPANY_ID, UNKNOWN_COMPANY_NAME, WAREHOUSE_TABLES
from .cache import init_dimension_caches
from .dimensions import process_company_dim, process_skills_dim
from .facts import process_job_postings_fact, process_skills_bridge

__all__ = [
    'setup_schema',
    'UNKNOWN_COMPANY_ID',
    'UNKNOWN_COMPANY_NAME',
    'WAREHOUSE_TABLES',
    'init_dimension_caches',
    'process_company_dim',
    'process_skills_dim',
    'process_job_postings_fact',
    'process_skills_bridge',
]
