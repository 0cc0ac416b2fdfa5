"""
Fact processing modules for the warehouse ETL.
"""

from .postings import process_job_postings_fact, resolve_company_id, FACT_COLUMNS
from .bridge import process_skills_bridge

__all__ = [
    'process_job_postings_fact',
    'resolve_company_id',
    'FACT_COLUMNS',
    'process_skills_bridge',
]
