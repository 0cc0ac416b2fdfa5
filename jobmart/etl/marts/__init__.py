"""
Mart builders.

flat_mart, skills_mart and company_mart are rebuilt from the warehouse on
every run. priority_mart is kept and merged incrementally.
"""

from .flat import build_flat_mart
from .skills import build_skills_mart
from .company import build_company_mart
from .priority import build_priority_mart, refresh_priority_snapshot, snapshot_spec

__all__ = [
    'build_flat_mart',
    'build_skills_mart',
    'build_company_mart',
    'build_priority_mart',
    'refresh_priority_snapshot',
    'snapshot_spec',
]
