"""
Dimension processing modules for the warehouse ETL.
"""

from .common import insert_new_members, next_key_offset
from .company import process_company_dim
from .skill import process_skills_dim

__all__ = [
    'insert_new_members',
    'next_key_offset',
    'process_company_dim',
    'process_skills_dim',
]
