"""Staging ETL module exports"""
from .cleaners import (
    clean_text, clean_title, clean_company_name,
    parse_skills, parse_skill_types, compute_posting_key
)
from .loader import (
    REQUIRED_COLUMNS, SOURCE_COLUMNS, STAGING_COLUMNS,
    read_source, prepare_staging, write_staging, load_staging, get_staging_df
)

__all__ = [
    'clean_text',
    'clean_title',
    'clean_company_name',
    'parse_skills',
    'parse_skill_types',
    'compute_posting_key',
    'REQUIRED_COLUMNS',
    'SOURCE_COLUMNS',
    'STAGING_COLUMNS',
    'read_source',
    'prepare_staging',
    'write_staging',
    'load_staging',
    'get_staging_df',
]
