"""
jobmart - flat job postings CSV -> DuckDB star schema -> analytics marts.
"""

__version__ = "0.1.0"
