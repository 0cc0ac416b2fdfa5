"""Warehouse (DuckDB) configuration"""
import os

WAREHOUSE_CONFIG = {
    "path": os.getenv("DUCKDB_PATH", "data/jobmart.duckdb"),
    "staging_table": os.getenv("STAGING_TABLE", "staging_job_postings"),
}
