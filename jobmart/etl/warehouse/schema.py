"""
Warehouse schema setup.
"""

import logging
import os
import re
from typing import Dict, List, Optional

from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), 'schema.sql')

WAREHOUSE_TABLES = ['company_dim', 'skills_dim', 'job_postings_fact', 'skills_job_bridge']

UNKNOWN_COMPANY_ID = -1
UNKNOWN_COMPANY_NAME = 'Unknown'


def split_statements(sql: str) -> List[str]:
    """Strip comments and split a script into statements."""
    sql = re.sub(r'--.*\n', '\n', sql)
    sql = re.sub(r'/\*.*?\*/', '', sql, flags=re.DOTALL)
    return [s.strip() for s in sql.split(';') if s.strip()]


def setup_schema(wh: Warehouse, schema_path: Optional[str] = None) -> Dict[str, int]:
    """
    Create warehouse tables if they don't exist.
    Does NOT drop existing tables to preserve data.
    Also seeds the Unknown company row that blank company names resolve to.
    """
    schema_path = schema_path or DEFAULT_SCHEMA_PATH
    existing = sum(1 for t in WAREHOUSE_TABLES if wh.table_exists(t))

    with open(schema_path, 'r', encoding='utf-8') as f:
        statements = split_statements(f.read())

    for stmt in statements:
        wh.execute(stmt)

    wh.execute(
        "INSERT INTO company_dim (company_id, company_name) VALUES (?, ?) ON CONFLICT DO NOTHING",
        [UNKNOWN_COMPANY_ID, UNKNOWN_COMPANY_NAME]
    )

    created = len(WAREHOUSE_TABLES) - existing
    logger.info(f"Schema ready: {len(statements)} statements, {created} new tables")
    return {'statements': len(statements), 'tables_created': created}
