"""
company_dim processor.
"""

import logging
from typing import Dict

import pandas as pd

from jobmart.etl.staging.cleaners import clean_company_name
from jobmart.storage.warehouse import Warehouse
from .common import insert_new_members

logger = logging.getLogger(__name__)


def process_company_dim(wh: Warehouse, staging_df: pd.DataFrame) -> Dict[str, int]:
    """
    Process company_dim.

    Natural key: cleaned company_name. Blank names are not inserted; their
    postings resolve to the Unknown sentinel (-1).
    """
    if staging_df.empty:
        return {'candidates': 0, 'inserted': 0, 'unchanged': 0}

    names = [clean_company_name(v) for v in staging_df['company_name']]
    stats = insert_new_members(wh, 'company_dim', 'company_id', 'company_name', names)

    logger.info(f"company_dim: {stats['inserted']} inserted, {stats['unchanged']} existing")
    return stats
