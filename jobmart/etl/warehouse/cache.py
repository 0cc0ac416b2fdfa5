"""
Dimension cache utilities.
"""

import logging
from typing import Dict

from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)


def init_dimension_caches(wh: Warehouse) -> Dict[str, Dict]:
    """
    Initialize caches for dimension lookups.

    Returns dict with:
    - company: company_name -> company_id
    - skill: skill -> skill_id
    - posting: posting_key -> job_id
    """
    caches = {}

    companies = wh.fetch_df("SELECT company_name, company_id FROM company_dim")
    caches['company'] = dict(zip(companies['company_name'], companies['company_id'].astype(int)))

    skills = wh.fetch_df("SELECT skill, skill_id FROM skills_dim")
    caches['skill'] = dict(zip(skills['skill'], skills['skill_id'].astype(int)))

    postings = wh.fetch_df("SELECT posting_key, job_id FROM job_postings_fact")
    caches['posting'] = dict(zip(postings['posting_key'], postings['job_id'].astype(int)))

    logger.info(
        f"Caches initialized: companies={len(caches['company'])}, "
        f"skills={len(caches['skill'])}, postings={len(caches['posting'])}"
    )
    return caches
