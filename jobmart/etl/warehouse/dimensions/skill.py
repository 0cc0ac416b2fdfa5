"""
skills_dim processor.
"""

import logging
from typing import Dict

import pandas as pd

from jobmart.etl.errors import SkillsParseError
from jobmart.etl.staging.cleaners import parse_skills, parse_skill_types
from jobmart.storage.warehouse import Warehouse
from .common import insert_new_members

logger = logging.getLogger(__name__)


def process_skills_dim(wh: Warehouse, staging_df: pd.DataFrame) -> Dict[str, int]:
    """
    Process skills_dim from the job_skills pseudo-lists.

    skill_type is taken from job_type_skills the first time a skill is seen
    (staging order). Unparseable lists are skipped here; the bridge step
    counts and reports them.
    """
    if staging_df.empty:
        return {'candidates': 0, 'inserted': 0, 'unchanged': 0}

    skills = set()
    skill_types: Dict[str, str] = {}
    unparseable = 0

    for _, row in staging_df.iterrows():
        try:
            tokens = parse_skills(row['job_skills'])
        except SkillsParseError:
            unparseable += 1
            continue

        skills.update(tokens)
        if tokens:
            for skill, skill_type in parse_skill_types(row.get('job_type_skills')).items():
                if skill in tokens and skill not in skill_types:
                    skill_types[skill] = skill_type

    if unparseable:
        logger.debug(f"skills_dim: {unparseable} rows with unparseable skills skipped")

    stats = insert_new_members(
        wh, 'skills_dim', 'skill_id', 'skill', skills,
        attributes={'skill_type': skill_types}
    )

    logger.info(f"skills_dim: {stats['inserted']} inserted, {stats['unchanged']} existing")
    return stats
