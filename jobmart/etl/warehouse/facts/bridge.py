"""
skills_job_bridge processor.

Maps each posting to its skills. One row per distinct resolved skill token;
pairs already present are left alone.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, Optional, Set

import pandas as pd

from jobmart.etl.errors import SkillsParseError
from jobmart.etl.staging.cleaners import parse_skills
from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)


def process_skills_bridge(
    wh: Warehouse,
    staging_df: pd.DataFrame,
    caches: Dict[str, Dict],
    skipped_keys: Optional[Iterable[str]] = None
) -> Dict[str, Any]:
    """
    Process skills_job_bridge.

    Row-level problems are warnings, never failures:
    - unparseable_skills: posting kept with zero bridge rows
    - unresolved_skill: token missing from skills_dim (per token)
    - missing_posting: posting not in the fact table and not already
      reported by the fact step (skipped_keys)
    """
    stats = {'created': 0, 'existing': 0, 'postings': 0, 'skipped': Counter()}

    if staging_df.empty:
        return stats

    posting_cache = caches.get('posting', {})
    skill_cache = caches.get('skill', {})
    skipped_keys = set(skipped_keys or ())

    pairs: Set[tuple] = set()
    seen: Set[str] = set()

    for _, job in staging_df.iterrows():
        posting_key = job['posting_key']
        if posting_key in seen or posting_key in skipped_keys:
            continue
        seen.add(posting_key)

        job_id = posting_cache.get(posting_key)
        if job_id is None:
            stats['skipped']['missing_posting'] += 1
            logger.warning(f"Row {job['source_row']}: posting {posting_key} not in job_postings_fact")
            continue

        try:
            skills = parse_skills(job['job_skills'])
        except SkillsParseError as e:
            stats['skipped']['unparseable_skills'] += 1
            logger.warning(f"Row {job['source_row']}: {e}; loaded with no skills")
            continue

        stats['postings'] += 1
        for skill in skills:
            skill_id = skill_cache.get(skill)
            if skill_id is None:
                stats['skipped']['unresolved_skill'] += 1
                logger.warning(f"Row {job['source_row']}: skill {skill!r} not in skills_dim")
                continue
            pairs.add((int(job_id), int(skill_id)))

    if pairs:
        candidates = pd.DataFrame(sorted(pairs), columns=['job_id', 'skill_id'])
        before = wh.scalar("SELECT COUNT(*) FROM skills_job_bridge")

        with wh.registered('bridge_candidates', candidates):
            wh.execute("""
                INSERT INTO skills_job_bridge (job_id, skill_id)
                SELECT CAST(c.job_id AS INTEGER), CAST(c.skill_id AS INTEGER)
                FROM bridge_candidates c
                LEFT JOIN skills_job_bridge b
                    ON b.job_id = c.job_id AND b.skill_id = c.skill_id
                WHERE b.job_id IS NULL
            """)

        stats['created'] = wh.scalar("SELECT COUNT(*) FROM skills_job_bridge") - before
        stats['existing'] = len(pairs) - stats['created']

    logger.info(
        f"skills_job_bridge: created={stats['created']}, existing={stats['existing']}, "
        f"skipped={sum(stats['skipped'].values())}"
    )
    return stats
