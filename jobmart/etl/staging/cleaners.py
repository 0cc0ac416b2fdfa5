"""Data cleaning functions for staging ETL"""
import ast
import hashlib
import logging
import re
from typing import Dict, Optional, Set

import pandas as pd

from jobmart.etl.errors import SkillsParseError

logger = logging.getLogger(__name__)

# Characters wrapped around skill tokens in the pseudo-list
SKILL_QUOTE_CHARS = ' \t\r\n\'"'


def _is_blank(value) -> bool:
    if value is None:
        return True
    if not isinstance(value, str) and pd.isna(value):
        return True
    return not str(value).strip()


def clean_text(value) -> Optional[str]:
    """Trim and collapse whitespace. Blank -> None."""
    if _is_blank(value):
        return None
    return re.sub(r'\s+', ' ', str(value)).strip()


def clean_title(title) -> Optional[str]:
    """ Clean job title """
    title = clean_text(title)
    if title is None:
        return None

    # Space before "(" if missing
    title = re.sub(r'(\w)\(', r'\1 (', title)

    # Space after ":" and ","
    title = re.sub(r':(\w)', r': \1', title)
    title = re.sub(r',(\w)', r', \1', title)

    return re.sub(r'\s+', ' ', title).strip()


def clean_company_name(name) -> Optional[str]:
    """ Normalize company name; blank names resolve to the unknown company """
    return clean_text(name)


def parse_skills(value) -> Set[str]:
    """
    Parse a skills pseudo-list such as "['SQL', 'Python', 'AWS']".

    None, '' and '[]' give an empty set. Unbalanced brackets or a
    non-string value raise SkillsParseError.
    """
    if value is None:
        return set()
    if not isinstance(value, str):
        if pd.isna(value):
            return set()
        raise SkillsParseError(f"Skills value is not text: {value!r}")

    text = value.strip()
    if not text:
        return set()

    opens, closes = text.count('['), text.count(']')
    if opens != closes or opens > 1:
        raise SkillsParseError(f"Unbalanced skills list: {value!r}")
    if opens == 1:
        if not (text.startswith('[') and text.endswith(']')):
            raise SkillsParseError(f"Unbalanced skills list: {value!r}")
        text = text[1:-1]

    skills = set()
    for token in text.split(','):
        token = clean_text(token.strip(SKILL_QUOTE_CHARS))
        if token:
            skills.add(token)
    return skills


def parse_skill_types(value) -> Dict[str, str]:
    """
    Parse job_type_skills, e.g. "{'cloud': ['aws'], 'programming': ['python', 'sql']}",
    into {skill: type}. Malformed values give {} with a warning.
    """
    if _is_blank(value):
        return {}

    try:
        parsed = ast.literal_eval(str(value))
    except (ValueError, SyntaxError):
        logger.warning(f"Unparseable job_type_skills: {str(value)[:80]!r}")
        return {}

    if not isinstance(parsed, dict):
        logger.warning(f"job_type_skills is not a mapping: {str(value)[:80]!r}")
        return {}

    types = {}
    for skill_type, skills in parsed.items():
        if isinstance(skills, str):
            skills = [skills]
        if not isinstance(skills, (list, tuple, set)):
            continue
        for skill in skills:
            name = clean_text(skill)
            if name and name not in types:
                types[name] = str(skill_type).strip()
    return types


def compute_posting_key(job_id=None, job_title=None, company_name=None,
                        job_location=None, job_posted_date=None, job_via=None,
                        occurrence: int = 0) -> str:
    """
    Stable identity of one posting.

    Uses the source job_id when present. Otherwise an MD5 over the descriptive
    fields plus the occurrence index among identical rows, so N identical rows
    stay N postings and a rerun of the same file yields the same keys.
    """
    source_id = clean_text(job_id)
    if source_id is not None:
        return f"src:{source_id}"

    parts = [clean_text(v) or '' for v in (job_title, company_name, job_location, job_posted_date, job_via)]
    parts.append(str(occurrence))
    return hashlib.md5('|'.join(parts).encode('utf-8')).hexdigest()
