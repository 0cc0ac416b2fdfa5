"""Unit tests for data cleaning functions."""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from jobmart.etl.errors import SkillsParseError
from jobmart.etl.staging.cleaners import (
    clean_company_name, clean_title, compute_posting_key,
    parse_skill_types, parse_skills
)


class TestParseSkills:
    """Tests for parse_skills function."""

    def test_parses_quoted_list(self):
        """Should strip brackets and quotes from every token."""
        assert parse_skills("['SQL', 'Python', 'AWS']") == {'SQL', 'Python', 'AWS'}

    def test_empty_list_gives_empty_set(self):
        """Should return empty set for [] and blank input."""
        assert parse_skills("[]") == set()
        assert parse_skills("") == set()
        assert parse_skills("   ") == set()
        assert parse_skills(None) == set()

    def test_nan_gives_empty_set(self):
        """Should treat a pandas NaN like a missing value."""
        assert parse_skills(float('nan')) == set()

    def test_double_quotes_and_whitespace(self):
        """Should trim whitespace and double quotes."""
        assert parse_skills('[ "sql" ,  "power bi" ]') == {'sql', 'power bi'}

    def test_drops_empty_tokens(self):
        """Should discard tokens that are empty after trimming."""
        assert parse_skills("['sql', '', ' ', 'python',]") == {'sql', 'python'}

    def test_deduplicates(self):
        """Should return each skill once."""
        assert parse_skills("['sql', 'sql', 'python']") == {'sql', 'python'}

    def test_bare_comma_list(self):
        """Should accept a list without brackets."""
        assert parse_skills("sql, python") == {'sql', 'python'}

    def test_keeps_symbols_inside_tokens(self):
        """Should keep characters like + and # inside a skill."""
        assert parse_skills("['c++', 'c#']") == {'c++', 'c#'}

    def test_unbalanced_brackets_raise(self):
        """Should raise SkillsParseError on unbalanced brackets."""
        with pytest.raises(SkillsParseError):
            parse_skills("['sql', 'python'")
        with pytest.raises(SkillsParseError):
            parse_skills("'sql']")

    def test_nested_list_raises(self):
        """Should raise SkillsParseError on nested lists."""
        with pytest.raises(SkillsParseError):
            parse_skills("[['sql']]")

    def test_non_string_raises(self):
        """Should raise SkillsParseError for non-text values."""
        with pytest.raises(SkillsParseError):
            parse_skills(42)


class TestParseSkillTypes:
    """Tests for parse_skill_types function."""

    def test_parses_mapping(self):
        """Should map every skill to its type."""
        value = "{'cloud': ['aws'], 'programming': ['python', 'sql']}"
        assert parse_skill_types(value) == {'aws': 'cloud', 'python': 'programming', 'sql': 'programming'}

    def test_first_type_wins(self):
        """Should keep the first type when a skill is listed twice."""
        value = "{'analyst_tools': ['excel'], 'other': ['excel']}"
        assert parse_skill_types(value) == {'excel': 'analyst_tools'}

    def test_malformed_gives_empty(self):
        """Should return {} for malformed input."""
        assert parse_skill_types("{'cloud': ['aws'") == {}
        assert parse_skill_types("['aws']") == {}

    def test_blank_gives_empty(self):
        """Should return {} for blank input."""
        assert parse_skill_types(None) == {}
        assert parse_skill_types("") == {}


class TestCleanCompanyName:
    """Tests for clean_company_name function."""

    def test_trims_and_collapses_whitespace(self):
        """Should trim and collapse inner whitespace."""
        assert clean_company_name("  Acme    Corp \t") == "Acme Corp"

    def test_blank_is_none(self):
        """Should return None for blank names."""
        assert clean_company_name("") is None
        assert clean_company_name("   ") is None
        assert clean_company_name(None) is None


class TestCleanTitle:
    """Tests for clean_title function."""

    def test_adds_space_before_parenthesis(self):
        """Should add space before parenthesis if missing."""
        assert clean_title("Backend Developer(Java)") == "Backend Developer (Java)"

    def test_adds_space_after_comma(self):
        """Should add space after comma."""
        assert clean_title("Data Engineer,Remote") == "Data Engineer, Remote"

    def test_handles_empty(self):
        """Should return None for empty input."""
        assert clean_title("") is None
        assert clean_title(None) is None


class TestComputePostingKey:
    """Tests for compute_posting_key function."""

    def test_uses_source_job_id(self):
        """Should use the source job_id when present."""
        assert compute_posting_key(job_id=" 123 ", job_title="x") == "src:123"

    def test_hash_is_stable(self):
        """Should give the same key for the same fields."""
        a = compute_posting_key(None, "Data Engineer", "Acme", "NY", "2023-01-01", "via X")
        b = compute_posting_key(None, "Data Engineer", "Acme", "NY", "2023-01-01", "via X")
        assert a == b
        assert len(a) == 32

    def test_occurrence_separates_identical_rows(self):
        """Should give identical rows different keys by occurrence index."""
        a = compute_posting_key(None, "Data Engineer", "Acme", occurrence=0)
        b = compute_posting_key(None, "Data Engineer", "Acme", occurrence=1)
        assert a != b
