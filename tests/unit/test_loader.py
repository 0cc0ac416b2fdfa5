"""Unit tests for the extract/load step."""
import pytest
import sys
import os
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from jobmart.etl.errors import LoadError
from jobmart.etl.staging import (
    STAGING_COLUMNS, get_staging_df, load_staging, prepare_staging, read_source
)


class TestReadSource:
    """Tests for read_source function."""

    def test_reads_all_values_as_text(self, make_postings, write_csv):
        """Should read every column as text."""
        path = write_csv(make_postings([{'salary_year_avg': '90000'}]))
        df = read_source(path)
        assert df.loc[0, 'salary_year_avg'] == '90000'
        assert df.loc[0, 'job_work_from_home'] == 'False'

    def test_missing_file_raises_load_error(self, tmp_path):
        """Should raise LoadError for a missing file."""
        with pytest.raises(LoadError, match="not found"):
            read_source(str(tmp_path / "nope.csv"))

    def test_empty_file_raises_load_error(self, tmp_path):
        """Should raise LoadError for an empty file."""
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(LoadError):
            read_source(str(path))

    def test_object_uri_download_removed_after_read(self, monkeypatch, make_postings):
        """Should read a downloaded object and remove the local copy."""
        downloaded = []

        def fget_object(bucket, key, path):
            make_postings([{}]).to_csv(path, index=False)
            downloaded.append(path)

        client = MagicMock()
        client.fget_object.side_effect = fget_object
        monkeypatch.setattr('jobmart.storage.minio.get_minio_client', lambda: client)

        df = read_source("s3://raw/2024/jobs.csv")

        assert len(df) == 1
        assert not os.path.exists(downloaded[0])
        assert not os.path.exists(os.path.dirname(downloaded[0]))

    def test_object_uri_removed_after_failed_read(self, monkeypatch):
        """Should remove the local copy when the download is unreadable."""
        downloaded = []

        def fget_object(bucket, key, path):
            with open(path, 'w') as f:
                f.write('')
            downloaded.append(path)

        client = MagicMock()
        client.fget_object.side_effect = fget_object
        monkeypatch.setattr('jobmart.storage.minio.get_minio_client', lambda: client)

        with pytest.raises(LoadError):
            read_source("minio://raw/jobs.csv")
        assert not os.path.exists(os.path.dirname(downloaded[0]))


class TestPrepareStaging:
    """Tests for prepare_staging function."""

    def test_missing_required_column_raises(self, make_postings):
        """Should reject a source without a required column."""
        df = make_postings([{}]).drop(columns=['job_skills'])
        with pytest.raises(LoadError, match="job_skills"):
            prepare_staging(df)

    def test_fills_optional_columns(self, make_postings):
        """Should add every staging column, missing ones as None."""
        df = make_postings([{}]).drop(columns=['job_via', 'job_title_short'])
        staged = prepare_staging(df)
        assert list(staged.columns) == STAGING_COLUMNS + ['source_row']
        assert staged.loc[0, 'job_via'] is None

    def test_title_short_defaults_to_title(self, make_postings):
        """Should fall back to job_title for a missing job_title_short."""
        df = make_postings([{'job_title': 'Data Analyst'}]).drop(columns=['job_title_short'])
        assert prepare_staging(df).loc[0, 'job_title_short'] == 'Data Analyst'

    def test_salary_range_defaults_to_year_avg(self, make_postings):
        """Should fill salary_min / salary_max from salary_year_avg."""
        staged = prepare_staging(make_postings([{'salary_year_avg': '100000'}]))
        assert staged.loc[0, 'salary_min'] == '100000'
        assert staged.loc[0, 'salary_max'] == '100000'

    def test_identical_rows_get_distinct_keys(self, make_postings):
        """Should keep N identical rows as N postings."""
        staged = prepare_staging(make_postings([{}, {}, {}]))
        assert staged['posting_key'].nunique() == 3

    def test_keys_are_stable_across_reads(self, make_postings):
        """Should produce the same keys for the same file."""
        df = make_postings([{}, {}, {'job_title': 'Other'}])
        assert list(prepare_staging(df)['posting_key']) == list(prepare_staging(df)['posting_key'])

    def test_source_job_id_used(self, make_postings):
        """Should use a source job_id column when present."""
        df = make_postings([{'job_id': '77'}])
        assert prepare_staging(df).loc[0, 'posting_key'] == 'src:77'

    def test_source_row_numbering(self, make_postings):
        """Should number rows from 1 in source order."""
        staged = prepare_staging(make_postings([{}, {}]))
        assert list(staged['source_row']) == [1, 2]


class TestLoadStaging:
    """Tests for load_staging function."""

    def test_loads_csv_as_varchar(self, bare_wh, make_postings, write_csv):
        """Should store all source values as VARCHAR."""
        path = write_csv(make_postings([{}, {'company_name': 'Globex'}]))
        stats = load_staging(bare_wh, path)

        assert stats['rows_loaded'] == 2
        types = bare_wh.fetch_df("""
            SELECT DISTINCT data_type FROM information_schema.columns
            WHERE table_name = 'staging_job_postings' AND column_name != 'source_row'
        """)
        assert list(types['data_type']) == ['VARCHAR']

    def test_reload_replaces_staging(self, bare_wh, make_postings):
        """Should replace staging on each load."""
        load_staging(bare_wh, make_postings([{}, {}, {}]))
        load_staging(bare_wh, make_postings([{}]))
        assert bare_wh.scalar("SELECT COUNT(*) FROM staging_job_postings") == 1

    def test_bad_source_leaves_staging_untouched(self, bare_wh, make_postings, tmp_path):
        """Should not write anything when the source is bad."""
        load_staging(bare_wh, make_postings([{}, {}]))
        with pytest.raises(LoadError):
            load_staging(bare_wh, str(tmp_path / "missing.csv"))
        assert bare_wh.scalar("SELECT COUNT(*) FROM staging_job_postings") == 2

    def test_get_staging_df_uses_none_for_null(self, bare_wh, make_postings):
        """Should return NULLs as None, in source order."""
        load_staging(bare_wh, make_postings([{'job_via': None}, {'job_via': 'via Indeed'}]))
        df = get_staging_df(bare_wh)
        assert df.loc[0, 'job_via'] is None
        assert df.loc[1, 'job_via'] == 'via Indeed'
