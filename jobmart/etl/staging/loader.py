"""Extract/Load - flat job postings file -> staging_job_postings (all VARCHAR)"""
import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Optional, Union
from urllib.error import URLError

import pandas as pd
from minio.error import S3Error

from jobmart.config import CSV_DELIMITER, WAREHOUSE_CONFIG
from jobmart.etl.errors import LoadError
from jobmart.etl.staging.cleaners import clean_text, compute_posting_key
from jobmart.storage.minio import download_source, is_object_uri
from jobmart.storage.warehouse import Warehouse

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['job_title', 'company_name', 'job_posted_date', 'job_skills']

SOURCE_COLUMNS = [
    'job_id', 'job_title_short', 'job_title', 'job_location', 'job_via',
    'job_schedule_type', 'job_work_from_home', 'search_location',
    'job_posted_date', 'job_no_degree_mention', 'job_health_insurance',
    'job_country', 'salary_rate', 'salary_year_avg', 'salary_hour_avg',
    'salary_min', 'salary_max', 'company_name', 'job_skills', 'job_type_skills',
]

STAGING_COLUMNS = SOURCE_COLUMNS + ['posting_key']

# Fields hashed into posting_key when the source carries no job_id
IDENTITY_COLUMNS = ['job_title', 'company_name', 'job_location', 'job_posted_date', 'job_via']


def read_source(source: str, delimiter: Optional[str] = None) -> pd.DataFrame:
    """ Read a source CSV as text. Local path, http(s) URL or s3:// / minio:// URI """
    delimiter = delimiter or CSV_DELIMITER
    location = str(source)
    download_dir = None

    try:
        if is_object_uri(location):
            download_dir = tempfile.mkdtemp(prefix='jobmart_source_')
            location = download_source(location, dest_dir=download_dir)
        elif '://' not in location and not os.path.exists(location):
            raise LoadError(f"Source file not found: {source}")

        df = pd.read_csv(location, dtype=str, sep=delimiter)
    except LoadError:
        raise
    except (OSError, URLError, S3Error, ValueError, UnicodeDecodeError) as e:
        # pandas.errors.ParserError / EmptyDataError are ValueErrors
        raise LoadError(f"Cannot read source {source}: {e}") from e
    finally:
        if download_dir:
            shutil.rmtree(download_dir, ignore_errors=True)

    logger.info(f"Read {len(df)} rows from {source}")
    return df


def prepare_staging(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check required columns, fill optional ones, attach posting_key and
    source_row. Values stay unvalidated text.
    """
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise LoadError(f"Source is missing required columns: {', '.join(missing)}")

    df = df.astype(object).where(df.notna(), None)

    if 'job_title_short' not in df.columns:
        df['job_title_short'] = df['job_title']
    for col in ('salary_min', 'salary_max'):
        if col not in df.columns:
            df[col] = df['salary_year_avg'] if 'salary_year_avg' in df.columns else None
    for col in SOURCE_COLUMNS:
        if col not in df.columns:
            df[col] = None

    # Occurrence index among rows with identical identity fields
    seen: Dict[tuple, int] = {}
    keys = []
    for row in df.itertuples(index=False):
        identity = tuple(clean_text(getattr(row, c)) for c in IDENTITY_COLUMNS)
        occurrence = seen.get(identity, 0)
        seen[identity] = occurrence + 1
        keys.append(compute_posting_key(row.job_id, *identity, occurrence=occurrence))

    df['posting_key'] = pd.Series(keys, index=df.index, dtype=object)
    df['source_row'] = range(1, len(df) + 1)

    return df[STAGING_COLUMNS + ['source_row']].reset_index(drop=True)


def write_staging(wh: Warehouse, df: pd.DataFrame, staging_table: Optional[str] = None) -> int:
    """ Replace the staging table with df. Returns row count """
    table = staging_table or WAREHOUSE_CONFIG['staging_table']
    column_defs = ',\n'.join(f"{c} VARCHAR" for c in STAGING_COLUMNS)

    wh.execute(f"""
        CREATE OR REPLACE TABLE {table} (
            {column_defs},
            source_row INTEGER
        )
    """)

    if df.empty:
        return 0

    select_list = ', '.join(f"CAST({c} AS VARCHAR)" for c in STAGING_COLUMNS)
    with wh.registered('staging_src_df', df):
        wh.execute(f"""
            INSERT INTO {table} ({', '.join(STAGING_COLUMNS)}, source_row)
            SELECT {select_list}, CAST(source_row AS INTEGER) FROM staging_src_df
        """)

    return wh.scalar(f"SELECT COUNT(*) FROM {table}")


def load_staging(wh: Warehouse, source: Union[str, pd.DataFrame],
                 staging_table: Optional[str] = None) -> Dict[str, Any]:
    """ Read + prepare the source, then replace staging. Nothing is written if the source is bad """
    df = source if isinstance(source, pd.DataFrame) else read_source(source)
    df = prepare_staging(df)
    rows = write_staging(wh, df, staging_table)

    logger.info(f"Staging loaded: {rows} rows")
    return {"rows_loaded": rows}


def get_staging_df(wh: Warehouse, staging_table: Optional[str] = None) -> pd.DataFrame:
    """ Staging rows in source order, NULLs as None """
    table = staging_table or WAREHOUSE_CONFIG['staging_table']
    df = wh.fetch_df(f"SELECT * FROM {table} ORDER BY source_row")
    return df.astype(object).where(df.notna(), None)
