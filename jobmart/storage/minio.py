"""
MinIO storage operations.

Buckets:
- jobmart-warehouse: the DuckDB warehouse file
- jobmart-backup: timestamped warehouse backups
Source CSVs may live in any bucket and are addressed as s3://bucket/key
or minio://bucket/key.
"""

import logging
import os
import tempfile
from datetime import datetime
from typing import Optional, Tuple
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error

from jobmart.config import MINIO_CONFIG

logger = logging.getLogger(__name__)

OBJECT_URI_SCHEMES = ('s3', 'minio')
BACKUP_PREFIX = 'dwh_backups'


def get_minio_client() -> Minio:
    """Get MinIO client."""
    return Minio(
        MINIO_CONFIG["endpoint"],
        access_key=MINIO_CONFIG["access_key"],
        secret_key=MINIO_CONFIG["secret_key"],
        secure=MINIO_CONFIG["secure"]
    )


def is_object_uri(location: str) -> bool:
    return urlparse(str(location)).scheme in OBJECT_URI_SCHEMES


def parse_object_uri(uri: str) -> Tuple[str, str]:
    """Split s3://bucket/path/to/key into (bucket, key)."""
    parsed = urlparse(uri)
    if parsed.scheme not in OBJECT_URI_SCHEMES:
        raise ValueError(f"Not an object storage URI: {uri}")

    bucket = parsed.netloc
    key = parsed.path.lstrip('/')
    if not bucket or not key:
        raise ValueError(f"Object URI must name a bucket and a key: {uri}")
    return bucket, key


def download_source(uri: str, client: Optional[Minio] = None, dest_dir: Optional[str] = None) -> str:
    """
    Download a source file. Returns local path.

    Without dest_dir the file goes to a new temp directory; the caller
    removes it once the file is read.
    """
    bucket, key = parse_object_uri(uri)
    client = client or get_minio_client()

    dest_dir = dest_dir or tempfile.mkdtemp(prefix='jobmart_source_')
    local_path = os.path.join(dest_dir, os.path.basename(key))

    client.fget_object(bucket, key, local_path)
    logger.info(f"Downloaded {uri} -> {local_path}")
    return local_path


# =============================================================================
# WAREHOUSE FILE (jobmart-warehouse, jobmart-backup)
# =============================================================================

def download_warehouse(local_path: str, client: Optional[Minio] = None) -> str:
    """Fetch the warehouse file from MinIO, or leave local_path absent for a fresh one."""
    os.makedirs(os.path.dirname(os.path.abspath(local_path)), exist_ok=True)
    client = client or get_minio_client()
    bucket = MINIO_CONFIG["warehouse_bucket"]
    obj = MINIO_CONFIG["warehouse_object"]

    for ext in ['', '.wal']:
        path = local_path + ext
        if os.path.exists(path):
            os.remove(path)

    try:
        client.stat_object(bucket, obj)
    except S3Error as e:
        if e.code in ('NoSuchKey', 'NoSuchBucket', 'NoSuchObject'):
            logger.info("No warehouse on MinIO yet, a new one will be created")
            return local_path
        raise

    client.fget_object(bucket, obj, local_path)
    logger.info(f"Downloaded warehouse from MinIO: {bucket}/{obj}")
    return local_path


def upload_warehouse(local_path: str, client: Optional[Minio] = None):
    """Upload the warehouse file to MinIO."""
    client = client or get_minio_client()
    bucket = MINIO_CONFIG["warehouse_bucket"]

    if not client.bucket_exists(bucket):
        client.make_bucket(bucket)
    client.fput_object(bucket, MINIO_CONFIG["warehouse_object"], local_path)
    logger.info(f"Uploaded warehouse to MinIO: {bucket}/{MINIO_CONFIG['warehouse_object']}")


def backup_warehouse(local_path: str, client: Optional[Minio] = None) -> Optional[str]:
    """Backup the warehouse file to MinIO. Keeps the newest N backups."""
    if not os.path.exists(local_path):
        return None

    client = client or get_minio_client()
    bucket = MINIO_CONFIG["backup_bucket"]
    if not client.bucket_exists(bucket):
        client.make_bucket(bucket)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    backup_object = f'{BACKUP_PREFIX}/jobmart_{timestamp}.duckdb'
    client.fput_object(bucket, backup_object, local_path)
    logger.info(f"Backed up warehouse: {backup_object}")

    objects = client.list_objects(bucket, prefix=BACKUP_PREFIX, recursive=True)
    backups = sorted(o.object_name for o in objects if o.object_name.endswith('.duckdb'))
    while len(backups) > MINIO_CONFIG["backups_kept"]:
        stale = backups.pop(0)
        client.remove_object(bucket, stale)
        logger.info(f"Removed old backup: {stale}")

    return backup_object
