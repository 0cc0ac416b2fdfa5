"""Configuration exports"""
from .database_config import WAREHOUSE_CONFIG
from .storage_config import MINIO_CONFIG
from .quality_config import (
    DQ_MIN_ROWS,
    DQ_MAX_DUPLICATE_RATE,
    DQ_SUCCESS_THRESHOLD,
    DQ_WARNING_THRESHOLD,
)
from .pipeline_config import (
    MERGE_DELETE_UNMATCHED,
    CSV_DELIMITER,
    PRIORITY_ROLES,
    parse_priority_roles,
)

__all__ = [
    'WAREHOUSE_CONFIG',
    'MINIO_CONFIG',
    'DQ_MIN_ROWS',
    'DQ_MAX_DUPLICATE_RATE',
    'DQ_SUCCESS_THRESHOLD',
    'DQ_WARNING_THRESHOLD',
    'MERGE_DELETE_UNMATCHED',
    'CSV_DELIMITER',
    'PRIORITY_ROLES',
    'parse_priority_roles',
]
