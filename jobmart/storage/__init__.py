"""Storage module exports"""
from .warehouse import Warehouse, get_warehouse
from .minio import (
    get_minio_client, is_object_uri, parse_object_uri, download_source,
    download_warehouse, upload_warehouse, backup_warehouse
)

__all__ = [
    'Warehouse',
    'get_warehouse',
    'get_minio_client',
    'is_object_uri',
    'parse_object_uri',
    'download_source',
    'download_warehouse',
    'upload_warehouse',
    'backup_warehouse',
]
