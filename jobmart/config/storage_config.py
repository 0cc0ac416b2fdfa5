"""Storage configuration (MinIO)"""
import os

MINIO_CONFIG = {
    "endpoint": os.getenv("MINIO_ENDPOINT", "minio:9000"),
    "access_key": os.getenv("MINIO_ACCESS_KEY", "minioadmin"),
    "secret_key": os.getenv("MINIO_SECRET_KEY", "minioadmin"),
    "secure": os.getenv("MINIO_SECURE", "false").lower() == "true",
    "warehouse_bucket": os.getenv("MINIO_WAREHOUSE_BUCKET", "jobmart-warehouse"),
    "backup_bucket": os.getenv("MINIO_BACKUP_BUCKET", "jobmart-backup"),
    "warehouse_object": os.getenv("MINIO_WAREHOUSE_OBJECT", "dwh/jobmart.duckdb"),
    "backups_kept": int(os.getenv("MINIO_BACKUPS_KEPT", "5")),
}
