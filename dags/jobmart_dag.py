"""
jobmart Warehouse DAG - flat CSV → star schema → marts
Schedule: Daily at 7:00 AM

Flow:
1. Download warehouse from MinIO + backup
2. Load source, build dimensions / facts / bridges, verify integrity
3. Rebuild marts, merge priority snapshot
4. Upload warehouse to MinIO
"""
from datetime import datetime, timedelta
from airflow import DAG
from airflow.operators.python import PythonOperator
from airflow.operators.empty import EmptyOperator
import logging
import os
import sys

sys.path.insert(0, '/opt/airflow')

logger = logging.getLogger(__name__)

SOURCE_URI = os.getenv('JOBMART_SOURCE', 's3://jobmart-raw/job_postings_flat.csv')
LOCAL_DB_PATH = os.getenv('DUCKDB_PATH', '/tmp/jobmart/jobmart.duckdb')

default_args = {
    'owner': 'airflow',
    'depends_on_past': False,
    'retries': 1,
    'retry_delay': timedelta(minutes=5),
    'email_on_failure': False,
}


def _run_steps(step_names):
    from jobmart.etl import run_pipeline
    from jobmart.storage import backup_warehouse, download_warehouse, upload_warehouse

    download_warehouse(LOCAL_DB_PATH)
    backup_warehouse(LOCAL_DB_PATH)

    report = run_pipeline(SOURCE_URI, db_path=LOCAL_DB_PATH, step_names=step_names)
    for line in report.summary_lines():
        logger.info(line)

    if not report.success:
        raise RuntimeError(report.error)

    upload_warehouse(LOCAL_DB_PATH)
    return report.to_dict()


def build_warehouse_task(**kwargs):
    """Source → staging → dimensions → facts/bridges → verify"""
    from jobmart.etl import WAREHOUSE_STEP_NAMES

    return _run_steps(WAREHOUSE_STEP_NAMES)


def build_marts_task(**kwargs):
    """Rebuild marts + incremental priority snapshot"""
    from jobmart.etl import MART_STEP_NAMES

    return _run_steps(MART_STEP_NAMES)


with DAG(
    'jobmart_warehouse',
    default_args=default_args,
    description='Daily flat CSV → DuckDB star schema → marts',
    schedule_interval='0 7 * * *',
    start_date=datetime(2024, 1, 1),
    catchup=False,
    tags=['production', 'warehouse', 'etl'],
    max_active_runs=1,
) as dag:

    start = EmptyOperator(task_id='start')

    build_warehouse = PythonOperator(
        task_id='build_warehouse',
        python_callable=build_warehouse_task,
    )

    build_marts = PythonOperator(
        task_id='build_marts',
        python_callable=build_marts_task,
    )

    end = EmptyOperator(task_id='end')

    start >> build_warehouse >> build_marts >> end
