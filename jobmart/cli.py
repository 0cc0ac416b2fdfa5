"""
Command line entry point.

    jobmart data/job_postings_flat.csv
    jobmart s3://raw/job_postings_flat.csv --db data/jobmart.duckdb --sync-warehouse

Exit status 0 on success, 1 when a step fails (the failing step is named
on stderr).
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

import duckdb
from minio.error import S3Error

from jobmart.config import MERGE_DELETE_UNMATCHED, WAREHOUSE_CONFIG, parse_priority_roles
from jobmart.etl import PIPELINE_STEPS, PipelineError, PipelineSettings, RunReport, run_pipeline
from jobmart.storage import backup_warehouse, download_warehouse, upload_warehouse

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="jobmart",
        description="Load a flat job postings file into the jobmart warehouse and rebuild its marts."
    )
    p.add_argument(
        "source",
        help="Source CSV: local path, http(s) URL, or s3:// / minio:// object URI."
    )
    p.add_argument(
        "--db",
        default=None,
        help=f"Warehouse file (default: $DUCKDB_PATH or {WAREHOUSE_CONFIG['path']})."
    )
    p.add_argument(
        "--delete-unmatched",
        action=argparse.BooleanOptionalAction,
        default=MERGE_DELETE_UNMATCHED,
        help="Let incremental merges delete target rows missing from the batch "
             "(default: $MERGE_DELETE_UNMATCHED, off when unset)."
    )
    p.add_argument(
        "--priority-roles",
        default=None,
        help='Override priority roles, e.g. "Data Engineer:1,Software Engineer:3".'
    )
    p.add_argument(
        "--steps",
        default=None,
        help="Comma separated subset of steps to run. Available: "
             + ", ".join(s.name for s in PIPELINE_STEPS)
    )
    p.add_argument(
        "--sync-warehouse",
        action="store_true",
        help="Download the warehouse from MinIO first, back it up, and upload it after a successful run."
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)."
    )
    return p


def print_report(report: RunReport):
    for line in report.summary_lines():
        print(line)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    db_path = args.db or WAREHOUSE_CONFIG['path']
    step_names = [s.strip() for s in args.steps.split(",") if s.strip()] if args.steps else None

    try:
        settings = PipelineSettings(delete_unmatched=args.delete_unmatched)
        if args.priority_roles is not None:
            settings.priority_roles = parse_priority_roles(args.priority_roles)

        if args.sync_warehouse:
            download_warehouse(db_path)
            backup_warehouse(db_path)

        report = run_pipeline(args.source, db_path=db_path, settings=settings, step_names=step_names)
        print_report(report)

        if not report.success:
            print(f"ERROR: {report.error}", file=sys.stderr)
            return 1

        if args.sync_warehouse:
            upload_warehouse(db_path)

        return 0

    except (PipelineError, ValueError, duckdb.Error, S3Error, OSError) as e:
        logger.error(f"Error: {e}", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
