"""
Logging and reporting for the retention system.

This module handles logging setup, the per-table audit trail and run summary
reports.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import structlog

from .retention_errors import LogSetupFailed
from .retention_models import BatchReport, TableOutcome

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_dir: Optional[str] = None):
    """Setup logging configuration for stdlib logging and structlog."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(Path(log_dir) / 'partprune.log'))
        except OSError as e:
            raise LogSetupFailed(log_dir, e) from e

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=['event', 'table']),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class RetentionLogger:
    """Writes the audit trail and summary reports for retention runs."""

    def __init__(self, logs_dir: str = "logs/retention"):
        self.logs_dir = Path(logs_dir)
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LogSetupFailed(self.logs_dir, e) from e

    def log_outcome(self, outcome: TableOutcome, amount: Any = None, mode: str = "batch"):
        """Append one table outcome to today's audit file."""
        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "mode": mode,
            "requested_amount": amount,
            **outcome.to_dict(),
        }

        if outcome.succeeded:
            logger.info(f"Retention applied: {outcome.message}")
        else:
            logger.error(f"Retention failed: {outcome.message}")

        self._store_operation_log(log_entry)

    def _store_operation_log(self, log_entry: Dict[str, Any]):
        try:
            log_date = datetime.now().strftime("%Y-%m-%d")
            log_file = self.logs_dir / f"retention_runs_{log_date}.jsonl"

            with open(log_file, 'a') as f:
                f.write(json.dumps(log_entry) + '\n')

        except OSError as e:
            logger.error(f"Failed to store operation log: {e}")

    def create_run_summary(self, report: BatchReport, requested: Dict[str, Any],
                           duration_seconds: float, dry_run: bool = False) -> Dict[str, Any]:
        """Build and save the summary report for a batch run."""
        failures = report.failures
        summary = {
            "report_metadata": {
                "generated_at": datetime.now().isoformat(),
                "report_type": "retention_run_summary",
                "dry_run": dry_run,
            },
            "overall_summary": {
                "tables_requested": len(requested),
                "tables_succeeded": len(report) - len(failures),
                "tables_failed": len(failures),
                "total_rows_deleted": report.total_rows_deleted,
                "duration_seconds": round(duration_seconds, 3),
            },
            "failures_by_kind": self._count_kinds(failures.values()),
            "tables": [
                {"requested_amount": requested.get(outcome.table), **outcome.to_dict()}
                for outcome in report
            ],
        }

        self._save_summary_report(summary)
        return summary

    @staticmethod
    def _count_kinds(outcomes: Iterable[TableOutcome]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for outcome in outcomes:
            counts[outcome.error.kind] = counts.get(outcome.error.kind, 0) + 1
        return counts

    def _save_summary_report(self, report: Dict[str, Any]):
        try:
            reports_dir = self.logs_dir / "reports"
            reports_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            report_file = reports_dir / f"run_summary_{timestamp}.json"

            with open(report_file, 'w') as f:
                json.dump(report, f, indent=2)

            logger.info(f"Run summary report saved: {report_file}")

        except OSError as e:
            logger.error(f"Failed to save summary report: {e}")
