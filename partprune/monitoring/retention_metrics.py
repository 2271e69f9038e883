"""
Prometheus metrics for retention runs.

Collects per-table metrics including:
- Rows deleted by partition drops
- Table outcomes by status and error kind
- Cutoff applied to each table
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, write_to_textfile

from ..storage.retention_models import TableOutcome


class RetentionMetrics:
    """Metrics recorded while tables are pruned."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize retention metrics.

        Args:
            registry: Optional Prometheus registry. A private one is created if None.
        """
        self.registry = registry or CollectorRegistry()
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

        self.rows_deleted = Counter(
            'partprune_rows_deleted_total',
            'Rows removed by partition drops',
            ['table'],
            registry=self.registry
        )

        self.table_runs = Counter(
            'partprune_table_runs_total',
            'Tables evaluated, by outcome',
            ['table', 'status'],
            registry=self.registry
        )

        self.table_errors = Counter(
            'partprune_table_errors_total',
            'Per-table failures, by error kind',
            ['table', 'kind'],
            registry=self.registry
        )

        self.cutoff_timestamp = Gauge(
            'partprune_cutoff_timestamp_seconds',
            'Cutoff applied to the table on its last run',
            ['table'],
            registry=self.registry
        )

        self.last_run_timestamp = Gauge(
            'partprune_last_run_timestamp_seconds',
            'Unix time the last retention run finished',
            registry=self.registry
        )

    def record_outcome(self, outcome: TableOutcome, cutoff: Optional[datetime] = None) -> None:
        """Record one table's outcome."""
        status = 'success' if outcome.succeeded else 'failed'
        self.table_runs.labels(table=outcome.table, status=status).inc()

        if outcome.succeeded:
            self.rows_deleted.labels(table=outcome.table).inc(outcome.rows_deleted)
            if cutoff is not None:
                self.cutoff_timestamp.labels(table=outcome.table).set(cutoff.timestamp())
        else:
            self.table_errors.labels(table=outcome.table, kind=outcome.error.kind).inc()

    def mark_run_finished(self) -> None:
        self.last_run_timestamp.set(time.time())

    def write_textfile(self, path: str) -> None:
        """Write the registry in the node-exporter textfile format."""
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            write_to_textfile(str(path), self.registry)
            self.logger.debug(f"Metrics written to {path}")
        except OSError as e:
            self.logger.error(f"Failed to write metrics textfile {path}: {e}")

    def get_sample(self, name: str, **labels) -> Optional[float]:
        return self.registry.get_sample_value(name, labels)
