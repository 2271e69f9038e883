"""
Partition-drop execution for a single table.

The executor resolves the table's designated timestamp column, computes the
cutoff for the policy and submits one ALTER TABLE ... DROP PARTITION
statement. Every step raises its own error type; nothing is retried here.
"""

import re
from datetime import datetime
from typing import Callable, Optional

import structlog

from .retention_catalog import CatalogInterface
from .retention_cutoff import CUTOFF_PATTERN, compute_cutoff, format_cutoff, utc_now
from .retention_errors import CatalogLookupFailed
from .retention_models import RetentionPolicy

logger = structlog.get_logger(__name__)

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(table: str, name: str) -> str:
    """Quote `name` unless it is a plain identifier."""
    if _PLAIN_IDENTIFIER.match(name):
        return name
    if '"' in name or not name:
        raise CatalogLookupFailed(table, reason=f"unsafe identifier {name!r}")
    return f'"{name}"'


def build_statement(table: str, column: str, cutoff: datetime) -> str:
    """Statement dropping every partition of `table` older than `cutoff`."""
    return (
        f"ALTER TABLE {quote_identifier(table, table)} DROP PARTITION "
        f"WHERE {quote_identifier(table, column)} < "
        f"to_timestamp('{format_cutoff(cutoff)}', '{CUTOFF_PATTERN}')"
    )


class RetentionExecutor:
    """Applies a retention policy to one table at a time."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, dry_run: bool = False):
        """
        Args:
            clock: Returns the current aware UTC time; read on every execution.
            dry_run: Build and log statements without submitting them.
        """
        self.clock = clock or utc_now
        self.dry_run = dry_run
        self.last_cutoff: Optional[datetime] = None
        self.last_statement: Optional[str] = None

    def execute(self, catalog: CatalogInterface, table: str, policy: RetentionPolicy) -> int:
        """
        Drop every partition of `table` that falls entirely before the cutoff.

        Returns:
            Rows removed. Zero when nothing was old enough, or in dry-run mode.

        Raises:
            CatalogLookupFailed: the timestamp column could not be resolved.
            UnsupportedGranularity: the policy has no fixed-length cutoff.
            StatementFailed: the database rejected the drop.
        """
        log = logger.bind(table=table, policy=policy.describe())

        column = catalog.get_timestamp_column(table)
        cutoff = compute_cutoff(policy, self.clock())
        statement = build_statement(table, column, cutoff)

        self.last_cutoff = cutoff
        self.last_statement = statement

        if self.dry_run:
            log.info("dry_run_statement", cutoff=format_cutoff(cutoff), statement=statement)
            return 0

        log.debug("dropping_partitions", cutoff=format_cutoff(cutoff), statement=statement)
        rows = catalog.execute(statement, table)
        log.info("partitions_dropped", cutoff=format_cutoff(cutoff), rows_deleted=rows)
        return rows
