"""
Retention runners.

BatchRunner applies configured retention amounts to many tables, isolating
failures per table. InteractiveRunner drives a single-table prompt session as
an explicit state machine.
"""

import time
from enum import Enum
from typing import Callable, Dict, List, Optional

import structlog

from ..monitoring.retention_metrics import RetentionMetrics
from .retention_catalog import CatalogInterface
from .retention_errors import (
    InvalidAmount,
    InvalidGranularity,
    NoInputSupplied,
    RetentionError,
)
from .retention_executor import RetentionExecutor
from .retention_logging import RetentionLogger
from .retention_models import (
    BatchReport,
    Granularity,
    RetentionPolicy,
    TableDescriptor,
    TableOutcome,
)

logger = structlog.get_logger(__name__)

TABLE_QUESTION = "which table do you want to truncate?"


def integer_validator(text: str) -> Optional[str]:
    """Prompt validator: error message unless `text` is an integer."""
    try:
        int(text.strip())
    except ValueError as e:
        return f"error: {e}"
    return None


class BatchRunner:
    """Enforces retention across every configured table."""

    def __init__(self, catalog: CatalogInterface, executor: Optional[RetentionExecutor] = None,
                 metrics: Optional[RetentionMetrics] = None,
                 audit: Optional[RetentionLogger] = None):
        self.catalog = catalog
        self.executor = executor or RetentionExecutor()
        self.metrics = metrics
        self.audit = audit

    def run(self, table_to_amount: Dict[str, int]) -> BatchReport:
        """
        Run retention for each requested table.

        One table's failure never stops the others; the report has exactly
        one outcome per requested table.
        """
        report = BatchReport()
        started = time.monotonic()
        logger.info("batch_started", tables=len(table_to_amount), dry_run=self.executor.dry_run)

        for name, amount in table_to_amount.items():
            outcome = self._run_table(name, amount)
            report.record(outcome)

            if self.metrics is not None:
                cutoff = self.executor.last_cutoff if outcome.succeeded else None
                self.metrics.record_outcome(outcome, cutoff)
            if self.audit is not None:
                self.audit.log_outcome(outcome, amount=amount, mode="batch")

        duration = time.monotonic() - started
        if self.metrics is not None:
            self.metrics.mark_run_finished()
        if self.audit is not None:
            self.audit.create_run_summary(report, table_to_amount, duration, dry_run=self.executor.dry_run)

        logger.info(
            "batch_finished",
            tables=len(report),
            failed=len(report.failures),
            rows_deleted=report.total_rows_deleted,
            duration_seconds=round(duration, 3),
        )
        return report

    def _run_table(self, name: str, amount: int) -> TableOutcome:
        log = logger.bind(table=name, amount=amount)
        try:
            descriptor = self.catalog.get_table(name)
            policy = RetentionPolicy.validate(amount, descriptor.granularity)
            rows = self.executor.execute(self.catalog, name, policy)
        except RetentionError as e:
            log.warning("table_failed", error_kind=e.kind, error=str(e))
            return TableOutcome.failure(name, e)

        return TableOutcome.success(name, rows, dry_run=self.executor.dry_run)


class SessionState(Enum):
    """States of an interactive retention session."""
    AWAIT_TABLE_CHOICE = "await_table_choice"
    AWAIT_AMOUNT = "await_amount"
    EXECUTING = "executing"
    TERMINATED = "terminated"


class InteractiveRunner:
    """
    Single-table, single-execution prompt session.

    `prompt` is called with a question, and optionally a validator, and
    returns the operator's answer.
    The session stops at the first error; exactly one execution happens on
    the success path.
    """

    def __init__(self, catalog: CatalogInterface, prompt: Callable[..., str],
                 executor: Optional[RetentionExecutor] = None,
                 output: Callable[[str], None] = print,
                 audit: Optional[RetentionLogger] = None):
        self.catalog = catalog
        self.prompt = prompt
        self.executor = executor or RetentionExecutor()
        self.output = output
        self.audit = audit

        self.state = SessionState.AWAIT_TABLE_CHOICE
        self.history: List[SessionState] = [self.state]
        self.table: Optional[TableDescriptor] = None
        self.policy: Optional[RetentionPolicy] = None
        self.outcome: Optional[TableOutcome] = None

    def _transition(self, state: SessionState):
        self.state = state
        self.history.append(state)

    def _terminate(self, outcome: TableOutcome) -> TableOutcome:
        self.outcome = outcome
        self._transition(SessionState.TERMINATED)
        if self.audit is not None:
            amount = self.policy.amount if self.policy is not None else None
            self.audit.log_outcome(outcome, amount=amount, mode="interactive")
        return outcome

    def run(self) -> TableOutcome:
        """Drive the session to a terminal state and return its outcome."""
        handlers = {
            SessionState.AWAIT_TABLE_CHOICE: self._await_table_choice,
            SessionState.AWAIT_AMOUNT: self._await_amount,
            SessionState.EXECUTING: self._execute,
        }
        while self.state is not SessionState.TERMINATED:
            handlers[self.state]()
        return self.outcome

    def _await_table_choice(self):
        try:
            tables = self.catalog.list_tables()
        except RetentionError as e:
            self._terminate(TableOutcome.failure("?", e))
            return

        for table in tables:
            self.output(f"  {table.name} ({table.granularity.format()})")

        choice = (self.prompt(TABLE_QUESTION) or "").strip()
        if not choice:
            self._terminate(TableOutcome.failure("?", NoInputSupplied(TABLE_QUESTION)))
            return

        match = next((t for t in tables if t.name == choice), None)
        if match is None:
            # listings omit unknown partitionBy labels
            try:
                match = self.catalog.get_table(choice)
            except RetentionError as e:
                self._terminate(TableOutcome.failure(choice, e))
                return

        if match.granularity is Granularity.NONE:
            self._terminate(TableOutcome.failure(choice, InvalidGranularity(match.granularity)))
            return

        self.table = match
        self._transition(SessionState.AWAIT_AMOUNT)

    def _await_amount(self):
        question = f"how many {self.table.granularity.unit_name}s do you want to retain?"
        answer = (self.prompt(question, validator=integer_validator) or "").strip()
        if not answer:
            self._terminate(TableOutcome.failure(self.table.name, NoInputSupplied(question)))
            return

        try:
            amount = int(answer)
        except ValueError:
            self._terminate(TableOutcome.failure(self.table.name, InvalidAmount(answer)))
            return

        try:
            self.policy = RetentionPolicy.validate(amount, self.table.granularity)
        except RetentionError as e:
            self._terminate(TableOutcome.failure(self.table.name, e))
            return

        self._transition(SessionState.EXECUTING)

    def _execute(self):
        self.output("Deleting old partitions...")
        try:
            rows = self.executor.execute(self.catalog, self.table.name, self.policy)
        except RetentionError as e:
            self._terminate(TableOutcome.failure(self.table.name, e))
            return

        self._terminate(TableOutcome.success(self.table.name, rows, dry_run=self.executor.dry_run))
