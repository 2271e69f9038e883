"""
Data models for the retention system.

This module contains the data classes and enums used by the retention system.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .retention_errors import (
    InvalidAmount,
    InvalidGranularity,
    RetentionError,
    UnknownGranularity,
)


class Granularity(Enum):
    """Partitioning unit of a table, as labelled by the catalog."""
    NONE = "NONE"
    YEAR = "YEAR"
    MONTH = "MONTH"
    DAY = "DAY"
    HOUR = "HOUR"

    @classmethod
    def parse(cls, text: str) -> "Granularity":
        """Parse an exact, case-sensitive catalog label."""
        if isinstance(text, str):
            for member in cls:
                if member.value == text:
                    return member
        raise UnknownGranularity(text)

    def format(self) -> str:
        """Return the catalog label."""
        return self.value

    @property
    def unit_name(self) -> str:
        return self.value.lower()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RetentionPolicy:
    """How many units of a table's own granularity to keep."""
    amount: int
    granularity: Granularity

    @classmethod
    def validate(cls, amount: int, granularity: Granularity) -> "RetentionPolicy":
        """
        Build a policy, rejecting combinations that cannot be enforced.

        Raises:
            InvalidGranularity: granularity is NONE.
            InvalidAmount: amount is not a positive integer.
        """
        if granularity is Granularity.NONE:
            raise InvalidGranularity(granularity)

        # bool is an int subclass but never a meaningful amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(amount)

        return cls(amount=amount, granularity=granularity)

    def describe(self) -> str:
        unit = self.granularity.unit_name
        return f"{self.amount} {unit}{'s' if self.amount != 1 else ''}"


@dataclass(frozen=True)
class TableDescriptor:
    """A table as reported by the database catalog."""
    name: str
    granularity: Granularity
    timestamp_column: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TableDescriptor":
        """Translate one `tables()` row."""
        return cls(
            name=row["name"],
            granularity=Granularity.parse(row.get("partitionBy")),
            timestamp_column=row.get("designatedTimestamp") or None,
        )


@dataclass
class TableOutcome:
    """Result of enforcing retention on one table."""
    table: str
    rows_deleted: Optional[int] = None
    error: Optional[RetentionError] = None
    dry_run: bool = False

    def __post_init__(self):
        if (self.rows_deleted is None) == (self.error is None):
            raise ValueError("TableOutcome needs exactly one of rows_deleted or error")

    @classmethod
    def success(cls, table: str, rows_deleted: int, dry_run: bool = False) -> "TableOutcome":
        return cls(table=table, rows_deleted=rows_deleted, dry_run=dry_run)

    @classmethod
    def failure(cls, table: str, error: RetentionError) -> "TableOutcome":
        return cls(table=table, error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        """Human-readable line for this table."""
        if self.error is not None:
            return f"error evaluating table '{self.table}': {self.error}"
        prefix = "[dry-run] " if self.dry_run else ""
        return f"{prefix}{self.rows_deleted} rows deleted from {self.table}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "status": "success" if self.succeeded else "failed",
            "rows_deleted": self.rows_deleted,
            "error_kind": self.error.kind if self.error is not None else None,
            "error_type": type(self.error).__name__ if self.error is not None else None,
            "error_message": str(self.error) if self.error is not None else None,
            "dry_run": self.dry_run,
        }


@dataclass
class BatchReport:
    """Outcomes of one batch run, keyed by table name in iteration order."""
    outcomes: "OrderedDict[str, TableOutcome]" = field(default_factory=OrderedDict)

    def record(self, outcome: TableOutcome):
        if outcome.table in self.outcomes:
            raise ValueError(f"duplicate outcome for table '{outcome.table}'")
        self.outcomes[outcome.table] = outcome

    def __getitem__(self, table: str) -> TableOutcome:
        return self.outcomes[table]

    def __contains__(self, table: str) -> bool:
        return table in self.outcomes

    def __iter__(self):
        return iter(self.outcomes.values())

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def total_rows_deleted(self) -> int:
        return sum(o.rows_deleted for o in self.outcomes.values() if o.succeeded)

    @property
    def failures(self) -> Dict[str, TableOutcome]:
        return {name: o for name, o in self.outcomes.items() if not o.succeeded}

    @property
    def succeeded(self) -> bool:
        return not self.failures
