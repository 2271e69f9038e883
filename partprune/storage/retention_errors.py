"""
Error types for the retention system.

Errors are grouped by the layer that raises them so callers can tell a bad
input apart from a catalog failure or a failed partition drop:

- RetentionValidationError: rejected before any database mutation
- CatalogLookupError: the catalog could not describe a table
- MutationError: the partition-drop statement failed
- StartupError: bad configuration or no connection (fatal)
"""

from typing import Any, Optional


class RetentionError(Exception):
    """Base class for every error raised by the retention system."""

    kind = "retention"


class RetentionValidationError(RetentionError):
    """Input rejected before touching the database."""

    kind = "validation"


class InvalidAmount(RetentionValidationError):
    """Retention amount is not a positive integer."""

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"invalid amount {amount}")


class InvalidGranularity(RetentionValidationError):
    """Granularity cannot carry a retention policy (NONE)."""

    def __init__(self, granularity):
        self.granularity = granularity
        super().__init__(f"invalid granularity {granularity.format()}")


class UnsupportedGranularity(RetentionValidationError):
    """Granularity has no fixed-length cutoff (MONTH, YEAR)."""

    def __init__(self, granularity):
        self.granularity = granularity
        super().__init__(f"unsupported granularity {granularity.format()}")


class UnknownGranularity(RetentionValidationError):
    """Label is not part of the granularity vocabulary."""

    def __init__(self, label: Any):
        self.label = label
        super().__init__(f"unknown granularity value: '{label}'")


class NoInputSupplied(RetentionValidationError):
    """Operator answered a prompt with nothing."""

    def __init__(self, question: str):
        self.question = question
        super().__init__(f"no answer supplied to '{question}'")


class CatalogLookupError(RetentionError):
    """The catalog could not describe a table."""

    kind = "lookup"


class CatalogLookupFailed(CatalogLookupError):
    """Catalog query for a table failed."""

    def __init__(self, table: str, cause: Optional[BaseException] = None, reason: Optional[str] = None):
        self.table = table
        self.cause = cause
        detail = reason or (str(cause) if cause is not None else "lookup failed")
        super().__init__(f"catalog lookup failed for table '{table}': {detail}")


class TableNotFound(CatalogLookupFailed):
    """No catalog entry matches the table name."""

    def __init__(self, table: str):
        super().__init__(table, reason="table not found")


class MutationError(RetentionError):
    """A mutating statement failed in the database."""

    kind = "mutation"


class StatementFailed(MutationError):
    """The partition-drop statement was rejected by the database."""

    def __init__(self, table: str, statement: str, cause: Optional[BaseException] = None):
        self.table = table
        self.statement = statement
        self.cause = cause
        super().__init__(f"statement failed for table '{table}': {cause}")


class StartupError(RetentionError):
    """Fatal error before any table is processed."""

    kind = "startup"


class ConfigError(StartupError):
    """Configuration file missing, unreadable or malformed."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"invalid config {path}: {reason}")


class ConnectionFailed(StartupError):
    """Could not open the database connection."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"could not connect to database: {cause}")


class LogSetupFailed(StartupError):
    """Log or audit directory could not be created or opened."""

    def __init__(self, path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"cannot write logs to {path}: {cause}")
