"""
Catalog access for QuestDB over the PostgreSQL wire protocol.

This module provides the abstract catalog interface used by the retention
executor and runners, and its psycopg2-backed implementation.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

import psycopg2
import psycopg2.extras

from .retention_errors import (
    CatalogLookupFailed,
    ConnectionFailed,
    StatementFailed,
    TableNotFound,
    UnknownGranularity,
)
from .retention_models import TableDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CONN_STR = "host=localhost user=admin password=quest port=8812"


class CatalogInterface(ABC):
    """Abstract interface over the database catalog and statement execution."""

    @abstractmethod
    def list_tables(self) -> List[TableDescriptor]:
        """Return every table known to the catalog."""
        pass

    @abstractmethod
    def get_table(self, name: str) -> TableDescriptor:
        """Return the catalog entry for `name`."""
        pass

    @abstractmethod
    def get_timestamp_column(self, name: str) -> str:
        """Return the designated timestamp column of `name`."""
        pass

    @abstractmethod
    def execute(self, statement: str, table: str) -> int:
        """Submit a mutating statement against `table` and return the rows affected."""
        pass

    def close(self) -> None:
        pass


class QuestDBCatalog(CatalogInterface):
    """Catalog backed by a single psycopg2 connection."""

    TABLES_QUERY = "SELECT * FROM tables()"
    TABLE_QUERY = "SELECT * FROM tables() WHERE name = %s"

    def __init__(self, connection):
        self.connection = connection

    @classmethod
    @contextmanager
    def connect(cls, conn_str: str = DEFAULT_CONN_STR) -> Iterator["QuestDBCatalog"]:
        """Open a connection for the lifetime of the `with` block."""
        try:
            connection = psycopg2.connect(conn_str)
        except psycopg2.Error as e:
            raise ConnectionFailed(e) from e
        connection.autocommit = True
        logger.info("Connected to database")

        catalog = cls(connection)
        try:
            yield catalog
        finally:
            catalog.close()

    def _query(self, query: str, params=None) -> List[Dict[str, Any]]:
        with self.connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def _fetch_row(self, name: str) -> Dict[str, Any]:
        try:
            rows = self._query(self.TABLE_QUERY, (name,))
        except psycopg2.Error as e:
            raise CatalogLookupFailed(name, e) from e
        if not rows:
            raise TableNotFound(name)
        return rows[0]

    def list_tables(self) -> List[TableDescriptor]:
        try:
            rows = self._query(self.TABLES_QUERY)
        except psycopg2.Error as e:
            raise CatalogLookupFailed("*", e) from e

        tables = []
        for row in rows:
            try:
                tables.append(TableDescriptor.from_row(row))
            except UnknownGranularity as e:
                logger.warning(f"Skipping table {row.get('name')}: {e}")
        return tables

    def get_table(self, name: str) -> TableDescriptor:
        return TableDescriptor.from_row(self._fetch_row(name))

    def get_timestamp_column(self, name: str) -> str:
        column = self._fetch_row(name).get("designatedTimestamp")
        if not column:
            raise CatalogLookupFailed(name, reason="table has no designated timestamp")
        return column

    def execute(self, statement: str, table: str) -> int:
        logger.debug(f"Executing: {statement}")
        try:
            with self.connection.cursor() as cursor:
                cursor.execute(statement)
                # -1 means the driver could not report a count
                return max(cursor.rowcount, 0)
        except psycopg2.Error as e:
            raise StatementFailed(table, statement, e) from e

    def close(self) -> None:
        if self.connection is not None and not self.connection.closed:
            self.connection.close()
            logger.info("Database connection closed")
