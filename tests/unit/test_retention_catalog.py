"""
Unit tests for the QuestDB catalog.

The psycopg2 connection is mocked; no database is needed.
"""

from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from partprune.storage.retention_catalog import QuestDBCatalog
from partprune.storage.retention_errors import (
    CatalogLookupFailed,
    ConnectionFailed,
    StatementFailed,
    TableNotFound,
)
from partprune.storage.retention_models import Granularity


def make_connection(rows=None, rowcount=0, execute_error=None):
    """Mock connection whose cursors return `rows` and report `rowcount`."""
    cursor = MagicMock()
    cursor.fetchall.return_value = rows or []
    cursor.rowcount = rowcount
    if execute_error is not None:
        cursor.execute.side_effect = execute_error

    connection = MagicMock()
    connection.closed = False
    connection.cursor.return_value.__enter__.return_value = cursor
    return connection, cursor


TRADES_ROW = {"name": "trades", "partitionBy": "DAY", "designatedTimestamp": "timestamp"}


class TestQuestDBCatalog:
    """Test cases for QuestDBCatalog."""

    def test_get_table(self):
        connection, cursor = make_connection([TRADES_ROW])
        catalog = QuestDBCatalog(connection)

        table = catalog.get_table("trades")

        assert table.name == "trades"
        assert table.granularity is Granularity.DAY
        cursor.execute.assert_called_once_with(QuestDBCatalog.TABLE_QUERY, ("trades",))

    def test_get_table_not_found(self):
        connection, _ = make_connection([])
        with pytest.raises(TableNotFound):
            QuestDBCatalog(connection).get_table("missing")

    def test_get_table_query_error(self):
        connection, _ = make_connection(execute_error=psycopg2.OperationalError("server closed"))
        with pytest.raises(CatalogLookupFailed) as exc_info:
            QuestDBCatalog(connection).get_table("trades")
        assert "server closed" in str(exc_info.value)

    def test_get_timestamp_column(self):
        connection, _ = make_connection([TRADES_ROW])
        assert QuestDBCatalog(connection).get_timestamp_column("trades") == "timestamp"

    def test_get_timestamp_column_missing(self):
        connection, _ = make_connection([{"name": "ref", "partitionBy": "NONE", "designatedTimestamp": None}])
        with pytest.raises(CatalogLookupFailed):
            QuestDBCatalog(connection).get_timestamp_column("ref")

    def test_list_tables_skips_unknown_labels(self):
        rows = [TRADES_ROW, {"name": "odd", "partitionBy": "WEEK", "designatedTimestamp": "ts"}]
        connection, _ = make_connection(rows)

        tables = QuestDBCatalog(connection).list_tables()

        assert [t.name for t in tables] == ["trades"]

    def test_execute_returns_rowcount(self):
        connection, cursor = make_connection(rowcount=42)
        assert QuestDBCatalog(connection).execute("ALTER TABLE trades DROP PARTITION ...", "trades") == 42

    def test_execute_unknown_rowcount_is_zero(self):
        connection, _ = make_connection(rowcount=-1)
        assert QuestDBCatalog(connection).execute("ALTER TABLE trades DROP PARTITION ...", "trades") == 0

    def test_execute_error(self):
        connection, _ = make_connection(execute_error=psycopg2.ProgrammingError("partition locked"))

        with pytest.raises(StatementFailed) as exc_info:
            QuestDBCatalog(connection).execute("ALTER TABLE trades DROP PARTITION ...", "trades")

        assert exc_info.value.table == "trades"
        assert isinstance(exc_info.value.cause, psycopg2.ProgrammingError)

    def test_connect_closes_connection(self):
        connection, _ = make_connection()
        with patch('partprune.storage.retention_catalog.psycopg2.connect', return_value=connection) as connect:
            with QuestDBCatalog.connect("host=db") as catalog:
                assert catalog.connection is connection
                assert connection.autocommit is True

        connect.assert_called_once_with("host=db")
        connection.close.assert_called_once()

    def test_connect_closes_on_error(self):
        connection, _ = make_connection()
        with patch('partprune.storage.retention_catalog.psycopg2.connect', return_value=connection):
            with pytest.raises(RuntimeError):
                with QuestDBCatalog.connect("host=db"):
                    raise RuntimeError("boom")
        connection.close.assert_called_once()

    def test_connect_failure(self):
        with patch('partprune.storage.retention_catalog.psycopg2.connect',
                   side_effect=psycopg2.OperationalError("connection refused")):
            with pytest.raises(ConnectionFailed):
                with QuestDBCatalog.connect("host=db"):
                    pass
