"""
Unit tests for database connection management

Driver modules are replaced with mocks; no database is contacted.
"""

from unittest import mock

import pytest
from fastmcp.exceptions import ToolError

from sqlgate_mcp import db


@pytest.fixture
def fake_pymssql():
    with mock.patch.object(db, "pymssql") as fake:
        yield fake


@pytest.fixture
def fake_psycopg2():
    with mock.patch.object(db, "psycopg2") as fake:
        yield fake


def _connection_returning(columns, rows):
    conn = mock.MagicMock()
    cursor = conn.cursor.return_value
    cursor.description = [(name, None) for name in columns] if columns else None
    cursor.fetchmany.return_value = rows
    cursor.fetchall.return_value = rows
    return conn, cursor


class TestGetConnection:
    """Test driver selection and connection parameters"""

    def test_sqlserver(self, db_config, fake_pymssql):
        db.get_connection(db_config)
        fake_pymssql.connect.assert_called_once_with(
            server="db.example.test",
            user="reader",
            password="secret",
            database="analytics",
            login_timeout=5,
            timeout=30,
        )

    def test_sqlserver_port(self, db_config, fake_pymssql):
        db.get_connection(db_config.model_copy(update={"port": 1444}))
        assert fake_pymssql.connect.call_args.kwargs["port"] == "1444"

    def test_postgres(self, pg_config, fake_psycopg2):
        db.get_connection(pg_config)
        kwargs = fake_psycopg2.connect.call_args.kwargs
        assert kwargs["host"] == "pg.example.test"
        assert kwargs["port"] == 5433
        assert kwargs["dbname"] == "analytics"
        assert kwargs["connect_timeout"] == 5
        assert kwargs["options"] == "-c statement_timeout=30000"

    def test_failure_becomes_tool_error(self, db_config, fake_pymssql):
        fake_pymssql.connect.side_effect = RuntimeError("login failed")
        with pytest.raises(ToolError, match="Database connection failed: login failed"):
            db.get_connection(db_config)


class TestExecuteQuery:
    """Test statement execution"""

    def test_returns_columns_and_rows(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning(["a", "b"], [(1, 2), (3, 4)])
        fake_pymssql.connect.return_value = conn

        columns, rows = db.execute_query(db_config, "SELECT a, b FROM t", row_limit=10)

        assert columns == ["a", "b"]
        assert rows == [(1, 2), (3, 4)]
        cursor.execute.assert_called_once_with("SELECT a, b FROM t")
        cursor.fetchmany.assert_called_once_with(10)
        conn.close.assert_called_once()

    def test_zero_row_limit_still_caps(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning(["a"], [])
        fake_pymssql.connect.return_value = conn

        db.execute_query(db_config, "SELECT a FROM big", row_limit=0)

        cursor.fetchmany.assert_called_once_with(0)
        cursor.fetchall.assert_not_called()

    def test_binds_parameters(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning(["a"], [(1,)])
        fake_pymssql.connect.return_value = conn

        db.execute_query(db_config, "SELECT a FROM t WHERE id = %s", [7])

        cursor.execute.assert_called_once_with("SELECT a FROM t WHERE id = %s", (7,))
        cursor.fetchall.assert_called_once()

    def test_no_result_set(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning([], [])
        fake_pymssql.connect.return_value = conn

        assert db.execute_query(db_config, "SELECT 1") == ([], [])
        cursor.fetchall.assert_not_called()

    def test_execution_error_closes_connection(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning(["a"], [])
        cursor.execute.side_effect = RuntimeError("timeout expired")
        fake_pymssql.connect.return_value = conn

        with pytest.raises(ToolError, match="Query execution failed: timeout expired"):
            db.execute_query(db_config, "SELECT a FROM t")
        conn.close.assert_called_once()


class TestVerifyConnection:
    """Test the startup connection check"""

    def test_success(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning(["x"], [(1,)])
        fake_pymssql.connect.return_value = conn

        db.verify_connection(db_config)

        cursor.execute.assert_called_once_with("SELECT 1")
        conn.close.assert_called_once()

    def test_failure(self, db_config, fake_pymssql):
        conn, cursor = _connection_returning(["x"], [])
        cursor.execute.side_effect = RuntimeError("boom")
        fake_pymssql.connect.return_value = conn

        with pytest.raises(ToolError, match="connection check failed"):
            db.verify_connection(db_config)
        conn.close.assert_called_once()
