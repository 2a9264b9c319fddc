"""
Unit tests for configuration, server assembly and the CLI entry point
"""

from unittest import mock

import pytest
from fastmcp.server import FastMCP
from pydantic import ValidationError

from sqlgate_mcp import cli, server
from sqlgate_mcp.config import DBConfig, ServerConfig, ValidatorLimits


class TestValidatorLimits:
    """Test validator threshold configuration"""

    def test_defaults(self):
        limits = ValidatorLimits()
        assert limits.max_query_length == 10000
        assert limits.max_subquery_count == 10
        assert limits.max_union_count == 5
        assert limits.max_parentheses_depth == 20
        assert limits.max_hex_encoding_count == 3
        assert limits.max_char_function_count == 10

    def test_frozen(self):
        limits = ValidatorLimits()
        with pytest.raises(ValidationError):
            limits.max_union_count = 50

    def test_rejects_non_positive(self):
        with pytest.raises(ValidationError):
            ValidatorLimits(max_query_length=0)


class TestDBConfig:
    """Test database configuration"""

    def test_defaults(self, db_config):
        assert db_config.driver == "sqlserver"
        assert db_config.port is None
        assert db_config.login_timeout == 5
        assert db_config.query_timeout == 30

    def test_unknown_driver(self):
        with pytest.raises(ValidationError):
            DBConfig(driver="oracle", server="h", database="d", username="u", password="p")

    def test_server_config_defaults(self, db_config):
        config = ServerConfig(db=db_config)
        assert config.namespace == "DB"
        assert config.default_schema is None
        assert config.limits == ValidatorLimits()


class TestServer:
    """Test server assembly"""

    def test_format_namespace(self):
        assert server._format_namespace("DB") == "DB-"
        assert server._format_namespace("DB-") == "DB-"
        assert server._format_namespace("") == ""

    def test_create_server(self, server_config):
        assert isinstance(server.create_server(server_config), FastMCP)

    def test_create_postgres_server(self, pg_config):
        assert isinstance(server.create_server(ServerConfig(db=pg_config, namespace="")), FastMCP)

    def test_main_requires_credentials(self):
        with pytest.raises(ValueError, match="credentials"):
            server.main(db_server="h", db_database="d", db_username="u")

    def test_main_checks_connection_and_runs(self):
        with mock.patch.object(server, "verify_connection") as verify, \
                mock.patch.object(server, "create_server") as create:
            server.main(db_server="h", db_database="d", db_username="u", db_password="p", max_query_length=500)

        config = create.call_args.args[0]
        assert config.limits.max_query_length == 500
        verify.assert_called_once_with(config.db)
        create.return_value.run.assert_called_once_with()


class TestCli:
    """Test environment handling in the CLI"""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DB_DRIVER", "postgres")
        monkeypatch.setenv("DB_SERVER", "pg.local")
        monkeypatch.setenv("DB_PORT", "5433")
        monkeypatch.setenv("DB_DATABASE", "analytics")
        monkeypatch.setenv("DB_USERNAME", "reader")
        monkeypatch.setenv("DB_PASSWORD", "secret")
        monkeypatch.setenv("SQLGATE_MAX_QUERY_LENGTH", "2000")

        with mock.patch.object(cli, "server_main") as server_main:
            cli.main()

        kwargs = server_main.call_args.kwargs
        assert kwargs["driver"] == "postgres"
        assert kwargs["db_port"] == 5433
        assert kwargs["max_query_length"] == 2000
        assert kwargs["schema"] is None

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("DB_PORT", "not-a-port")
        with pytest.raises(ValueError, match="DB_PORT must be an integer"):
            cli._int_env("DB_PORT")

    def test_missing_integer_uses_default(self, monkeypatch):
        monkeypatch.delenv("DB_QUERY_TIMEOUT", raising=False)
        assert cli._int_env("DB_QUERY_TIMEOUT", 30) == 30
