"""
Shared pytest fixtures - no database required
"""
import pytest

from sqlgate_mcp.config import DBConfig, ServerConfig
from sqlgate_mcp.validation import ReadOnlyQueryValidator


@pytest.fixture
def db_config() -> DBConfig:
    """SQL Server connection settings pointing at a fake host"""
    return DBConfig(server="db.example.test", database="analytics", username="reader", password="secret")


@pytest.fixture
def pg_config() -> DBConfig:
    """PostgreSQL connection settings pointing at a fake host"""
    return DBConfig(
        driver="postgres", server="pg.example.test", port=5433,
        database="analytics", username="reader", password="secret",
    )


@pytest.fixture
def server_config(db_config) -> ServerConfig:
    return ServerConfig(db=db_config)


@pytest.fixture
def validator() -> ReadOnlyQueryValidator:
    """Validator with default thresholds"""
    return ReadOnlyQueryValidator()
