"""Database connection management - one connection per call"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

import psycopg2
import pymssql
from fastmcp.exceptions import ToolError

from sqlgate_mcp.config import DBConfig

logger = logging.getLogger("SQLGate_MCP")


def _connect_sqlserver(config: DBConfig):
    kwargs = dict(
        server=config.server,
        user=config.username,
        password=config.password,
        database=config.database,
        login_timeout=config.login_timeout,
        timeout=config.query_timeout,
    )
    if config.port:
        kwargs["port"] = str(config.port)
    return pymssql.connect(**kwargs)


def _connect_postgres(config: DBConfig):
    kwargs = dict(
        host=config.server,
        dbname=config.database,
        user=config.username,
        password=config.password,
        connect_timeout=config.login_timeout,
        options=f"-c statement_timeout={config.query_timeout * 1000}",
    )
    if config.port:
        kwargs["port"] = config.port
    return psycopg2.connect(**kwargs)


def get_connection(config: DBConfig):
    """Get a per-query database connection"""
    try:
        if config.driver == "postgres":
            return _connect_postgres(config)
        return _connect_sqlserver(config)
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise ToolError(f"Database connection failed: {e}")


def verify_connection(config: DBConfig) -> None:
    """Open a connection and run a trivial query; raises ToolError when unreachable"""
    conn = get_connection(config)
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        cursor.close()
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        raise ToolError(f"Database connection check failed: {e}")
    finally:
        conn.close()
    logger.info(f"Connected to {config.driver} database {config.server}/{config.database}")


def execute_query(
    config: DBConfig,
    sql: str,
    params: Optional[Sequence[Any]] = None,
    row_limit: Optional[int] = None,
) -> Tuple[List[str], List[tuple]]:
    """Run a statement with bound parameters and return (columns, rows)"""
    conn = get_connection(config)
    try:
        cursor = conn.cursor()
        if params:
            cursor.execute(sql, tuple(params))
        else:
            cursor.execute(sql)
        columns = [desc[0] for desc in cursor.description] if cursor.description else []
        if not columns:
            rows = []
        elif row_limit is not None:
            rows = cursor.fetchmany(row_limit)
        else:
            rows = cursor.fetchall()
        cursor.close()
    except Exception as e:
        logger.error(f"Query execution failed: {e}")
        raise ToolError(f"Query execution failed: {e}")
    finally:
        conn.close()
    return columns, list(rows)
