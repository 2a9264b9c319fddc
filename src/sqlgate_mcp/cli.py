"""SQLGate_MCP CLI entry point"""

import logging
import os

from sqlgate_mcp.server import main as server_main

logger = logging.getLogger("SQLGate_MCP")


def _int_env(name: str, default=None):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def main() -> None:
    """CLI entry point - reads env vars and starts the server."""
    log_level = os.getenv("SQLGATE_LOG_LEVEL", "INFO")
    logging.basicConfig(level=getattr(logging, log_level.upper()))

    logger.info("Starting SQLGate_MCP - read-only SQL MCP Server")

    server_main(
        driver=os.getenv("DB_DRIVER", "sqlserver"),
        db_server=os.getenv("DB_SERVER"),
        db_port=_int_env("DB_PORT"),
        db_database=os.getenv("DB_DATABASE"),
        db_username=os.getenv("DB_USERNAME"),
        db_password=os.getenv("DB_PASSWORD"),
        query_timeout=_int_env("DB_QUERY_TIMEOUT", 30),
        namespace=os.getenv("SQLGATE_NAMESPACE", "DB"),
        schema=os.getenv("SQLGATE_SCHEMA") or None,
        max_query_length=_int_env("SQLGATE_MAX_QUERY_LENGTH", 10000),
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
