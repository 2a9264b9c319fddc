"""SQLGate_MCP server - creates FastMCP and registers all tool modules"""

import logging
from typing import Literal, Optional

from fastmcp.server import FastMCP

from sqlgate_mcp.config import DBConfig, ServerConfig, ValidatorLimits
from sqlgate_mcp.db import verify_connection
from sqlgate_mcp.query_builder import get_query_builder
from sqlgate_mcp.tools.functions import register_function_tools
from sqlgate_mcp.tools.queries import register_query_tools
from sqlgate_mcp.validation import ReadOnlyQueryValidator

logger = logging.getLogger("SQLGate_MCP")


def _format_namespace(namespace: str) -> str:
    """Format namespace with trailing dash if needed"""
    if namespace:
        return namespace if namespace.endswith("-") else namespace + "-"
    return ""


def create_server(config: ServerConfig) -> FastMCP:
    """Create SQLGate_MCP server with all tool modules registered"""
    logging.basicConfig(level=getattr(logging, config.log_level.upper()))

    mcp = FastMCP("SQLGate_MCP")
    ns = _format_namespace(config.namespace)

    validator = ReadOnlyQueryValidator(config.limits)
    builder = get_query_builder(config.db.driver)
    schema = config.default_schema or builder.default_schema

    register_query_tools(mcp, ns, config.db, validator, config.row_limit)
    register_function_tools(mcp, ns, config.db, builder, schema)

    @mcp.prompt("data_exploration")
    def data_exploration() -> str:
        """Guided workflow for exploring the database with read-only queries"""
        return (
            "I want to explore data in this database. Please help me:\n"
            f"1. List the functions available in the {schema} schema\n"
            "2. Read the source of any function that looks relevant\n"
            "3. Write read-only queries to retrieve the data I need\n\n"
            "QUERY RULES:\n"
            "- Only a single SELECT or WITH statement per call; one trailing semicolon is fine\n"
            "- No INSERT/UPDATE/DELETE/DDL, EXEC, transactions or SELECT ... INTO\n"
            "- No WAITFOR/DELAY/SLEEP/BENCHMARK\n"
            f"- At most {config.limits.max_union_count} UNIONs, {config.limits.max_subquery_count} SELECTs "
            f"and {config.limits.max_parentheses_depth} levels of parentheses\n"
            "- Use validate_query to check a query before running it\n\n"
            "What would you like to look at first?"
        )

    return mcp


def main(
    transport: Literal["stdio", "sse", "http"] = "stdio",
    driver: str = "sqlserver",
    db_server: Optional[str] = None,
    db_port: Optional[int] = None,
    db_database: Optional[str] = None,
    db_username: Optional[str] = None,
    db_password: Optional[str] = None,
    query_timeout: int = 30,
    namespace: str = "DB",
    schema: Optional[str] = None,
    max_query_length: int = 10000,
    log_level: str = "INFO",
    host: str = "127.0.0.1",
    port: int = 8000,
    path: str = "/mcp/",
) -> None:
    """Main entry point for the SQLGate_MCP server"""
    if not all([db_server, db_database, db_username, db_password]):
        raise ValueError("All database credentials must be provided")

    config = ServerConfig(
        db=DBConfig(
            driver=driver,
            server=db_server,
            port=db_port,
            database=db_database,
            username=db_username,
            password=db_password,
            query_timeout=query_timeout,
        ),
        limits=ValidatorLimits(max_query_length=max_query_length),
        namespace=namespace,
        default_schema=schema,
        log_level=log_level,
    )

    logger.info("Starting SQLGate_MCP - read-only SQL MCP Server")
    logger.info(f"Database: {driver}://{db_server}/{db_database}")

    mcp = create_server(config)
    verify_connection(config.db)
    if transport == "stdio":
        mcp.run()
    else:
        mcp.run(transport=transport, host=host, port=port, path=path)
