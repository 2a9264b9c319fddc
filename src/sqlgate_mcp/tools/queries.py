"""Free-form read-only query tools"""

import csv
import io
import json
import logging
from typing import Any, List, Optional

from pydantic import Field
from fastmcp.exceptions import ToolError
from fastmcp.server import FastMCP
from fastmcp.tools.tool import ToolResult, TextContent
from mcp.types import ToolAnnotations

from sqlgate_mcp.config import DBConfig
from sqlgate_mcp.db import execute_query
from sqlgate_mcp.validation import ReadOnlyQueryValidator

logger = logging.getLogger("SQLGate_MCP")

DEFAULT_ROW_LIMIT = 1000


def _to_csv(columns: List[str], rows: List[tuple]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows([["" if v is None else v for v in row] for row in rows])
    return buffer.getvalue().rstrip("\n")


def _execute_readonly_query(
    config: DBConfig,
    validator: ReadOnlyQueryValidator,
    sql: str,
    params: Optional[List[Any]] = None,
    row_limit: int = DEFAULT_ROW_LIMIT,
) -> str:
    """Validate a caller-supplied query, run it unchanged and return CSV-formatted results"""
    if row_limit < 1:
        raise ToolError("max_rows must be at least 1")

    outcome = validator.validate(sql)
    if not outcome.accepted:
        logger.warning(f"Query rejected ({outcome.reason.value}): {outcome.detail}")
        raise ToolError(f"Query rejected: {outcome.detail}")

    columns, rows = execute_query(config, sql, params, row_limit)
    if not columns:
        return "Query executed successfully (no results returned)"
    return _to_csv(columns, rows)


def _validation_report(validator: ReadOnlyQueryValidator, sql: str) -> str:
    outcome = validator.validate(sql)
    report = {"accepted": outcome.accepted}
    if not outcome.accepted:
        report["reason"] = outcome.reason.value
        report["detail"] = outcome.detail
        if outcome.subject:
            report["subject"] = outcome.subject
    return json.dumps(report, indent=2)


def register_query_tools(
    mcp: FastMCP,
    namespace_prefix: str,
    db_config: DBConfig,
    validator: ReadOnlyQueryValidator,
    row_limit: int = DEFAULT_ROW_LIMIT,
):
    """Register free-form query execution and dry-run validation tools"""

    @mcp.tool(
        name=f"{namespace_prefix}query",
        annotations=ToolAnnotations(
            title="Run Read-Only Query",
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False
        )
    )
    def query(
        sql_query: str = Field(..., description="Read-only SQL SELECT or WITH query"),
        params: Optional[List[Any]] = Field(None, description="Positional parameters bound to %s placeholders"),
        max_rows: int = Field(row_limit, ge=1, description=f"Maximum rows to return (default {row_limit})")
    ) -> ToolResult:
        """Execute a READ-ONLY SQL query and return the results as CSV.
        Only a single SELECT or WITH statement is allowed; one trailing semicolon is accepted.
        Write, DDL, execution, transaction and administrative commands are rejected before
        the database is contacted, as are time-delay functions and heavily obfuscated queries."""
        result = _execute_readonly_query(db_config, validator, sql_query, params, max_rows)
        return ToolResult(content=[TextContent(type="text", text=result)])

    @mcp.tool(
        name=f"{namespace_prefix}validate_query",
        annotations=ToolAnnotations(
            title="Validate Query",
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False
        )
    )
    def validate_query(
        sql_query: str = Field(..., description="SQL query to check")
    ) -> ToolResult:
        """Check whether a query would be accepted by the query tool without running it.
        Returns JSON with accepted=true, or the rejection reason and detail."""
        return ToolResult(content=[TextContent(type="text", text=_validation_report(validator, sql_query))])
