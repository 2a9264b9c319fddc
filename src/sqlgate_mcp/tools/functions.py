"""Catalog introspection tools - database functions and their source"""

import json
import logging
from typing import Optional

from pydantic import Field
from fastmcp.exceptions import ToolError
from fastmcp.server import FastMCP
from fastmcp.tools.tool import ToolResult, TextContent
from mcp.types import ToolAnnotations

from sqlgate_mcp.config import DBConfig
from sqlgate_mcp.db import execute_query
from sqlgate_mcp.params import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    get_pagination,
    get_valid_schema,
    is_valid_identifier,
)
from sqlgate_mcp.query_builder import FUNCTION_TYPES, QueryBuilder

logger = logging.getLogger("SQLGate_MCP")

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _format_timestamp(value) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "strftime"):
        return value.strftime(_TIMESTAMP_FORMAT)
    return str(value)


def _list_functions(
    config: DBConfig,
    builder: QueryBuilder,
    schema: Optional[str] = None,
    function_type: Optional[str] = None,
    name_filter: Optional[str] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> dict:
    try:
        schema = get_valid_schema(schema)
    except ValueError as e:
        raise ToolError(str(e))

    function_type = function_type or "all"
    if function_type not in FUNCTION_TYPES:
        raise ToolError("Invalid function type. Use: scalar, table, or all")

    pagination = get_pagination(page, page_size, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
    sql, params = builder.list_functions_query(
        schema, name_filter, function_type, pagination.page_size, pagination.offset
    )
    _, rows = execute_query(config, sql, params)

    functions = [
        {
            "schema": routine_schema,
            "name": routine_name,
            "type": routine_type,
            "created": _format_timestamp(created),
            "last_altered": _format_timestamp(last_altered),
        }
        for routine_schema, routine_name, routine_type, created, last_altered in rows
    ]
    return {
        "functions": functions,
        "pagination": {
            "page": pagination.page,
            "page_size": pagination.page_size,
            "has_previous": pagination.has_previous,
        },
        "filter": {
            "schema": schema or "",
            "type": function_type,
            "name_filter": name_filter or "",
        },
    }


def _get_function_code(
    config: DBConfig,
    builder: QueryBuilder,
    function_name: str,
    schema: Optional[str] = None,
    default_schema: Optional[str] = None,
) -> str:
    if not is_valid_identifier(function_name):
        raise ToolError("Invalid function name")
    try:
        schema = get_valid_schema(schema, default_schema)
    except ValueError as e:
        raise ToolError(str(e))

    sql, params = builder.get_function_code_query(schema, function_name)
    _, rows = execute_query(config, sql, params, row_limit=1)
    if not rows:
        raise ToolError("Function not found")

    definition = rows[0][0]
    if not definition:
        raise ToolError("Function code not available")
    return definition


def register_function_tools(
    mcp: FastMCP,
    namespace_prefix: str,
    db_config: DBConfig,
    builder: QueryBuilder,
    default_schema: str,
):
    """Register function listing and source retrieval tools"""

    @mcp.tool(
        name=f"{namespace_prefix}list_functions",
        annotations=ToolAnnotations(
            title="List Functions",
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False
        )
    )
    def list_functions(
        schema: Optional[str] = Field(None, description="Schema name (optional)"),
        function_type: str = Field("all", description="Function type: 'scalar', 'table' or 'all' (default: all)"),
        name_filter: Optional[str] = Field(None, description="Case-insensitive substring of the function name (optional)"),
        page: int = Field(DEFAULT_PAGE, description="Page number (default: 1)"),
        page_size: int = Field(DEFAULT_PAGE_SIZE, description=f"Items per page (default: {DEFAULT_PAGE_SIZE}, maximum: {MAX_PAGE_SIZE})")
    ) -> ToolResult:
        """List database functions (scalar and table-valued) with pagination.
        Out-of-range page values are corrected rather than rejected."""
        result = _list_functions(db_config, builder, schema, function_type, name_filter, page, page_size)
        return ToolResult(content=[TextContent(type="text", text=json.dumps(result, indent=2))])

    @mcp.tool(
        name=f"{namespace_prefix}get_function_code",
        annotations=ToolAnnotations(
            title="Get Function Code",
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False
        )
    )
    def get_function_code(
        function_name: str = Field(..., description="Function name"),
        schema: Optional[str] = Field(None, description=f"Schema name (optional, default: {default_schema})")
    ) -> ToolResult:
        """Return the full source code of a database function."""
        definition = _get_function_code(db_config, builder, function_name, schema, default_schema)
        return ToolResult(content=[TextContent(type="text", text=definition)])
