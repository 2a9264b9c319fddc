"""Dialect-specific catalog queries (function listing and function source)

These queries are built internally from validated identifiers and bound
parameters, so they do not go through the free-text query validator.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

FUNCTION_TYPES = ("scalar", "table", "all")

Query = Tuple[str, List[Any]]


class QueryBuilder(ABC):
    """Builds parameterized catalog queries for one SQL dialect"""

    default_schema: str = ""

    @abstractmethod
    def list_functions_query(
        self, schema: Optional[str], name_filter: Optional[str], func_type: str, limit: int, offset: int
    ) -> Query:
        raise NotImplementedError

    @abstractmethod
    def get_function_code_query(self, schema: str, function_name: str) -> Query:
        raise NotImplementedError


class SQLServerQueryBuilder(QueryBuilder):
    """SQL Server catalog queries (INFORMATION_SCHEMA and sys views)"""

    default_schema = "dbo"

    def list_functions_query(self, schema, name_filter, func_type, limit, offset):
        sql = (
            "SELECT ROUTINE_SCHEMA, ROUTINE_NAME, "
            "CASE WHEN DATA_TYPE = 'TABLE' THEN 'table' ELSE 'scalar' END AS FUNCTION_TYPE, "
            "CREATED, LAST_ALTERED "
            "FROM INFORMATION_SCHEMA.ROUTINES "
            "WHERE ROUTINE_TYPE = 'FUNCTION'"
        )
        params: List[Any] = []
        if schema:
            sql += " AND ROUTINE_SCHEMA = %s"
            params.append(schema)
        if func_type == "table":
            sql += " AND DATA_TYPE = 'TABLE'"
        elif func_type == "scalar":
            sql += " AND DATA_TYPE <> 'TABLE'"
        if name_filter:
            sql += " AND ROUTINE_NAME LIKE %s"
            params.append(f"%{name_filter}%")
        sql += " ORDER BY ROUTINE_SCHEMA, ROUTINE_NAME OFFSET %s ROWS FETCH NEXT %s ROWS ONLY"
        params.extend([offset, limit])
        return sql, params

    def get_function_code_query(self, schema, function_name):
        sql = (
            "SELECT m.definition "
            "FROM sys.sql_modules m "
            "JOIN sys.objects o ON m.object_id = o.object_id "
            "JOIN sys.schemas s ON o.schema_id = s.schema_id "
            "WHERE s.name = %s AND o.name = %s "
            "AND o.type IN ('FN', 'IF', 'TF', 'FS', 'FT')"
        )
        return sql, [schema, function_name]


class PostgresQueryBuilder(QueryBuilder):
    """PostgreSQL catalog queries (pg_catalog)"""

    default_schema = "public"

    def list_functions_query(self, schema, name_filter, func_type, limit, offset):
        # pg_proc keeps no creation or alteration timestamps
        sql = (
            "SELECT n.nspname AS routine_schema, p.proname AS routine_name, "
            "CASE WHEN p.proretset THEN 'table' ELSE 'scalar' END AS function_type, "
            "NULL AS created, NULL AS last_altered "
            "FROM pg_catalog.pg_proc p "
            "JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace "
            "WHERE p.prokind = 'f' "
            "AND n.nspname NOT IN ('pg_catalog', 'information_schema')"
        )
        params: List[Any] = []
        if schema:
            sql += " AND n.nspname = %s"
            params.append(schema)
        if func_type == "table":
            sql += " AND p.proretset"
        elif func_type == "scalar":
            sql += " AND NOT p.proretset"
        if name_filter:
            sql += " AND p.proname ILIKE %s"
            params.append(f"%{name_filter}%")
        sql += " ORDER BY n.nspname, p.proname LIMIT %s OFFSET %s"
        params.extend([limit, offset])
        return sql, params

    def get_function_code_query(self, schema, function_name):
        sql = (
            "SELECT pg_catalog.pg_get_functiondef(p.oid) "
            "FROM pg_catalog.pg_proc p "
            "JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace "
            "WHERE n.nspname = %s AND p.proname = %s AND p.prokind = 'f' "
            "LIMIT 1"
        )
        return sql, [schema, function_name]


_BUILDERS = {
    "sqlserver": SQLServerQueryBuilder,
    "postgres": PostgresQueryBuilder,
}


def get_query_builder(driver: str) -> QueryBuilder:
    """Return the catalog query builder for a database driver"""
    try:
        return _BUILDERS[driver]()
    except KeyError:
        raise ValueError(f"Unsupported database driver: {driver}") from None
