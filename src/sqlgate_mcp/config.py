"""SQLGate_MCP configuration models"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class DBConfig(BaseModel):
    """Analytical database connection configuration"""
    driver: Literal["sqlserver", "postgres"] = Field("sqlserver", description="Database driver")
    server: str = Field(..., description="Database server host")
    port: Optional[int] = Field(None, description="Database server port (driver default when omitted)")
    database: str = Field(..., description="Database name")
    username: str = Field(..., description="Database username")
    password: str = Field(..., description="Database password")
    login_timeout: int = Field(5, ge=1, description="Seconds to wait when opening a connection")
    query_timeout: int = Field(30, ge=1, description="Seconds a single query may run")


class ValidatorLimits(BaseModel):
    """Numeric thresholds applied by the query validator"""
    model_config = ConfigDict(frozen=True)

    max_query_length: int = Field(10000, ge=1, description="Maximum query length in characters")
    max_subquery_count: int = Field(10, ge=1, description="Maximum SELECT occurrences")
    max_union_count: int = Field(5, ge=1, description="Maximum UNION occurrences")
    max_parentheses_depth: int = Field(20, ge=1, description="Maximum parenthesis nesting depth")
    max_hex_encoding_count: int = Field(3, ge=1, description="Maximum hexadecimal literals")
    max_char_function_count: int = Field(10, ge=1, description="Maximum CHAR()/NCHAR() calls")


class ServerConfig(BaseModel):
    """Complete SQLGate_MCP server configuration"""
    db: DBConfig = Field(..., description="Database connection configuration")
    limits: ValidatorLimits = Field(default_factory=ValidatorLimits, description="Query validator thresholds")
    namespace: str = Field("DB", description="Tool namespace prefix")
    default_schema: Optional[str] = Field(None, description="Schema used by catalog tools when none is given")
    row_limit: int = Field(1000, ge=1, description="Default maximum rows returned by the query tool")
    log_level: str = Field("INFO", description="Logging level")
