"""
SQLGate_MCP - read-only SQL MCP Server

An MCP server that runs caller-supplied analytical queries against a
read-only connection after a defensive validation gate.
"""

__version__ = "0.1.0"

from sqlgate_mcp.config import ServerConfig
from sqlgate_mcp.server import create_server, main
from sqlgate_mcp.validation import ValidationOutcome, RejectionReason, validate

__all__ = ["create_server", "main", "ServerConfig", "validate", "ValidationOutcome", "RejectionReason", "__version__"]
