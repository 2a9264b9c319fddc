"""SQLGate_MCP standalone entry point - runs the server without installing the package"""

import os
import sys

# Add src to path so we can import sqlgate_mcp package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from sqlgate_mcp.cli import main

if __name__ == "__main__":
    main()
