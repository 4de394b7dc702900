"""
Entry point for running the OpenNIC filter context server as a module.

This allows running the server with:
    python -m opennic_mcp

Which is equivalent to:
    opennic-mcp  (after pip install)

The server communicates via stdin/stdout using the MCP protocol,
so it's typically launched by an MCP client rather than run directly
from the command line.
"""

from . import main

if __name__ == "__main__":
    main()
