"""
OpenNIC Filter Context Server - MCP tooling for the OpenNIC packet filter.

This package provides a Model Context Protocol (MCP) server that gives AI
assistants context and debugging tools for the OpenNIC shell packet filter
and its cocotb/Verilator test bench.

Features:
    - Resources: Requirements, implementation overview, register map,
      simulation guide and debug workflow
    - Simulation: Run the cocotb tests under Verilator (SIM=verilator enforced)
    - Source Analysis: Package imports, signals and ports of SystemVerilog
      files, plus a Verilator lint pass
    - Interface Matching: Compare testbench and RTL port names
    - Build Analysis: Makefile checks and suggested fixes
    - Prompts: Test scenario and debug workflow templates

Installation:
    pip install -e .

    Or add to your MCP client configuration:
    {
        "mcpServers": {
            "opennic": {
                "command": "python",
                "args": ["-m", "opennic_mcp", "--project-root", "/path/to/open-nic-shell"]
            }
        }
    }

Configuration:
    OPENNIC_MCP_PROJECT_ROOT        OpenNIC shell checkout (default: cwd)
    OPENNIC_MCP_MAKE                make executable (default: make)
    OPENNIC_MCP_VERILATOR           verilator executable (default: verilator)
    OPENNIC_MCP_SIMULATOR           SIM= value passed to make (default: verilator)
    OPENNIC_MCP_ANALYSIS_TIMEOUT    Seconds before a simulation is cancelled
    OPENNIC_MCP_MAX_RESPONSE_CHARS  Inline limit for process output (default: 8000)
    OPENNIC_MCP_LOG_LEVEL           Logging level (default: INFO)

Requirements:
    - Python 3.10+
    - mcp (Model Context Protocol library)
    - Verilator and make in PATH for the simulation and lint tools

License: MIT
Version: 1.0.0
"""

import asyncio
import logging
import sys

from .server import main as _async_main

# Package version
__version__ = "1.0.0"


def main():
    """
    Entry point for the opennic-mcp console script.

    This function is called when running:
    - opennic-mcp (after pip install)
    - python -m opennic_mcp

    It starts the async MCP server event loop. Failures to bring the server
    up (bad configuration, transport errors) are logged and exit with
    status 1.
    """
    try:
        asyncio.run(_async_main())
    except KeyboardInterrupt:
        pass
    except Exception:
        logging.getLogger(__name__).exception("Fatal error in main()")
        sys.exit(1)


# Public API - what gets imported with "from opennic_mcp import *"
__all__ = ["main", "__version__"]
