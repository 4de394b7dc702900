#!/usr/bin/env python3
"""
OpenNIC Filter Context Server - MCP front end for packet filter debugging.

This module exposes the capability catalogue over the Model Context Protocol
so AI assistants can work on the OpenNIC packet filter:

- Resources: requirements, implementation overview, register map, and
  generated simulation/debug guides
- Tools: cocotb simulation under Verilator, SystemVerilog analysis,
  testbench/RTL port matching, Makefile fixes, compliance checklist, signal
  cross-reference
- Prompts: test scenario and debug workflow templates

Architecture:
    The MCP handlers here are thin adapters. Each one builds an
    InvocationRequest, hands it to the Dispatcher, and converts the
    InvocationResult back into MCP types. Protocol errors (unknown id, bad
    arguments) are raised as McpError; every other failure already arrives
    as an in-band text block.

MCP Protocol:
    The server uses the MCP stdio transport, communicating via stdin/stdout
    with JSON-RPC messages. Logging therefore goes to stderr.

Usage:
    # Start the server (typically done by an MCP client)
    python -m opennic_mcp --project-root /path/to/open-nic-shell

    # Or via the console script (after pip install)
    opennic-mcp

License: MIT
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    CallToolRequest,
    CallToolResult,
    ErrorData,
    GetPromptResult,
    Prompt,
    PromptMessage,
    Resource,
    ServerResult,
    Tool,
)

from .config import SERVER_NAME, SERVER_VERSION, Settings
from .dispatcher import Dispatcher
from .envelope import InvocationRequest
from .errors import DispatchError, InvalidArguments
from .registry import CapabilityKind

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def to_mcp_error(error: DispatchError) -> McpError:
    """Map a dispatch error onto a JSON-RPC error code."""
    code = INVALID_PARAMS if isinstance(error, InvalidArguments) else INVALID_REQUEST
    return McpError(ErrorData(code=code, message=error.message, data=error.to_dict()))


# =============================================================================
# MCP SERVER INSTANCE
# =============================================================================

def build_server(dispatcher: Dispatcher) -> Server:
    """
    Create the MCP server and register its handlers.

    Args:
        dispatcher: Dispatcher every handler delegates to

    Returns:
        A configured mcp.server.Server, ready for run()
    """
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    async def invoke(kind: CapabilityKind, capability_id: str, arguments: Optional[dict] = None):
        try:
            return await dispatcher.handle(InvocationRequest(kind, capability_id, arguments or {}))
        except DispatchError as e:
            logger.info("Rejected %s %s: %s", kind.value, capability_id, e.message)
            raise to_mcp_error(e) from e

    # =========================================================================
    # RESOURCES
    # =========================================================================

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return [descriptor.to_mcp() for descriptor in dispatcher.list(CapabilityKind.RESOURCE)]

    @server.read_resource()
    async def read_resource(uri) -> list[ReadResourceContents]:
        # Ids are opaque; undo any trailing slash URL normalisation added
        resource_id = str(uri).rstrip("/")
        result = await invoke(CapabilityKind.RESOURCE, resource_id)
        mime_type = dispatcher.registry.describe(CapabilityKind.RESOURCE, resource_id).media_type
        return [ReadResourceContents(content=block.text, mime_type=mime_type) for block in result.blocks]

    # =========================================================================
    # TOOLS
    # =========================================================================

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [descriptor.to_mcp() for descriptor in dispatcher.list(CapabilityKind.TOOL)]

    # Bound directly: @server.call_tool() turns every exception into an
    # isError result, and protocol errors must reach the client as McpError
    async def call_tool(request: CallToolRequest) -> ServerResult:
        params = request.params
        result = await invoke(CapabilityKind.TOOL, params.name, params.arguments)
        return ServerResult(CallToolResult(content=[block.to_mcp() for block in result.blocks]))

    server.request_handlers[CallToolRequest] = call_tool

    # =========================================================================
    # PROMPTS
    # =========================================================================

    @server.list_prompts()
    async def list_prompts() -> list[Prompt]:
        return [descriptor.to_mcp() for descriptor in dispatcher.list(CapabilityKind.PROMPT)]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: Optional[dict] = None) -> GetPromptResult:
        result = await invoke(CapabilityKind.PROMPT, name, arguments)
        return GetPromptResult(
            description=result.description,
            messages=[PromptMessage(role="user", content=block.to_mcp()) for block in result.blocks],
        )

    return server


# =============================================================================
# SERVER ENTRY POINT
# =============================================================================

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="opennic-mcp", description="OpenNIC filter context MCP server")
    parser.add_argument(
        "--project-root",
        help="Root of the OpenNIC shell checkout (default: $OPENNIC_MCP_PROJECT_ROOT or cwd)",
    )
    parser.add_argument(
        "--analysis-timeout",
        type=float,
        help="Cancel simulation runs after this many seconds (default: no limit)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Override log level",
    )
    return parser.parse_args(argv)


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """Environment first, then command-line overrides."""
    args = parse_args(argv)
    settings = Settings.from_env()
    return settings.with_overrides(
        project_root=Path(args.project_root).expanduser() if args.project_root else None,
        analysis_timeout=args.analysis_timeout,
        log_level=args.log_level and args.log_level.upper(),
    )


async def main(argv: Optional[Sequence[str]] = None):
    """
    Run the MCP server.

    This function starts the MCP server using stdio transport (stdin/stdout).
    It's designed to be launched by an MCP client. The server runs until the
    client closes the connection.
    """
    settings = load_settings(argv)
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT, stream=sys.stderr)

    server = build_server(Dispatcher(settings))
    logger.info(
        "%s running on stdio (project root: %s, simulator: %s)",
        SERVER_NAME, settings.project_root, settings.simulator,
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


# Allow running directly with: python server.py
if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
