"""
Tests for configuration loading and the MCP server adapter
"""
from pathlib import Path

import pytest
from mcp.shared.exceptions import McpError
from mcp.types import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    CallToolRequest,
    CallToolRequestParams,
    GetPromptRequest,
    GetPromptRequestParams,
    ListPromptsRequest,
    ListResourcesRequest,
    ListToolsRequest,
    ReadResourceRequest,
    ReadResourceRequestParams,
)

from opennic_mcp.config import Settings
from opennic_mcp.errors import InvalidArguments, UnknownCapability
from opennic_mcp.server import build_server, load_settings, to_mcp_error


# =============================================================================
# SETTINGS
# =============================================================================

def test_settings_defaults():
    settings = Settings.from_env({})
    assert settings.simulator == "verilator"
    assert settings.make_command == "make"
    assert settings.analysis_timeout is None


def test_settings_from_env():
    settings = Settings.from_env({
        "OPENNIC_MCP_PROJECT_ROOT": "/srv/open-nic-shell",
        "OPENNIC_MCP_ANALYSIS_TIMEOUT": "120",
        "OPENNIC_MCP_VERILATOR": "/opt/verilator/bin/verilator",
        "OPENNIC_MCP_LOG_LEVEL": "debug",
        "UNRELATED": "ignored",
    })
    assert settings.project_root == Path("/srv/open-nic-shell")
    assert settings.analysis_timeout == 120.0
    assert settings.verilator_command == "/opt/verilator/bin/verilator"
    assert settings.log_level == "debug"


def test_settings_reject_bad_values():
    with pytest.raises(ValueError):
        Settings.from_env({"OPENNIC_MCP_ANALYSIS_TIMEOUT": "soon"})
    with pytest.raises(ValueError):
        Settings(analysis_timeout=0)
    with pytest.raises(ValueError):
        Settings(log_level="chatty")


def test_with_overrides_ignores_none():
    settings = Settings(simulator="verilator")
    assert settings.with_overrides(analysis_timeout=None) is settings
    assert settings.with_overrides(analysis_timeout=5).analysis_timeout == 5


def test_command_line_overrides_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENNIC_MCP_PROJECT_ROOT", "/from/env")
    monkeypatch.setenv("OPENNIC_MCP_ANALYSIS_TIMEOUT", "60")

    settings = load_settings(["--project-root", str(tmp_path), "--log-level", "warning"])
    assert settings.project_root == tmp_path
    assert settings.analysis_timeout == 60.0
    assert settings.log_level == "WARNING"


# =============================================================================
# ERROR MAPPING
# =============================================================================

def test_invalid_arguments_map_to_invalid_params():
    error = to_mcp_error(InvalidArguments("run-analysis", "mode", "bad"))
    assert error.error.code == INVALID_PARAMS
    assert error.error.data["parameter"] == "mode"


def test_unknown_capability_maps_to_invalid_request():
    error = to_mcp_error(UnknownCapability("tool", "nope"))
    assert error.error.code == INVALID_REQUEST
    assert error.error.data["kind"] == "UnknownCapability"


# =============================================================================
# MCP HANDLERS
# =============================================================================

@pytest.fixture
def server(dispatcher):
    return build_server(dispatcher)


@pytest.mark.asyncio
async def test_list_handlers(server):
    tools = await server.request_handlers[ListToolsRequest](ListToolsRequest(method="tools/list"))
    assert [t.name for t in tools.root.tools][0] == "run-analysis"
    assert len(tools.root.tools) == 6

    resources = await server.request_handlers[ListResourcesRequest](ListResourcesRequest(method="resources/list"))
    assert len(resources.root.resources) == 5

    prompts = await server.request_handlers[ListPromptsRequest](ListPromptsRequest(method="prompts/list"))
    assert {p.name for p in prompts.root.prompts} == {"create-test-scenario", "debug-workflow-guide"}


@pytest.mark.asyncio
async def test_read_resource_uses_fallback(server):
    request = ReadResourceRequest(
        method="resources/read",
        params=ReadResourceRequestParams(uri="opennic://register-map"),
    )
    result = await server.request_handlers[ReadResourceRequest](request)
    contents = result.root.contents
    assert len(contents) == 1
    assert contents[0].text == "Register map documentation not found."
    assert contents[0].mimeType == "text/markdown"


@pytest.mark.asyncio
async def test_get_prompt(server):
    request = GetPromptRequest(
        method="prompts/get",
        params=GetPromptRequestParams(name="debug-workflow-guide", arguments={"issueType": "timing"}),
    )
    result = await server.request_handlers[GetPromptRequest](request)
    assert result.root.description == "Debug workflow guide for timing issues"
    assert result.root.messages[0].role == "user"
    assert "**Symptoms:** Not specified" in result.root.messages[0].content.text


@pytest.mark.asyncio
async def test_get_prompt_missing_argument_is_protocol_error(server):
    request = GetPromptRequest(
        method="prompts/get",
        params=GetPromptRequestParams(name="create-test-scenario", arguments={}),
    )
    with pytest.raises(McpError) as excinfo:
        await server.request_handlers[GetPromptRequest](request)
    assert excinfo.value.error.code == INVALID_PARAMS


def call_tool_request(name, arguments):
    return CallToolRequest(method="tools/call", params=CallToolRequestParams(name=name, arguments=arguments))


@pytest.mark.asyncio
async def test_call_tool_missing_argument_is_protocol_error(server, runner):
    with pytest.raises(McpError) as excinfo:
        await server.request_handlers[CallToolRequest](call_tool_request("run-analysis", {"mode": "basic"}))
    assert excinfo.value.error.code == INVALID_PARAMS
    assert excinfo.value.error.data == {
        "kind": "InvalidArguments",
        "message": excinfo.value.error.message,
        "parameter": "analysisTarget",
    }
    assert runner.calls == []


@pytest.mark.asyncio
async def test_call_tool_unknown_name_is_protocol_error(server):
    with pytest.raises(McpError) as excinfo:
        await server.request_handlers[CallToolRequest](call_tool_request("nope", {}))
    assert excinfo.value.error.code == INVALID_REQUEST
    assert excinfo.value.error.data["kind"] == "UnknownCapability"


@pytest.mark.asyncio
async def test_call_tool_returns_report(server):
    result = await server.request_handlers[CallToolRequest](
        call_tool_request("check-compliance", {"requirementCategory": "interface"})
    )
    assert not result.root.isError
    assert result.root.content[0].text.startswith("# Requirements Compliance Checklist")
