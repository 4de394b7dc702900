"""
Capability Registry - The fixed catalogue of resources, tools and prompts.

The catalogue is declared once, below, as plain tuples of frozen dataclasses
and frozen into CATALOGUE at import time. Capabilities cannot be added or
removed afterwards, so listing and invoking always see the same catalogue.

Descriptors only carry metadata. The code that runs when a capability is
invoked is bound by id in tools.py and prompts.py.

License: MIT
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from mcp.types import Prompt, PromptArgument, Resource, Tool

from .errors import UnknownCapability


class CapabilityKind(str, Enum):
    RESOURCE = "resource"
    TOOL = "tool"
    PROMPT = "prompt"


class ParameterKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    ENUM = "enum"


# =============================================================================
# DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class ResourceDescriptor:
    """A readable document identified by an opaque URI-shaped id."""
    id: str
    display_name: str
    media_type: str
    description: str

    def to_mcp(self) -> Resource:
        return Resource(
            uri=self.id,
            name=self.display_name,
            mimeType=self.media_type,
            description=self.description,
        )


@dataclass(frozen=True)
class ToolParameter:
    """
    One named tool parameter.

    Attributes:
        name: Argument name clients must use
        kind: Primitive kind (string, boolean, enum of strings)
        description: Shown to the client
        required: Whether the client must supply it
        default: Value applied when an optional parameter is omitted
        choices: Allowed values for enum parameters
    """
    name: str
    kind: ParameterKind
    description: str
    required: bool = False
    default: Any = None
    choices: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.kind is ParameterKind.ENUM and not self.choices:
            raise ValueError(f"Enum parameter {self.name} declares no choices")
        if self.required and self.default is not None:
            raise ValueError(f"Required parameter {self.name} cannot have a default")

    def to_schema(self) -> dict:
        """JSON Schema fragment for this parameter."""
        if self.kind is ParameterKind.ENUM:
            schema = {"type": "string", "enum": list(self.choices)}
        else:
            schema = {"type": self.kind.value}
        schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True)
class ToolDescriptor:
    id: str
    title: str
    description: str
    parameters: Tuple[ToolParameter, ...] = ()

    def input_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_mcp(self) -> Tool:
        return Tool(name=self.id, description=self.description, inputSchema=self.input_schema())


@dataclass(frozen=True)
class PromptParameter:
    name: str
    description: str
    required: bool = False
    default: Optional[str] = None


@dataclass(frozen=True)
class PromptDescriptor:
    id: str
    description: str
    parameters: Tuple[PromptParameter, ...] = ()

    def to_mcp(self) -> Prompt:
        return Prompt(
            name=self.id,
            description=self.description,
            arguments=[
                PromptArgument(name=p.name, description=p.description, required=p.required)
                for p in self.parameters
            ],
        )


Descriptor = Union[ResourceDescriptor, ToolDescriptor, PromptDescriptor]


# =============================================================================
# RESOURCE DEFINITIONS
# =============================================================================

RESOURCES = (
    ResourceDescriptor(
        id="opennic://filter-requirements",
        display_name="OpenNIC Packet Filter Requirements Document",
        media_type="text/plain",
        description="Requirements document for the packet filter implementation",
    ),
    ResourceDescriptor(
        id="opennic://filter-implementation",
        display_name="OpenNIC Packet Filter Implementation Overview",
        media_type="text/markdown",
        description="Detailed implementation overview and submission document",
    ),
    ResourceDescriptor(
        id="opennic://register-map",
        display_name="Packet Filter Register Map Documentation",
        media_type="text/markdown",
        description="CSR register map documentation for the packet filter",
    ),
    ResourceDescriptor(
        id="opennic://simulation-guide",
        display_name="How to Run Filter Simulations with Verilator",
        media_type="text/markdown",
        description="Complete guide for Verilator-based Cocotb simulations",
    ),
    ResourceDescriptor(
        id="opennic://debug-workflow",
        display_name="Hardware Debug Workflow Guide",
        media_type="text/markdown",
        description="Step-by-step debugging methodology for OpenNIC filter issues",
    ),
)


# =============================================================================
# TOOL DEFINITIONS
# =============================================================================

TEST_MODES = ("basic", "advanced", "csr", "performance", "all")
REQUIREMENT_CATEGORIES = ("functional", "interface", "performance", "all")
HIERARCHY_LEVELS = ("top", "filter", "parser", "all")

TOOLS = (
    ToolDescriptor(
        id="run-analysis",
        title="Verilator simulation",
        description="Run the cocotb packet filter tests in a test directory with Verilator (enforced)",
        parameters=(
            ToolParameter(
                "analysisTarget", ParameterKind.STRING,
                "Path to the cocotb test directory containing the Makefile",
                required=True,
            ),
            ToolParameter(
                "mode", ParameterKind.ENUM, "Type of test to run",
                default="all", choices=TEST_MODES,
            ),
            ToolParameter("debug", ParameterKind.BOOLEAN, "Enable cocotb debug logging", default=False),
            ToolParameter("waves", ParameterKind.BOOLEAN, "Generate VCD waveform files", default=False),
        ),
    ),
    ToolDescriptor(
        id="analyze-source",
        title="Verilog analysis",
        description="Analyze SystemVerilog code for package dependencies, signals and ports",
        parameters=(
            ToolParameter(
                "filePath", ParameterKind.STRING, "Path to SystemVerilog file to analyze",
                required=True,
            ),
            ToolParameter(
                "checkDependencies", ParameterKind.BOOLEAN, "Check package import dependencies",
                default=True,
            ),
        ),
    ),
    ToolDescriptor(
        id="check-compatibility",
        title="Interface compatibility check",
        description="Verify interface connections between a testbench and an RTL source",
        parameters=(
            ToolParameter("leftFile", ParameterKind.STRING, "Path to testbench file", required=True),
            ToolParameter("rightFile", ParameterKind.STRING, "Path to RTL file", required=True),
        ),
    ),
    ToolDescriptor(
        id="suggest-build-fixes",
        title="Makefile analysis",
        description="Analyze a cocotb Makefile and suggest configuration improvements",
        parameters=(
            ToolParameter(
                "buildScriptPath", ParameterKind.STRING, "Path to Makefile to analyze",
                required=True,
            ),
        ),
    ),
    ToolDescriptor(
        id="check-compliance",
        title="Requirements compliance check",
        description="List the requirement checks for the filter implementation (unverified checklist)",
        parameters=(
            ToolParameter(
                "requirementCategory", ParameterKind.ENUM, "Type of requirements to check",
                required=True, choices=REQUIREMENT_CATEGORIES,
            ),
        ),
    ),
    ToolDescriptor(
        id="cross-reference-signals",
        title="Signal cross-reference",
        description="Map testbench signals to RTL hierarchy for debugging",
        parameters=(
            ToolParameter(
                "hierarchyLevel", ParameterKind.ENUM, "RTL hierarchy level to analyze",
                required=True, choices=HIERARCHY_LEVELS,
            ),
        ),
    ),
)


# =============================================================================
# PROMPT DEFINITIONS
# =============================================================================

PROMPTS = (
    PromptDescriptor(
        id="create-test-scenario",
        description="Generate a comprehensive test scenario for the packet filter",
        parameters=(
            PromptParameter(
                "scenarioType",
                "Type of test scenario (basic, advanced, edge_case, performance)",
                required=True,
            ),
            PromptParameter("packetType", "IPv4 or IPv6 packet type", default="IPv4"),
            PromptParameter("includeDebug", "Include debugging and analysis steps", default="false"),
        ),
    ),
    PromptDescriptor(
        id="debug-workflow-guide",
        description="Generate a specific debug workflow for a given issue",
        parameters=(
            PromptParameter(
                "issueType",
                "Type of issue (compilation, simulation, functional, timing)",
                required=True,
            ),
            PromptParameter("symptoms", "Observed symptoms or error messages", default="Not specified"),
        ),
    ),
)


# =============================================================================
# REGISTRY
# =============================================================================

def _index(descriptors) -> Mapping[str, Descriptor]:
    index = {}
    for descriptor in descriptors:
        if descriptor.id in index:
            raise ValueError(f"Duplicate capability id: {descriptor.id}")
        index[descriptor.id] = descriptor
    return MappingProxyType(index)


class Registry:
    """
    Read-only catalogue of capabilities, in declaration order.

    Built once from static tuples. Lookups are exact-match by id within one
    kind; there is no fuzzy matching and no mutation API.
    """

    __slots__ = ("_ordered", "_indexes")

    def __init__(self, resources=RESOURCES, tools=TOOLS, prompts=PROMPTS):
        self._ordered = MappingProxyType({
            CapabilityKind.RESOURCE: tuple(resources),
            CapabilityKind.TOOL: tuple(tools),
            CapabilityKind.PROMPT: tuple(prompts),
        })
        self._indexes = MappingProxyType({
            kind: _index(descriptors) for kind, descriptors in self._ordered.items()
        })

    def list(self, kind: CapabilityKind) -> tuple:
        return self._ordered[CapabilityKind(kind)]

    def list_resources(self) -> Tuple[ResourceDescriptor, ...]:
        return self.list(CapabilityKind.RESOURCE)

    def list_tools(self) -> Tuple[ToolDescriptor, ...]:
        return self.list(CapabilityKind.TOOL)

    def list_prompts(self) -> Tuple[PromptDescriptor, ...]:
        return self.list(CapabilityKind.PROMPT)

    def ids(self, kind: CapabilityKind) -> Tuple[str, ...]:
        return tuple(self._indexes[CapabilityKind(kind)])

    def describe(self, kind: CapabilityKind, capability_id: str) -> Descriptor:
        """
        Look up a descriptor by exact id.

        Raises:
            UnknownCapability: Nothing of this kind is registered under the id
        """
        kind = CapabilityKind(kind)
        try:
            return self._indexes[kind][capability_id]
        except KeyError:
            raise UnknownCapability(kind.value, capability_id) from None


# The process-wide catalogue
CATALOGUE = Registry()
