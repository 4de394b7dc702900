"""
Request and response envelope shared by the dispatcher and its collaborators.

These types are transport-agnostic; server.py converts them to and from the
MCP SDK's pydantic models at the edge.

License: MIT
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from mcp.types import TextContent

from .registry import CapabilityKind

TEXT = "text"


@dataclass(frozen=True)
class ContentBlock:
    """One typed unit of response payload. Only text blocks exist today."""
    text: str
    kind: str = TEXT

    def to_mcp(self) -> TextContent:
        return TextContent(type=self.kind, text=self.text)


@dataclass(frozen=True)
class InvocationRequest:
    """
    A request to read a resource, call a tool or render a prompt.

    Attributes:
        kind: Which namespace capability_id belongs to
        capability_id: Exact id of the resource, tool or prompt
        arguments: Argument name to value; empty for resource reads
    """
    kind: CapabilityKind
    capability_id: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "kind", CapabilityKind(self.kind))
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments or {})))


@dataclass(frozen=True)
class InvocationResult:
    """
    Result of a successful dispatch: always a sequence of blocks.

    description is only set for rendered prompts.
    """
    blocks: Tuple[ContentBlock, ...]
    description: Optional[str] = None

    @property
    def text(self) -> str:
        """All text blocks joined, convenient for tests and logging."""
        return "\n".join(block.text for block in self.blocks if block.kind == TEXT)


def text_result(text: str, description: Optional[str] = None) -> InvocationResult:
    return InvocationResult(blocks=(ContentBlock(text),), description=description)
