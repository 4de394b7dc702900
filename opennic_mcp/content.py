"""
Content Resolver - Turns resource ids into content blocks.

Three resources are files inside the OpenNIC shell checkout and two are
generated guides. Resource availability is best effort: when a file can't be
read the client gets a single block explaining what is missing, never an
error.

License: MIT
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple

from . import documents
from .envelope import ContentBlock
from .errors import UnknownCapability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileSource:
    """A resource stored on disk, relative to the project root."""
    relative_path: Path
    fallback: str


@dataclass(frozen=True)
class GeneratedSource:
    """A resource rendered in memory from the project root."""
    render: Callable[[Path], str]


# Resource id -> where its content comes from
SOURCES: Mapping[str, object] = MappingProxyType({
    "opennic://filter-requirements": FileSource(
        Path("requirements.md"),
        "Requirements document not found. Please ensure the OpenNIC project is available.",
    ),
    "opennic://filter-implementation": FileSource(
        Path("opennic_packet_filter_submission.md"),
        "Implementation document not found. Please ensure the submission document exists.",
    ),
    "opennic://register-map": FileSource(
        Path("plugin/p2p/box_250mhz/csr/doc/register_map.md"),
        "Register map documentation not found.",
    ),
    "opennic://simulation-guide": GeneratedSource(documents.render_simulation_guide),
    "opennic://debug-workflow": GeneratedSource(documents.render_debug_workflow),
})


async def read_text(path: Path) -> str:
    """Read a UTF-8 file without blocking the event loop."""
    return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")


class ContentResolver:
    """
    Resolves resource ids against a project root.

    Attributes:
        project_root: Directory file-backed resources are relative to
    """

    def __init__(self, project_root: Path, sources: Optional[Mapping[str, object]] = None):
        self.project_root = Path(project_root)
        self.sources = SOURCES if sources is None else sources

    async def resolve(self, resource_id: str) -> Tuple[ContentBlock, ...]:
        """
        Return the content blocks for a resource.

        Raises:
            UnknownCapability: No source is bound to resource_id
        """
        source = self.sources.get(resource_id)
        if source is None:
            raise UnknownCapability("resource", resource_id)

        if isinstance(source, GeneratedSource):
            return (ContentBlock(source.render(self.project_root)),)

        path = self.project_root / source.relative_path
        try:
            text = await read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Resource %s unavailable: %s", resource_id, e)
            return (ContentBlock(source.fallback),)
        return (ContentBlock(text),)
