"""
Configuration for the OpenNIC filter context server.

Defaults live in the constants below. At startup they can be overridden from
the environment (OPENNIC_MCP_* variables) and then from the command line;
see Settings.from_env() and opennic_mcp.server.parse_args().

License: MIT
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Server identifier used in MCP communications
SERVER_NAME = "opennic-filter-context"
SERVER_VERSION = "1.0.0"

# Prefix for all environment overrides
ENV_PREFIX = "OPENNIC_MCP_"

# Executables invoked by the tools (looked up on PATH unless absolute)
DEFAULT_MAKE = "make"
DEFAULT_VERILATOR = "verilator"

# Simulator enforced for every cocotb run
DEFAULT_SIMULATOR = "verilator"

# Maximum characters of captured process output returned inline.
# Simulation logs can be enormous; see truncate_output() in tools.py
MAX_RESPONSE_CHARS = 8000

DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime settings shared read-only by every handler.

    Attributes:
        project_root: Root of the OpenNIC shell checkout; file-backed
            resources are resolved relative to it
        make_command: Executable used for cocotb test runs
        verilator_command: Executable used for lint checks
        simulator: Value passed as SIM= to make
        analysis_timeout: Seconds before a test run is cancelled, or None
            to let it run to completion
        max_response_chars: Inline limit for captured process output
        log_level: Name of the root logging level
    """
    project_root: Path = field(default_factory=Path.cwd)
    make_command: str = DEFAULT_MAKE
    verilator_command: str = DEFAULT_VERILATOR
    simulator: str = DEFAULT_SIMULATOR
    analysis_timeout: Optional[float] = None
    max_response_chars: int = MAX_RESPONSE_CHARS
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        if self.analysis_timeout is not None and self.analysis_timeout <= 0:
            raise ValueError(f"analysis_timeout must be positive, got {self.analysis_timeout}")
        if self.max_response_chars <= 0:
            raise ValueError(f"max_response_chars must be positive, got {self.max_response_chars}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from OPENNIC_MCP_* environment variables.

        Unset variables fall back to the module defaults. Malformed numbers
        raise ValueError so a misconfigured server fails at startup rather
        than on the first tool call.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        kwargs = {}
        if get("PROJECT_ROOT"):
            kwargs["project_root"] = Path(get("PROJECT_ROOT")).expanduser()
        if get("MAKE"):
            kwargs["make_command"] = get("MAKE")
        if get("VERILATOR"):
            kwargs["verilator_command"] = get("VERILATOR")
        if get("SIMULATOR"):
            kwargs["simulator"] = get("SIMULATOR")
        if get("ANALYSIS_TIMEOUT"):
            kwargs["analysis_timeout"] = float(get("ANALYSIS_TIMEOUT"))
        if get("MAX_RESPONSE_CHARS"):
            kwargs["max_response_chars"] = int(get("MAX_RESPONSE_CHARS"))
        if get("LOG_LEVEL"):
            kwargs["log_level"] = get("LOG_LEVEL")
        return cls(**kwargs)

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self
