"""
Heuristic analyzers for SystemVerilog sources and cocotb Makefiles.

These are pattern rules, not parsers. They pull out the handful of facts the
debugging tools need (package imports, declared signals, module ports,
simulator configuration) and will happily miss or misread constructs a real
elaborator would understand. Every function here is pure: same text in,
same facts out, no I/O.

License: MIT
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Tuple


# =============================================================================
# PATTERN RULES
# =============================================================================
# Each rule captures the identifier of interest in group 1.

# "import axi_pkg::*;" or "import axi_pkg::axi_t;"
DEPENDENCY_PATTERN = re.compile(r"\bimport\s+([A-Za-z_]\w*)\s*::\s*(?:\*|\w+)")

# "logic [7:0] data", "wire valid", "reg signed [3:0] count"
SIGNAL_PATTERN = re.compile(
    r"\b(?:logic|wire|reg)\b\s*(?:(?:signed|unsigned)\s+)?(?:\[[^\]]*\]\s*)*([A-Za-z_]\w*)"
)

# "input logic clk", "output wire [511:0] m_axis_tdata", "inout sda"
PORT_PATTERN = re.compile(
    r"\b(?:input|output|inout)\b\s*(?:(?:logic|wire|reg|var)\b\s*)?"
    r"(?:(?:signed|unsigned)\s+)?(?:\[[^\]]*\]\s*)*([A-Za-z_]\w*)"
)

# "// ..." to end of line and "/* ... */" blocks
COMMENT_PATTERN = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)

# Keyword pairs whose counts should match in a well-formed file
BALANCED_KEYWORDS = (
    ("module", "endmodule"),
    ("package", "endpackage"),
)

# Makefile rules
SIMULATOR_PATTERN = re.compile(r"^\s*(?:export\s+)?SIM\s*[:?]?=\s*(\w+)", re.MULTILINE)
TARGET_PATTERN = re.compile(r"^(\w+)\s*:(?!=)", re.MULTILINE)
INCLUDE_PATTERN = re.compile(r"^\s*-?include\s+(.+?)\s*$", re.MULTILINE)

SIMULATOR_NOT_SPECIFIED = "not_specified"

# Marker strings a cocotb Makefile is expected to contain
COCOTB_MARKER = "COCOTB_"
SOURCES_MARKER = "VERILOG_SOURCES"

ISSUE_SIMULATOR_UNSET = "SIM variable not explicitly set - may cause simulator selection issues"
ISSUE_COCOTB_MISSING = "Missing COCOTB configuration variables"
ISSUE_SOURCES_MISSING = "VERILOG_SOURCES not defined - required for compilation"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class ExtractedFacts:
    """
    Facts pulled from one SystemVerilog source.

    Attributes:
        dependencies: Imported package names
        signals: Identifiers declared as logic/wire/reg
        ports: Identifiers declared with a direction (input/output/inout)
        issues: Heuristic diagnostics, in a fixed check order
    """
    dependencies: FrozenSet[str] = frozenset()
    signals: FrozenSet[str] = frozenset()
    ports: FrozenSet[str] = frozenset()
    issues: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BuildScriptFacts:
    """
    Configuration pulled from a cocotb Makefile.

    Attributes:
        simulator: Value of SIM, or "not_specified"
        targets: Rule names in first-seen order
        dependencies: Included makefiles in file order
        issues: One diagnostic per failed policy check, in check order
    """
    simulator: str = SIMULATOR_NOT_SPECIFIED
    targets: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    issues: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PortComparison:
    """Port names shared by, or unique to, two sources."""
    common: Tuple[str, ...]
    left_only: Tuple[str, ...]
    right_only: Tuple[str, ...]
    score: float

    @property
    def compatible(self) -> bool:
        """Scores below 80% usually mean the testbench and RTL disagree."""
        return self.score >= 80.0


# =============================================================================
# SYSTEMVERILOG EXTRACTION
# =============================================================================

def strip_comments(source: str) -> str:
    """Blank out comments so commented-out declarations aren't reported."""
    return COMMENT_PATTERN.sub(" ", source)


def _collect(pattern: re.Pattern, text: str) -> FrozenSet[str]:
    return frozenset(match.group(1) for match in pattern.finditer(text))


def _keyword_issues(text: str) -> Tuple[str, ...]:
    issues = []
    for opener, closer in BALANCED_KEYWORDS:
        opened = len(re.findall(rf"\b{opener}\b", text))
        closed = len(re.findall(rf"\b{closer}\b", text))
        if opened != closed:
            issues.append(
                f"Unbalanced {opener} declarations: {opened} '{opener}' vs {closed} '{closer}'"
            )
    return tuple(issues)


def extract(source: str) -> ExtractedFacts:
    """
    Extract dependencies, signals and ports from SystemVerilog text.

    The three passes run independently over the comment-stripped text, so an
    input port also shows up as a signal when it carries a logic/wire/reg
    type. Empty or unrecognised input yields empty sets.

    Args:
        source: Raw SystemVerilog source text

    Returns:
        ExtractedFacts for the text
    """
    text = strip_comments(source)
    return ExtractedFacts(
        dependencies=_collect(DEPENDENCY_PATTERN, text),
        signals=_collect(SIGNAL_PATTERN, text),
        ports=_collect(PORT_PATTERN, text),
        issues=_keyword_issues(text),
    )


def compare_ports(left: Iterable[str], right: Iterable[str]) -> PortComparison:
    """
    Compare two port sets by name.

    The score is the share of the left side's ports that also exist on the
    right side, as a percentage. A left side with no ports scores 0.
    """
    left_set, right_set = set(left), set(right)
    common = left_set & right_set
    return PortComparison(
        common=tuple(sorted(common)),
        left_only=tuple(sorted(left_set - right_set)),
        right_only=tuple(sorted(right_set - left_set)),
        score=len(common) / max(len(left_set), 1) * 100,
    )


# =============================================================================
# MAKEFILE ANALYSIS
# =============================================================================

def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def analyze_build_script(text: str) -> BuildScriptFacts:
    """
    Analyze a cocotb Makefile.

    Checks run in a fixed order and each failure adds one diagnostic:
    SIM unset, no COCOTB_* variables, no VERILOG_SOURCES. An empty script
    therefore produces exactly three diagnostics.
    """
    sim_match = SIMULATOR_PATTERN.search(text)
    simulator = sim_match.group(1) if sim_match else SIMULATOR_NOT_SPECIFIED

    issues = []
    if simulator == SIMULATOR_NOT_SPECIFIED:
        issues.append(ISSUE_SIMULATOR_UNSET)
    if COCOTB_MARKER not in text:
        issues.append(ISSUE_COCOTB_MISSING)
    if SOURCES_MARKER not in text:
        issues.append(ISSUE_SOURCES_MISSING)

    return BuildScriptFacts(
        simulator=simulator,
        targets=_unique(m.group(1) for m in TARGET_PATTERN.finditer(text)),
        dependencies=_unique(m.group(1) for m in INCLUDE_PATTERN.finditer(text)),
        issues=tuple(issues),
    )
