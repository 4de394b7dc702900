"""
Tool handlers - The code behind each tool in the catalogue.

Every handler has the same shape:

    async def handler(ctx: HandlerContext, args: dict) -> str

args has already been validated against the tool's declared parameters
(defaults applied, kinds and enum values checked) by the dispatcher, so
handlers index into it directly. The returned string is a Markdown report
that the dispatcher wraps in a text content block.

Handlers raise CollaboratorError subclasses (SourceUnavailable,
TargetMissing, ...) for expected failures; the dispatcher turns those into an
in-band diagnostic. The simulation runner renders its own failure report
because the captured make output is the most useful part of it.

License: MIT
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Mapping

from .analyzers import (
    ISSUE_COCOTB_MISSING,
    ISSUE_SOURCES_MISSING,
    analyze_build_script,
    compare_ports,
    extract,
)
from .config import Settings
from .content import ContentResolver, read_text
from .errors import ProcessCancelled, ProcessFailed, SourceUnavailable, TargetMissing
from .process_runner import ProcessRunner

logger = logging.getLogger(__name__)

# Signals listed inline by analyze-source before summarising the rest
MAX_LISTED_SIGNALS = 10


@dataclass(frozen=True)
class HandlerContext:
    """Collaborators available to tool handlers. Shared read-only."""
    settings: Settings
    runner: ProcessRunner
    resolver: ContentResolver

    def resolve_path(self, path: str) -> Path:
        """Interpret a client-supplied path; relative paths hang off the project root."""
        candidate = Path(path)
        try:
            candidate = candidate.expanduser()
        except RuntimeError:
            # "~user" with no such user; the literal path then fails to resolve
            logger.debug("Cannot expand home directory in %s", path)
        if not candidate.is_absolute():
            candidate = self.settings.project_root / candidate
        return candidate


ToolHandler = Callable[[HandlerContext, dict], Awaitable[str]]


# =============================================================================
# HELPERS
# =============================================================================

def truncate_output(content: str, max_chars: int) -> str:
    """
    Keep the tail of long process output.

    Simulation logs can be tens of thousands of lines and the failure is
    almost always at the end, so the head is dropped. The cut is moved to a
    line boundary when that keeps more than 80% of the allowed characters.
    """
    total_chars = len(content)
    if total_chars <= max_chars:
        return content

    kept = content[-max_chars:]
    first_newline = kept.find("\n")
    if 0 <= first_newline < max_chars * 0.2:
        kept = kept[first_newline + 1:]

    return f"[... output truncated ({total_chars:,} chars -> {len(kept):,} chars) ...]\n{kept}"


async def read_source(path: Path) -> str:
    try:
        return await read_text(path)
    except (OSError, ValueError) as e:
        # ValueError covers undecodable text and a NUL byte in the path
        raise SourceUnavailable(path, e) from e


def bullet_list(items, empty: str) -> str:
    items = list(items)
    if not items:
        return empty + "\n"
    return "\n".join(f"- {item}" for item in items) + "\n"


# =============================================================================
# RUN-ANALYSIS (cocotb simulation under Verilator)
# =============================================================================

# Test mode -> cocotb TESTCASE; "all" runs every test
TESTCASES = {
    "basic": "test_filter_basic",
    "advanced": "test_filter_advanced",
    "csr": "test_csr_interface",
    "performance": "test_performance",
    "all": None,
}

SIMULATION_TROUBLESHOOTING = """\
🔍 Troubleshooting Steps:
1. Verify Verilator installation: verilator --version
2. Check OpenNIC project setup
3. Activate virtual environment
4. Install dependencies: pip install -r requirements.txt
5. Use 'suggest-build-fixes' tool for configuration issues"""


def simulation_arguments(settings: Settings, mode: str, debug: bool, waves: bool) -> list:
    """Build the make arguments for one test run."""
    make_args = ["test", f"SIM={settings.simulator}"]
    testcase = TESTCASES[mode]
    if testcase:
        make_args.append(f"TESTCASE={testcase}")
    if debug:
        make_args.append("COCOTB_DEBUG=1")
    if waves:
        make_args.extend(["WAVES=1", "EXTRA_ARGS=--trace --trace-structs"])
    return make_args


async def run_analysis(ctx: HandlerContext, args: dict) -> str:
    """Run `make test` in the target directory with Verilator enforced."""
    settings = ctx.settings
    target = ctx.resolve_path(args["analysisTarget"])
    if not await asyncio.to_thread(target.is_dir):
        raise TargetMissing(target)

    make_args = simulation_arguments(settings, args["mode"], args["debug"], args["waves"])

    # The runner has no timeout of its own; impose the configured one here
    cancel = asyncio.Event()
    timer = None
    if settings.analysis_timeout:
        timer = asyncio.get_running_loop().call_later(settings.analysis_timeout, cancel.set)

    try:
        outcome = await ctx.runner.run(settings.make_command, make_args, cwd=target, cancel=cancel)
    except ProcessCancelled as e:
        logger.warning("Simulation in %s cancelled after %.0fms", target, e.outcome.elapsed_ms)
        return (
            f"⏹️ Verilator simulation cancelled after {settings.analysis_timeout}s\n\n"
            f"🔧 Command: {e.outcome.command_line}\n\n"
            f"📋 STDOUT (partial):\n{truncate_output(e.outcome.stdout, settings.max_response_chars)}"
        )
    except ProcessFailed as e:
        logger.warning("Simulation in %s failed: %s", target, e)
        return (
            f"❌ Verilator simulation failed: {e}\n\n"
            f"🔧 Command: {e.outcome.command_line}\n\n"
            f"📋 STDOUT:\n{truncate_output(e.outcome.stdout, settings.max_response_chars)}\n\n"
            f"⚠️  STDERR:\n{truncate_output(e.outcome.stderr, settings.max_response_chars)}\n\n"
            f"{SIMULATION_TROUBLESHOOTING}"
        )
    finally:
        if timer is not None:
            timer.cancel()

    return (
        f"✅ Verilator simulation completed successfully!\n\n"
        f"🔧 Command: {outcome.command_line}\n"
        f"📁 Directory: {target}\n"
        f"📊 Simulator: {settings.simulator} (enforced)\n"
        f"⏱️ Elapsed: {outcome.elapsed_ms / 1000:.1f}s\n\n"
        f"📋 STDOUT:\n{truncate_output(outcome.stdout, settings.max_response_chars)}\n\n"
        f"⚠️  STDERR:\n{truncate_output(outcome.stderr, settings.max_response_chars)}"
    )


# =============================================================================
# ANALYZE-SOURCE
# =============================================================================

async def lint_source(ctx: HandlerContext, path: Path) -> str:
    """Run Verilator's linter and describe the result as a report section."""
    header = "## Verilator Syntax Check\n"
    try:
        await ctx.runner.run(ctx.settings.verilator_command, ["--lint-only", "-Wall", path])
    except ProcessFailed as e:
        if e.exit_code is None:
            return header + f"⚠️ Verilator not available: {e.stderr.strip()}\n"
        issues = truncate_output(e.stderr.strip(), ctx.settings.max_response_chars)
        return header + f"⚠️ Issues found (exit code {e.exit_code}):\n{issues}\n"
    return header + "✅ No syntax errors found.\n"


async def analyze_source(ctx: HandlerContext, args: dict) -> str:
    path = ctx.resolve_path(args["filePath"])
    facts = extract(await read_source(path))

    report = f"# SystemVerilog Analysis Report\n\n**File:** {path}\n\n"

    if args["checkDependencies"]:
        report += "## Package Dependencies\n"
        report += bullet_list(sorted(facts.dependencies), "No package imports found.") + "\n"

    signals = sorted(facts.signals)
    report += "## Signal Definitions\n"
    report += bullet_list(signals[:MAX_LISTED_SIGNALS], "No signal definitions found.")
    if len(signals) > MAX_LISTED_SIGNALS:
        report += f"... and {len(signals) - MAX_LISTED_SIGNALS} more signals\n"

    report += "\n## Interface Ports\n"
    report += bullet_list(sorted(facts.ports), "No interface ports found.")

    if facts.issues:
        report += "\n## Structural Issues (heuristic)\n"
        report += bullet_list(facts.issues, "")

    report += "\n" + await lint_source(ctx, path)
    return report


# =============================================================================
# CHECK-COMPATIBILITY
# =============================================================================

async def check_compatibility(ctx: HandlerContext, args: dict) -> str:
    left_path = ctx.resolve_path(args["leftFile"])
    right_path = ctx.resolve_path(args["rightFile"])
    left_text, right_text = await asyncio.gather(read_source(left_path), read_source(right_path))

    comparison = compare_ports(extract(left_text).ports, extract(right_text).ports)

    report = "# Interface Compatibility Analysis\n\n"
    report += f"**Testbench:** {left_path}\n**RTL:** {right_path}\n\n"

    report += "## ✅ Matching Interfaces\n"
    report += bullet_list(comparison.common, "No matching port names found.") + "\n"

    if comparison.left_only:
        report += "## ⚠️ Testbench-Only Signals\n"
        report += bullet_list(comparison.left_only, "") + "\n"

    if comparison.right_only:
        report += "## ⚠️ RTL-Only Ports\n"
        report += bullet_list(comparison.right_only, "") + "\n"

    report += f"## Compatibility Score: {comparison.score:.1f}%\n"
    if not comparison.compatible:
        report += (
            "\n⚠️ **Recommendation:** Review interface connections - "
            "low compatibility score suggests potential issues.\n"
        )
    return report


# =============================================================================
# SUGGEST-BUILD-FIXES
# =============================================================================

# Diagnostic -> (fix title, Makefile line that resolves it)
MARKER_FIXES = {
    ISSUE_COCOTB_MISSING: ("Add COCOTB Configuration", "COCOTB_HDL_TIMEUNIT = 1ns"),
    ISSUE_SOURCES_MISSING: ("Define Verilog Sources", "VERILOG_SOURCES += $(PWD)/../src/*.sv"),
}

ENHANCED_VERILATOR_CONFIG = """\
EXTRA_ARGS += --trace --trace-structs
EXTRA_ARGS += --x-assign unique --x-initial unique
COMPILE_ARGS += -Wall -Wno-fatal"""


def _makefile_block(text: str) -> str:
    body = "\n".join(f"   {line}" for line in text.splitlines())
    return f"   ```makefile\n{body}\n   ```\n\n"


async def suggest_build_fixes(ctx: HandlerContext, args: dict) -> str:
    path = ctx.resolve_path(args["buildScriptPath"])
    analysis = analyze_build_script(await read_source(path))
    simulator = ctx.settings.simulator

    report = f"# Makefile Analysis and Suggestions\n\n**File:** {path}\n\n"

    report += "## Current Configuration\n"
    report += f"- **Simulator:** {analysis.simulator}\n"
    report += f"- **Targets:** {', '.join(analysis.targets) or 'None detected'}\n"
    report += f"- **Dependencies:** {', '.join(analysis.dependencies) or 'None detected'}\n\n"

    if analysis.issues:
        report += "## Issues Found\n"
        for index, issue in enumerate(analysis.issues, 1):
            report += f"{index}. ⚠️ {issue}\n"
        report += "\n"

    fixes = []
    if analysis.simulator != simulator:
        fixes.append(f"🔧 **Force Verilator Usage:**\n   Add to Makefile: `SIM ?= {simulator}`\n\n")
    for issue in analysis.issues:
        if issue in MARKER_FIXES:
            title, line = MARKER_FIXES[issue]
            fixes.append(f"➕ **{title}:**\n   Add to Makefile: `{line}`\n\n")
    if "clean" not in analysis.targets:
        fixes.append(
            "🧹 **Add Clean Target:**\n"
            + _makefile_block("clean:\n    rm -rf sim_build/ __pycache__/ *.vcd")
        )
    fixes.append("📊 **Enhanced Verilator Configuration:**\n" + _makefile_block(ENHANCED_VERILATOR_CONFIG))

    report += "## Recommended Fixes\n"
    for index, fix in enumerate(fixes, 1):
        report += f"{index}. {fix}"
    return report


# =============================================================================
# CHECK-COMPLIANCE
# =============================================================================

# Category -> (requirement, what to check). Statuses are never inferred.
COMPLIANCE_CHECKS = {
    "functional": (
        ("IPv4/IPv6 Filtering", "Verify packet parsing and filtering logic"),
        ("Port-based Filtering", "Verify TCP/UDP port filtering"),
        ("Statistics Counters", "Verify hit/miss/total counters"),
    ),
    "interface": (
        ("AXI-Stream Interface", "Verify 512-bit data width compliance"),
        ("AXI-Lite CSR Interface", "Verify register map at 0xB000"),
    ),
    "performance": (
        ("Throughput Maintenance", "Verify no performance degradation"),
        ("Clock Domain", "Verify 250MHz operation"),
    ),
}

UNVERIFIED_STATUS = "⚠️ UNVERIFIED - no automated analysis backs this item"


async def check_compliance(ctx: HandlerContext, args: dict) -> str:
    category = args["requirementCategory"]
    categories = list(COMPLIANCE_CHECKS) if category == "all" else [category]

    entries = []
    for name in categories:
        for requirement, check in COMPLIANCE_CHECKS[name]:
            entries.append(f"**{requirement}** ({name})\n- Check: {check}\n- Status: {UNVERIFIED_STATUS}\n")

    return (
        "# Requirements Compliance Checklist\n\n"
        + "\n".join(entries)
        + "\n**Overall Status**: UNVERIFIED. This checklist is static; it does not inspect the "
        "design. Confirm each item with:\n"
        "- `run-analysis` for the functional and performance tests\n"
        "- `check-compatibility` for the AXI interfaces\n"
        "- `analyze-source` and `suggest-build-fixes` for the build\n"
    )


# =============================================================================
# CROSS-REFERENCE-SIGNALS
# =============================================================================

SIGNAL_MAP = {
    "top": (
        "aclk - Main clock signal",
        "aresetn - Active-low reset",
        "s_axis_* - Input AXI-Stream interface",
        "m_axis_* - Output AXI-Stream interface",
        "s_axil_* - AXI-Lite configuration interface",
    ),
    "filter": (
        "filter_enable - Enable/disable filtering",
        "rule_*_ip_addr - Filter rule IP addresses",
        "rule_*_port - Filter rule port numbers",
        "hit_count_* - Statistics counters",
        "packet_match - Filter decision output",
    ),
    "parser": (
        "eth_type - Ethernet type field",
        "ip_version - IP version (4 or 6)",
        "ip_dst_addr - Destination IP address",
        "tcp_dst_port - TCP destination port",
        "udp_dst_port - UDP destination port",
        "parse_valid - Parser output valid",
    ),
}

TESTBENCH_ACCESS_PATTERNS = """\
## Testbench Access Patterns
```python
# Access top-level signals
await ClockCycles(dut.aclk, 10)
dut.aresetn.value = 0

# Access filter configuration
dut.rule_0_ip_addr.value = 0x0A000001  # 10.0.0.1
await ClockCycles(dut.aclk, 1)

# Monitor statistics
hit_count = dut.hit_count_0.value
```
"""


async def cross_reference_signals(ctx: HandlerContext, args: dict) -> str:
    level = args["hierarchyLevel"]
    report = f"# Signal Cross-Reference Map\n\n**Hierarchy Level:** {level}\n\n"

    if level == "all":
        for name, signals in SIGNAL_MAP.items():
            report += f"## {name.upper()} Level\n" + bullet_list(signals, "") + "\n"
    else:
        report += "## Signal Definitions\n" + bullet_list(SIGNAL_MAP[level], "") + "\n"

    return report + TESTBENCH_ACCESS_PATTERNS


# =============================================================================
# HANDLER TABLE
# =============================================================================

TOOL_HANDLERS: Mapping[str, ToolHandler] = {
    "run-analysis": run_analysis,
    "analyze-source": analyze_source,
    "check-compatibility": check_compatibility,
    "suggest-build-fixes": suggest_build_fixes,
    "check-compliance": check_compliance,
    "cross-reference-signals": cross_reference_signals,
}

# Extra guidance appended when a tool fails with a collaborator error
FAILURE_HINTS: Mapping[str, str] = {
    "run-analysis": SIMULATION_TROUBLESHOOTING,
}
