"""
Tests for the tool handlers (no real processes are spawned)
"""
from dataclasses import replace

import pytest

from opennic_mcp.config import Settings
from opennic_mcp.content import ContentResolver
from opennic_mcp.errors import ProcessCancelled, ProcessFailed, SourceUnavailable, TargetMissing
from opennic_mcp.tools import (
    COMPLIANCE_CHECKS,
    HandlerContext,
    analyze_source,
    check_compatibility,
    check_compliance,
    cross_reference_signals,
    run_analysis,
    simulation_arguments,
    suggest_build_fixes,
    truncate_output,
)


@pytest.fixture
def ctx(settings, runner):
    return HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(settings.project_root))


def failing(**changes):
    return lambda outcome: ProcessFailed(replace(outcome, **changes))


# =============================================================================
# truncate_output / simulation_arguments
# =============================================================================

def test_truncate_output_short_content_unchanged():
    assert truncate_output("ok\n", 100) == "ok\n"


def test_truncate_output_keeps_the_tail():
    content = "".join(f"line {i}\n" for i in range(1000))
    result = truncate_output(content, 200)
    assert result.startswith("[... output truncated (")
    assert result.endswith("line 999\n")
    assert "line 0\n" not in result
    # Cut lands on a line boundary
    assert result.splitlines()[1].startswith("line ")


def test_simulation_arguments_all_mode():
    assert simulation_arguments(Settings(), "all", False, False) == ["test", "SIM=verilator"]


def test_simulation_arguments_with_options():
    args = simulation_arguments(Settings(simulator="verilator"), "csr", True, True)
    assert args == [
        "test",
        "SIM=verilator",
        "TESTCASE=test_csr_interface",
        "COCOTB_DEBUG=1",
        "WAVES=1",
        "EXTRA_ARGS=--trace --trace-structs",
    ]


def test_resolve_path_relative_to_project_root(ctx, tmp_path):
    assert ctx.resolve_path("tb/Makefile") == tmp_path / "tb" / "Makefile"
    assert ctx.resolve_path("/abs/file.sv").as_posix() == "/abs/file.sv"


# =============================================================================
# run-analysis
# =============================================================================

RUN_DEFAULTS = {"mode": "all", "debug": False, "waves": False}


@pytest.mark.asyncio
async def test_run_analysis_missing_directory(ctx, runner, tmp_path):
    with pytest.raises(TargetMissing):
        await run_analysis(ctx, {"analysisTarget": str(tmp_path / "missing"), **RUN_DEFAULTS})
    assert runner.calls == []


@pytest.mark.asyncio
async def test_run_analysis_invokes_make_in_target(settings, make_runner, tmp_path):
    runner = make_runner(stdout="PASS=4 FAIL=0")
    ctx = HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(tmp_path))
    report = await run_analysis(ctx, {"analysisTarget": str(tmp_path), **RUN_DEFAULTS, "mode": "basic"})

    call = runner.calls[0]
    assert call["command"] == "make"
    assert call["args"] == ("test", "SIM=verilator", "TESTCASE=test_filter_basic")
    assert call["cwd"] == tmp_path
    assert report.startswith("✅ Verilator simulation completed successfully!")
    assert "🔧 Command: make test SIM=verilator TESTCASE=test_filter_basic" in report
    assert "PASS=4 FAIL=0" in report


@pytest.mark.asyncio
async def test_run_analysis_failure_report(settings, make_runner, tmp_path):
    runner = make_runner(error=failing(exit_code=2, stdout="x" * 20000 + "\nFAIL tail", stderr="boom"))
    ctx = HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(tmp_path))
    report = await run_analysis(ctx, {"analysisTarget": str(tmp_path), **RUN_DEFAULTS})

    assert report.startswith("❌ Verilator simulation failed: Command failed with exit code 2\n")
    assert "FAIL tail" in report
    assert "output truncated" in report
    assert "⚠️  STDERR:\nboom" in report
    assert "🔍 Troubleshooting Steps:" in report


@pytest.mark.asyncio
async def test_run_analysis_failure_truncates_stderr(tmp_path, make_runner):
    settings = Settings(project_root=tmp_path, max_response_chars=1000)
    stderr = "".join(f"%Error: line {i}\n" for i in range(5000))
    runner = make_runner(error=failing(exit_code=2, stderr=stderr))
    ctx = HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(tmp_path))
    report = await run_analysis(ctx, {"analysisTarget": str(tmp_path), **RUN_DEFAULTS})

    assert len(report) < 3000
    assert "%Error: line 4999" in report
    assert "%Error: line 0\n" not in report


@pytest.mark.asyncio
async def test_run_analysis_cancelled(tmp_path, make_runner):
    settings = Settings(project_root=tmp_path, analysis_timeout=30)
    runner = make_runner(error=lambda outcome: ProcessCancelled(replace(outcome, exit_code=-15, stdout="partial")))
    ctx = HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(tmp_path))
    report = await run_analysis(ctx, {"analysisTarget": str(tmp_path), **RUN_DEFAULTS})

    assert report.startswith("⏹️ Verilator simulation cancelled after 30")
    assert "partial" in report
    assert runner.calls[0]["cancel"] is not None


# =============================================================================
# analyze-source
# =============================================================================

@pytest.mark.asyncio
async def test_analyze_source_report(ctx, runner, write_file, rtl_source):
    path = write_file("src/filter_rx_pipeline.sv", rtl_source)
    report = await analyze_source(ctx, {"filePath": str(path), "checkDependencies": True})

    assert "## Package Dependencies\n- axi_pkg\n- filter_pkg\n" in report
    assert "## Interface Ports\n- aclk\n" in report
    assert "✅ No syntax errors found." in report
    assert runner.calls[0]["command"] == "verilator"
    assert runner.calls[0]["args"] == ("--lint-only", "-Wall", str(path))


@pytest.mark.asyncio
async def test_analyze_source_lists_at_most_ten_signals(ctx, write_file):
    body = "".join(f"logic sig_{i:02d};\n" for i in range(13))
    path = write_file("many.sv", f"module many;\n{body}endmodule\n")
    report = await analyze_source(ctx, {"filePath": str(path), "checkDependencies": False})

    assert "## Package Dependencies" not in report
    assert "- sig_09\n" in report
    assert "- sig_10\n" not in report
    assert "... and 3 more signals" in report


@pytest.mark.asyncio
async def test_analyze_source_lint_issues(settings, make_runner, write_file, tmp_path):
    runner = make_runner(error=failing(exit_code=1, stderr="%Warning-UNUSED: x\n"))
    ctx = HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(tmp_path))
    path = write_file("a.sv", "module a; endmodule\n")
    report = await analyze_source(ctx, {"filePath": str(path), "checkDependencies": True})
    assert "⚠️ Issues found (exit code 1):\n%Warning-UNUSED: x" in report


@pytest.mark.asyncio
async def test_analyze_source_without_verilator(settings, make_runner, write_file, tmp_path):
    runner = make_runner(error=failing(exit_code=None, stderr="No such file or directory"))
    ctx = HandlerContext(settings=settings, runner=runner, resolver=ContentResolver(tmp_path))
    path = write_file("a.sv", "module a; endmodule\n")
    report = await analyze_source(ctx, {"filePath": str(path), "checkDependencies": True})
    assert "⚠️ Verilator not available: No such file or directory" in report


@pytest.mark.asyncio
async def test_analyze_source_missing_file(ctx, runner, tmp_path):
    with pytest.raises(SourceUnavailable):
        await analyze_source(ctx, {"filePath": str(tmp_path / "nope.sv"), "checkDependencies": True})
    assert runner.calls == []


def test_resolve_path_unknown_home_directory(ctx, tmp_path):
    assert ctx.resolve_path("~no_such_user_xyz/top.sv") == tmp_path / "~no_such_user_xyz" / "top.sv"


@pytest.mark.asyncio
async def test_analyze_source_unexpandable_home_is_unavailable(ctx, runner):
    with pytest.raises(SourceUnavailable):
        await analyze_source(ctx, {"filePath": "~no_such_user_xyz/top.sv", "checkDependencies": True})
    assert runner.calls == []


@pytest.mark.asyncio
async def test_analyze_source_nul_byte_is_unavailable(ctx, runner):
    with pytest.raises(SourceUnavailable):
        await analyze_source(ctx, {"filePath": "top\0.sv", "checkDependencies": True})
    assert runner.calls == []


@pytest.mark.asyncio
async def test_run_analysis_odd_paths_are_missing_targets(ctx, runner):
    for target in ("~no_such_user_xyz/tests", "tests\0dir"):
        with pytest.raises(TargetMissing):
            await run_analysis(ctx, {"analysisTarget": target, **RUN_DEFAULTS})
    assert runner.calls == []


@pytest.mark.asyncio
async def test_analyze_source_reports_unbalanced_modules(ctx, write_file):
    path = write_file("broken.sv", "module broken;\nlogic a;\n")
    report = await analyze_source(ctx, {"filePath": str(path), "checkDependencies": True})
    assert "## Structural Issues (heuristic)" in report


# =============================================================================
# check-compatibility
# =============================================================================

@pytest.mark.asyncio
async def test_check_compatibility(ctx, write_file, rtl_source, testbench_source):
    tb = write_file("tb.sv", testbench_source)
    rtl = write_file("rtl.sv", rtl_source)
    report = await check_compatibility(ctx, {"leftFile": str(tb), "rightFile": str(rtl)})

    assert "## ✅ Matching Interfaces\n- aclk\n- aresetn\n- s_axis_tdata\n" in report
    assert "## ⚠️ Testbench-Only Signals\n- debug_probe\n" in report
    assert "## ⚠️ RTL-Only Ports\n" in report
    assert "## Compatibility Score: 75.0%" in report
    assert "**Recommendation:**" in report


@pytest.mark.asyncio
async def test_check_compatibility_identical_files(ctx, write_file, rtl_source):
    rtl = write_file("rtl.sv", rtl_source)
    report = await check_compatibility(ctx, {"leftFile": str(rtl), "rightFile": str(rtl)})
    assert "## Compatibility Score: 100.0%" in report
    assert "Only" not in report
    assert "Recommendation" not in report


@pytest.mark.asyncio
async def test_check_compatibility_missing_right(ctx, write_file, testbench_source, tmp_path):
    tb = write_file("tb.sv", testbench_source)
    with pytest.raises(SourceUnavailable) as excinfo:
        await check_compatibility(ctx, {"leftFile": str(tb), "rightFile": str(tmp_path / "rtl.sv")})
    assert "rtl.sv" in str(excinfo.value)


# =============================================================================
# suggest-build-fixes
# =============================================================================

@pytest.mark.asyncio
async def test_suggest_build_fixes_empty_makefile(ctx, write_file):
    path = write_file("Makefile", "")
    report = await suggest_build_fixes(ctx, {"buildScriptPath": str(path)})

    assert "- **Simulator:** not_specified" in report
    assert "- **Targets:** None detected" in report
    assert "1. 🔧 **Force Verilator Usage:**\n   Add to Makefile: `SIM ?= verilator`" in report
    assert "4. 🧹 **Add Clean Target:**" in report
    assert "5. 📊 **Enhanced Verilator Configuration:**" in report


@pytest.mark.asyncio
async def test_suggest_build_fixes_clean_makefile(ctx, write_file):
    path = write_file("Makefile", """\
        SIM ?= verilator
        VERILOG_SOURCES += ../src/top.sv
        COCOTB_HDL_TIMEUNIT = 1ns
        clean:
        \trm -rf sim_build
    """)
    report = await suggest_build_fixes(ctx, {"buildScriptPath": str(path)})

    assert "## Issues Found" not in report
    assert "- **Targets:** clean" in report
    assert "1. 📊 **Enhanced Verilator Configuration:**" in report


# =============================================================================
# check-compliance / cross-reference-signals
# =============================================================================

@pytest.mark.asyncio
async def test_check_compliance_all_is_unverified(ctx):
    report = await check_compliance(ctx, {"requirementCategory": "all"})
    total = sum(len(checks) for checks in COMPLIANCE_CHECKS.values())
    assert report.count("Status: ⚠️ UNVERIFIED") == total
    assert "✅" not in report
    assert "**Overall Status**: UNVERIFIED" in report


@pytest.mark.asyncio
async def test_check_compliance_single_category(ctx):
    report = await check_compliance(ctx, {"requirementCategory": "interface"})
    assert "AXI-Stream Interface" in report
    assert "IPv4/IPv6 Filtering" not in report


@pytest.mark.asyncio
async def test_cross_reference_single_level(ctx):
    report = await cross_reference_signals(ctx, {"hierarchyLevel": "parser"})
    assert "**Hierarchy Level:** parser" in report
    assert "- tcp_dst_port - TCP destination port" in report
    assert "filter_enable" not in report
    assert "## Testbench Access Patterns" in report


@pytest.mark.asyncio
async def test_cross_reference_all_levels(ctx):
    report = await cross_reference_signals(ctx, {"hierarchyLevel": "all"})
    assert "## TOP Level" in report
    assert "## FILTER Level" in report
    assert "## PARSER Level" in report
