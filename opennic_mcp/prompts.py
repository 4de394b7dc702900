"""
Prompt renderers.

Each renderer takes the validated prompt arguments (all strings, defaults
already applied) and returns (description, document).

License: MIT
"""

from typing import Callable, Mapping, Tuple

PromptRenderer = Callable[[dict], Tuple[str, str]]

TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: str) -> bool:
    return value.strip().lower() in TRUTHY


# =============================================================================
# CREATE-TEST-SCENARIO
# =============================================================================

SCENARIO_DEBUG_STEPS = """
### Debug Analysis
1. **Pre-simulation:**
   - Run `analyze-source` on filter RTL
   - Use `suggest-build-fixes` for build optimization
   - Verify with `check-compatibility`

2. **During Simulation:**
   - Monitor signals with `cross-reference-signals`
   - Generate VCD waveforms for analysis
   - Check real-time statistics updates

3. **Post-simulation:**
   - Analyze waveforms with GTKWave
   - Review the `check-compliance` checklist
   - Performance analysis with Verilator metrics
"""

SCENARIO_TEMPLATE = """\
# Test Scenario: {scenario} - {packet} Packet Filtering

## Test Objective
Verify packet filter behavior for {scenario} scenario using {packet} packets with Verilator simulation.

## Prerequisites Verification
- [ ] Verilator installation: `verilator --version`
- [ ] SystemVerilog sources analyzed
- [ ] Interface compatibility verified
- [ ] Makefile configuration reviewed

## Test Setup
1. **Configure Filter Rules:**
   - Rule 0: [Define specific {packet} criteria]
   - Rule 1: [Define specific {packet} criteria]

2. **Generate Test Packets:**
   - Protocol: {packet}
   - Source: [IP address]
   - Destination: [IP address]
   - Port: [TCP/UDP port]
   - Payload: [Test data pattern]

3. **Verilator Configuration:**
   ```bash
   SIM=verilator WAVES=1 EXTRA_ARGS="--trace --trace-structs" make test
   ```

## Expected Results
- ✅ Matching packets: Forwarded with statistics update
- ❌ Non-matching packets: Dropped with counter increment
- 📊 Statistics: Accurate counter updates verified

## Verification Points
- [ ] Packet parsing correctness (use analyze-source)
- [ ] Filter rule matching logic
- [ ] AXI-Stream flow control (check-compatibility)
- [ ] CSR register updates (cross-reference-signals)
{debug_steps}
## Cocotb Test Code Template
```python
@cocotb.test()
async def test_{test_name}(dut):
    \"\"\"{scenario} test with debugging support\"\"\"

    clock = Clock(dut.aclk, 4, units="ns")  # 250MHz
    cocotb.start_soon(clock.start())

    dut.aresetn.value = 0
    await ClockCycles(dut.aclk, 10)
    dut.aresetn.value = 1
    await ClockCycles(dut.aclk, 10)

    # Configure filter rules (use cross-reference-signals for signal names)
    # [Configuration code here]

    # Send test packets over AXI-Stream
    # [Packet generation code here]

    # Verify results
    # [Verification code here]

    dut._log.info("Test completed - Use VCD analysis for detailed review")
```

## Performance Metrics
- Simulation speed: Expected 10-100x faster with Verilator
- Memory usage: Monitor with Verilator built-in profiling
- Coverage: Optional `--coverage` flag for analysis
"""


def _identifier(text: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in text.strip().lower()) or "scenario"


def render_test_scenario(args: dict) -> Tuple[str, str]:
    scenario = args["scenarioType"]
    packet = args["packetType"]
    debug_steps = ""
    if _flag(args["includeDebug"]):
        debug_steps = "\n## Debugging Steps\n" + SCENARIO_DEBUG_STEPS
    document = SCENARIO_TEMPLATE.format(
        scenario=scenario,
        packet=packet,
        debug_steps=debug_steps,
        test_name=f"{_identifier(scenario)}_{_identifier(packet)}",
    )
    return f"Test scenario for {scenario} with {packet} packets", document


# =============================================================================
# DEBUG-WORKFLOW-GUIDE
# =============================================================================

# Issue type -> (targeted steps, tools to reach for)
ISSUE_GUIDANCE = {
    "compilation": (
        "**Compilation-Specific Steps:**\n"
        "1. Run Verilator lint: `verilator --lint-only -Wall *.sv`\n"
        "2. Check package imports with `analyze-source`\n"
        "3. Validate include paths and dependencies\n"
        "4. Review Makefile configuration suggestions\n",
        "- `analyze-source`: Check RTL files\n"
        "- `suggest-build-fixes`: Fix build configuration\n",
    ),
    "simulation": (
        "**Simulation-Specific Steps:**\n"
        "1. Use `check-compatibility` for testbench/RTL matching\n"
        "2. Enable detailed logging: `COCOTB_DEBUG=1`\n"
        "3. Generate waveforms: `WAVES=1` with trace analysis\n"
        "4. Cross-reference signals for hierarchy validation\n",
        "- `check-compatibility`: Verify connections\n"
        "- `cross-reference-signals`: Map testbench signals\n",
    ),
    "functional": (
        "**Functional-Specific Steps:**\n"
        "1. Use `cross-reference-signals` to map test to RTL\n"
        "2. Analyze packet processing pipeline stages\n"
        "3. Verify filter logic with waveform analysis\n"
        "4. Check CSR interface with register cross-reference\n",
        "- `cross-reference-signals`: Debug signal flow\n"
        "- `check-compliance`: Review the requirements checklist\n",
    ),
    "timing": (
        "**Timing-Specific Steps:**\n"
        "1. Review pipeline implementation for combinational loops\n"
        "2. Check clock domain crossings\n"
        "3. Analyze critical path with Verilator timing reports\n"
        "4. Validate 250MHz constraint compliance\n",
        "- `analyze-source`: Check for structural issues\n"
        "- `run-analysis`: Performance testing\n",
    ),
}

GENERIC_GUIDANCE = (
    "**General Steps:**\n"
    "1. Reproduce the issue with the smallest failing test\n"
    "2. Run `analyze-source` and `suggest-build-fixes`\n"
    "3. Capture waveforms with `WAVES=1`\n",
    "- `analyze-source`\n- `suggest-build-fixes`\n- `run-analysis`\n",
)

WORKFLOW_TEMPLATE = """\
# Debug Workflow Guide: {issue} Issues

## Issue Classification
**Type:** {issue}
**Symptoms:** {symptoms}

## Systematic Debug Approach

### Phase 1: Environment Validation
1. **Simulator Check:**
   ```bash
   verilator --version  # Must be v4.200+
   which verilator      # Verify PATH
   ```

2. **Project Structure:**
   - Use `analyze-source` on main RTL files
   - Run `suggest-build-fixes` for configuration issues
   - Verify dependencies with build analysis

### Phase 2: Targeted Analysis
{steps}
### Phase 3: Resolution Steps
1. **Apply Tool Recommendations:**
   - Follow suggestions from the Makefile analyzer
   - Implement interface compatibility fixes
   - Use signal cross-reference for debugging

2. **Iterative Testing:**
   - Test with simplified scenarios first
   - Gradually increase complexity

3. **Validation:**
   - Run the full test suite with `run-analysis`
   - Document the resolution for future reference

## Tools for This Issue Type
{tools}
## Success Criteria
- [ ] Issue symptoms resolved
- [ ] Analysis tools report clean status
- [ ] Simulation runs successfully with Verilator
"""


def render_debug_workflow(args: dict) -> Tuple[str, str]:
    issue = args["issueType"]
    steps, tools = ISSUE_GUIDANCE.get(issue.strip().lower(), GENERIC_GUIDANCE)
    document = WORKFLOW_TEMPLATE.format(
        issue=issue, symptoms=args["symptoms"], steps=steps, tools=tools,
    )
    return f"Debug workflow guide for {issue} issues", document


PROMPT_RENDERERS: Mapping[str, PromptRenderer] = {
    "create-test-scenario": render_test_scenario,
    "debug-workflow-guide": render_debug_workflow,
}
