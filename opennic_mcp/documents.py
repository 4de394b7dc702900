"""
Generated documents served as resources.

Unlike the requirements and register map, these guides aren't files in the
OpenNIC checkout; they are rendered on demand. The only variable part is the
project root, so paths in the instructions match the configured checkout.

License: MIT
"""

from pathlib import Path

# Location of the filter's cocotb tests inside the OpenNIC shell checkout
FILTER_TEST_DIR = Path("tb/tests/filter_rx_pipeline")


SIMULATION_GUIDE = """\
# OpenNIC Filter Simulation Guide (Verilator Only)

## Prerequisites
1. **Verilator** - SystemVerilog simulator (required; the server always passes SIM=verilator)
   - macOS: `brew install verilator`
   - Ubuntu: `sudo apt-get install verilator`
   - Verify: `verilator --version` (minimum v4.200+)
2. Python virtual environment with Cocotb
3. OpenNIC shell project setup

## Simulator Compatibility Check
The server's tools help you check:
- Verilator installation (`analyze-source` runs `verilator --lint-only`)
- SystemVerilog package imports
- Testbench/RTL port matching
- Makefile configuration

## Running Filter Tests (Verilator)

### Setup Environment
```bash
cd {test_dir}
source venv/bin/activate
pip install -r requirements.txt
```

### Test Execution
```bash
make test SIM=verilator                    # Basic test with Verilator
make test SIM=verilator WAVES=1            # Generate VCD waveforms
make test SIM=verilator COCOTB_DEBUG=1     # Enable detailed logging
```

Or use the `run-analysis` tool with `analysisTarget` set to `{test_dir}`.

### Verilator-Specific Features
- **Fast Compilation**: C++ backend for optimal performance
- **VCD Waveforms**: `--trace --trace-structs` for detailed signals
- **Lint Checking**: Built-in SystemVerilog compliance checking
- **Coverage**: Optional `--coverage` for code coverage analysis

## Debug Workflow Integration
1. **Makefile Analysis**: `suggest-build-fixes` detects configuration issues
2. **Interface Matching**: `check-compatibility` compares port names
3. **Signal Cross-Reference**: `cross-reference-signals` maps testbench to RTL signals
4. **Build Dependencies**: `analyze-source` lists package imports

## Test Structure
- **test_filter_basic.py**: IPv4/IPv6 basic filtering
- **test_filter_advanced.py**: Edge cases and stress tests
- **test_csr_interface.py**: Register access validation
- **test_performance.py**: Throughput and timing tests

## Verilator Performance Optimization
```bash
VERILATOR_ARGS="--threads 4 -O3" make test
VERILATOR_ARGS="--x-assign unique --x-initial unique" make test
```
"""


DEBUG_WORKFLOW = """\
# OpenNIC Filter Hardware Debug Workflow

## Phase 1: Pre-Simulation Analysis
1. **Verilog Source Check**
   - `analyze-source` lists package imports, signals and ports
   - Runs `verilator --lint-only -Wall` when Verilator is installed

2. **Build Environment Validation**
   - `suggest-build-fixes` analyzes the Makefile configuration
   - Confirms SIM, COCOTB_* and VERILOG_SOURCES are set

## Phase 2: Compilation Debug
1. **Verilator Lint Phase**
   ```bash
   verilator --lint-only -Wall filter_rx_pipeline.sv
   ```

2. **Package Dependency Resolution**
   - Verify all imported packages are available
   - Check include file paths
   - Validate interface definitions

## Phase 3: Simulation Debug
1. **Signal Cross-Reference**
   - Map testbench signals to RTL hierarchy
   - Identify interface mismatches
   - Validate clock domain connections

2. **Waveform Analysis**
   ```bash
   WAVES=1 VERILATOR_ARGS="--trace --trace-structs" make test
   gtkwave sim_build/filter_rx_pipeline.vcd
   ```

## Phase 4: Functional Debug
1. **Packet Processing Pipeline**
   - Verify AXI-Stream handshaking
   - Check packet parsing stages
   - Validate filter decision logic

2. **CSR Interface Debug**
   - Test register read/write operations
   - Verify address decoding
   - Check statistics counter updates

## Phase 5: Performance Debug
1. **Timing Analysis**
   - Check for combinational loops
   - Verify pipeline stage timing
   - Validate 250MHz operation

2. **Throughput Validation**
   - Measure packet processing rate
   - Check for backpressure handling
   - Validate flow control mechanisms

## Server Debug Tools
- `analyze-source`: SystemVerilog dependency, signal and port listing
- `check-compatibility`: Port matching between testbench and RTL
- `suggest-build-fixes`: Makefile configuration recommendations
- `cross-reference-signals`: Test-to-RTL signal mapping

## Common Issues and Solutions
1. **Interface Mismatch**: Use the signal cross-reference tool
2. **Build Failures**: Run Makefile analysis for suggestions
3. **Timing Violations**: Check pipeline stage implementation
4. **Functional Errors**: Use waveform analysis with a VCD viewer

Project root: `{project_root}`
"""


def render_simulation_guide(project_root: Path) -> str:
    return SIMULATION_GUIDE.format(test_dir=project_root / FILTER_TEST_DIR)


def render_debug_workflow(project_root: Path) -> str:
    return DEBUG_WORKFLOW.format(project_root=project_root)
