"""
Pytest configuration and fixtures
"""
import textwrap

import pytest

from opennic_mcp.config import Settings
from opennic_mcp.dispatcher import Dispatcher
from opennic_mcp.process_runner import ProcessOutcome


class RecordingRunner:
    """
    Stand-in for ProcessRunner that records calls instead of spawning.

    Set `error` to an exception (or a callable returning one) to make every
    run() raise it; otherwise run() succeeds with `stdout`.
    """

    def __init__(self, stdout="", error=None):
        self.calls = []
        self.stdout = stdout
        self.error = error

    async def run(self, command, args=(), cwd=None, env=None, cancel=None):
        args = tuple(str(arg) for arg in args)
        self.calls.append({"command": command, "args": args, "cwd": cwd, "env": env, "cancel": cancel})
        outcome = ProcessOutcome(command=command, args=args, exit_code=0, stdout=self.stdout, stderr="", elapsed_ms=1.0)
        if self.error is not None:
            raise self.error(outcome) if callable(self.error) else self.error
        return outcome


@pytest.fixture
def settings(tmp_path):
    return Settings(project_root=tmp_path)


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def make_runner():
    return RecordingRunner


@pytest.fixture
def dispatcher(settings, runner):
    return Dispatcher(settings, runner=runner)


@pytest.fixture
def write_file(tmp_path):
    """Write dedented text under tmp_path and return the path."""
    def _write(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path
    return _write


FILTER_RTL = """\
import axi_pkg::*;
import filter_pkg::rule_t;

module filter_rx_pipeline (
    input  logic         aclk,
    input  logic         aresetn,
    input  logic [511:0] s_axis_tdata,
    input  logic         s_axis_tvalid,
    output logic         s_axis_tready,
    output logic [511:0] m_axis_tdata,
    output logic         m_axis_tvalid
);
    logic [31:0] hit_count_0;
    wire         packet_match;
    reg  [15:0]  tcp_dst_port;
    // logic commented_out;
endmodule
"""

TESTBENCH = """\
module tb_filter (
    input  logic aclk,
    input  logic aresetn,
    input  logic [511:0] s_axis_tdata,
    input  logic debug_probe
);
endmodule
"""


@pytest.fixture
def rtl_source():
    return FILTER_RTL


@pytest.fixture
def testbench_source():
    return TESTBENCH
