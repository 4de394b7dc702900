"""
Process Runner - Executes external tools (make, verilator) for the server.

Every call spawns its own child process with asyncio, so one slow simulation
never stalls other requests being served on the same event loop.

Architecture:
    run() starts the command with asyncio.create_subprocess_exec (no shell)
    and drains stdout and stderr concurrently, chunk by chunk, as the child
    writes them. Pipes therefore never fill up and block the child, however
    much output a simulation produces.

Key Design Decisions:
    1. No Shell: Arguments are passed as a list. Make variables such as
       SIM=verilator are passed as make arguments rather than through a
       "bash -c" string.

    2. Typed Outcomes: Exit status 0 returns a ProcessOutcome. Anything else
       raises - ProcessFailed for a non-zero exit or a spawn failure,
       ProcessCancelled when the caller's cancel token fires.

    3. No Built-in Timeout: Callers that need a deadline set the cancel
       event themselves (see tools.run_analysis).

    4. No Retries and No Shared State: Each call owns its buffers and its
       outcome; nothing is cached between calls.

Usage:
    runner = ProcessRunner()
    outcome = await runner.run("verilator", ["--lint-only", "-Wall", "top.sv"])
    print(outcome.stdout)

License: MIT
"""

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from .errors import ProcessCancelled, ProcessFailed

logger = logging.getLogger(__name__)

# Bytes read from a pipe per await
READ_CHUNK_SIZE = 4096

# Seconds to wait after SIGTERM before sending SIGKILL
TERMINATE_GRACE_SECONDS = 5.0

_HAS_PROCESS_GROUPS = hasattr(os, "killpg")


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class ProcessOutcome:
    """
    Result of one subprocess execution.

    Attributes:
        command: The executable that was run
        args: Arguments passed to it
        exit_code: Process exit status, or None if it never started
        stdout: Captured standard output (UTF-8, undecodable bytes replaced)
        stderr: Captured standard error
        elapsed_ms: Wall-clock time from spawn to exit in milliseconds
        timestamp: ISO format timestamp of when the process finished
    """
    command: str
    args: tuple
    exit_code: Optional[int]
    stdout: str
    stderr: str
    elapsed_ms: float
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        """Human-readable command line for reports."""
        return " ".join((self.command,) + self.args)


# =============================================================================
# PROCESS RUNNER
# =============================================================================

async def _drain(stream: asyncio.StreamReader, chunks: list) -> None:
    """Read a pipe until EOF, appending each chunk as it arrives."""
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return
        chunks.append(chunk)


def _decode(chunks: list) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


class ProcessRunner:
    """
    Stateless launcher for external commands.

    A single instance can be shared by concurrent requests: every run() call
    gets its own child process and its own output buffers.

    Attributes:
        terminate_grace: Seconds between SIGTERM and SIGKILL when a run is
            cancelled
    """

    def __init__(self, terminate_grace: float = TERMINATE_GRACE_SECONDS):
        self.terminate_grace = terminate_grace

    async def run(
        self,
        command: str,
        args: Sequence[Union[str, Path]] = (),
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ProcessOutcome:
        """
        Run a command to completion and return its outcome.

        Args:
            command: Executable name (looked up on PATH) or path
            args: Arguments for the executable
            cwd: Working directory for the child (default: inherit ours)
            env: Extra environment variables, merged over os.environ
            cancel: Optional event; setting it terminates the child

        Returns:
            ProcessOutcome when the command exits with status 0

        Raises:
            ProcessFailed: Non-zero exit, or the command could not be started
                (executable not found, working directory missing, ...)
            ProcessCancelled: The cancel event fired before the child exited
        """
        args = tuple(str(arg) for arg in args)
        start_time = time.time()

        def outcome(exit_code, stdout_chunks=(), stderr_chunks=(), stderr_text=None):
            return ProcessOutcome(
                command=command,
                args=args,
                exit_code=exit_code,
                stdout=_decode(list(stdout_chunks)),
                stderr=stderr_text if stderr_text is not None else _decode(list(stderr_chunks)),
                elapsed_ms=(time.time() - start_time) * 1000,
            )

        if cancel is not None and cancel.is_set():
            raise ProcessCancelled(outcome(None))

        child_env = {**os.environ, **env} if env else None

        logger.debug("Spawning %s %s (cwd=%s)", command, " ".join(args), cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(cwd) if cwd is not None else None,
                env=child_env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                # Own process group, so cancelling make also stops the
                # simulator it launched
                start_new_session=_HAS_PROCESS_GROUPS,
            )
        except (OSError, ValueError) as e:
            # FileNotFoundError covers both a missing executable and a
            # missing working directory; ValueError a NUL byte in an argument
            logger.debug("Failed to spawn %s: %s", command, e)
            raise ProcessFailed(outcome(None, stderr_text=str(e))) from e

        stdout_chunks: list = []
        stderr_chunks: list = []
        completion = asyncio.ensure_future(
            self._communicate(process, stdout_chunks, stderr_chunks)
        )
        waiters = {completion}
        cancel_waiter = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # The awaiting task was cancelled (e.g. the client cancelled the
            # request). Don't leave the child running behind us.
            self._kill(process)
            completion.cancel()
            # Reap the killed child before propagating
            await asyncio.shield(process.wait())
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if completion not in done:
            logger.debug("Cancelling %s (pid %s)", command, process.pid)
            await self._terminate(process)
            try:
                await asyncio.wait_for(completion, timeout=self.terminate_grace)
            except asyncio.TimeoutError:
                pass  # A straggler still holds the pipes; keep what we have
            raise ProcessCancelled(outcome(process.returncode, stdout_chunks, stderr_chunks))

        exit_code = completion.result()
        result = outcome(exit_code, stdout_chunks, stderr_chunks)
        logger.debug("%s exited with %s after %.1fms", command, exit_code, result.elapsed_ms)

        if exit_code != 0:
            raise ProcessFailed(result)
        return result

    async def _communicate(self, process, stdout_chunks: list, stderr_chunks: list) -> int:
        """Drain both pipes concurrently, then reap the child."""
        await asyncio.gather(
            _drain(process.stdout, stdout_chunks),
            _drain(process.stderr, stderr_chunks),
        )
        return await process.wait()

    async def _terminate(self, process) -> None:
        """SIGTERM the child, escalating to SIGKILL after the grace period."""
        if process.returncode is not None:
            return
        _signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_grace)
        except asyncio.TimeoutError:
            self._kill(process)
            await process.wait()

    @staticmethod
    def _kill(process) -> None:
        if process.returncode is None:
            _signal_group(process, signal.SIGKILL if _HAS_PROCESS_GROUPS else signal.SIGTERM)


def _signal_group(process, signum: int) -> None:
    """Signal the child's whole process group where the platform allows it."""
    try:
        if _HAS_PROCESS_GROUPS:
            os.killpg(process.pid, signum)
        else:
            process.send_signal(signum)
    except ProcessLookupError:
        pass  # Already exited
