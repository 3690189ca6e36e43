"""
Bounded-time external command execution.

Runs one program with its arguments (never through a shell), drains
stdout and stderr through a single readiness loop so neither pipe can
stall the other, and kills the whole process group once the wall-clock
budget is spent.

POSIX only: relies on non-blocking pipes, selectors and process groups.
"""

import errno
import logging
import math
import os
import selectors
import signal
import subprocess
import time
from typing import Dict, List, Mapping, Optional

from clusterhealth.modules.api.models import CommandInvocation, ExecutionResult, to_invocation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_POLL_INTERVAL = 0.1
MAX_POLL_INTERVAL = 0.2

# Upper bound on a single os.read() call
READ_CHUNK_SIZE = 65536

# How long to wait for the kernel to reap a SIGKILLed child
REAP_TIMEOUT_SECONDS = 5

STDOUT = "stdout"
STDERR = "stderr"


class ProcessRunner:
    """Runs external commands with a timeout and returns ExecutionResult values."""

    def __init__(
        self,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        kill_process_group: bool = True,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ):
        """
        Initialize the runner.

        Args:
            default_timeout: Budget in seconds when execute() is given none
            poll_interval: Longest single wait for pipe readiness, in seconds
            kill_process_group: Start each command in its own session and
                kill the whole group on timeout
            env: Environment for the child (inherits ours when None)
            cwd: Working directory for the child
        """
        _check_timeout(default_timeout)
        if not 0 < poll_interval <= MAX_POLL_INTERVAL:
            raise ValueError(
                f"poll_interval must be in (0, {MAX_POLL_INTERVAL}] seconds, got {poll_interval}"
            )

        self.default_timeout = default_timeout
        self.poll_interval = poll_interval
        self.kill_process_group = kill_process_group and hasattr(os, "killpg")
        self.env = dict(env) if env is not None else None
        self.cwd = cwd

    @classmethod
    def from_config(cls, config) -> "ProcessRunner":
        """Build a runner from the config module (see clusterhealth.modules.config)."""
        return cls(
            default_timeout=config.get("command_timeout", DEFAULT_TIMEOUT_SECONDS),
            poll_interval=config.get("poll_interval", DEFAULT_POLL_INTERVAL),
            kill_process_group=config.get("kill_process_group", True),
        )

    def execute(self, command, timeout_seconds: Optional[float] = None) -> ExecutionResult:
        """
        Run one command to completion or to its timeout.

        Args:
            command: CommandInvocation or non-empty sequence of strings
            timeout_seconds: Wall-clock budget, defaults to self.default_timeout

        Returns:
            ExecutionResult describing a normal exit, a timeout or a start failure

        Raises:
            ValueError: If the command or timeout is malformed
        """
        invocation = to_invocation(command)
        timeout = self.default_timeout if timeout_seconds is None else timeout_seconds
        _check_timeout(timeout)

        logger.debug(f"Running: {invocation.display()} (timeout {timeout}s)")
        started_at = time.monotonic()

        try:
            process = subprocess.Popen(
                invocation.as_list(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                close_fds=True,
                start_new_session=self.kill_process_group,
                env=self.env,
                cwd=self.cwd,
            )
        except OSError as e:
            message = _describe_start_failure(invocation, e)
            logger.warning(message)
            return ExecutionResult.start_failure(message, duration_ms=_elapsed_ms(started_at))

        buffers: Dict[str, List[bytes]] = {STDOUT: [], STDERR: []}
        timed_out = self._supervise(process, invocation, buffers, started_at + timeout)
        if timed_out:
            logger.warning(f"Command timed out after {timeout}s and was killed: {invocation.display()}")

        duration_ms = _elapsed_ms(started_at)
        logger.debug(
            f"Finished: {invocation.display()} exit={process.returncode} in {duration_ms}ms"
        )

        return ExecutionResult(
            stdout=b"".join(buffers[STDOUT]),
            stderr=b"".join(buffers[STDERR]),
            exit_code=process.returncode,
            timed_out=timed_out,
            duration_ms=duration_ms,
        )

    def _supervise(
        self,
        process: subprocess.Popen,
        invocation: CommandInvocation,
        buffers: Dict[str, List[bytes]],
        deadline: float,
    ) -> bool:
        """
        Drain output until exit or deadline, then release every handle.

        Returns:
            True if the process was killed for exceeding its budget
        """
        selector = selectors.DefaultSelector()
        timed_out = False

        try:
            for stream, name in ((process.stdout, STDOUT), (process.stderr, STDERR)):
                os.set_blocking(stream.fileno(), False)
                selector.register(stream, selectors.EVENT_READ, name)

            timed_out = self._drain_until_done(process, selector, buffers, deadline)

            if timed_out:
                self._kill(process)
            elif selector.get_map():
                # Child exited but something it spawned still holds the pipes
                logger.warning(
                    f"Output pipes still open at deadline after exit, "
                    f"killing stragglers: {invocation.display()}"
                )
                self._kill(process)
        finally:
            # Abandoned mid-loop (e.g. KeyboardInterrupt): never leak the child
            if process.poll() is None:
                self._kill(process)
            try:
                self._final_drain(selector, buffers)
            finally:
                selector.close()
                process.stdout.close()
                process.stderr.close()
                self._reap(process)

        return timed_out

    def _drain_until_done(
        self,
        process: subprocess.Popen,
        selector: selectors.BaseSelector,
        buffers: Dict[str, List[bytes]],
        deadline: float,
    ) -> bool:
        """
        Read both pipes as data arrives until the child exits and both hit EOF.

        Every wait is bounded by the poll interval, so the deadline is
        checked at sub-second granularity.

        Returns:
            True if the deadline passed while the child was still running
        """
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return process.poll() is None

            wait = min(self.poll_interval, remaining)
            if selector.get_map():
                for key, _ in selector.select(wait):
                    _read_available(selector, key, buffers)
            else:
                try:
                    process.wait(timeout=wait)
                except subprocess.TimeoutExpired:
                    pass

            if process.poll() is not None and not selector.get_map():
                return False

    def _final_drain(self, selector: selectors.BaseSelector, buffers: Dict[str, List[bytes]]) -> None:
        """Collect whatever is already buffered in the pipes without waiting for more."""
        for key in list(selector.get_map().values()):
            cutoff = time.monotonic() + self.poll_interval
            while time.monotonic() < cutoff:
                if not _read_available(selector, key, buffers):
                    break

    def _kill(self, process: subprocess.Popen) -> None:
        """SIGKILL the process group, or just the process when groups are off."""
        if self.kill_process_group:
            try:
                # start_new_session makes the child its own group leader
                os.killpg(process.pid, signal.SIGKILL)
                return
            except ProcessLookupError:
                logger.debug(f"Process group {process.pid} already gone")
            except OSError as e:
                logger.debug(f"killpg({process.pid}) failed: {e}")

        if process.poll() is None:
            process.kill()

    def _reap(self, process: subprocess.Popen) -> None:
        try:
            process.wait(timeout=REAP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            logger.error(f"Process {process.pid} still not reaped {REAP_TIMEOUT_SECONDS}s after kill")


def _read_available(
    selector: selectors.BaseSelector, key: selectors.SelectorKey, buffers: Dict[str, List[bytes]]
) -> bool:
    """
    Read one chunk from a ready pipe.

    Returns:
        True if more data may follow, False on EOF or when nothing is available
    """
    try:
        chunk = os.read(key.fd, READ_CHUNK_SIZE)
    except BlockingIOError:
        return False

    if not chunk:
        selector.unregister(key.fileobj)
        return False

    buffers[key.data].append(chunk)
    return True


def _describe_start_failure(invocation: CommandInvocation, exc: OSError) -> str:
    program = invocation.program
    if isinstance(exc, FileNotFoundError):
        return f"Failed to start '{program}': executable or working directory not found"
    if isinstance(exc, PermissionError):
        return f"Failed to start '{program}': permission denied"
    if exc.errno in (errno.EAGAIN, errno.ENOMEM, errno.EMFILE, errno.ENFILE):
        return f"Failed to start '{program}': out of system resources ({exc.strerror})"
    return f"Failed to start '{program}': {exc.strerror or exc}"


def _check_timeout(timeout) -> None:
    if (
        isinstance(timeout, bool)
        or not isinstance(timeout, (int, float))
        or not math.isfinite(timeout)
        or timeout <= 0
    ):
        raise ValueError(f"Timeout must be a positive number of seconds, got {timeout!r}")


def _elapsed_ms(started_at: float) -> int:
    return max(0, int((time.monotonic() - started_at) * 1000))


def execute(command, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> ExecutionResult:
    """Run one command with a fresh default runner."""
    return ProcessRunner().execute(command, timeout_seconds)
