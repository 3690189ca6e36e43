"""
Executor Module - Black Box Interface

Purpose: Run one external diagnostic command with a wall-clock budget
Interface: ProcessRunner.execute(command, timeout_seconds) -> ExecutionResult
Hidden: Subprocess lifecycle, pipe multiplexing, process-group termination

Start failures, timeouts and non-zero exits are returned as data, never raised.
Can be replaced with different execution mechanisms (remote exec, K8s API).
"""

from .runner import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT_SECONDS,
    ProcessRunner,
    execute,
)

__all__ = [
    "ProcessRunner",
    "execute",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_POLL_INTERVAL",
]
