"""
Shared pytest fixtures for Clusterhealth tests.

This module provides common fixtures including:
- FakeRunner: Stand-in for ProcessRunner with canned ExecutionResults
- Result builders for each terminal state
- Config isolation between tests
"""

import os
import re
import sys
from dataclasses import dataclass
from typing import List, Optional, Pattern, Union

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clusterhealth.modules.api.models import CommandInvocation, ExecutionResult, to_invocation
from clusterhealth.modules.config import reset_config


# =============================================================================
# Result builders
# =============================================================================

def completed(stdout: str = "", stderr: str = "", exit_code: int = 0, duration_ms: int = 5) -> ExecutionResult:
    """Result of a process that ran to completion."""
    return ExecutionResult(
        stdout=stdout.encode(),
        stderr=stderr.encode(),
        exit_code=exit_code,
        duration_ms=duration_ms,
    )


def timed_out(stdout: str = "", stderr: str = "", duration_ms: int = 1000) -> ExecutionResult:
    """Result of a process killed at its deadline."""
    return ExecutionResult(
        stdout=stdout.encode(),
        stderr=stderr.encode(),
        exit_code=-9,
        timed_out=True,
        duration_ms=duration_ms,
    )


def start_failed(message: str = "Failed to start 'oc': executable or working directory not found") -> ExecutionResult:
    """Result of a process that never launched."""
    return ExecutionResult.start_failure(message)


# =============================================================================
# Runner Mocking Infrastructure
# =============================================================================

@dataclass
class RunnerCall:
    """Record of an execute() call made during testing."""
    command: CommandInvocation
    timeout_seconds: Optional[float]
    matched_pattern: Optional[str] = None


class FakeRunner:
    """
    Stand-in for ProcessRunner with pattern-matched canned results.

    Usage:
        def test_nodes(fake_runner):
            fake_runner.register("get nodes", completed("NAME  STATUS\\nnode-1  Ready"))
            assembler = ReportAssembler(fake_runner)
            fragment = assembler.render_section("nodes")
            assert fake_runner.was_called_with("get nodes")
    """

    def __init__(self, default_timeout: float = 15):
        self.default_timeout = default_timeout
        self._responses: List[tuple] = []
        self._call_history: List[RunnerCall] = []
        self._default_result = start_failed("Error: fake runner not configured for this command")

    def register(self, pattern: Union[str, Pattern], result: ExecutionResult) -> "FakeRunner":
        """
        Register a result for commands matching the pattern.

        Args:
            pattern: String (substring match on the joined arguments) or regex

        Returns:
            self for chaining
        """
        self._responses.append((pattern, result))
        return self

    def register_scenario(self, scenario_name: str) -> "FakeRunner":
        """
        Register all results for a named scenario.

        Scenarios are predefined sets of oc results that simulate
        common cluster states (healthy, degraded, logged out, etc).
        """
        from fixtures.oc_scenarios import get_scenario

        for pattern, result in get_scenario(scenario_name).items():
            self.register(pattern, result)
        return self

    def set_default_result(self, result: ExecutionResult) -> "FakeRunner":
        self._default_result = result
        return self

    def execute(self, command, timeout_seconds: Optional[float] = None) -> ExecutionResult:
        invocation = to_invocation(command)
        joined = " ".join(invocation.args)
        matched_pattern = None
        result = self._default_result

        for pattern, candidate in self._responses:
            if isinstance(pattern, str):
                if pattern in joined:
                    matched_pattern = pattern
                    result = candidate
                    break
            elif pattern.search(joined):
                matched_pattern = pattern.pattern
                result = candidate
                break

        self._call_history.append(RunnerCall(invocation, timeout_seconds, matched_pattern))
        return result

    @property
    def calls(self) -> List[RunnerCall]:
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    def was_called_with(self, pattern: str) -> bool:
        return any(pattern in " ".join(call.command.args) for call in self._call_history)

    def reset(self):
        """Clear call history (but keep registered results)."""
        self._call_history = []


@pytest.fixture
def fake_runner():
    """FakeRunner with no registered results."""
    return FakeRunner()


@pytest.fixture
def python_cmd():
    """Build an invocation running a Python snippet in a child interpreter."""
    def build(code: str) -> List[str]:
        return [sys.executable, "-c", code]
    return build


@pytest.fixture(autouse=True)
def isolated_config():
    """Each test starts from a freshly loaded config singleton."""
    reset_config()
    yield
    reset_config()


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: Tests that wait on real subprocess timeouts"
    )
    config.addinivalue_line(
        "markers", "posix: Tests relying on POSIX process groups or /proc"
    )


def pid_is_alive(pid: int) -> bool:
    """True if pid exists and is not a zombie."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    try:
        with open(f"/proc/{pid}/stat") as f:
            # Field after the parenthesised command name is the state
            state = re.sub(r"^.*\) ", "", f.read()).split()[0]
        return state != "Z"
    except FileNotFoundError:
        return False
    except OSError:
        return True
