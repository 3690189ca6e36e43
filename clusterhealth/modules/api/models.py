"""
Clusterhealth shared data models.

These models define the structure of all data passed between
components in the Clusterhealth system.
"""

import re
import shlex
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Enums


class ExecutionStatus(str, Enum):
    """Terminal state of one command invocation."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    START_FAILURE = "start_failure"


class SectionOutcome(str, Enum):
    """How a report section should be displayed."""

    SUCCESS = "success"
    NO_DATA = "no_data"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


# Internal Models (Used between modules)


class CommandInvocation(BaseModel):
    """
    An external program plus its literal arguments.

    The arguments are handed to the operating system as discrete tokens;
    nothing is ever joined into a shell string.
    """

    model_config = ConfigDict(frozen=True)

    args: Tuple[str, ...] = Field(..., description="Program followed by its arguments", min_length=1)

    @field_validator("args")
    @classmethod
    def validate_args(cls, v):
        """Reject a blank program and NUL bytes, which exec cannot carry."""
        if not v[0].strip():
            raise ValueError("Program name must not be blank")
        for arg in v:
            if "\x00" in arg:
                raise ValueError(f"Argument contains NUL byte: {arg!r}")
        return v

    @classmethod
    def of(cls, *args: str) -> "CommandInvocation":
        """Build an invocation from positional arguments."""
        return cls(args=args)

    @property
    def program(self) -> str:
        return self.args[0]

    @property
    def arguments(self) -> Tuple[str, ...]:
        return self.args[1:]

    def as_list(self) -> List[str]:
        return list(self.args)

    def display(self) -> str:
        """Shell-quoted rendering, for logs and messages only."""
        return shlex.join(self.args)


class ExecutionResult(BaseModel):
    """
    Outcome of one command invocation.

    Exactly one of these describes the terminal state:
    - normal exit: ``exit_code`` is set, ``timed_out`` is False, ``error`` is None
    - timeout: ``timed_out`` is True (``exit_code`` may hold the kill status)
    - start failure: ``error`` is set, ``exit_code`` is None, no output
    """

    model_config = ConfigDict(frozen=True)

    stdout: bytes = Field(default=b"", description="Bytes written to standard output")
    stderr: bytes = Field(default=b"", description="Bytes written to standard error")
    exit_code: Optional[int] = Field(None, description="Exit status, None if never started")
    timed_out: bool = Field(default=False, description="Killed after exceeding its budget")
    error: Optional[str] = Field(None, description="Start failure description")
    duration_ms: int = Field(default=0, description="Wall-clock duration in milliseconds", ge=0)

    @model_validator(mode="after")
    def check_terminal_state(self):
        """Keep the three terminal states mutually exclusive."""
        if self.error is not None:
            if self.timed_out:
                raise ValueError("A start failure cannot also be a timeout")
            if self.exit_code is not None:
                raise ValueError("A start failure has no exit code")
        elif not self.timed_out and self.exit_code is None:
            raise ValueError("A completed process must report an exit code")
        return self

    @classmethod
    def start_failure(cls, message: str, duration_ms: int = 0) -> "ExecutionResult":
        """Result for a process that could not be launched."""
        return cls(
            stderr=message.encode("utf-8", errors="replace"),
            error=message,
            duration_ms=duration_ms,
        )

    @property
    def status(self) -> ExecutionStatus:
        if self.timed_out:
            return ExecutionStatus.TIMEOUT
        if self.error is not None:
            return ExecutionStatus.START_FAILURE
        if self.exit_code == 0:
            return ExecutionStatus.SUCCESS
        return ExecutionStatus.FAILURE

    @property
    def started(self) -> bool:
        return self.error is None

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


# Response Models (API Output)


class SectionSummary(BaseModel):
    """Catalog entry listed by the API."""

    name: str
    title: str


class SectionResponse(BaseModel):
    """Rendered report section."""

    success: bool = Field(..., description="Whether the section could be produced")
    section: str
    title: Optional[str] = None
    outcome: Optional[SectionOutcome] = None
    content: str = ""
    error: Optional[str] = Field(None, description="Error message if the section is unavailable")
    exit_code: Optional[int] = None
    timed_out: bool = False
    duration_ms: Optional[int] = Field(None, description="Command duration in milliseconds")


class ReportResponse(BaseModel):
    """Full health report."""

    title: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sections: List[SectionResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status", pattern="^(ok|degraded)$")
    version: str = Field(default="1.0.0", description="API version")


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str = Field(..., description="Error message")
    section: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# Validation Helpers

SECTION_NAME_PATTERN = r"^[a-z0-9][a-z0-9-]{0,62}[a-z0-9]$|^[a-z0-9]$"


def validate_section_name(name: str) -> str:
    """
    Validate section name format.

    Rules:
    - Lowercase alphanumeric and hyphens only
    - Must start and end with alphanumeric
    - Max 64 characters
    """
    if not re.match(SECTION_NAME_PATTERN, name):
        raise ValueError(
            "Section name must be lowercase alphanumeric with hyphens, "
            "starting and ending with alphanumeric character"
        )
    return name


def to_invocation(command) -> CommandInvocation:
    """
    Coerce a command into a CommandInvocation.

    Accepts an existing invocation or a non-empty sequence of strings.
    A bare string is refused since it would have to be split like a
    shell command line.
    """
    if isinstance(command, CommandInvocation):
        return command
    if isinstance(command, (str, bytes)):
        raise ValueError("Command must be a sequence of arguments, not a single string")
    if not isinstance(command, Sequence):
        raise ValueError(f"Command must be a sequence of strings, got {type(command).__name__}")
    if not command:
        raise ValueError("Command must not be empty")
    for arg in command:
        if not isinstance(arg, str):
            raise ValueError(f"Command arguments must be strings, got {type(arg).__name__}")
    return CommandInvocation(args=tuple(command))


# Type Aliases for clarity

SectionName = str


# Export all models
__all__ = [
    # Enums
    "ExecutionStatus",
    "SectionOutcome",
    # Internal models
    "CommandInvocation",
    "ExecutionResult",
    # Response models
    "SectionSummary",
    "SectionResponse",
    "ReportResponse",
    "HealthResponse",
    "ErrorResponse",
    # Validators
    "validate_section_name",
    "to_invocation",
]
