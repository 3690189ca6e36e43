"""
API Module - Black Box Interface

Purpose: Shared data models and HTTP response shapes
Interface: Pydantic models (CommandInvocation, ExecutionResult, SectionResponse, ...)
Hidden: Validation rules, serialization details

The HTTP routes live in clusterhealth.main and only orchestrate;
all logic is delegated to the executor and report modules.
"""

from .models import (
    CommandInvocation,
    ErrorResponse,
    ExecutionResult,
    ExecutionStatus,
    HealthResponse,
    ReportResponse,
    SectionOutcome,
    SectionResponse,
    SectionSummary,
    to_invocation,
    validate_section_name,
)

__all__ = [
    "CommandInvocation",
    "ExecutionResult",
    "ExecutionStatus",
    "SectionOutcome",
    "SectionSummary",
    "SectionResponse",
    "ReportResponse",
    "HealthResponse",
    "ErrorResponse",
    "to_invocation",
    "validate_section_name",
]
