"""
Report section catalog.

A section binds a title to one fixed command invocation. The built-in
catalog covers the OpenShift checks of the health report; a YAML file
can replace it per deployment.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clusterhealth.modules.api.models import CommandInvocation, to_invocation, validate_section_name

logger = logging.getLogger(__name__)

DEFAULT_EMPTY_MESSAGE = "No data available"

# One "version,state,startedTime,completionTime" row per history entry
UPGRADE_HISTORY_JSONPATH = (
    '{range .status.history[*]}'
    '{.version},{.state},{.startedTime},{.completionTime}{"\\n"}'
    '{end}'
)


class SectionConfigError(ValueError):
    """Raised when a section catalog file cannot be loaded."""


class SectionSpec(BaseModel):
    """One titled report section and the command that feeds it."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="URL-safe section identifier")
    title: str = Field(..., description="Human-readable heading", min_length=1)
    command: CommandInvocation
    timeout_seconds: Optional[int] = Field(None, description="Overrides the runner default", ge=1)
    empty_message: str = Field(default=DEFAULT_EMPTY_MESSAGE)
    include_pattern: Optional[str] = Field(
        None, description="Keep only the header line and lines matching this regex"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_section_name(v)

    @field_validator("command", mode="before")
    @classmethod
    def coerce_command(cls, v):
        """Accept a plain argument list, as written in YAML."""
        if isinstance(v, (list, tuple)):
            return to_invocation(v)
        return v

    @field_validator("include_pattern")
    @classmethod
    def validate_pattern(cls, v):
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid include_pattern {v!r}: {e}")
        return v


def default_sections(cli: str = "oc") -> List[SectionSpec]:
    """
    Built-in OpenShift health checks, in report order.

    Args:
        cli: Cluster CLI binary (oc, or a path to it)
    """
    return [
        SectionSpec(
            name="cluster-status",
            title="Cluster Status",
            command=[cli, "get", "clusterversion"],
            empty_message="No cluster version data available",
        ),
        SectionSpec(
            name="nodes",
            title="Node Status",
            command=[cli, "get", "nodes"],
        ),
        SectionSpec(
            name="node-utilization",
            title="Node Utilization",
            command=[cli, "adm", "top", "nodes"],
        ),
        SectionSpec(
            name="cluster-operators",
            title="Cluster Operators",
            command=[cli, "get", "co"],
            empty_message="No cluster operator data available",
        ),
        SectionSpec(
            name="monitoring-stack",
            title="Monitoring Stack",
            command=[cli, "get", "pods", "-n", "openshift-monitoring"],
            empty_message="No monitoring stack data available",
        ),
        SectionSpec(
            name="upgrade-history",
            title="Cluster Version History",
            command=[cli, "get", "clusterversion", "version", "-o", f"jsonpath={UPGRADE_HISTORY_JSONPATH}"],
            empty_message="No cluster version history available",
        ),
        SectionSpec(
            name="cluster-events",
            title="Critical Events",
            command=[cli, "get", "events", "--all-namespaces"],
            include_pattern="Warning|Critical",
            empty_message="No warning or critical events found.",
        ),
    ]


def parse_sections(data: Any) -> List[SectionSpec]:
    """
    Build section specs from a parsed catalog document.

    Accepts either a list of sections or a mapping with a ``sections`` list.

    Raises:
        SectionConfigError: If the document is malformed or names repeat
    """
    if isinstance(data, dict):
        data = data.get("sections")
    if not isinstance(data, list) or not data:
        raise SectionConfigError("Section catalog must contain a non-empty 'sections' list")

    sections = []
    seen = set()
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise SectionConfigError(f"Section #{index} must be a mapping")
        try:
            spec = SectionSpec(**entry)
        except (ValidationError, ValueError) as e:
            raise SectionConfigError(f"Invalid section #{index}: {e}") from e
        if spec.name in seen:
            raise SectionConfigError(f"Duplicate section name: {spec.name}")
        seen.add(spec.name)
        sections.append(spec)

    return sections


def load_sections(path: Union[str, Path]) -> List[SectionSpec]:
    """
    Load a section catalog from a YAML file.

    Example file:
        sections:
          - name: nodes
            title: Node Status
            command: [kubectl, get, nodes]
            timeout_seconds: 20

    Raises:
        SectionConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise SectionConfigError(f"Section catalog not found: {path}") from None
    except yaml.YAMLError as e:
        raise SectionConfigError(f"Section catalog {path} is not valid YAML: {e}") from e

    sections = parse_sections(data)
    logger.info(f"Loaded {len(sections)} sections from {path}")
    return sections


def sections_to_dict(sections: List[SectionSpec]) -> Dict[str, Any]:
    """Serialize a catalog back into the YAML document shape."""
    return {
        "sections": [
            {
                "name": spec.name,
                "title": spec.title,
                "command": spec.command.as_list(),
                **({"timeout_seconds": spec.timeout_seconds} if spec.timeout_seconds else {}),
                "empty_message": spec.empty_message,
                **({"include_pattern": spec.include_pattern} if spec.include_pattern else {}),
            }
            for spec in sections
        ]
    }
