"""
Report Module - Black Box Interface

Purpose: Assemble the cluster health report from diagnostic commands
Interface: ReportAssembler.render_section(), build_report(), render_text()
Hidden: Section catalog, output filtering, outcome classification

Only consumes ExecutionResult values; knows nothing about how commands run.
"""

from .assembler import (
    DEFAULT_REPORT_TITLE,
    Report,
    ReportAssembler,
    SectionFragment,
    UnknownSectionError,
    filter_lines,
    format_result,
    render_fragment,
    render_text,
)
from .factory import ReportFactory
from .sections import (
    SectionConfigError,
    SectionSpec,
    default_sections,
    load_sections,
    parse_sections,
    sections_to_dict,
)

__all__ = [
    "DEFAULT_REPORT_TITLE",
    "Report",
    "ReportFactory",
    "ReportAssembler",
    "SectionFragment",
    "SectionConfigError",
    "SectionSpec",
    "UnknownSectionError",
    "default_sections",
    "filter_lines",
    "format_result",
    "load_sections",
    "parse_sections",
    "render_fragment",
    "render_text",
    "sections_to_dict",
]
