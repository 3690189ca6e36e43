"""
Report assembly.

Runs each catalog section through the executor, one after another, and
turns every ExecutionResult into a displayable text fragment. The only
thing this module knows about a result is its outcome:

- timed out: the command exceeded its budget
- failed: the command could not start or exited non-zero (stderr shown)
- no data / success: stdout shown, or the section's empty message
"""

import logging
import re
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from clusterhealth.modules.api.models import (
    ExecutionResult,
    ExecutionStatus,
    ReportResponse,
    SectionOutcome,
    SectionResponse,
    SectionSummary,
)
from clusterhealth.modules.report.sections import DEFAULT_EMPTY_MESSAGE, SectionSpec, default_sections

logger = logging.getLogger(__name__)

DEFAULT_REPORT_TITLE = "OpenShift Cluster Health Report"
REPORT_FOOTER = "Powered by OpenShift CLI | Auto-refresh recommended"


class UnknownSectionError(KeyError):
    """Raised when a section name is not in the catalog."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown section: {self.name}"


class SectionFragment(BaseModel):
    """A rendered section together with the result it came from."""

    name: str
    title: str
    outcome: SectionOutcome
    content: str
    result: ExecutionResult

    def to_response(self) -> SectionResponse:
        failed = self.outcome in (SectionOutcome.FAILED, SectionOutcome.TIMED_OUT)
        return SectionResponse(
            success=True,
            section=self.name,
            title=self.title,
            outcome=self.outcome,
            content=self.content,
            error=self.content if failed else None,
            exit_code=self.result.exit_code,
            timed_out=self.result.timed_out,
            duration_ms=self.result.duration_ms,
        )


class Report(BaseModel):
    """All sections of one report run, in catalog order."""

    title: str = DEFAULT_REPORT_TITLE
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sections: List[SectionFragment] = Field(default_factory=list)

    def to_response(self) -> ReportResponse:
        return ReportResponse(
            title=self.title,
            generated_at=self.generated_at,
            sections=[fragment.to_response() for fragment in self.sections],
        )


def _format_seconds(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value} second" if value == 1 else f"{value} seconds"


def format_result(
    result: ExecutionResult,
    empty_message: str = DEFAULT_EMPTY_MESSAGE,
    timeout_seconds: Optional[float] = None,
) -> Tuple[SectionOutcome, str]:
    """
    Turn an execution result into a display outcome and text.

    Args:
        result: Outcome of the section's command
        empty_message: Shown when the command succeeds without output
        timeout_seconds: Budget the command ran under, for the timeout message

    Returns:
        (outcome, content) tuple
    """
    status = result.status

    if status is ExecutionStatus.TIMEOUT:
        budget = timeout_seconds if timeout_seconds is not None else result.duration_ms / 1000
        return SectionOutcome.TIMED_OUT, f"Operation timed out after {_format_seconds(round(budget, 1))}"

    if status in (ExecutionStatus.FAILURE, ExecutionStatus.START_FAILURE):
        message = result.stderr_text.strip() or (result.error or "").strip()
        if not message:
            message = f"Command failed with exit code {result.exit_code}"
        return SectionOutcome.FAILED, message

    content = result.stdout_text.rstrip()
    if not content.strip():
        return SectionOutcome.NO_DATA, empty_message
    return SectionOutcome.SUCCESS, content


def filter_lines(text: str, pattern: str) -> str:
    """
    Keep the header line plus every following line matching ``pattern``.

    Returns an empty string when no line after the header matches.
    """
    lines = text.strip("\n").splitlines()
    if not lines:
        return ""
    regex = re.compile(pattern)
    matches = [line for line in lines[1:] if line.strip() and regex.search(line)]
    if not matches:
        return ""
    return "\n".join([lines[0]] + matches)


class ReportAssembler:
    """Runs the section catalog through a runner and renders the results."""

    def __init__(
        self,
        runner,
        sections: Optional[Iterable[SectionSpec]] = None,
        default_timeout: Optional[float] = None,
        title: str = DEFAULT_REPORT_TITLE,
    ):
        """
        Initialize the assembler.

        Args:
            runner: Object with execute(command, timeout_seconds) -> ExecutionResult
            sections: Section catalog, defaults to the built-in OpenShift checks
            default_timeout: Budget for sections without their own timeout;
                None defers to the runner's default
            title: Report heading
        """
        self.runner = runner
        self.default_timeout = default_timeout
        self.title = title
        self._sections: "OrderedDict[str, SectionSpec]" = OrderedDict()

        for spec in sections if sections is not None else default_sections():
            if spec.name in self._sections:
                raise ValueError(f"Duplicate section name: {spec.name}")
            self._sections[spec.name] = spec

    def section_names(self) -> List[str]:
        return list(self._sections)

    def sections(self) -> List[SectionSpec]:
        return list(self._sections.values())

    def summaries(self) -> List[SectionSummary]:
        return [SectionSummary(name=spec.name, title=spec.title) for spec in self._sections.values()]

    def get_section(self, name: str) -> SectionSpec:
        try:
            return self._sections[name]
        except KeyError:
            raise UnknownSectionError(name) from None

    def render_section(self, name: str) -> SectionFragment:
        """
        Run one section's command and render its result.

        Raises:
            UnknownSectionError: If the section is not in the catalog
        """
        spec = self.get_section(name)
        timeout = spec.timeout_seconds or self.default_timeout

        logger.info(f"Collecting section {spec.name}")
        result = self.runner.execute(spec.command, timeout_seconds=timeout)

        if spec.include_pattern and result.succeeded:
            filtered = filter_lines(result.stdout_text, spec.include_pattern)
            result = result.model_copy(update={"stdout": filtered.encode("utf-8")})

        effective_timeout = timeout if timeout is not None else getattr(self.runner, "default_timeout", None)
        outcome, content = format_result(result, spec.empty_message, effective_timeout)

        if outcome is SectionOutcome.TIMED_OUT:
            logger.warning(f"Section {spec.name} timed out")
        elif outcome is SectionOutcome.FAILED:
            logger.warning(f"Section {spec.name} failed: {content.splitlines()[0] if content else ''}")

        return SectionFragment(
            name=spec.name,
            title=spec.title,
            outcome=outcome,
            content=content,
            result=result,
        )

    def build_report(self, title: Optional[str] = None) -> Report:
        """Render every section in catalog order, one command at a time."""
        report = Report(title=title or self.title)
        for name in self._sections:
            report.sections.append(self.render_section(name))

        failed = sum(1 for s in report.sections if s.outcome in (SectionOutcome.FAILED, SectionOutcome.TIMED_OUT))
        logger.info(f"Report complete: {len(report.sections)} sections, {failed} unavailable")
        return report


_OUTCOME_MARKERS = {
    SectionOutcome.TIMED_OUT: "[TIMED OUT] ",
    SectionOutcome.FAILED: "[FAILED] ",
}


def render_fragment(fragment: SectionFragment) -> str:
    """Plain-text rendering of one section."""
    heading = fragment.title
    marker = _OUTCOME_MARKERS.get(fragment.outcome, "")
    return f"{heading}\n{'-' * len(heading)}\n{marker}{fragment.content}\n"


def render_text(report: Report) -> str:
    """Plain-text rendering of a whole report for terminals and files."""
    header = report.title
    parts = [
        f"{header}\n{'=' * len(header)}",
        f"Report generated on: {report.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}\n",
    ]
    parts.extend(render_fragment(fragment) for fragment in report.sections)
    parts.append(REPORT_FOOTER)
    return "\n".join(parts) + "\n"
