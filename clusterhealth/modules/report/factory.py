"""
Report Factory following Black Box Design principles.

This factory:
- Constructs the report stack based on configuration
- Wires the executor into the assembler
- Returns only the assembler facade
"""

import logging
from typing import Any, Optional

from clusterhealth.modules.executor import ProcessRunner

from .assembler import ReportAssembler
from .sections import default_sections, load_sections

logger = logging.getLogger(__name__)


class ReportFactory:
    """
    Factory for building the report stack.

    This is the composition root that:
    - Creates the process runner
    - Picks the section catalog (file or built-in)
    - Returns the ReportAssembler
    """

    @staticmethod
    def build(config, runner: Optional[Any] = None) -> ReportAssembler:
        """
        Build the report assembler.

        Args:
            config: Config module (see clusterhealth.modules.config)
            runner: Optional runner replacing the ProcessRunner

        Returns:
            ReportAssembler ready to render sections

        Raises:
            SectionConfigError: If the configured sections file is invalid
        """
        if runner is None:
            runner = ProcessRunner.from_config(config)

        sections_file = config.get("sections_file")
        if sections_file:
            logger.info(f"Using section catalog from {sections_file}")
            sections = load_sections(sections_file)
        else:
            cli = config.get("cli_binary", "oc")
            logger.info(f"Using built-in section catalog with {cli}")
            sections = default_sections(cli)

        return ReportAssembler(
            runner,
            sections=sections,
            default_timeout=config.get("command_timeout"),
            title=config.get("report_title"),
        )
