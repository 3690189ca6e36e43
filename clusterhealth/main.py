#!/usr/bin/env python3
"""
Clusterhealth - HTTP Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Builds the report stack
3. Serves report sections as JSON for progressive loading

All business logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from clusterhealth import __version__
from clusterhealth.logging_config import configure_logging, get_logging_config
from clusterhealth.modules.api import (
    ErrorResponse,
    HealthResponse,
    ReportResponse,
    SectionResponse,
    SectionSummary,
)
from clusterhealth.modules.config import get_config
from clusterhealth.modules.report import ReportAssembler, ReportFactory, UnknownSectionError

logger = logging.getLogger(__name__)


def _get_assembler(request: Request) -> ReportAssembler:
    assembler = getattr(request.app.state, "assembler", None)
    if assembler is None:
        raise RuntimeError("Report assembler not initialized")
    return assembler


def create_app(assembler: Optional[ReportAssembler] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        assembler: Prebuilt assembler; built from configuration at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle - build the report stack."""
        logger.info("Starting Clusterhealth API...")
        if getattr(app.state, "assembler", None) is None:
            app.state.assembler = ReportFactory.build(get_config())
        logger.info(f"Serving {len(app.state.assembler.section_names())} report sections")

        yield

        logger.info("Clusterhealth API shutdown complete")

    app = FastAPI(
        title="Clusterhealth API",
        description="Cluster health report built from diagnostic commands",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.assembler = assembler

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz():
        """
        Minimal health check endpoint for Kubernetes readiness/liveness probes.

        Returns:
            200: Service is running
        """
        return HealthResponse(status="ok", version=__version__)

    @app.get("/sections", response_model=List[SectionSummary])
    async def list_sections(request: Request):
        """List report sections in display order."""
        return _get_assembler(request).summaries()

    @app.get("/sections/{section}", response_model=SectionResponse)
    async def get_section(section: str, request: Request):
        """
        Run one section's command and return its rendered content.

        Returns:
            200: Section rendered (check ``outcome`` for timeouts and failures)
            404: Unknown section
        """
        assembler = _get_assembler(request)
        # Runs a subprocess; keep it off the event loop
        fragment = await run_in_threadpool(assembler.render_section, section)
        return fragment.to_response()

    @app.get("/report", response_model=ReportResponse)
    async def get_report(request: Request):
        """Run every section in order and return the full report."""
        assembler = _get_assembler(request)
        report = await run_in_threadpool(assembler.build_report)
        return report.to_response()

    # Error handlers

    @app.exception_handler(UnknownSectionError)
    async def unknown_section_handler(request: Request, exc: UnknownSectionError):
        """Handle requests for sections outside the catalog."""
        logger.warning(f"Invalid section requested: {exc.name}")
        body = ErrorResponse(error="Invalid section requested", section=exc.name)
        return JSONResponse(status_code=404, content=body.model_dump(mode="json"))

    @app.exception_handler(ValueError)
    async def validation_error_handler(request: Request, exc: ValueError):
        """Handle validation errors."""
        logger.error(f"Validation error: {exc}")
        body = ErrorResponse(error=str(exc))
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    return app


app = create_app()


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the API with uvicorn."""
    config = get_config()
    uvicorn.run(
        app,
        host=host or config.get("host"),
        port=port or config.get("port"),
        log_level=config.get("log_level").lower(),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    load_dotenv()
    configure_logging(get_config().get("log_level"))
    serve()
