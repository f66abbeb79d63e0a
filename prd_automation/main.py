"""
PRD Test Case Automation — Main Entry Point

Run the pipeline directly (CLI):
    python -m prd_automation path/to/prd.pdf

Or import and run programmatically:
    from prd_automation.main import run
    document = run("path/to/prd.pdf")
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from prd_automation.config import get_settings
from prd_automation.exceptions import PipelineError
from prd_automation.models.enums import DocumentStatus
from prd_automation.models.schemas import Document
from prd_automation.orchestration.graph import PipelineOrchestrator
from prd_automation.utils.logger import setup_logging


def run(file_path: str = "") -> Document | None:
    """Upload a PDF into the configured store, run the pipeline, return the document."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    mode = "MOCK" if settings.mock_mode else settings.llm_provider.upper()
    logger.info("=" * 60)
    logger.info(f"  {settings.app_name.upper()}")
    logger.info(f"  Mode: {mode} | Started: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    orchestrator = PipelineOrchestrator()
    path = Path(file_path) if file_path else None
    document = orchestrator.store.create_document(path.name if path else "sample.pdf")

    if path is not None:
        if path.is_file():
            orchestrator.file_service.store_pdf(document.id, path.read_bytes())
        else:
            logger.warning(f"File not found: {file_path} — continuing with placeholder content")

    try:
        result = orchestrator.process_document(document.id)
    except PipelineError as exc:
        logger.error(f"Pipeline stopped: {exc}")
        result = orchestrator.store.get_document(document.id)

    if result is not None:
        _print_summary(result)
    return result


def _print_summary(document: Document) -> None:
    """Print a human-readable summary of the pipeline result."""
    logger = logging.getLogger(__name__)

    test_cases = [tc for req in document.requirements for tc in req.test_cases]
    negatives = sum(1 for tc in test_cases if tc.is_negative)
    types = sorted({t for tc in test_cases for t in tc.test_types})

    logger.info("")
    logger.info("-" * 60)
    logger.info("  PIPELINE RESULT SUMMARY")
    logger.info("-" * 60)
    logger.info(f"  Document ID:    {document.id}")
    logger.info(f"  File:           {document.file_name}")
    logger.info(f"  Final Status:   {document.status.value}")
    logger.info(f"  Requirements:   {len(document.requirements)}")
    logger.info(f"  Test Cases:     {len(test_cases)} ({negatives} negative)")
    logger.info(f"  Test Types:     {', '.join(types) or 'N/A'}")
    if document.completed_at:
        logger.info(f"  Completed At:   {document.completed_at.isoformat()}")
    logger.info("-" * 60)

    logger.info(f"\n  Stages: {len(document.stages)}")
    for stage in document.stages:
        logger.info(f"    {stage.id} | {stage.name} | {stage.status.value}")
    logger.info("")


def cli() -> None:
    """Console entry point: exit status 0 only when the document completed."""
    file_arg = sys.argv[1] if len(sys.argv) > 1 else ""
    document = run(file_arg)
    sys.exit(0 if document and document.status == DocumentStatus.COMPLETED else 1)


if __name__ == "__main__":
    cli()
