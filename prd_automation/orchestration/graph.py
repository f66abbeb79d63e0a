"""
LangGraph State Machine — 6-stage PRD processing pipeline.

    S1 extraction → S2 generation → S3 labeling → S4 classification
        → S5 final review → S6 finalization → END

Every node goes through the same stage wrapper: stage status → processing,
run the body, stage status → completed (or error, and the exception
propagates out of graph.invoke). Each body reads only its declared inputs
from the processing context and returns its own fields, which LangGraph
merges into the context.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

from langgraph.graph import END, StateGraph

from prd_automation.agents import (
    FinalReviewAgent,
    NegativeLabelingAgent,
    RefinementLoop,
    RequirementExtractionAgent,
    StageStrategy,
    TestCaseGenerationAgent,
    TestTypeClassificationAgent,
)
from prd_automation.exceptions import DocumentNotFound
from prd_automation.models.enums import DocumentStatus, StageName, StageStatus
from prd_automation.models.schemas import Document, IterationEvent, Requirement
from prd_automation.models.state import ProcessingContext
from prd_automation.orchestration.progress import PipelineProgress
from prd_automation.persistence.document_store import DocumentStore, get_document_store
from prd_automation.services.file_service import FileService
from prd_automation.services.llm_service import LLMClient, get_llm_client
from prd_automation.services.parsing_service import ParsingService

logger = logging.getLogger(__name__)

FINALIZATION_STAGE_ID = 6

NodeFn = Callable[[ProcessingContext], dict[str, Any]]
Observer = Callable[[IterationEvent], None]


def default_strategies() -> list[StageStrategy]:
    """The five model-driven stages, in execution order."""
    return [
        RequirementExtractionAgent(),
        TestCaseGenerationAgent(),
        NegativeLabelingAgent(),
        TestTypeClassificationAgent(),
        FinalReviewAgent(),
    ]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Build the graph ──────────────────────────────────────

def build_graph(nodes: list[tuple[str, NodeFn]]) -> Any:
    """
    Construct and compile a linear LangGraph over the given (name, fn)
    nodes. Returns a compiled graph ready to invoke.
    """
    graph = StateGraph(ProcessingContext)

    for name, fn in nodes:
        graph.add_node(name, fn)

    graph.set_entry_point(nodes[0][0])
    for (current, _), (following, _) in zip(nodes, nodes[1:]):
        graph.add_edge(current, following)
    graph.add_edge(nodes[-1][0], END)

    return graph.compile()


# ── Orchestrator ─────────────────────────────────────────

class PipelineOrchestrator:
    """Runs one document through the six stages and records progress in the store."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        client: LLMClient | None = None,
        file_service: FileService | None = None,
        parser: ParsingService | None = None,
        observer: Observer | None = None,
        pause_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        strategies: list[StageStrategy] | None = None,
    ):
        self.store = store or get_document_store()
        self.client = client or get_llm_client()
        self.file_service = file_service or FileService()
        self.parser = parser or ParsingService()
        self.progress = PipelineProgress.get()
        self.observer = observer or self.progress.on_iteration
        self.strategies = strategies or default_strategies()
        self._pause_seconds = pause_seconds
        self._sleep = sleep
        self.graph = build_graph(self._nodes())

    # ── Public entry points ──────────────────────────────

    def prepare_run(self, document: Document) -> None:
        """Move a document into processing; a failed document starts over."""
        if document.status == DocumentStatus.ERROR:
            logger.info(f"[{document.id}] Restarting after a failed run — stages reset")
            self.store.reset_stages(document.id)
        self.progress.clear(document.id)
        self.store.update_document_status(document.id, DocumentStatus.PROCESSING)

    def process_document(self, document_id: str) -> Document | None:
        """
        Run the full pipeline synchronously. Raises DocumentNotFound for an
        unknown id; any stage failure leaves the document in ``error`` and
        is re-raised.
        """
        document = self.store.get_document(document_id)
        if document is None:
            raise DocumentNotFound(document_id)
        if document.status != DocumentStatus.PROCESSING:
            self.prepare_run(document)

        logger.info("═" * 60)
        logger.info(f"  PRD PIPELINE STARTING — {document_id} ({document.file_name})")
        logger.info("═" * 60)

        try:
            text = self._extract_text(document)
            self.graph.invoke({"document_id": document_id, "document_text": text})
            self.store.update_document_status(
                document_id, DocumentStatus.COMPLETED, completed_at=_now()
            )
        except Exception as exc:
            logger.exception(f"[{document_id}] Pipeline failed: {exc}")
            self.store.update_document_status(document_id, DocumentStatus.ERROR)
            self.progress.on_pipeline_end(document_id, DocumentStatus.ERROR.value)
            raise

        logger.info("═" * 60)
        logger.info(f"  PIPELINE FINISHED — {document_id}: completed")
        logger.info("═" * 60)
        self.progress.on_pipeline_end(document_id, DocumentStatus.COMPLETED.value)
        return self.store.get_document(document_id)

    # ── Ingestion ────────────────────────────────────────

    def _extract_text(self, document: Document) -> str:
        buffer = self.file_service.get_pdf_buffer(document.id)
        if buffer is None:
            logger.info(f"[{document.id}] No stored PDF — using placeholder content")
            return f"[Simulated PDF Content for {document.file_name}]"
        try:
            return self.parser.parse_pdf(buffer).text
        except ValueError as exc:
            logger.error(f"[{document.id}] Error extracting PDF content: {exc}")
            return f"[PDF Content for {document.file_name} - Error: {exc}]"

    # ── Nodes ────────────────────────────────────────────

    def _nodes(self) -> list[tuple[str, NodeFn]]:
        nodes = [
            (s.name.value, self._stage_node(s.stage_id, s.name, self._model_stage(s)))
            for s in self.strategies
        ]
        nodes.append((
            StageName.FINALIZATION.value,
            self._stage_node(FINALIZATION_STAGE_ID, StageName.FINALIZATION, self._finalize),
        ))
        return nodes

    def _model_stage(self, strategy: StageStrategy) -> NodeFn:
        def body(state: ProcessingContext) -> dict[str, Any]:
            loop = RefinementLoop(
                self.client,
                strategy,
                pause_seconds=self._pause_seconds,
                sleep=self._sleep,
            )
            hook = self._iteration_hook(state["document_id"], strategy)
            return strategy.run(loop, state, on_iteration=hook)

        return body

    def _iteration_hook(
        self, document_id: str, strategy: StageStrategy
    ) -> Callable[[int, Any, list[str]], None]:
        def hook(iteration: int, output: Any, errors: list[str]) -> None:
            suffix = f" - Errors: {', '.join(errors)}" if errors else ""
            logger.debug(
                f"[Document {document_id}] Stage {strategy.stage_id}, "
                f"Iteration {iteration}{suffix}"
            )
            self.observer(IterationEvent(
                document_id=document_id,
                stage=strategy.name.value,
                iteration=iteration,
                error_count=len(errors),
                errors=errors,
            ))

        return hook

    def _finalize(self, state: ProcessingContext) -> dict[str, Any]:
        document_id = state["document_id"]
        requirements = attach_test_cases(document_id, state["final_review"])
        self.store.save_requirements(document_id, requirements)
        return {"saved_requirements": requirements}

    def _stage_node(self, stage_id: int, name: StageName, body: NodeFn) -> NodeFn:
        def node(state: ProcessingContext) -> dict[str, Any]:
            document_id = state["document_id"]
            t0 = time.perf_counter()
            separator = "═" * 70
            logger.info(f"\n{separator}")
            logger.info(f"▶ [{name.value}] STARTING")
            logger.info(separator)
            _log_state_summary("INPUT STATE", dict(state))

            self.store.update_stage(
                document_id, stage_id, StageStatus.PROCESSING, started_at=_now()
            )
            self.progress.on_stage_start(document_id, name.value)

            try:
                increment = body(state)
            except Exception as exc:
                elapsed = time.perf_counter() - t0
                logger.error(f"✘ [{name.value}] FAILED after {elapsed:.3f}s: {exc}")
                logger.info(f"{separator}\n")
                self.store.update_stage(document_id, stage_id, StageStatus.ERROR)
                self.progress.on_error(document_id, name.value, str(exc))
                raise

            self.store.update_stage(
                document_id, stage_id, StageStatus.COMPLETED, completed_at=_now()
            )
            elapsed = time.perf_counter() - t0
            logger.info(f"✔ [{name.value}] COMPLETED in {elapsed:.3f}s")
            _log_state_summary("OUTPUT INCREMENT", increment)
            logger.info(f"{separator}\n")
            self.progress.on_stage_end(document_id, name.value, StageStatus.COMPLETED.value)
            return increment

        return node


# ── Finalization helpers ─────────────────────────────────

def attach_test_cases(document_id: str, review: Any) -> list[Requirement]:
    """
    Nest each reviewed test case under the requirement it references.
    Test cases pointing at unknown requirements are dropped.
    """
    known = {r.id for r in review.requirements}
    orphans = [tc.id for tc in review.test_cases if tc.requirement_id not in known]
    if orphans:
        logger.warning(
            f"[{document_id}] Dropping {len(orphans)} test cases with unknown "
            f"requirement ids: {orphans}"
        )

    return [
        req.model_copy(update={
            "test_cases": [
                tc.model_copy() for tc in review.test_cases if tc.requirement_id == req.id
            ],
        })
        for req in review.requirements
    ]


# ── Debug helpers (module-level) ─────────────────────────

def _log_state_summary(label: str, state: dict[str, Any]) -> None:
    """Log key names, non-empty values, and approximate sizes."""
    lines = [f"  ┌─ {label}"]
    for key in sorted(state.keys()):
        val = state[key]
        if val is None or val == "" or val == []:
            lines.append(f"  │  {key}: <empty>")
        elif isinstance(val, str):
            lines.append(f"  │  {key}: str({len(val)} chars)")
        elif isinstance(val, list):
            lines.append(f"  │  {key}: list({len(val)} items)")
        else:
            lines.append(f"  │  {key}: {type(val).__name__}")
    lines.append(f"  └─ ({len(state)} keys total)")
    logger.debug("\n".join(lines))
