"""
Pipeline Runner — background scheduling and status reporting.

start_processing() returns immediately and runs the pipeline on a daemon
thread. The status check and the move to ``processing`` happen under one
lock, so two back-to-back calls for the same document yield a single run.
"""

from __future__ import annotations

import logging
import threading

from prd_automation.exceptions import DocumentNotFound
from prd_automation.models.enums import DocumentStatus
from prd_automation.models.schemas import ProcessingAck, StatusReport
from prd_automation.orchestration.graph import PipelineOrchestrator
from prd_automation.orchestration.transitions import current_stage_index

logger = logging.getLogger(__name__)


class PipelineRunner:
    def __init__(self, orchestrator: PipelineOrchestrator | None = None):
        self.orchestrator = orchestrator or PipelineOrchestrator()
        self.store = self.orchestrator.store
        self._lock = threading.Lock()
        self._threads: dict[str, threading.Thread] = {}

    def start_processing(self, document_id: str) -> ProcessingAck:
        with self._lock:
            document = self.store.get_document(document_id)
            if document is None:
                raise DocumentNotFound(document_id)

            if document.status == DocumentStatus.PROCESSING:
                return ProcessingAck(
                    document_id=document_id,
                    started=False,
                    message="Processing already started",
                )
            if document.status == DocumentStatus.COMPLETED:
                return ProcessingAck(
                    document_id=document_id,
                    started=False,
                    message="Document already processed",
                )

            self.orchestrator.prepare_run(document)
            thread = threading.Thread(
                target=self._run_pipeline_thread,
                args=(document_id,),
                name=f"pipeline-{document_id}",
                daemon=True,
            )
            self._threads[document_id] = thread
            thread.start()

        logger.info(f"[{document_id}] Processing scheduled in background")
        return ProcessingAck(
            document_id=document_id, started=True, message="Processing started"
        )

    def _run_pipeline_thread(self, document_id: str) -> None:
        """Thread target; failures are already recorded on the document."""
        try:
            self.orchestrator.process_document(document_id)
        except Exception as exc:
            logger.error(f"Pipeline failed for {document_id}: {exc}")
        finally:
            with self._lock:
                if self._threads.get(document_id) is threading.current_thread():
                    del self._threads[document_id]

    def wait(self, document_id: str, timeout: float | None = None) -> bool:
        """Block until the background run for a document finishes. True if it did."""
        thread = self._threads.get(document_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def get_status(self, document_id: str) -> StatusReport:
        document = self.store.get_document(document_id)
        if document is None:
            raise DocumentNotFound(document_id)
        return StatusReport(
            document_id=document.id,
            status=document.status,
            stages=document.stages,
            current_stage_index=current_stage_index(document.stages),
        )
