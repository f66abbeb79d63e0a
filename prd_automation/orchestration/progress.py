"""
Pipeline progress — in-process event bus for real-time observability.

Provides:
  - PipelineProgress singleton that the orchestrator uses to publish events
  - subscribe() for listeners (CLI output, tests, an eventual UI bridge)

Events look like:
    { "event": "stage_start", "stage": "s1_requirement_extraction", "ts": "..." }
    { "event": "iteration",   "stage": "...", "iteration": 2, "errorCount": 1, "errors": [...] }
    { "event": "stage_end",   "stage": "...", "status": "completed" }
    { "event": "pipeline_end", "status": "completed" }
    { "event": "error", "stage": "...", "message": "..." }
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable

from prd_automation.models.schemas import IterationEvent

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict[str, Any]], None]

# Event history is retained for at most this many documents (least recently active evicted)
MAX_TRACKED_DOCUMENTS = 100


class PipelineProgress:
    _instance: PipelineProgress | None = None
    _instance_lock = threading.Lock()

    def __init__(self, max_documents: int = MAX_TRACKED_DOCUMENTS) -> None:
        self._lock = threading.Lock()
        self.max_documents = max_documents
        self._history: OrderedDict[str, list[dict[str, Any]]] = OrderedDict()
        self._listeners: list[Listener] = []

    @classmethod
    def get(cls) -> PipelineProgress:
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    # ── Listener management ──────────────────────────────

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ── Publishing ───────────────────────────────────────

    def emit(self, document_id: str, event: dict[str, Any]) -> None:
        event.setdefault("ts", datetime.now(timezone.utc).isoformat())
        with self._lock:
            self._history.setdefault(document_id, []).append(event)
            self._history.move_to_end(document_id)
            while len(self._history) > self.max_documents:
                evicted, _ = self._history.popitem(last=False)
                logger.debug(f"[{evicted}] Progress history evicted")
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(document_id, event)
            except Exception:
                logger.exception(f"[{document_id}] Progress listener failed (ignored)")

    def history(self, document_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._history.get(document_id, []))

    def clear(self, document_id: str) -> None:
        with self._lock:
            self._history.pop(document_id, None)

    # ── Convenience helpers ──────────────────────────────

    def on_stage_start(self, document_id: str, stage: str) -> None:
        self.emit(document_id, {"event": "stage_start", "stage": stage})
        logger.info(f"▶  [{document_id}] Starting stage: {stage}")

    def on_stage_end(self, document_id: str, stage: str, status: str) -> None:
        self.emit(document_id, {"event": "stage_end", "stage": stage, "status": status})
        logger.info(f"✓  [{document_id}] Completed stage: {stage} → {status}")

    def on_iteration(self, event: IterationEvent) -> None:
        payload = event.model_dump(mode="json", by_alias=True, exclude={"document_id"})
        payload["event"] = "iteration"
        payload["ts"] = payload.pop("timestamp")
        self.emit(event.document_id, payload)

    def on_pipeline_end(self, document_id: str, status: str) -> None:
        self.emit(document_id, {"event": "pipeline_end", "status": status})
        logger.info(f"══ [{document_id}] Pipeline finished: {status}")

    def on_error(self, document_id: str, stage: str, message: str) -> None:
        self.emit(document_id, {"event": "error", "stage": stage, "message": message})
        logger.error(f"✗  [{document_id}] Error in {stage}: {message}")
