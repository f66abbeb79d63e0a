"""
Document Store — the single source of truth for documents, stage progress,
and the final requirement/test-case set.

Writes are serialized per document (one lock per document id), never
globally, so distinct documents progress independently. Writes against a
deleted document are logged and ignored.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from prd_automation.config import get_settings
from prd_automation.models.enums import DocumentStatus, StageStatus
from prd_automation.models.schemas import Document, Requirement, default_stages
from prd_automation.orchestration.transitions import (
    check_document_transition,
    check_stage_transition,
)

logger = logging.getLogger(__name__)


def new_document_id() -> str:
    return f"DOC-{uuid.uuid4().hex[:8].upper()}"


def _check_references(document_id: str, requirements: list[Requirement]) -> None:
    """Every nested test case must point at the requirement that holds it."""
    for req in requirements:
        for tc in req.test_cases:
            if tc.requirement_id != req.id:
                raise ValueError(
                    f"[{document_id}] Test case {tc.id} references "
                    f"{tc.requirement_id} but is attached to {req.id}"
                )


class DocumentStore(ABC):
    """Persistence interface consumed by the pipeline."""

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, document_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(document_id, threading.Lock())

    def _forget_lock(self, document_id: str) -> None:
        """Drop the lock of a document that is gone so the registry does not grow."""
        with self._registry_lock:
            self._locks.pop(document_id, None)

    @abstractmethod
    def create_document(self, file_name: str, document_id: str | None = None) -> Document:
        ...

    @abstractmethod
    def get_document(self, document_id: str) -> Document | None:
        ...

    @abstractmethod
    def list_documents(self) -> list[Document]:
        ...

    @abstractmethod
    def delete_document(self, document_id: str) -> bool:
        ...

    @abstractmethod
    def update_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        completed_at: datetime | None = None,
    ) -> bool:
        ...

    @abstractmethod
    def update_stage(
        self,
        document_id: str,
        stage_id: int,
        status: StageStatus,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        ...

    @abstractmethod
    def reset_stages(self, document_id: str) -> bool:
        ...

    @abstractmethod
    def save_requirements(self, document_id: str, requirements: list[Requirement]) -> bool:
        """Persist requirements together with their nested test cases, atomically."""
        ...


class InMemoryDocumentStore(DocumentStore):
    """Process-local store. Used in mock mode, the CLI, and tests."""

    def __init__(self) -> None:
        super().__init__()
        self._documents: dict[str, Document] = {}

    def create_document(self, file_name: str, document_id: str | None = None) -> Document:
        document = Document(id=document_id or new_document_id(), file_name=file_name)
        with self._lock_for(document.id):
            if document.id in self._documents:
                raise ValueError(f"Document {document.id} already exists")
            self._documents[document.id] = document
        logger.info(f"Created document {document.id} ({file_name})")
        return document.model_copy(deep=True)

    def get_document(self, document_id: str) -> Document | None:
        with self._lock_for(document_id):
            document = self._documents.get(document_id)
            if document is not None:
                return document.model_copy(deep=True)
        self._forget_lock(document_id)
        return None

    def list_documents(self) -> list[Document]:
        documents = [d.model_copy(deep=True) for d in list(self._documents.values())]
        return sorted(documents, key=lambda d: d.uploaded_at, reverse=True)

    def delete_document(self, document_id: str) -> bool:
        with self._lock_for(document_id):
            removed = self._documents.pop(document_id, None) is not None
        self._forget_lock(document_id)
        return removed

    def _existing(self, document_id: str, action: str) -> Document | None:
        document = self._documents.get(document_id)
        if document is None:
            logger.warning(f"[{document_id}] {action} skipped — document no longer exists")
            self._forget_lock(document_id)
        return document

    def update_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        completed_at: datetime | None = None,
    ) -> bool:
        with self._lock_for(document_id):
            document = self._existing(document_id, f"status → {status}")
            if document is None:
                return False
            check_document_transition(document.status, status)
            document.status = DocumentStatus(status)
            document.completed_at = completed_at
            return True

    def update_stage(
        self,
        document_id: str,
        stage_id: int,
        status: StageStatus,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        with self._lock_for(document_id):
            document = self._existing(document_id, f"stage {stage_id} → {status}")
            if document is None:
                return False
            stage = next((s for s in document.stages if s.id == stage_id), None)
            if stage is None:
                raise ValueError(f"Unknown stage id {stage_id}")
            check_stage_transition(stage.status, status)
            stage.status = StageStatus(status)
            if started_at is not None:
                stage.started_at = started_at
            if completed_at is not None:
                stage.completed_at = completed_at
            return True

    def reset_stages(self, document_id: str) -> bool:
        with self._lock_for(document_id):
            document = self._existing(document_id, "stage reset")
            if document is None:
                return False
            document.stages = default_stages()
            return True

    def save_requirements(self, document_id: str, requirements: list[Requirement]) -> bool:
        _check_references(document_id, requirements)
        snapshot = [r.model_copy(deep=True) for r in requirements]
        with self._lock_for(document_id):
            document = self._existing(document_id, "save requirements")
            if document is None:
                return False
            document.requirements = snapshot
        test_case_count = sum(len(r.test_cases) for r in snapshot)
        logger.info(
            f"[{document_id}] Saved {len(snapshot)} requirements, "
            f"{test_case_count} test cases"
        )
        return True


_store_instance: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Return the configured document store (singleton)."""
    global _store_instance
    if _store_instance is not None:
        return _store_instance

    backend = get_settings().document_store
    if backend == "mongo":
        from prd_automation.persistence.mongo_document_store import MongoDocumentStore

        _store_instance = MongoDocumentStore()
    elif backend == "memory":
        _store_instance = InMemoryDocumentStore()
    else:
        raise ValueError(f"Unknown document store backend '{backend}'")
    logger.info(f"Document store: {backend}")
    return _store_instance
