"""
MongoDB-backed Document Store.

One Mongo document per PRD document, with stages and requirements (and their
nested test cases) embedded. Every write is a single-document update, which
MongoDB applies atomically; the per-document lock serializes the
read-check-write needed for the transition rules.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from prd_automation.models.enums import DocumentStatus, StageStatus
from prd_automation.models.schemas import Document, Requirement, default_stages
from prd_automation.orchestration.transitions import (
    check_document_transition,
    check_stage_transition,
)
from prd_automation.persistence.document_store import (
    DocumentStore,
    _check_references,
    new_document_id,
)
from prd_automation.persistence.mongo_client import MongoClient

logger = logging.getLogger(__name__)


def _to_mongo(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class MongoDocumentStore(DocumentStore):
    def __init__(self, client: MongoClient | None = None, collection: str = "documents"):
        super().__init__()
        self._mongo = client or MongoClient()
        self._collection = self._mongo.get_database()[collection]

    def _load(self, document_id: str) -> Document | None:
        raw = self._collection.find_one({"_id": document_id})
        if raw is None:
            return None
        raw.pop("_id", None)
        return Document.model_validate(raw)

    def create_document(self, file_name: str, document_id: str | None = None) -> Document:
        document = Document(id=document_id or new_document_id(), file_name=file_name)
        self._collection.insert_one({"_id": document.id, **_to_mongo(document)})
        logger.info(f"Created document {document.id} ({file_name})")
        return document

    def get_document(self, document_id: str) -> Document | None:
        return self._load(document_id)

    def list_documents(self) -> list[Document]:
        documents = []
        for raw in self._collection.find().sort("uploadedAt", -1):
            raw.pop("_id", None)
            documents.append(Document.model_validate(raw))
        return documents

    def delete_document(self, document_id: str) -> bool:
        with self._lock_for(document_id):
            result = self._collection.delete_one({"_id": document_id})
        self._forget_lock(document_id)
        return result.deleted_count > 0

    def update_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        completed_at: datetime | None = None,
    ) -> bool:
        with self._lock_for(document_id):
            document = self._load(document_id)
            if document is None:
                logger.warning(f"[{document_id}] status → {status} skipped — document no longer exists")
                self._forget_lock(document_id)
                return False
            check_document_transition(document.status, status)
            result = self._collection.update_one(
                {"_id": document_id},
                {"$set": {
                    "status": DocumentStatus(status).value,
                    "completedAt": _iso(completed_at),
                }},
            )
            return result.matched_count > 0

    def update_stage(
        self,
        document_id: str,
        stage_id: int,
        status: StageStatus,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        with self._lock_for(document_id):
            document = self._load(document_id)
            if document is None:
                logger.warning(f"[{document_id}] stage {stage_id} → {status} skipped — document no longer exists")
                self._forget_lock(document_id)
                return False
            stage = next((s for s in document.stages if s.id == stage_id), None)
            if stage is None:
                raise ValueError(f"Unknown stage id {stage_id}")
            check_stage_transition(stage.status, status)

            fields: dict[str, Any] = {"stages.$.status": StageStatus(status).value}
            if started_at is not None:
                fields["stages.$.startedAt"] = _iso(started_at)
            if completed_at is not None:
                fields["stages.$.completedAt"] = _iso(completed_at)
            result = self._collection.update_one(
                {"_id": document_id, "stages.id": stage_id}, {"$set": fields}
            )
            return result.matched_count > 0

    def reset_stages(self, document_id: str) -> bool:
        with self._lock_for(document_id):
            result = self._collection.update_one(
                {"_id": document_id},
                {"$set": {"stages": [_to_mongo(s) for s in default_stages()]}},
            )
            return result.matched_count > 0

    def save_requirements(self, document_id: str, requirements: list[Requirement]) -> bool:
        _check_references(document_id, requirements)
        payload = [_to_mongo(r) for r in requirements]
        with self._lock_for(document_id):
            result = self._collection.update_one(
                {"_id": document_id}, {"$set": {"requirements": payload}}
            )
        if result.matched_count == 0:
            logger.warning(f"[{document_id}] save requirements skipped — document no longer exists")
            self._forget_lock(document_id)
            return False
        logger.info(f"[{document_id}] Saved {len(payload)} requirements to MongoDB")
        return True
