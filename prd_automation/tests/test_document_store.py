"""
Tests: in-memory document store (copies, transitions, atomic saves).

Run with:
    pytest prd_automation/tests/test_document_store.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from prd_automation.config import Settings
from prd_automation.exceptions import InvalidStageTransition
from prd_automation.models import schemas
from prd_automation.models.enums import DocumentStatus, StageStatus
from prd_automation.persistence import document_store
from prd_automation.persistence.document_store import InMemoryDocumentStore


def _requirement(req_id="req-1", tc_requirement_id=None):
    return schemas.Requirement.model_validate({
        "id": req_id,
        "type": "functional",
        "description": "The system shall export reports as CSV files",
        "testCases": [{
            "id": f"{req_id}-tc-1",
            "requirementId": tc_requirement_id or req_id,
            "description": "Verify export produces a CSV file",
            "isPositive": True,
            "isNegative": False,
            "testTypes": ["unit"],
        }],
    })


class TestDocuments:
    def test_create_and_get(self, store):
        doc = store.create_document("spec.pdf")
        assert doc.id.startswith("DOC-")
        stored = store.get_document(doc.id)
        assert stored.file_name == "spec.pdf"
        assert stored.status == DocumentStatus.UPLOADED
        assert [s.id for s in stored.stages] == [1, 2, 3, 4, 5, 6]
        assert all(s.status == StageStatus.PENDING for s in stored.stages)

    def test_duplicate_id_rejected(self, store):
        store.create_document("a.pdf", document_id="DOC-1")
        with pytest.raises(ValueError):
            store.create_document("b.pdf", document_id="DOC-1")

    def test_get_returns_a_copy(self, store):
        doc = store.create_document("spec.pdf")
        copy = store.get_document(doc.id)
        copy.stages[0].status = StageStatus.COMPLETED
        assert store.get_document(doc.id).stages[0].status == StageStatus.PENDING

    def test_list_newest_first(self, store):
        older = store.create_document("old.pdf")
        newer = store.create_document("new.pdf")
        store._documents[older.id].uploaded_at = datetime.now(timezone.utc) - timedelta(days=1)
        assert [d.id for d in store.list_documents()] == [newer.id, older.id]

    def test_delete(self, store):
        doc = store.create_document("spec.pdf")
        assert store.delete_document(doc.id) is True
        assert store.delete_document(doc.id) is False
        assert store.get_document(doc.id) is None

    def test_writes_to_missing_document_are_ignored(self, store):
        assert store.update_document_status("DOC-GONE", DocumentStatus.PROCESSING) is False
        assert store.update_stage("DOC-GONE", 1, StageStatus.PROCESSING) is False
        assert store.save_requirements("DOC-GONE", [_requirement()]) is False
        assert store.reset_stages("DOC-GONE") is False

    def test_locks_are_released_for_gone_documents(self, store):
        doc = store.create_document("spec.pdf")
        store.update_document_status(doc.id, DocumentStatus.PROCESSING)
        assert doc.id in store._locks

        store.delete_document(doc.id)
        store.update_stage(doc.id, 1, StageStatus.PROCESSING)
        store.get_document("DOC-NEVER")
        assert doc.id not in store._locks
        assert "DOC-NEVER" not in store._locks

    def test_camel_case_dump(self, store):
        doc = store.create_document("spec.pdf")
        payload = store.get_document(doc.id).model_dump(by_alias=True)
        assert {"fileName", "uploadedAt", "completedAt"} <= set(payload)
        assert "startedAt" in payload["stages"][0]


class TestTransitions:
    def test_stage_moves_forward(self, store):
        doc = store.create_document("spec.pdf")
        started = datetime.now(timezone.utc)
        store.update_stage(doc.id, 1, StageStatus.PROCESSING, started_at=started)
        store.update_stage(doc.id, 1, StageStatus.COMPLETED, completed_at=started)
        stage = store.get_document(doc.id).stages[0]
        assert stage.status == StageStatus.COMPLETED
        assert stage.started_at == started

    def test_stage_cannot_regress(self, store):
        doc = store.create_document("spec.pdf")
        store.update_stage(doc.id, 1, StageStatus.PROCESSING)
        store.update_stage(doc.id, 1, StageStatus.COMPLETED)
        with pytest.raises(InvalidStageTransition):
            store.update_stage(doc.id, 1, StageStatus.PROCESSING)

    def test_stage_cannot_skip_processing(self, store):
        doc = store.create_document("spec.pdf")
        with pytest.raises(InvalidStageTransition):
            store.update_stage(doc.id, 2, StageStatus.COMPLETED)

    def test_unknown_stage(self, store):
        doc = store.create_document("spec.pdf")
        with pytest.raises(ValueError):
            store.update_stage(doc.id, 7, StageStatus.PROCESSING)

    def test_completed_document_is_final(self, store):
        doc = store.create_document("spec.pdf")
        store.update_document_status(doc.id, DocumentStatus.PROCESSING)
        store.update_document_status(doc.id, DocumentStatus.COMPLETED)
        with pytest.raises(InvalidStageTransition):
            store.update_document_status(doc.id, DocumentStatus.PROCESSING)

    def test_reset_stages(self, store):
        doc = store.create_document("spec.pdf")
        store.update_stage(doc.id, 1, StageStatus.PROCESSING)
        store.update_stage(doc.id, 1, StageStatus.ERROR)
        assert store.reset_stages(doc.id) is True
        assert all(s.status == StageStatus.PENDING for s in store.get_document(doc.id).stages)


class TestSaveRequirements:
    def test_saves_nested_test_cases(self, store):
        doc = store.create_document("spec.pdf")
        assert store.save_requirements(doc.id, [_requirement("req-1"), _requirement("req-2")])
        saved = store.get_document(doc.id).requirements
        assert [r.id for r in saved] == ["req-1", "req-2"]
        assert saved[1].test_cases[0].requirement_id == "req-2"

    def test_mismatched_reference_rejected(self, store):
        doc = store.create_document("spec.pdf")
        with pytest.raises(ValueError):
            store.save_requirements(doc.id, [_requirement("req-1", tc_requirement_id="req-2")])
        assert store.get_document(doc.id).requirements == []

    def test_caller_mutation_does_not_leak(self, store):
        doc = store.create_document("spec.pdf")
        requirements = [_requirement()]
        store.save_requirements(doc.id, requirements)
        requirements[0].test_cases.clear()
        assert len(store.get_document(doc.id).requirements[0].test_cases) == 1


class TestFactory:
    def test_memory_backend(self, monkeypatch):
        monkeypatch.setattr(document_store, "_store_instance", None)
        monkeypatch.setattr(document_store, "get_settings", lambda: Settings(document_store="memory"))
        store = document_store.get_document_store()
        assert isinstance(store, InMemoryDocumentStore)
        assert document_store.get_document_store() is store

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setattr(document_store, "_store_instance", None)
        monkeypatch.setattr(document_store, "get_settings", lambda: Settings(document_store="redis"))
        with pytest.raises(ValueError, match="redis"):
            document_store.get_document_store()
