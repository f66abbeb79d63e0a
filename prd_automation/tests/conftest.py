"""Shared fixtures: an in-memory store, a temp file store, fake chat clients."""

from __future__ import annotations

import pytest

from prd_automation.models.schemas import ChatResponse
from prd_automation.orchestration.graph import PipelineOrchestrator
from prd_automation.persistence.document_store import InMemoryDocumentStore
from prd_automation.services.file_service import FileService
from prd_automation.services.llm_service import MockChatClient


class ScriptedClient:
    """Replays canned responses in order; Exception items are raised instead."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def chat(self, messages, options):
        self.calls.append(list(messages))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return ChatResponse(content=item)


@pytest.fixture
def scripted_client():
    return ScriptedClient


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def file_service(tmp_path):
    return FileService(tmp_path / "pdfs")


@pytest.fixture
def make_orchestrator(store, file_service):
    """Build an orchestrator with no pauses; defaults to the mock chat client."""

    def _make(client=None, **kwargs):
        return PipelineOrchestrator(
            store=store,
            client=client or MockChatClient(),
            file_service=file_service,
            pause_seconds=0,
            **kwargs,
        )

    return _make
