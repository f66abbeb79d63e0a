"""
Reusable data schemas for the records flowing through the pipeline.

JSON field names are camelCase (the shape the model is asked to produce and
the shape persisted by the document store); Python attributes are snake_case.
Serialize with ``model_dump(by_alias=True)`` whenever the output is shown to
the model or written to storage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .enums import (
    ChatRole,
    DocumentStatus,
    RequirementType,
    StageStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stringify(value: Any) -> Any:
    # Models sometimes emit numeric ids; ids are always strings in storage
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


_CAMEL_CONFIG = {"populate_by_name": True}


# ── Requirements & test cases ────────────────────────────


class TestCase(BaseModel):
    """A concrete check against one requirement."""

    model_config = _CAMEL_CONFIG

    id: str
    requirement_id: str = Field(alias="requirementId")
    description: str
    is_positive: bool = Field(default=False, alias="isPositive")
    is_negative: bool = Field(default=False, alias="isNegative")
    test_types: list[str] = Field(default_factory=list, alias="testTypes")

    @field_validator("id", "requirement_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return _stringify(value)

    @field_validator("test_types", mode="before")
    @classmethod
    def _normalize_test_types(cls, value: Any) -> Any:
        """Lower-case, strip, and drop duplicates while keeping order."""
        if not isinstance(value, (list, tuple, set)):
            return value
        seen: list[str] = []
        for item in value:
            name = str(item).strip().lower()
            if name and name not in seen:
                seen.append(name)
        return seen


class Requirement(BaseModel):
    """A testable statement of system behaviour."""

    model_config = _CAMEL_CONFIG

    id: str
    number: Optional[str] = None  # FR-001, NFR-001, ...
    type: RequirementType
    description: str
    test_cases: list[TestCase] = Field(default_factory=list, alias="testCases")

    @field_validator("id", "number", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return _stringify(value)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class FinalReview(BaseModel):
    """Stage 5 output: the reviewed requirement set plus all test cases."""

    model_config = _CAMEL_CONFIG

    requirements: list[Requirement] = []
    test_cases: list[TestCase] = Field(default_factory=list, alias="testCases")


# ── Validation ───────────────────────────────────────────


class ValidationResult(BaseModel):
    """Outcome of one validator run. Errors block progress; warnings never do."""

    valid: bool
    errors: list[str] = []
    warnings: Optional[list[str]] = None

    @classmethod
    def from_findings(
        cls, errors: list[str], warnings: list[str] | None = None
    ) -> ValidationResult:
        return cls(
            valid=not errors,
            errors=list(errors),
            warnings=list(warnings) if warnings else None,
        )


# ── Documents & stages ───────────────────────────────────


class AgentStage(BaseModel):
    model_config = _CAMEL_CONFIG

    id: int
    name: str
    description: str
    status: StageStatus = StageStatus.PENDING
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")


# (id, name, description) for the six fixed stages, in execution order
AGENT_STAGES: list[tuple[int, str, str]] = [
    (
        1,
        "Requirement Extraction",
        "Reviewing document and extracting functional and non-functional requirements",
    ),
    (
        2,
        "Test Case Generation",
        "Creating positive and negative test cases per requirement using the 7 testing principles",
    ),
    (
        3,
        "Negative Test Labeling",
        "Reviewing requirements and test cases, then labeling negative test cases",
    ),
    (
        4,
        "Test Type Classification",
        "Reviewing requirements and test cases, then labeling them according to their testing types",
    ),
    (
        5,
        "Final Review",
        "Reviewing everything to ensure requirements and test cases make sense "
        "and conform to the 7 testing principles",
    ),
    (
        6,
        "Document Finalization",
        "Saving the final document and preparing it for review",
    ),
]


def default_stages() -> list[AgentStage]:
    """Fresh list of the six stages, all pending."""
    return [
        AgentStage(id=stage_id, name=name, description=description)
        for stage_id, name, description in AGENT_STAGES
    ]


class Document(BaseModel):
    model_config = _CAMEL_CONFIG

    id: str
    file_name: str = Field(default="", alias="fileName")
    uploaded_at: datetime = Field(default_factory=_utcnow, alias="uploadedAt")
    status: DocumentStatus = DocumentStatus.UPLOADED
    stages: list[AgentStage] = Field(default_factory=default_stages)
    requirements: list[Requirement] = []
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")


# ── Ingestion ────────────────────────────────────────────


class PDFMetadata(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None


class ParseResult(BaseModel):
    model_config = _CAMEL_CONFIG

    text: str
    page_count: int = Field(default=0, alias="pageCount")
    metadata: Optional[PDFMetadata] = None


# ── Model invocation ─────────────────────────────────────


class ChatMessage(BaseModel):
    role: ChatRole
    content: str


class ChatOptions(BaseModel):
    model_config = _CAMEL_CONFIG

    temperature: float = 0.7
    max_tokens: int = Field(default=2000, alias="maxTokens")
    tools: list[dict[str, Any]] = []


class TokenUsage(BaseModel):
    model_config = _CAMEL_CONFIG

    prompt_tokens: int = Field(default=0, alias="promptTokens")
    completion_tokens: int = Field(default=0, alias="completionTokens")
    total_tokens: int = Field(default=0, alias="totalTokens")


class ChatResponse(BaseModel):
    content: str = ""
    usage: Optional[TokenUsage] = None


# ── Pipeline reporting ───────────────────────────────────


class IterationEvent(BaseModel):
    """Payload handed to the observability hook after every loop iteration."""

    model_config = _CAMEL_CONFIG

    document_id: str = Field(default="", alias="documentId")
    stage: str
    iteration: int
    error_count: int = Field(default=0, alias="errorCount")
    errors: list[str] = []
    timestamp: datetime = Field(default_factory=_utcnow)


class StatusReport(BaseModel):
    model_config = _CAMEL_CONFIG

    document_id: str = Field(alias="documentId")
    status: DocumentStatus
    stages: list[AgentStage]
    current_stage_index: int = Field(alias="currentStageIndex")


class ProcessingAck(BaseModel):
    """Answer to a start-processing request."""

    model_config = _CAMEL_CONFIG

    document_id: str = Field(alias="documentId")
    started: bool
    message: str
