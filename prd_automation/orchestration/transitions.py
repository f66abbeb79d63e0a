"""
Status transition rules for stages and documents.

Stages only move forward:  pending → processing → {completed | error}.
Documents:  uploaded → processing → {completed | error};  error → processing
starts a fresh run (stages are reset first).
"""

from __future__ import annotations

from prd_automation.exceptions import InvalidStageTransition
from prd_automation.models.enums import DocumentStatus, StageStatus
from prd_automation.models.schemas import AgentStage

_STAGE_TRANSITIONS: dict[StageStatus, set[StageStatus]] = {
    StageStatus.PENDING: {StageStatus.PROCESSING},
    StageStatus.PROCESSING: {StageStatus.COMPLETED, StageStatus.ERROR},
    StageStatus.COMPLETED: set(),
    StageStatus.ERROR: set(),
}

_DOCUMENT_TRANSITIONS: dict[DocumentStatus, set[DocumentStatus]] = {
    DocumentStatus.UPLOADED: {DocumentStatus.PROCESSING, DocumentStatus.ERROR},
    DocumentStatus.PROCESSING: {DocumentStatus.COMPLETED, DocumentStatus.ERROR},
    DocumentStatus.COMPLETED: set(),
    DocumentStatus.ERROR: {DocumentStatus.PROCESSING},
}


def check_stage_transition(current: StageStatus, new: StageStatus) -> None:
    """Raise InvalidStageTransition unless *new* is reachable from *current*."""
    current, new = StageStatus(current), StageStatus(new)
    if current == new or new in _STAGE_TRANSITIONS[current]:
        return
    raise InvalidStageTransition(
        f"Stage status cannot move from {current.value} to {new.value}"
    )


def check_document_transition(current: DocumentStatus, new: DocumentStatus) -> None:
    current, new = DocumentStatus(current), DocumentStatus(new)
    if current == new or new in _DOCUMENT_TRANSITIONS[current]:
        return
    raise InvalidStageTransition(
        f"Document status cannot move from {current.value} to {new.value}"
    )


def current_stage_index(stages: list[AgentStage]) -> int:
    """
    Index of the stage currently processing; otherwise one past the last
    completed stage; otherwise 0. Clamped to the last index, so a fully
    completed pipeline reports its final stage rather than running off the end.
    """
    for i, stage in enumerate(stages):
        if stage.status == StageStatus.PROCESSING:
            return i

    completed = [i for i, s in enumerate(stages) if s.status == StageStatus.COMPLETED]
    if not completed:
        return 0
    return min(completed[-1] + 1, len(stages) - 1)
