"""
Pipeline error taxonomy.

Only MaxIterationsExceeded, DocumentNotFound and InvalidStageTransition
ever escape to the caller.
ResponseValidationError and InvocationError are recovered inside the
refinement loop; MalformedResponse is recovered inside the response parser.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ResponseValidationError(PipelineError):
    """A candidate output failed its stage validator (soft, drives a retry)."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "validation failed")
        self.errors = list(errors)


class InvocationError(PipelineError):
    """The model call itself failed (transient, retried in the same loop)."""


class MalformedResponse(PipelineError):
    """No usable JSON could be recovered from a model response."""


class MaxIterationsExceeded(PipelineError):
    """The refinement loop ran out of iterations. Fatal to the stage."""

    def __init__(self, iterations: int, errors: list[str], stage: str = ""):
        prefix = f"[{stage}] " if stage else ""
        super().__init__(
            f"{prefix}Refinement loop exceeded {iterations} iterations. "
            f"Last errors: {', '.join(errors)}"
        )
        self.iterations = iterations
        self.errors = list(errors)
        self.stage = stage


class DocumentNotFound(PipelineError, LookupError):
    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class InvalidStageTransition(PipelineError, ValueError):
    """A stage status write would move the stage backwards."""
