"""
LangGraph processing context — the accumulator that flows through the stages.

Design rules:
  1. Each field is "owned" by one stage (see comments).
  2. Stages READ only the fields they declare as inputs and RETURN only their
     owned fields; LangGraph merges the returned increment into the context.
  3. The context lives for one pipeline run and is never persisted as a whole.
"""

from __future__ import annotations

from typing import TypedDict

from .schemas import FinalReview, Requirement, TestCase


class ProcessingContext(TypedDict, total=False):
    # ── Run identity (owner: orchestrator) ───────────────
    document_id: str
    document_text: str

    # ── S1 Requirement Extraction (owner: S1) ────────────
    requirements: list[Requirement]

    # ── S2 Test Case Generation (owner: S2) ──────────────
    test_cases: list[TestCase]

    # ── S3 Negative Labeling (owner: S3) ─────────────────
    labeled_test_cases: list[TestCase]

    # ── S4 Test Type Classification (owner: S4) ──────────
    classified_test_cases: list[TestCase]

    # ── S5 Final Review (owner: S5) ──────────────────────
    final_review: FinalReview

    # ── S6 Finalization (owner: S6) ──────────────────────
    saved_requirements: list[Requirement]
