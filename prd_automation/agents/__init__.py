"""Agents — one stage strategy per model-driven stage, plus the refinement loop."""

from .base_agent import StageStrategy
from .refinement_loop import LoopConfig, RefinementLoop
from .requirement_extraction_agent import RequirementExtractionAgent
from .test_case_generation_agent import TestCaseGenerationAgent
from .negative_labeling_agent import NegativeLabelingAgent
from .test_type_classification_agent import TestTypeClassificationAgent
from .final_review_agent import FinalReviewAgent

__all__ = [
    "StageStrategy",
    "LoopConfig",
    "RefinementLoop",
    "RequirementExtractionAgent",
    "TestCaseGenerationAgent",
    "NegativeLabelingAgent",
    "TestTypeClassificationAgent",
    "FinalReviewAgent",
]
