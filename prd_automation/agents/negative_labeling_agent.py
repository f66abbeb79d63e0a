"""
S3 — Negative Test Labeling Agent
"""

from __future__ import annotations

from typing import Any

from prd_automation.agents.base_agent import StageStrategy, to_json
from prd_automation.models.enums import StageName
from prd_automation.models.schemas import TestCase
from prd_automation.models.state import ProcessingContext
from prd_automation.rules.validators import validate_negative_labels


class NegativeLabelingAgent(StageStrategy):
    name = StageName.NEGATIVE_LABELING
    stage_id = 3
    task = "Review all test cases and correctly label negative test cases"
    completion_phrase = "All negative test cases properly labeled"
    max_iterations = 10
    validator = staticmethod(validate_negative_labels)
    instructions = """
Negative test cases test error conditions, invalid inputs, boundary
conditions that should be rejected, security vulnerabilities and system limits.
Positive test cases test expected, valid, happy-path behavior.

- Set isNegative = true on every negative test case
- Set isPositive = true on every positive test case
- No test case is both positive and negative
- Negative descriptions should state the failure or error scenario

Return the full JSON array of test cases with corrected flags.
"""

    def prepare_input(self, context: ProcessingContext) -> dict[str, Any]:
        return {"testCases": to_json(context.get("test_cases", []))}

    def coerce(self, output: Any) -> list[TestCase]:
        return [TestCase.model_validate(item) for item in output]

    def increment(self, typed_output: list[TestCase]) -> dict[str, Any]:
        return {"labeled_test_cases": typed_output}
