"""
S2 — Test Case Generation Agent

Generates positive and negative test cases per requirement. Only the
requirements are sent to the model, never the full document text.
"""

from __future__ import annotations

from typing import Any

from prd_automation.agents.base_agent import StageStrategy, to_json
from prd_automation.models.enums import StageName
from prd_automation.models.schemas import TestCase
from prd_automation.models.state import ProcessingContext
from prd_automation.rules.validators import validate_test_cases

SEVEN_PRINCIPLES = """The 7 Testing Principles:
1. Testing shows presence of defects
2. Exhaustive testing is impossible
3. Early testing
4. Defect clustering
5. Pesticide paradox
6. Testing is context dependent
7. Absence of errors fallacy"""


class TestCaseGenerationAgent(StageStrategy):
    name = StageName.TEST_CASE_GENERATION
    stage_id = 2
    task = (
        "Generate positive and negative test cases for each requirement "
        "using the 7 testing principles"
    )
    completion_phrase = "All test cases generated and conform to 7 testing principles"
    max_iterations = 20
    validator = staticmethod(validate_test_cases)
    instructions = f"""
For each requirement:
1. Create positive test cases (happy path, expected behavior)
2. Create negative test cases (error cases, edge cases, invalid inputs)
3. Reference the requirement each test case checks via requirementId

{SEVEN_PRINCIPLES}

Output format (JSON array):
[
  {{"id": "tc-1", "requirementId": "req-1", "description": "Verify that...",
    "isPositive": true, "isNegative": false, "testTypes": []}}
]
"""

    def prepare_input(self, context: ProcessingContext) -> dict[str, Any]:
        return {"requirements": to_json(context.get("requirements", []))}

    def coerce(self, output: Any) -> list[TestCase]:
        return [TestCase.model_validate(item) for item in output]

    def increment(self, typed_output: list[TestCase]) -> dict[str, Any]:
        return {"test_cases": typed_output}
