"""
S5 — Final Review Agent

Sees a compact summary of everything produced so far and returns the
reviewed set as one object: {"requirements": [...], "testCases": [...]}.
"""

from __future__ import annotations

from typing import Any

from prd_automation.agents.base_agent import StageStrategy, to_json
from prd_automation.agents.test_case_generation_agent import SEVEN_PRINCIPLES
from prd_automation.models.enums import RequirementType, StageName
from prd_automation.models.schemas import FinalReview
from prd_automation.models.state import ProcessingContext
from prd_automation.rules.validators import validate_final_review


class FinalReviewAgent(StageStrategy):
    name = StageName.FINAL_REVIEW
    stage_id = 5
    task = (
        "Review all requirements and test cases to ensure they conform "
        "to the 7 testing principles"
    )
    completion_phrase = "Final review complete - all requirements and test cases validated"
    max_iterations = 15
    expects_sequence = False
    validator = staticmethod(validate_final_review)
    instructions = f"""
Review checklist:
- All requirements are clear and testable
- Each requirement has associated test cases
- Test cases cover both positive and negative scenarios
- Test cases are properly labeled and have appropriate test types

{SEVEN_PRINCIPLES}

Output format (JSON object):
{{"requirements": [...], "testCases": [...]}}
"""

    def prepare_input(self, context: ProcessingContext) -> dict[str, Any]:
        requirements = context.get("requirements", [])
        test_cases = context.get("classified_test_cases", [])
        return {
            "requirementCount": len(requirements),
            "testCaseCount": len(test_cases),
            "functionalCount": sum(
                1 for r in requirements if r.type == RequirementType.FUNCTIONAL
            ),
            "nonFunctionalCount": sum(
                1 for r in requirements if r.type == RequirementType.NON_FUNCTIONAL
            ),
            "requirements": to_json(requirements),
            "testCases": to_json(test_cases),
        }

    def coerce(self, output: Any) -> FinalReview:
        return FinalReview.model_validate(output)

    def increment(self, typed_output: FinalReview) -> dict[str, Any]:
        return {"final_review": typed_output}
