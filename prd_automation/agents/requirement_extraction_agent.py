"""
S1 — Requirement Extraction Agent

Reads the PRD text and produces the functional and non-functional
requirements the rest of the pipeline works from.
"""

from __future__ import annotations

from typing import Any

from prd_automation.agents.base_agent import StageStrategy
from prd_automation.models.enums import StageName
from prd_automation.models.schemas import Requirement
from prd_automation.models.state import ProcessingContext
from prd_automation.rules.validators import validate_requirements


class RequirementExtractionAgent(StageStrategy):
    name = StageName.REQUIREMENT_EXTRACTION
    stage_id = 1
    task = "Extract all functional and non-functional requirements from the PRD document"
    completion_phrase = "All requirements extracted and validated"
    max_iterations = 15
    validator = staticmethod(validate_requirements)
    instructions = """
Requirements:
- Identify functional requirements (what the system should do)
- Identify non-functional requirements (performance, security, usability, scalability, etc.)
- Each requirement must be clear, testable, and specific
- Each requirement has a unique ID and a description of at least 20 characters

Output format (JSON array):
[
  {"id": "req-1", "type": "functional", "description": "...", "testCases": []}
]
"""

    def prepare_input(self, context: ProcessingContext) -> dict[str, Any]:
        return {"pdfContent": context.get("document_text", "")}

    def coerce(self, output: Any) -> list[Requirement]:
        return [Requirement.model_validate(item) for item in output]

    def increment(self, typed_output: list[Requirement]) -> dict[str, Any]:
        return {"requirements": typed_output}
