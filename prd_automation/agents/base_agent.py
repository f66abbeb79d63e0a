"""
Base stage strategy that every LLM-backed pipeline stage inherits.

Design:
  - A strategy knows WHAT its stage asks for: task text, completion phrase,
    iteration budget, prompt construction, output parsing, tools, validation
    and coercion into typed models.
  - It knows nothing about HOW retries happen; that is RefinementLoop's job.
  - `run()` is the single entry point the orchestrator calls with the
    processing context; it returns the typed increment for the context.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from pydantic import ValidationError

from prd_automation.agents.refinement_loop import LoopConfig, RefinementLoop
from prd_automation.config import get_settings
from prd_automation.models.enums import StageName
from prd_automation.models.schemas import ValidationResult
from prd_automation.models.state import ProcessingContext
from prd_automation.services.completion_signal import wrap_phrase
from prd_automation.services.response_parser import parse_response

logger = logging.getLogger(__name__)

_SYSTEM_TEMPLATE = """You are a specialized AI agent working on: {task}

Process:
1. Analyze the input carefully
2. Generate the required output following best practices
3. Self-validate your work
4. If validation fails, identify issues and fix them
5. Repeat until perfect

{instructions}

When complete, output: {promise}

If stuck after multiple iterations:
- Document what you've accomplished
- List remaining issues
- Suggest next steps"""

# Number of earlier attempt summaries echoed back into the prompt
PREVIOUS_ATTEMPTS_SHOWN = 3


def to_json(value: Any) -> Any:
    """Plain JSON-ready data (camelCase keys) from models or lists of models."""
    if isinstance(value, list):
        return [to_json(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    return value


class StageStrategy(ABC):
    """Abstract base for the five model-driven stages."""

    name: StageName  # set in each subclass
    stage_id: int
    task: str
    completion_phrase: str
    max_iterations: int | None = None
    instructions: str = ""
    expects_sequence: bool = True

    # ── Prompting ────────────────────────────────────────

    def system_prompt(self) -> str:
        return _SYSTEM_TEMPLATE.format(
            task=self.task,
            instructions=self.instructions.strip(),
            promise=wrap_phrase(self.completion_phrase),
        )

    def build_prompt(
        self,
        task: str,
        input_data: Any,
        current_output: Any,
        errors: list[str],
        previous_attempts: list[str],
    ) -> str:
        parts = [f"Task: {task}", f"Input:\n{json.dumps(input_data, indent=2, default=str)}"]

        if current_output:
            parts.append(
                f"Current Output:\n{json.dumps(current_output, indent=2, default=str)}"
            )

        if errors:
            numbered = "\n".join(f"{i}. {e}" for i, e in enumerate(errors, 1))
            parts.append(f"Validation Errors (fix these):\n{numbered}")

        if previous_attempts:
            recent = "\n".join(previous_attempts[-PREVIOUS_ATTEMPTS_SHOWN:])
            parts.append(f"Previous Attempts:\n{recent}")

        parts.append("Please fix any issues and ensure the output passes validation.")
        return "\n\n".join(parts)

    def parse_output(self, raw: str) -> Any:
        return parse_response(raw, expect_sequence=self.expects_sequence)

    def tools(self) -> list[dict[str, Any]]:
        return []

    # ── Validation ───────────────────────────────────────

    @property
    @abstractmethod
    def validator(self) -> Callable[[Any], ValidationResult]:
        """The rule validator for this stage's raw output."""
        ...

    @abstractmethod
    def coerce(self, output: Any) -> Any:
        """Convert validated raw output into typed models."""
        ...

    def validate(self, output: Any) -> ValidationResult:
        """
        Rule validation first; once the rules pass, the output must also
        coerce into the typed models. Schema failures come back as ordinary
        validation errors so the loop asks the model again.
        """
        result = self.validator(output)
        if not result.valid:
            return result
        try:
            self.coerce(output)
        except (ValidationError, TypeError, ValueError) as exc:
            return ValidationResult.from_findings(
                _schema_errors(exc), result.warnings
            )
        return result

    # ── Context plumbing ─────────────────────────────────

    @abstractmethod
    def prepare_input(self, context: ProcessingContext) -> dict[str, Any]:
        """Pick this stage's declared inputs out of the processing context."""
        ...

    @abstractmethod
    def increment(self, typed_output: Any) -> dict[str, Any]:
        """Context fields owned by this stage, from its typed output."""
        ...

    def run(
        self,
        loop: RefinementLoop,
        context: ProcessingContext,
        on_iteration: Callable[[int, Any, list[str]], None] | None = None,
    ) -> dict[str, Any]:
        config = LoopConfig(
            completion_phrase=self.completion_phrase,
            validator=self.validate,
            max_iterations=self.max_iterations or get_settings().loop_max_iterations,
            on_iteration=on_iteration,
        )
        output = loop.refine(self.task, self.prepare_input(context), config)
        typed = self.coerce(output)
        logger.info(f"[{self.name.value}] Accepted output: {_describe(typed)}")
        return self.increment(typed)


def _schema_errors(exc: Exception) -> list[str]:
    if isinstance(exc, ValidationError):
        return [
            f"Schema error at {'.'.join(str(p) for p in err['loc']) or 'root'}: {err['msg']}"
            for err in exc.errors()
        ]
    return [f"Schema error: {exc}"]


def _describe(value: Any) -> str:
    if isinstance(value, list):
        return f"list({len(value)} items)"
    return type(value).__name__
