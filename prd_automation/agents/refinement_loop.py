"""
Refinement Loop — generic retry-until-valid engine.

Each iteration: prompt the model → interpret the response → check the
completion signal → validate. A valid candidate is returned immediately;
anything else feeds its errors into the next prompt. Exhausting the budget
raises MaxIterationsExceeded.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

from prd_automation.config import get_settings
from prd_automation.exceptions import MaxIterationsExceeded, ResponseValidationError
from prd_automation.models.enums import ChatRole
from prd_automation.models.schemas import ChatMessage, ChatOptions, ValidationResult
from prd_automation.services.completion_signal import has_completion_signal
from prd_automation.services.llm_service import LLMClient

if TYPE_CHECKING:
    from prd_automation.agents.base_agent import StageStrategy

logger = logging.getLogger(__name__)

MISSING_SIGNAL_ERROR = "Completion promise not found in response"


class LoopConfig(BaseModel):
    """Per-stage knobs for one refine() call."""

    model_config = {"arbitrary_types_allowed": True}

    completion_phrase: str
    validator: Callable[[Any], ValidationResult]
    max_iterations: int = 20
    on_iteration: Callable[[int, Any, list[str]], None] | None = None


class RefinementLoop:
    def __init__(
        self,
        client: LLMClient,
        strategy: StageStrategy,
        pause_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        options: ChatOptions | None = None,
    ):
        settings = get_settings()
        self.client = client
        self.strategy = strategy
        self.pause_seconds = (
            settings.loop_pause_seconds if pause_seconds is None else pause_seconds
        )
        self._sleep = sleep
        self.options = options or ChatOptions(
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    def refine(self, task: str, input_data: Any, config: LoopConfig) -> Any:
        label = self.strategy.name.value
        system = ChatMessage(role=ChatRole.SYSTEM, content=self.strategy.system_prompt())
        options = self.options.model_copy(update={"tools": self.strategy.tools()})

        output: Any = None
        errors: list[str] = []
        previous_attempts: list[str] = []

        for iteration in range(1, config.max_iterations + 1):
            prompt = self.strategy.build_prompt(
                task, input_data, output, errors, previous_attempts
            )
            user = ChatMessage(role=ChatRole.USER, content=prompt)

            try:
                response = self.client.chat([system, user], options)
            except Exception as exc:
                errors = [f"Error in iteration {iteration}: {exc}"]
                previous_attempts.append(errors[0])
                logger.warning(f"[{label}] Iteration {iteration}: model call failed: {exc}")
                self._notify(config, iteration, None, errors)
                self._pause(iteration, config.max_iterations)
                continue

            output = self.strategy.parse_output(response.content)

            if not has_completion_signal(response.content, config.completion_phrase):
                errors = [MISSING_SIGNAL_ERROR]
                previous_attempts.append(f"Iteration {iteration}: Missing completion promise")
                logger.debug(f"[{label}] Iteration {iteration}: no completion signal")
                self._notify(config, iteration, output, errors)
                self._pause(iteration, config.max_iterations)
                continue

            try:
                self._check(output, config)
            except ResponseValidationError as exc:
                errors = exc.errors
                previous_attempts.append(f"Iteration {iteration}: {'; '.join(errors)}")
                logger.debug(
                    f"[{label}] Iteration {iteration}: {len(errors)} validation errors"
                )
                self._notify(config, iteration, output, errors)
                self._pause(iteration, config.max_iterations)
                continue

            logger.info(f"[{label}] Output accepted on iteration {iteration}")
            self._notify(config, iteration, output, [])
            return output

        logger.error(
            f"[{label}] Gave up after {config.max_iterations} iterations: {errors}"
        )
        raise MaxIterationsExceeded(config.max_iterations, errors, stage=label)

    # ── Helpers ──────────────────────────────────────────

    def _check(self, output: Any, config: LoopConfig) -> None:
        try:
            result = config.validator(output)
        except Exception as exc:
            logger.warning(f"[{self.strategy.name.value}] Validator raised: {exc!r}")
            raise ResponseValidationError([f"Output could not be validated: {exc}"]) from exc
        for warning in result.warnings or []:
            logger.warning(f"[{self.strategy.name.value}] {warning}")
        if not result.valid:
            raise ResponseValidationError(result.errors)

    def _notify(
        self, config: LoopConfig, iteration: int, output: Any, errors: list[str]
    ) -> None:
        if config.on_iteration is None:
            return
        try:
            config.on_iteration(iteration, output, list(errors))
        except Exception:
            logger.exception(
                f"[{self.strategy.name.value}] Iteration hook failed (ignored)"
            )

    def _pause(self, iteration: int, max_iterations: int) -> None:
        if iteration < max_iterations and self.pause_seconds > 0:
            self._sleep(self.pause_seconds)
