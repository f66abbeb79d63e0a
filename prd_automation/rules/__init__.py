"""Rules — per-stage validators for model output."""

from prd_automation.rules.validators import (
    VALID_TEST_TYPES,
    validate_final_review,
    validate_negative_labels,
    validate_requirements,
    validate_test_cases,
    validate_test_types,
)

__all__ = [
    "VALID_TEST_TYPES",
    "validate_final_review",
    "validate_negative_labels",
    "validate_requirements",
    "validate_test_cases",
    "validate_test_types",
]
