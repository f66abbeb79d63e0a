"""
Stage Validators — hard checks applied to every candidate a stage produces.

Each validator is a pure function over the parsed (still untyped) model
output and returns a ValidationResult. Errors send the refinement loop round
again with the messages as feedback; warnings are informational only.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from prd_automation.models.enums import RequirementType, TestType
from prd_automation.models.schemas import ValidationResult

REQUIREMENT_TYPES = {t.value for t in RequirementType}
VALID_TEST_TYPES = [t.value for t in TestType]

MIN_REQUIREMENT_DESCRIPTION = 20
MIN_TEST_CASE_DESCRIPTION = 10
MIN_DISTINCT_TEST_TYPES = 3

NEGATIVE_KEYWORDS = (
    "fail",
    "error",
    "invalid",
    "reject",
    "deny",
    "exception",
    "negative",
)


# ── Helpers ──────────────────────────────────────────────


def _text_length(value: Any) -> int:
    return len(value.strip()) if isinstance(value, str) else 0


def _duplicate_ids(items: list[Any]) -> list[str]:
    counts = Counter(
        str(item["id"]) for item in items if isinstance(item, dict) and item.get("id")
    )
    return sorted(key for key, n in counts.items() if n > 1)


def _not_a_list(what: str) -> ValidationResult:
    return ValidationResult(valid=False, errors=[f"Output must be an array of {what}"])


# ── S1 Requirement Extraction ────────────────────────────


def validate_requirements(output: Any) -> ValidationResult:
    if not isinstance(output, list):
        return _not_a_list("requirements")

    errors: list[str] = []
    warnings: list[str] = []

    if not output:
        errors.append("No requirements extracted")

    types = [r.get("type") for r in output if isinstance(r, dict)]
    if RequirementType.FUNCTIONAL.value not in types:
        errors.append("No functional requirements found")
    if RequirementType.NON_FUNCTIONAL.value not in types:
        warnings.append("No non-functional requirements found (may be acceptable)")

    for i, req in enumerate(output, start=1):
        if not isinstance(req, dict):
            errors.append(f"Requirement {i} is not an object")
            continue
        if not req.get("id"):
            errors.append(f"Requirement {i} missing ID")
        if _text_length(req.get("description")) < MIN_REQUIREMENT_DESCRIPTION:
            errors.append(f"Requirement {i} description too short or missing")
        req_type = req.get("type")
        if not isinstance(req_type, str) or req_type not in REQUIREMENT_TYPES:
            errors.append(f"Requirement {i} has invalid type")
        if not isinstance(req.get("testCases"), list):
            errors.append(f"Requirement {i} missing testCases array")

    for dup in _duplicate_ids(output):
        errors.append(f"Duplicate requirement ID: {dup}")

    return ValidationResult.from_findings(errors, warnings)


# ── S2 Test Case Generation ──────────────────────────────


def validate_test_cases(output: Any) -> ValidationResult:
    if not isinstance(output, list):
        return _not_a_list("test cases")

    errors: list[str] = []

    if not output:
        errors.append("No test cases generated")

    cases = [tc for tc in output if isinstance(tc, dict)]
    if not any(tc.get("isPositive") is True for tc in cases):
        errors.append("No positive test cases found")
    if not any(tc.get("isNegative") is True for tc in cases):
        errors.append("No negative test cases found")

    for i, tc in enumerate(output, start=1):
        if not isinstance(tc, dict):
            errors.append(f"Test case {i} is not an object")
            continue
        if not tc.get("id"):
            errors.append(f"Test case {i} missing ID")
        if not tc.get("requirementId"):
            errors.append(f"Test case {i} missing requirementId")
        if _text_length(tc.get("description")) < MIN_TEST_CASE_DESCRIPTION:
            errors.append(f"Test case {i} description too short or missing")
        if not isinstance(tc.get("isPositive"), bool):
            errors.append(f"Test case {i} missing isPositive flag")
        if not isinstance(tc.get("isNegative"), bool):
            errors.append(f"Test case {i} missing isNegative flag")
        if not isinstance(tc.get("testTypes"), list):
            errors.append(f"Test case {i} missing testTypes array")

    for dup in _duplicate_ids(output):
        errors.append(f"Duplicate test case ID: {dup}")

    return ValidationResult.from_findings(errors)


# ── S3 Negative Labeling ─────────────────────────────────


def validate_negative_labels(output: Any) -> ValidationResult:
    """
    Only the negative-also-positive direction is a hard error; a case
    flagged positive but not negative is never inspected for the reverse.
    Flags count only when they are the boolean True; "true" or 1 do not.
    """
    if not isinstance(output, list):
        return _not_a_list("test cases")

    errors: list[str] = []
    warnings: list[str] = []

    cases = [tc for tc in output if isinstance(tc, dict)]
    negatives = [tc for tc in cases if tc.get("isNegative") is True]

    if not negatives:
        errors.append("No negative test cases found after labeling")

    mislabeled = [tc for tc in negatives if tc.get("isPositive") is True]
    if mislabeled:
        errors.append(
            f"{len(mislabeled)} test cases incorrectly labeled as both positive and negative"
        )

    for tc in negatives:
        description = str(tc.get("description") or "").lower()
        if len(description) > 20 and not any(k in description for k in NEGATIVE_KEYWORDS):
            warnings.append(
                f"Negative test case {tc.get('id', '?')} does not describe a failure scenario"
            )

    return ValidationResult.from_findings(errors, warnings)


# ── S4 Test Type Classification ──────────────────────────


def validate_test_types(output: Any) -> ValidationResult:
    if not isinstance(output, list):
        return _not_a_list("test cases")

    errors: list[str] = []
    warnings: list[str] = []

    if not output:
        errors.append("No test cases to classify")

    for i, tc in enumerate(output, start=1):
        test_types = tc.get("testTypes") if isinstance(tc, dict) else None
        if not isinstance(test_types, list) or not test_types:
            errors.append(f"Test case {i} has no test types assigned")
            continue
        unknown = [
            str(t) for t in test_types if str(t).strip().lower() not in VALID_TEST_TYPES
        ]
        if unknown:
            warnings.append(
                f"Test case {i} has potentially invalid test types: {', '.join(unknown)}"
            )

    return ValidationResult.from_findings(errors, warnings)


# ── S5 Final Review ──────────────────────────────────────


def validate_final_review(output: Any) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    payload = output if isinstance(output, dict) else {}
    requirements = payload.get("requirements")
    test_cases = payload.get("testCases")

    if not isinstance(requirements, list):
        errors.append("Requirements missing or invalid")
    elif not requirements:
        errors.append("No requirements in final review")
    if not isinstance(test_cases, list):
        errors.append("Test cases missing or invalid")

    if isinstance(test_cases, list):
        distinct_types = {
            str(t).strip().lower()
            for tc in test_cases
            if isinstance(tc, dict) and isinstance(tc.get("testTypes"), list)
            for t in tc["testTypes"]
        }
        if len(distinct_types) < MIN_DISTINCT_TEST_TYPES:
            warnings.append("Limited test type diversity - consider more varied test types")

    if isinstance(requirements, list) and isinstance(test_cases, list):
        covered = {
            str(tc.get("requirementId"))
            for tc in test_cases
            if isinstance(tc, dict) and tc.get("requirementId")
        }
        for i, req in enumerate(requirements, start=1):
            if not isinstance(req, dict) or not req.get("id"):
                errors.append(f"Requirement {i} missing ID")
                continue
            if str(req["id"]) not in covered:
                errors.append(f"Requirement {req['id']} has no associated test cases")

        for dup in _duplicate_ids(requirements):
            errors.append(f"Duplicate requirement ID: {dup}")
        for dup in _duplicate_ids(test_cases):
            errors.append(f"Duplicate test case ID: {dup}")

    return ValidationResult.from_findings(errors, warnings)
