"""
Tests: per-stage validators.

Run with:
    pytest prd_automation/tests/test_rules.py -v
"""

import pytest

from prd_automation.rules.validators import (
    validate_final_review,
    validate_negative_labels,
    validate_requirements,
    validate_test_cases,
    validate_test_types,
)


def _req(req_id="req-1", type_="functional", description=None):
    return {
        "id": req_id,
        "type": type_,
        "description": description or "The system shall let users reset their password by email",
        "testCases": [],
    }


def _tc(tc_id="tc-1", req_id="req-1", positive=True, description=None, types=None):
    return {
        "id": tc_id,
        "requirementId": req_id,
        "description": description or (
            "Verify reset email is sent for a known account"
            if positive
            else "Verify reset is rejected for an unknown account"
        ),
        "isPositive": positive,
        "isNegative": not positive,
        "testTypes": list(types) if types is not None else [],
    }


@pytest.mark.parametrize(
    "validator",
    [
        validate_requirements,
        validate_test_cases,
        validate_negative_labels,
        validate_test_types,
        validate_final_review,
    ],
)
def test_empty_sequence_is_invalid_everywhere(validator):
    result = validator([])
    assert result.valid is False
    assert result.errors


class TestValidateRequirements:
    def test_functional_and_non_functional_pair_is_valid(self):
        result = validate_requirements([
            _req("req-1", "functional"),
            _req("req-2", "non-functional", "Password reset emails are delivered within one minute"),
        ])
        assert result.valid is True
        assert result.errors == []
        assert result.warnings is None

    def test_not_a_list(self):
        result = validate_requirements({"id": "req-1"})
        assert result.valid is False
        assert "Output must be an array of requirements" in result.errors

    def test_missing_functional(self):
        result = validate_requirements([_req(type_="non-functional")])
        assert "No functional requirements found" in result.errors

    def test_missing_non_functional_is_only_a_warning(self):
        result = validate_requirements([_req()])
        assert result.valid is True
        assert result.warnings == ["No non-functional requirements found (may be acceptable)"]

    def test_entry_level_errors(self):
        bad = {"type": "optional", "description": "too short"}
        result = validate_requirements([_req(), bad])
        assert "Requirement 2 missing ID" in result.errors
        assert "Requirement 2 description too short or missing" in result.errors
        assert "Requirement 2 has invalid type" in result.errors
        assert "Requirement 2 missing testCases array" in result.errors

    @pytest.mark.parametrize("bad_type", [["functional"], {"kind": "functional"}, 1, None])
    def test_non_string_type_is_an_error(self, bad_type):
        result = validate_requirements([_req(), _req("req-2", type_=bad_type)])
        assert "Requirement 2 has invalid type" in result.errors

    def test_description_length_ignores_padding(self):
        padded = _req(description="   short text      " + " " * 10)
        result = validate_requirements([padded])
        assert "Requirement 1 description too short or missing" in result.errors

    def test_duplicate_ids(self):
        result = validate_requirements([_req("req-1"), _req("req-1", "non-functional")])
        assert "Duplicate requirement ID: req-1" in result.errors


class TestValidateTestCases:
    def test_positive_and_negative_is_valid(self):
        result = validate_test_cases([_tc("tc-1"), _tc("tc-2", positive=False)])
        assert result.valid is True

    def test_requires_both_polarities(self):
        result = validate_test_cases([_tc("tc-1")])
        assert "No negative test cases found" in result.errors
        result = validate_test_cases([_tc("tc-1", positive=False)])
        assert "No positive test cases found" in result.errors

    def test_flags_must_be_booleans(self):
        case = _tc("tc-1")
        case["isPositive"] = "yes"
        result = validate_test_cases([case, _tc("tc-2", positive=False)])
        assert "Test case 1 missing isPositive flag" in result.errors
        assert "No positive test cases found" in result.errors

    def test_entry_level_errors(self):
        bad = {"description": "short", "isPositive": True, "isNegative": False}
        result = validate_test_cases([bad, _tc("tc-2", positive=False)])
        assert "Test case 1 missing ID" in result.errors
        assert "Test case 1 missing requirementId" in result.errors
        assert "Test case 1 description too short or missing" in result.errors
        assert "Test case 1 missing testTypes array" in result.errors

    def test_duplicate_ids(self):
        result = validate_test_cases([_tc("tc-1"), _tc("tc-1", positive=False)])
        assert "Duplicate test case ID: tc-1" in result.errors


class TestValidateNegativeLabels:
    def test_valid_labels(self):
        result = validate_negative_labels([_tc("tc-1"), _tc("tc-2", positive=False)])
        assert result.valid is True
        assert result.warnings is None

    def test_both_flags_counted_as_mislabeled(self):
        both = _tc("tc-2", positive=False)
        both["isPositive"] = True
        result = validate_negative_labels([_tc("tc-1"), both])
        assert result.errors == [
            "1 test cases incorrectly labeled as both positive and negative"
        ]

    def test_positive_only_cases_are_not_checked_for_the_reverse(self):
        result = validate_negative_labels([_tc("tc-1"), _tc("tc-2", positive=False)])
        assert result.valid is True

    def test_string_flags_are_not_treated_as_true(self):
        stringly = _tc("tc-2", positive=False)
        stringly["isPositive"] = "true"
        result = validate_negative_labels([stringly])
        assert result.valid is True

    def test_keyword_check_is_a_warning(self):
        vague = _tc("tc-2", positive=False, description="Verify behaviour with an empty email field")
        result = validate_negative_labels([vague])
        assert result.valid is True
        assert result.warnings == [
            "Negative test case tc-2 does not describe a failure scenario"
        ]


class TestValidateTestTypes:
    def test_valid_types(self):
        result = validate_test_types([_tc(types=["unit", "Security"])])
        assert result.valid is True
        assert result.warnings is None

    def test_empty_types_is_an_error(self):
        result = validate_test_types([_tc(types=[]), _tc("tc-2", types=["unit"])])
        assert result.errors == ["Test case 1 has no test types assigned"]

    def test_unknown_type_is_a_warning(self):
        result = validate_test_types([_tc(types=["unit", "chaos"])])
        assert result.valid is True
        assert result.warnings == ["Test case 1 has potentially invalid test types: chaos"]


class TestValidateFinalReview:
    def _review(self, **overrides):
        review = {
            "requirements": [_req("req-1"), _req("req-2", "non-functional")],
            "testCases": [
                _tc("tc-1", "req-1", types=["unit"]),
                _tc("tc-2", "req-2", positive=False, types=["performance", "system"]),
            ],
        }
        review.update(overrides)
        return review

    def test_valid_review(self):
        result = validate_final_review(self._review())
        assert result.valid is True
        assert result.warnings is None

    def test_bare_list_is_invalid(self):
        result = validate_final_review([_req()])
        assert "Requirements missing or invalid" in result.errors
        assert "Test cases missing or invalid" in result.errors

    def test_empty_requirements(self):
        result = validate_final_review(self._review(requirements=[]))
        assert "No requirements in final review" in result.errors

    def test_requirement_without_test_cases(self):
        result = validate_final_review(
            self._review(testCases=[_tc("tc-1", "req-1", types=["unit", "smoke", "system"])])
        )
        assert result.errors == ["Requirement req-2 has no associated test cases"]

    def test_low_type_diversity_is_a_warning(self):
        review = self._review(testCases=[
            _tc("tc-1", "req-1", types=["unit"]),
            _tc("tc-2", "req-2", positive=False, types=["unit"]),
        ])
        result = validate_final_review(review)
        assert result.valid is True
        assert result.warnings == [
            "Limited test type diversity - consider more varied test types"
        ]
