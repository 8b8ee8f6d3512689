"""Validation engine tests.

Verifies rule messages, the implicit required check, type-implied rules
(SCORING_0_3 range, INTEGER numeric, repeat-group row bounds) and
whole-submission validation that skips hidden questions.
"""

import pytest

from triage_forms.evaluator import ConditionalHelpers
from triage_forms.models.question import FieldType
from triage_forms.models.validation import ValidationConfig, ValidationRule
from triage_forms.validation import (
    ValidationHelpers,
    parse_validation_config,
    validate_field,
    validate_form_submission,
    validate_question,
    validate_rule,
)

from helpers.builders import build_question


# =====================================================================
# Single rules
# =====================================================================


class TestValidateRule:
    """Default messages and empty-value handling of each rule type."""

    def test_required(self):
        assert validate_rule(ValidationHelpers.required(), "") == "This field is required"
        assert validate_rule(ValidationHelpers.required("Fill me"), None) == "Fill me"
        assert validate_rule(ValidationHelpers.required(), False) is None, (
            "False is a deliberate answer"
        )

    def test_lengths(self):
        assert validate_rule(ValidationHelpers.min_length(5), "abc") == "Minimum length is 5"
        assert validate_rule(ValidationHelpers.max_length(2), "abc") == "Maximum length is 2"
        assert validate_rule(ValidationHelpers.min_length(3), "abc") is None

    def test_non_required_rules_pass_on_empty(self):
        for r in (
            ValidationHelpers.min_length(5),
            ValidationHelpers.email(),
            ValidationHelpers.pattern(r"^\d+$"),
            ValidationHelpers.range(min=1),
        ):
            assert validate_rule(r, "") is None, f"{r.type} should pass on empty"

    def test_pattern(self):
        r = ValidationHelpers.pattern(r"^\d{4}$")
        assert validate_rule(r, "2024") is None
        assert validate_rule(r, "24") == "Invalid format"

    def test_invalid_pattern_passes(self):
        """A broken regex is logged and ignored rather than blocking input."""
        assert validate_rule(ValidationHelpers.pattern("("), "anything") is None

    def test_email(self):
        r = ValidationHelpers.email()
        assert validate_rule(r, "a@b.org") is None
        assert validate_rule(r, "not-an-email") == "Invalid email address"

    def test_range_messages(self):
        r = ValidationHelpers.range(min=0, max=3)
        assert validate_rule(r, 4) == "Must be at most 3"
        assert validate_rule(r, -1) == "Must be at least 0"
        assert validate_rule(r, "abc") == "Must be a number"
        assert validate_rule(ValidationHelpers.range(max=2.5), 3) == "Must be at most 2.5"

    def test_chain_returns_first_failure(self):
        config = ValidationConfig(rules=[
            ValidationHelpers.min_length(10, "too short"),
            ValidationHelpers.pattern("^x", "must start with x"),
        ])
        assert validate_field(config, "abc") == "too short"
        assert validate_field(config, "abcdefghijk") == "must start with x"
        assert validate_field(None, "abc") is None


class TestParseValidationConfig:
    """Lenient parsing of stored validation payloads."""

    def test_aliases_and_json_text(self):
        config = parse_validation_config('{"rules": [{"type": "minLength", "value": 3}]}')
        assert config is not None
        assert config.rules[0].type == "min_length"

    @pytest.mark.parametrize("raw", [None, "", "{oops", 42])
    def test_malformed_is_none(self, raw):
        assert parse_validation_config(raw) is None


# =====================================================================
# Questions
# =====================================================================


class TestValidateQuestion:
    """Per-question validation including type-implied checks."""

    def test_implicit_required_message(self):
        q = build_question("t.name", label="Technology Name", is_required=True)
        assert validate_question(q, "", True) == "Technology Name is required"
        assert validate_question(q, "Sensor", True) is None

    def test_explicit_required_replaces_implicit(self):
        q = build_question(
            "t.name",
            validation={"rules": [{"type": "required", "message": "Name please"}]},
        )
        assert validate_question(q, None, True) == "Name please"
        assert validate_question(q, None, False) is None, (
            "explicit required only applies while the question is required"
        )

    def test_optional_empty_passes(self):
        q = build_question("t.score", FieldType.SCORING_0_3)
        assert validate_question(q, None, False) is None

    def test_scoring_range(self):
        q = build_question("t.score", FieldType.SCORING_0_3)
        assert validate_question(q, 2, False) is None
        assert validate_question(q, 4, False) == "Must be at most 3"
        assert validate_question(q, -0.5, False) == "Must be at least 0"

    def test_integer_must_be_numeric(self):
        q = build_question("t.count", FieldType.INTEGER)
        assert validate_question(q, "12", False) is None
        assert validate_question(q, "twelve", False) == "Must be a number"

    def test_repeat_group_row_bounds(self):
        q = build_question(
            "t.inventors",
            FieldType.REPEATABLE_GROUP,
            repeatable_config={"min_rows": 2, "max_rows": 3, "columns": [{"key": "name", "label": "Name"}]},
        )
        assert validate_question(q, [{"name": "a"}], False) == "Add at least 2 rows"
        assert validate_question(q, [{"name": str(i)} for i in range(4)], False) == (
            "No more than 3 rows allowed"
        )
        assert validate_question(q, [{"name": "a"}, {"name": "b"}], False) is None
        assert validate_question(q, [], False) is None, "optional empty group passes"

    def test_required_empty_repeat_group(self):
        q = build_question("t.rows", FieldType.REPEATABLE_GROUP, label="Rows", is_required=True)
        assert validate_question(q, [], True) == "Rows is required"


# =====================================================================
# Whole submission
# =====================================================================


class TestValidateFormSubmission:
    """Hidden questions are exempt; required-ness follows conditions."""

    @pytest.fixture
    def questions(self):
        return [
            build_question("t.stage", FieldType.SINGLE_SELECT, label="Stage", is_required=True),
            build_question(
                "t.phase",
                label="Phase",
                conditional=ConditionalHelpers.all_of(
                    ConditionalHelpers.show_when_equals("t.stage", "clinical"),
                    ConditionalHelpers.require_when_equals("t.stage", "clinical"),
                ),
            ),
            build_question("t.matrix", FieldType.SCORING_MATRIX, is_required=True),
        ]

    def test_hidden_questions_are_exempt(self, questions):
        errors = validate_form_submission(questions, {"t.stage": "concept"}, {"t.stage"})
        assert errors == {}

    def test_conditionally_required_question(self, questions):
        responses = {"t.stage": "clinical"}
        errors = validate_form_submission(questions, responses, {"t.stage", "t.phase"})
        assert errors == {"t.phase": "Phase is required"}

    def test_explicit_required_keys(self, questions):
        errors = validate_form_submission(
            questions, {}, {"t.stage", "t.phase", "t.matrix"}, required_keys=set(),
        )
        assert errors == {}, "scoring matrix is never validated and nothing is required"

    def test_repeat_groups_read_from_their_map(self):
        q = build_question(
            "t.rows", FieldType.REPEATABLE_GROUP, label="Rows", is_required=True,
        )
        errors = validate_form_submission(
            [q], {}, {"t.rows"}, repeat_groups={"t.rows": [{"a": 1}]},
        )
        assert errors == {}

    def test_range_rule_model(self):
        r = ValidationRule(type="range", min=1, max=2)
        assert validate_rule(r, 1.5) is None
