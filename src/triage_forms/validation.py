"""Validation engine — field, question and whole-submission checks.

All functions are total: a failing check returns a message, a passing
check returns None.  Nothing here raises on odd input.

Checks applied to a question, in order:

  1. implicit ``required`` ("{label} is required") when the question is
     required and carries no explicit required rule
  2. the explicit rule chain (explicit ``required`` only while required)
  3. type-implied rules: SCORING_0_3 -> range [0, 3], INTEGER -> numeric,
     repeat groups -> row-count bounds of the repeatable config
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping

from triage_forms.constants import SCORE_MAX, SCORE_MIN
from triage_forms.evaluator import ConditionalEvaluator
from triage_forms.models.question import FieldType, Question
from triage_forms.models.validation import (
    ValidationConfig,
    ValidationRule,
    parse_validation_config,
)
from triage_forms.values import coerce_number, has_meaningful_value

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

__all__ = [
    "ValidationHelpers",
    "parse_validation_config",
    "validate_field",
    "validate_form_submission",
    "validate_question",
    "validate_rule",
]


def _fmt(num: float) -> str:
    """Render 3.0 as "3" and 2.5 as "2.5"."""
    return str(int(num)) if float(num).is_integer() else str(num)


def _length(value: Any) -> int | None:
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return len(_fmt(value))
    return None


# ---------------------------------------------------------------------------
# Single rules
# ---------------------------------------------------------------------------

def validate_rule(rule: ValidationRule, value: Any) -> str | None:
    """Check ``value`` against one rule; return the error message or None.

    Rules other than ``required`` pass on empty values.
    """
    if rule.type == "required":
        if has_meaningful_value(value):
            return None
        return rule.message or "This field is required"

    if not has_meaningful_value(value):
        return None

    if rule.type in ("min_length", "max_length"):
        limit = coerce_number(rule.value)
        length = _length(value)
        if limit is None or length is None:
            return None
        if rule.type == "min_length" and length < limit:
            return rule.message or f"Minimum length is {_fmt(limit)}"
        if rule.type == "max_length" and length > limit:
            return rule.message or f"Maximum length is {_fmt(limit)}"
        return None

    if rule.type == "pattern":
        if not isinstance(rule.value, str):
            return None
        try:
            matched = re.search(rule.value, str(value))
        except re.error:
            logger.warning("Ignoring invalid validation pattern: %r", rule.value)
            return None
        return None if matched else (rule.message or "Invalid format")

    if rule.type == "email":
        if isinstance(value, str) and EMAIL_RE.match(value.strip()):
            return None
        return rule.message or "Invalid email address"

    if rule.type == "range":
        num = coerce_number(value)
        if num is None:
            return rule.message or "Must be a number"
        if rule.min is not None and num < rule.min:
            return rule.message or f"Must be at least {_fmt(rule.min)}"
        if rule.max is not None and num > rule.max:
            return rule.message or f"Must be at most {_fmt(rule.max)}"
        return None

    return None


def validate_field(config: ValidationConfig | None, value: Any) -> str | None:
    """Run the rule chain in order; return the first failure message."""
    if config is None:
        return None
    for rule in config.rules:
        message = validate_rule(rule, value)
        if message is not None:
            return message
    return None


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

_SCORE_RANGE = ValidationRule(type="range", min=SCORE_MIN, max=SCORE_MAX)


def _validate_rows(question: Question, rows: Any) -> str | None:
    config = question.repeatable_config
    if config is None:
        return None
    count = len(rows) if isinstance(rows, (list, tuple)) else 0
    if config.min_rows is not None and count < config.min_rows:
        noun = "row" if config.min_rows == 1 else "rows"
        return f"Add at least {config.min_rows} {noun}"
    if config.max_rows is not None and count > config.max_rows:
        noun = "row" if config.max_rows == 1 else "rows"
        return f"No more than {config.max_rows} {noun} allowed"
    return None


def validate_question(question: Question, value: Any, is_required: bool) -> str | None:
    """Validate one question's value given its current required-ness."""
    config = question.validation
    has_explicit_required = config is not None and config.has_rule("required")

    if is_required and not has_explicit_required and not has_meaningful_value(value):
        return f"{question.label} is required"

    if config is not None:
        for rule in config.rules:
            if rule.type == "required" and not is_required:
                continue
            message = validate_rule(rule, value)
            if message is not None:
                return message

    if not has_meaningful_value(value):
        return None

    if question.is_repeat_group:
        return _validate_rows(question, value)

    if question.type == FieldType.SCORING_0_3:
        return validate_rule(_SCORE_RANGE, value)

    if question.type == FieldType.INTEGER and coerce_number(value) is None:
        return "Must be a number"

    return None


def validate_form_submission(
    questions: Iterable[Question],
    responses: Mapping[str, Any],
    visible_keys: Iterable[str],
    required_keys: Iterable[str] | None = None,
    repeat_groups: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """Validate every visible question; return key -> message for failures.

    Hidden questions are exempt.  When ``required_keys`` is omitted the
    requirement is derived from each question's conditional config.
    """
    visible = set(visible_keys)
    required = set(required_keys) if required_keys is not None else None
    evaluator = ConditionalEvaluator()
    errors: dict[str, str] = {}

    for q in questions:
        key = q.dictionary_key
        if key not in visible or q.type == FieldType.SCORING_MATRIX:
            continue
        if q.is_repeat_group and repeat_groups is not None:
            value = repeat_groups.get(key)
        else:
            value = responses.get(key)
        is_required = key in required if required is not None else evaluator.is_required(q, responses)
        message = validate_question(q, value, is_required)
        if message is not None:
            errors[key] = message
    return errors


# ---------------------------------------------------------------------------
# Builder helpers
# ---------------------------------------------------------------------------

class ValidationHelpers:
    """Shorthand builders for validation rules."""

    @staticmethod
    def required(message: str | None = None) -> ValidationRule:
        return ValidationRule(type="required", message=message)

    @staticmethod
    def min_length(length: int, message: str | None = None) -> ValidationRule:
        return ValidationRule(type="min_length", value=length, message=message)

    @staticmethod
    def max_length(length: int, message: str | None = None) -> ValidationRule:
        return ValidationRule(type="max_length", value=length, message=message)

    @staticmethod
    def pattern(regex: str, message: str | None = None) -> ValidationRule:
        return ValidationRule(type="pattern", value=regex, message=message)

    @staticmethod
    def email(message: str | None = None) -> ValidationRule:
        return ValidationRule(type="email", message=message)

    @staticmethod
    def range(
        min: float | None = None, max: float | None = None, message: str | None = None
    ) -> ValidationRule:
        return ValidationRule(type="range", min=min, max=max, message=message)
