"""ConditionalEvaluator — resolves question visibility and requirement.

Every question may carry a ``ConditionalConfig``.  The evaluator reads it
against the full response snapshot:

  - **show** rules: the question is hidden until the combinator over the
    show rules is satisfied
  - **hide** rules: the question is hidden while the combinator over the
    hide rules is satisfied, regardless of show rules
  - **require** rules: the question is required while the combinator over
    the require rules is satisfied; rules never make a question optional

Evaluation is pure and never raises: a referenced key missing from the
response map is empty, and failed numeric coercion makes a comparison false.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from triage_forms.models.conditional import (
    ConditionalConfig,
    ConditionalRule,
    Logic,
    RuleAction,
)
from triage_forms.models.question import Question
from triage_forms.values import coerce_number, has_meaningful_value

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

def _op_equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    # "3" and 3 are the same answer
    left, right = coerce_number(actual), coerce_number(expected)
    return left is not None and right is not None and left == right


def _op_not_equals(actual: Any, expected: Any) -> bool:
    return not _op_equals(actual, expected)


def _op_contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set)):
        return any(_op_equals(entry, expected) for entry in actual)
    if isinstance(actual, str) and expected is not None:
        return str(expected) in actual
    return False


def _op_greater_than(actual: Any, expected: Any) -> bool:
    left, right = coerce_number(actual), coerce_number(expected)
    return left is not None and right is not None and left > right


def _op_less_than(actual: Any, expected: Any) -> bool:
    left, right = coerce_number(actual), coerce_number(expected)
    return left is not None and right is not None and left < right


def _op_exists(actual: Any, expected: Any) -> bool:
    return has_meaningful_value(actual)


def _op_not_exists(actual: Any, expected: Any) -> bool:
    return not has_meaningful_value(actual)


def _op_not_empty(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set, dict)):
        return len(actual) > 0
    return has_meaningful_value(actual)


# Operator tag -> predicate(actual, expected).  Must cover every tag of
# the ``Operator`` literal.
OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": _op_equals,
    "not_equals": _op_not_equals,
    "contains": _op_contains,
    "greater_than": _op_greater_than,
    "less_than": _op_less_than,
    "exists": _op_exists,
    "not_exists": _op_not_exists,
    "not_empty": _op_not_empty,
}


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class ConditionalEvaluator:
    """Stateless evaluator of conditional configs against a response snapshot."""

    def evaluate_rule(self, rule: ConditionalRule, responses: Mapping[str, Any]) -> bool:
        """Evaluate a single rule; unknown operators evaluate to False."""
        predicate = OPERATORS.get(rule.operator)
        if predicate is None:
            logger.warning("Unknown conditional operator: %s", rule.operator)
            return False
        try:
            return predicate(responses.get(rule.field), rule.value)
        except (TypeError, ValueError):
            return False

    def evaluate_rules(
        self,
        rules: Iterable[ConditionalRule],
        responses: Mapping[str, Any],
        logic: Logic = "AND",
    ) -> bool:
        """Combine rule results with AND (all) or OR (any)."""
        results = (self.evaluate_rule(rule, responses) for rule in rules)
        return any(results) if logic == "OR" else all(results)

    def evaluate_conditional(
        self, config: ConditionalConfig, responses: Mapping[str, Any]
    ) -> bool:
        """Evaluate every rule of ``config`` regardless of action."""
        return self.evaluate_rules(config.rules, responses, config.logic)

    def _action_matches(
        self, config: ConditionalConfig, action: RuleAction, responses: Mapping[str, Any]
    ) -> bool | None:
        """Combinator over the rules of one action; None if there are none."""
        rules = config.rules_for(action)
        if not rules:
            return None
        return self.evaluate_rules(rules, responses, config.logic)

    def should_show(
        self, config: ConditionalConfig | None, responses: Mapping[str, Any]
    ) -> bool:
        """Visibility of a question carrying ``config``."""
        if config is None:
            return True
        if self._action_matches(config, "hide", responses):
            return False
        shown = self._action_matches(config, "show", responses)
        return True if shown is None else shown

    def should_require(
        self,
        config: ConditionalConfig | None,
        base_required: bool,
        responses: Mapping[str, Any],
    ) -> bool:
        """Requirement of a question carrying ``config``."""
        if base_required or config is None:
            return base_required
        return bool(self._action_matches(config, "require", responses))

    def is_visible(self, question: Question, responses: Mapping[str, Any]) -> bool:
        return self.should_show(question.conditional, responses)

    def is_required(self, question: Question, responses: Mapping[str, Any]) -> bool:
        return self.should_require(question.conditional, question.is_required, responses)

    def visible_keys(
        self, questions: Iterable[Question], responses: Mapping[str, Any]
    ) -> set[str]:
        """Dictionary keys of every visible question."""
        return {q.dictionary_key for q in questions if self.is_visible(q, responses)}

    def required_keys(
        self, questions: Iterable[Question], responses: Mapping[str, Any]
    ) -> set[str]:
        """Dictionary keys of every required question (visible or not)."""
        return {q.dictionary_key for q in questions if self.is_required(q, responses)}


# ---------------------------------------------------------------------------
# Builder helpers
# ---------------------------------------------------------------------------

class ConditionalHelpers:
    """Shorthand builders for common conditional configs.

    Usage::

        config = ConditionalHelpers.all_of(
            ConditionalHelpers.show_when_equals("triage.stage", "clinical"),
            ConditionalHelpers.require_when_exists("triage.notes"),
        )
    """

    @staticmethod
    def _single(field: str, operator: str, value: Any, action: str) -> ConditionalConfig:
        return ConditionalConfig(
            logic="AND",
            rules=[ConditionalRule(field=field, operator=operator, value=value, action=action)],
        )

    @staticmethod
    def show_when_equals(field: str, value: Any) -> ConditionalConfig:
        return ConditionalHelpers._single(field, "equals", value, "show")

    @staticmethod
    def hide_when_equals(field: str, value: Any) -> ConditionalConfig:
        return ConditionalHelpers._single(field, "equals", value, "hide")

    @staticmethod
    def require_when_equals(field: str, value: Any) -> ConditionalConfig:
        return ConditionalHelpers._single(field, "equals", value, "require")

    @staticmethod
    def require_when_exists(field: str) -> ConditionalConfig:
        return ConditionalHelpers._single(field, "exists", None, "require")

    @staticmethod
    def all_of(*configs: ConditionalConfig) -> ConditionalConfig:
        """Merge the rules of ``configs`` under AND."""
        return ConditionalConfig(logic="AND", rules=[r for c in configs for r in c.rules])

    @staticmethod
    def any_of(*configs: ConditionalConfig) -> ConditionalConfig:
        """Merge the rules of ``configs`` under OR."""
        return ConditionalConfig(logic="OR", rules=[r for c in configs for r in c.rules])
