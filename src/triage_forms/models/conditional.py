"""Conditional logic models for question visibility and requirement.

A ``ConditionalConfig`` attaches to a question and holds a list of rules
combined with a single ``logic`` (AND / OR).  Each rule compares one
referenced field of the response snapshot and carries the action it drives:

  - show:    the question stays hidden until the show rules are satisfied
  - hide:    the question is hidden while the hide rules are satisfied
  - require: the question becomes required while the require rules are satisfied

Operators and actions are closed ``Literal`` sets so that unknown tags are
rejected when a template is loaded rather than silently ignored at runtime.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

Operator = Literal[
    "equals",
    "not_equals",
    "contains",
    "greater_than",
    "less_than",
    "exists",
    "not_exists",
    "not_empty",
]

RuleAction = Literal["show", "hide", "require"]

Logic = Literal["AND", "OR"]


class ConditionalRule(BaseModel):
    """One comparison against a referenced dictionary key."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: Operator
    value: Any = None
    action: RuleAction = "show"


class ConditionalConfig(BaseModel):
    """Rules plus the combinator applied within each action group."""

    model_config = ConfigDict(frozen=True)

    logic: Logic = "AND"
    rules: List[ConditionalRule] = Field(min_length=1)

    def rules_for(self, action: RuleAction) -> list[ConditionalRule]:
        """Rules that drive ``action``, in declaration order."""
        return [rule for rule in self.rules if rule.action == action]

    @property
    def referenced_fields(self) -> set[str]:
        """Dictionary keys this config reads from."""
        return {rule.field for rule in self.rules}


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------


def normalize_conditional_payload(raw: Any) -> dict | None:
    """Decode a stored conditional payload into a ``ConditionalConfig`` dict.

    Accepts a dict or JSON text, and the legacy ``{"showIf": [...]}`` shape
    (OR-combined show rules).  Returns None when the payload is missing or
    structurally unusable; rule tags are left for the model to check.
    """
    if raw is None:
        return None
    if isinstance(raw, ConditionalConfig):
        return raw.model_dump()
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring conditional config with invalid JSON: %.80s", raw)
            return None
    if not isinstance(raw, dict):
        logger.warning("Ignoring conditional config of type %s", type(raw).__name__)
        return None

    if "showIf" in raw and "rules" not in raw:
        legacy = raw.get("showIf")
        if not isinstance(legacy, list):
            return None
        rules = [
            {**entry, "action": "show"} for entry in legacy if isinstance(entry, dict)
        ]
        raw = {"logic": "OR", "rules": rules}

    rules = raw.get("rules")
    if not isinstance(rules, list) or not rules:
        return None
    return {"logic": raw.get("logic", "AND"), "rules": rules}


def parse_conditional_config(raw: Any) -> ConditionalConfig | None:
    """Parse a conditional payload, returning None instead of raising.

    Malformed payloads degrade to "no condition" (fail-open).
    """
    payload = normalize_conditional_payload(raw)
    if payload is None:
        return None
    try:
        return ConditionalConfig.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Ignoring invalid conditional config: %s", exc.errors()[0]["msg"])
        return None
