"""Validation rule models.

Rule kinds:
  - required:   value must be present (non-blank, non-empty)
  - min_length: string length / list size must be >= ``value``
  - max_length: string length / list size must be <= ``value``
  - pattern:    string must match the regex in ``value``
  - email:      string must look like an e-mail address
  - range:      numeric value must lie within [``min``, ``max``] (either bound optional)

Each rule may carry a custom ``message``; otherwise a templated default is used.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

RuleType = Literal["required", "min_length", "max_length", "pattern", "email", "range"]

# Rule tags written by older stored payloads
_RULE_TYPE_ALIASES: dict[str, str] = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "min": "min_length",
    "max": "max_length",
    "regex": "pattern",
}


class ValidationRule(BaseModel):
    """A single validation rule."""

    model_config = ConfigDict(frozen=True)

    type: RuleType
    value: Any = None
    min: Optional[float] = None
    max: Optional[float] = None
    message: Optional[str] = None


class ValidationConfig(BaseModel):
    """Ordered rule chain; evaluation stops at the first failing rule."""

    model_config = ConfigDict(frozen=True)

    rules: List[ValidationRule] = []

    def has_rule(self, rule_type: RuleType) -> bool:
        return any(rule.type == rule_type for rule in self.rules)


def _normalize_rule(entry: dict) -> dict:
    rule_type = entry.get("type")
    if isinstance(rule_type, str) and rule_type in _RULE_TYPE_ALIASES:
        return {**entry, "type": _RULE_TYPE_ALIASES[rule_type]}
    return entry


def parse_validation_config(raw: Any) -> ValidationConfig | None:
    """Parse a stored validation payload (dict or JSON text).

    Returns None for missing or malformed input; never raises.
    """
    if raw is None:
        return None
    if isinstance(raw, ValidationConfig):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring validation config with invalid JSON: %.80s", raw)
            return None
    if not isinstance(raw, dict) or not isinstance(raw.get("rules"), list):
        return None

    rules = [_normalize_rule(entry) for entry in raw["rules"] if isinstance(entry, dict)]
    try:
        return ValidationConfig(rules=rules)
    except ValidationError as exc:
        logger.warning("Ignoring invalid validation config: %s", exc.errors()[0]["msg"])
        return None
