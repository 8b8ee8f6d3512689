"""Public model re-exports for triage_forms.

Consumers should import from ``triage_forms.models`` rather than
reaching into sub-modules directly.
"""

# --- Conditional logic ---
from triage_forms.models.conditional import (
    ConditionalConfig,
    ConditionalRule,
    Logic,
    Operator,
    RuleAction,
    normalize_conditional_payload,
    parse_conditional_config,
)

# --- Validation ---
from triage_forms.models.validation import (
    RuleType,
    ValidationConfig,
    ValidationRule,
    parse_validation_config,
)

# --- Questions / templates ---
from triage_forms.models.question import (
    FieldType,
    Option,
    Question,
    RepeatableColumn,
    RepeatableConfig,
)
from triage_forms.models.template import FormSection, FormTemplate, find_rule_cycle

# --- Scoring ---
from triage_forms.models.scoring import Recommendation, ScoringInputs, ScoringResult

# --- Answers / session ---
from triage_forms.models.answer import (
    AnswerMetadata,
    AnswerStatus,
    HydrationPayload,
    SaveOptions,
    SaveOutcome,
    SavePayload,
    SessionState,
    VersionedAnswer,
)

__all__ = [
    # Conditional logic
    "ConditionalConfig",
    "ConditionalRule",
    "Logic",
    "Operator",
    "RuleAction",
    "normalize_conditional_payload",
    "parse_conditional_config",
    # Validation
    "RuleType",
    "ValidationConfig",
    "ValidationRule",
    "parse_validation_config",
    # Questions / templates
    "FieldType",
    "FormSection",
    "FormTemplate",
    "Option",
    "Question",
    "RepeatableColumn",
    "RepeatableConfig",
    "find_rule_cycle",
    # Scoring
    "Recommendation",
    "ScoringInputs",
    "ScoringResult",
    # Answers / session
    "AnswerMetadata",
    "AnswerStatus",
    "HydrationPayload",
    "SaveOptions",
    "SaveOutcome",
    "SavePayload",
    "SessionState",
    "VersionedAnswer",
]
