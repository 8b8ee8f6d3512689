"""triage_forms — Dynamic form engine SDK for technology triage.

Public API:
    FormSession          — in-memory editing context for one (template, technology) pair
    TemplateStore        — loads YAML form templates into typed models
    ConditionalEvaluator — visibility / requirement of questions
    AnswerHydrator       — identity-gated hydration of canonical answers
    InMemoryAnswerStore  — process-local AnswerStore

Scheduling:
    Scheduler            — keyed, cancellable debounce timers (ABC)
    AsyncioScheduler     — timers on the running event loop
    ManualScheduler      — virtual clock for tests and deterministic hosts

Storage interfaces:
    AnswerStore          — ABC for canonical answer storage
    store_save_callback  — adapts an AnswerStore into a session save callback

Errors:
    FormEngineError, TemplateError, SaveError
"""

from triage_forms.answer_store import InMemoryAnswerStore, store_save_callback
from triage_forms.errors import FormEngineError, SaveError, TemplateError
from triage_forms.evaluator import ConditionalEvaluator, ConditionalHelpers
from triage_forms.hydration import AnswerHydrator, get_answer_status, hydrate
from triage_forms.interfaces import AnswerStore, SaveCallback
from triage_forms.models.answer import HydrationPayload, SessionState
from triage_forms.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from triage_forms.scoring import calculate_all_scores, extract_scoring_inputs, round2
from triage_forms.session import FormSession
from triage_forms.template import TemplateStore
from triage_forms.validation import (
    ValidationHelpers,
    validate_field,
    validate_form_submission,
    validate_question,
)

__all__ = [
    # Session & store
    "FormSession",
    "TemplateStore",
    "InMemoryAnswerStore",
    "AnswerStore",
    "SaveCallback",
    "store_save_callback",
    # Engine
    "AnswerHydrator",
    "ConditionalEvaluator",
    "ConditionalHelpers",
    "ValidationHelpers",
    "calculate_all_scores",
    "extract_scoring_inputs",
    "get_answer_status",
    "hydrate",
    "round2",
    "validate_field",
    "validate_form_submission",
    "validate_question",
    # Scheduling
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    # Models
    "HydrationPayload",
    "SessionState",
    # Errors
    "FormEngineError",
    "SaveError",
    "TemplateError",
]
