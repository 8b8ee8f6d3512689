"""Answer hydration — reconcile canonical answers with a form session.

Canonical answers live once per (technology, dictionary key).  When a
session opens, the canonical payload is mapped onto the template's
questions:

  - values are normalized per field type (multi-select lists, numeric
    scores, ISO dates, row lists)
  - every template key gets an ``AnswerMetadata`` entry; keys absent from
    the payload are empty and UNANSWERED (logged, never raised)
  - staleness compares the revision an answer was saved against with the
    question's current revision

``AnswerHydrator`` gates re-hydration on payload identity: a refresh with
an unchanged canonical payload keeps local edits, a changed payload fully
replaces local state ("last canonical wins").
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from triage_forms.models.answer import (
    AnswerMetadata,
    AnswerStatus,
    HydrationPayload,
    VersionedAnswer,
)
from triage_forms.models.question import FieldType, Question
from triage_forms.models.template import FormTemplate
from triage_forms.values import has_meaningful_value, normalize_value_for_field

logger = logging.getLogger(__name__)


@dataclass
class HydratedState:
    """Session maps built from a payload."""

    responses: dict[str, Any] = field(default_factory=dict)
    repeat_groups: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    answer_metadata: dict[str, AnswerMetadata] = field(default_factory=dict)
    notes: str | None = None


def get_answer_status(question: Question, answer: VersionedAnswer | None) -> AnswerStatus:
    """Freshness of ``answer`` for ``question``.

    UNANSWERED without a meaningful value; STALE when both the saved and the
    current revision are known and differ; CURRENT otherwise (including
    answers saved before revisions were tracked).
    """
    if answer is None or not has_meaningful_value(answer.value):
        return AnswerStatus.UNANSWERED
    saved, current = answer.revision_id, question.revision_id
    if saved and current and saved != current:
        return AnswerStatus.STALE
    return AnswerStatus.CURRENT


def payload_identity(payload: HydrationPayload) -> str:
    """sha256 over the canonical JSON of ``payload``."""
    canonical = json.dumps(
        payload.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hydrate(template: FormTemplate, payload: HydrationPayload) -> HydratedState:
    """Build session maps for ``template`` from ``payload``."""
    state = HydratedState(notes=payload.notes)

    # Keys outside the template stay available to conditional rules
    template_keys = {q.dictionary_key for q in template.questions}
    for key, value in payload.responses.items():
        if key not in template_keys and has_meaningful_value(value):
            state.responses[key] = value

    for q in template.questions:
        key = q.dictionary_key
        if q.type == FieldType.SCORING_MATRIX:
            continue

        if q.is_repeat_group:
            raw = payload.repeat_groups.get(key, payload.responses.get(key))
        else:
            raw = payload.responses.get(key)
        if raw is None:
            logger.debug("HydrationMismatch: no canonical answer for %s", key)

        value = normalize_value_for_field(q.type.value, raw) if raw is not None else None
        if has_meaningful_value(value):
            if q.is_repeat_group:
                state.repeat_groups[key] = value
            else:
                state.responses[key] = value

        incoming = payload.answer_metadata.get(key)
        answer = VersionedAnswer(
            value=value,
            revision_id=incoming.saved_revision_id if incoming else None,
            answered_at=incoming.answered_at if incoming else None,
            source_submission_id=incoming.source_submission_id if incoming else None,
        )
        status = get_answer_status(q, answer)
        # Hosts without revision ids may still flag an answer stale
        if (
            status == AnswerStatus.CURRENT
            and incoming is not None
            and incoming.status == AnswerStatus.STALE
            and not (answer.revision_id and q.revision_id)
        ):
            status = AnswerStatus.STALE

        state.answer_metadata[key] = AnswerMetadata(
            status=status,
            answered_at=answer.answered_at,
            source_submission_id=answer.source_submission_id,
            saved_revision_id=answer.revision_id,
            current_revision_id=q.revision_id,
        )
    return state


def stamp_saved(
    template: FormTemplate,
    metadata: dict[str, AnswerMetadata],
    keys: Iterable[str],
    saved_at: datetime,
    submission_id: str | None,
    values: dict[str, Any],
) -> None:
    """Mark ``keys`` as freshly saved against the current revision (in place)."""
    for key in keys:
        q = template.question_by_key(key)
        revision = q.revision_id if q else None
        if not has_meaningful_value(values.get(key)):
            metadata[key] = AnswerMetadata(
                status=AnswerStatus.UNANSWERED, current_revision_id=revision
            )
            continue
        metadata[key] = AnswerMetadata(
            status=AnswerStatus.CURRENT,
            answered_at=saved_at,
            source_submission_id=submission_id,
            saved_revision_id=revision,
            current_revision_id=revision,
        )


class AnswerHydrator:
    """Identity-gated hydration of one session.

    Initial state comes from ``override`` when given (previews, demos),
    otherwise from ``canonical``.  :meth:`refresh` re-applies canonical data
    only when its identity changes.
    """

    def __init__(
        self,
        template: FormTemplate,
        canonical: HydrationPayload | None = None,
        override: HydrationPayload | None = None,
    ) -> None:
        self._template = template
        self._identity = payload_identity(canonical) if canonical is not None else None
        source = override or canonical or HydrationPayload()
        self.initial_state = hydrate(template, source)

    @property
    def identity(self) -> str | None:
        """Identity of the last applied canonical payload."""
        return self._identity

    def refresh(self, payload: HydrationPayload) -> HydratedState | None:
        """Hydrate ``payload`` if it differs from the last one; else None."""
        identity = payload_identity(payload)
        if identity == self._identity:
            logger.debug("Canonical payload unchanged (%s), keeping local state", identity[:12])
            return None
        self._identity = identity
        return hydrate(self._template, payload)
