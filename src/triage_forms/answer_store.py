"""In-memory AnswerStore and the store-backed save callback."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from triage_forms.interfaces import AnswerStore, SaveCallback
from triage_forms.models.answer import (
    AnswerMetadata,
    HydrationPayload,
    SaveOptions,
    SaveOutcome,
    SavePayload,
    VersionedAnswer,
)
from triage_forms.models.scoring import ScoringResult
from triage_forms.models.template import FormTemplate
from triage_forms.values import has_meaningful_value

logger = logging.getLogger(__name__)


@dataclass
class SubmissionRecord:
    """One recorded save of a form."""

    id: str
    template_id: str
    technology_id: str
    scores: dict[str, float]
    submitted_by: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryAnswerStore(AnswerStore):
    """Process-local AnswerStore, used by tests, demos and the memory backend."""

    def __init__(self) -> None:
        self.answers: dict[str, dict[str, VersionedAnswer]] = {}
        self.submissions: dict[str, SubmissionRecord] = {}

    async def load(self, technology_id: str, template: FormTemplate) -> HydrationPayload:
        stored = self.answers.get(technology_id, {})
        responses: dict[str, Any] = {}
        repeat_groups: dict[str, list[dict[str, Any]]] = {}
        metadata: dict[str, AnswerMetadata] = {}

        for key, answer in stored.items():
            q = template.question_by_key(key)
            if q is not None and q.is_repeat_group and isinstance(answer.value, list):
                repeat_groups[key] = answer.value
            else:
                responses[key] = answer.value
            metadata[key] = AnswerMetadata(
                answered_at=answer.answered_at,
                source_submission_id=answer.source_submission_id,
                saved_revision_id=answer.revision_id,
            )

        notes = None
        for record in sorted(self.submissions.values(), key=lambda r: r.created_at):
            if record.technology_id == technology_id and record.notes is not None:
                notes = record.notes

        return HydrationPayload(
            technology_id=technology_id,
            responses=responses,
            repeat_groups=repeat_groups,
            answer_metadata=metadata,
            notes=notes,
        )

    async def upsert_answers(
        self,
        technology_id: str,
        answers: dict[str, VersionedAnswer],
        answered_by: str | None = None,
    ) -> list[str]:
        bucket = self.answers.setdefault(technology_id, {})
        written: list[str] = []
        for key, answer in answers.items():
            if not has_meaningful_value(answer.value):
                continue
            bucket[key] = answer
            written.append(key)
        return written

    async def record_submission(
        self,
        template_id: str,
        technology_id: str,
        scores: ScoringResult | None,
        submitted_by: str | None = None,
        notes: str | None = None,
    ) -> str:
        record = _new_record(template_id, technology_id, scores, submitted_by, notes)
        self.submissions[record.id] = record
        return record.id

    async def save_submission(
        self,
        template_id: str,
        technology_id: str,
        answers: dict[str, VersionedAnswer],
        scores: ScoringResult | None,
        submitted_by: str | None = None,
        notes: str | None = None,
    ) -> str:
        # Answers first: the record only becomes visible once they are in
        record = _new_record(template_id, technology_id, scores, submitted_by, notes)
        stamped = {
            key: answer.model_copy(update={"source_submission_id": record.id})
            for key, answer in answers.items()
        }
        await self.upsert_answers(technology_id, stamped, answered_by=submitted_by)
        self.submissions[record.id] = record
        return record.id


def _new_record(
    template_id: str,
    technology_id: str,
    scores: ScoringResult | None,
    submitted_by: str | None,
    notes: str | None,
) -> SubmissionRecord:
    return SubmissionRecord(
        id=str(uuid.uuid4()),
        template_id=template_id,
        technology_id=technology_id,
        scores=scores.score_map() if scores else {},
        submitted_by=submitted_by,
        notes=notes,
    )


def store_save_callback(
    store: AnswerStore,
    template: FormTemplate,
    answered_by: str | None = None,
) -> SaveCallback:
    """Adapt ``store`` into a session save callback.

    Each save records a submission with the calculated scores and upserts
    every meaningful template answer against the question's current revision,
    both through one ``save_submission`` call.
    """

    async def save(payload: SavePayload, options: SaveOptions) -> SaveOutcome:
        if not payload.technology_id:
            raise ValueError("Cannot save answers without a technology id")

        saved_at = datetime.now(timezone.utc)

        answers: dict[str, VersionedAnswer] = {}
        for q in template.questions:
            key = q.dictionary_key
            value = payload.repeat_groups.get(key) if q.is_repeat_group else payload.responses.get(key)
            if not has_meaningful_value(value):
                continue
            answers[key] = VersionedAnswer(
                value=value,
                revision_id=q.revision_id,
                answered_at=saved_at,
            )

        submission_id = await store.save_submission(
            payload.template_id,
            payload.technology_id,
            answers,
            payload.calculated_scores,
            submitted_by=answered_by,
            notes=payload.notes,
        )
        log = logger.debug if options.silent else logger.info
        log(
            "Saved %d answers for technology %s (submission %s)",
            len(answers), payload.technology_id, submission_id,
        )
        return SaveOutcome(submission_id=submission_id, saved_at=saved_at)

    return save
