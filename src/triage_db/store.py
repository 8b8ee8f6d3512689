"""SqlAnswerStore — PostgreSQL-backed AnswerStore.

Each call opens its own session from the factory and commits once before
returning, so a session's save callback needs no transaction handling.
``save_submission`` writes the submission, its scores and its answers in
that single transaction; leaving the block without a commit rolls all of
it back.
"""

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from triage_db.repository import AnswerRepository, SubmissionRepository
from triage_forms.interfaces import AnswerStore
from triage_forms.models.answer import AnswerMetadata, HydrationPayload, VersionedAnswer
from triage_forms.models.scoring import ScoringResult
from triage_forms.models.template import FormTemplate
from triage_forms.values import has_meaningful_value

logger = logging.getLogger(__name__)


def _to_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        logger.warning("Ignoring non-UUID submission id %r", value)
        return None


def _answer_entries(
    answers: dict[str, VersionedAnswer],
    source_submission_id: uuid.UUID | None = None,
) -> dict[str, dict[str, Any]]:
    """Repository rows for the meaningful answers of ``answers``."""
    return {
        key: {
            "value": answer.value,
            "revision_id": answer.revision_id,
            "source_submission_id": source_submission_id or _to_uuid(answer.source_submission_id),
            "answered_at": answer.answered_at,
        }
        for key, answer in answers.items()
        if has_meaningful_value(answer.value)
    }


class SqlAnswerStore(AnswerStore):
    """AnswerStore over the ``technology_answers`` / ``form_submissions`` tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        answers: AnswerRepository | None = None,
        submissions: SubmissionRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._answers = answers or AnswerRepository()
        self._submissions = submissions or SubmissionRepository()

    async def load(self, technology_id: str, template: FormTemplate) -> HydrationPayload:
        async with self._session_factory() as db:
            rows = await self._answers.list_for_technology(db, technology_id)
            latest = await self._submissions.latest_for_technology(db, technology_id)

        responses: dict[str, Any] = {}
        repeat_groups: dict[str, list[dict[str, Any]]] = {}
        metadata: dict[str, AnswerMetadata] = {}
        for row in rows:
            q = template.question_by_key(row.question_key)
            if q is not None and q.is_repeat_group and isinstance(row.value, list):
                repeat_groups[row.question_key] = row.value
            else:
                responses[row.question_key] = row.value
            metadata[row.question_key] = AnswerMetadata(
                answered_at=row.answered_at,
                source_submission_id=str(row.source_submission_id) if row.source_submission_id else None,
                saved_revision_id=row.revision_id,
            )

        logger.debug("Loaded %d canonical answers for technology %s", len(rows), technology_id)
        return HydrationPayload(
            technology_id=technology_id,
            responses=responses,
            repeat_groups=repeat_groups,
            answer_metadata=metadata,
            notes=latest.notes if latest is not None else None,
        )

    async def upsert_answers(
        self,
        technology_id: str,
        answers: dict[str, VersionedAnswer],
        answered_by: str | None = None,
    ) -> list[str]:
        entries = _answer_entries(answers)
        if not entries:
            return []
        async with self._session_factory() as db:
            written = await self._answers.upsert_answers(
                db, technology_id, entries, answered_by=answered_by
            )
            await db.commit()
        return written

    async def record_submission(
        self,
        template_id: str,
        technology_id: str,
        scores: ScoringResult | None,
        submitted_by: str | None = None,
        notes: str | None = None,
    ) -> str:
        async with self._session_factory() as db:
            submission = await self._submissions.create_submission(
                db,
                template_id=template_id,
                technology_id=technology_id,
                scores=scores.score_map() if scores else {},
                submitted_by=submitted_by,
                notes=notes,
            )
            await db.commit()
        return str(submission.id)

    async def save_submission(
        self,
        template_id: str,
        technology_id: str,
        answers: dict[str, VersionedAnswer],
        scores: ScoringResult | None,
        submitted_by: str | None = None,
        notes: str | None = None,
    ) -> str:
        async with self._session_factory() as db:
            submission = await self._submissions.create_submission(
                db,
                template_id=template_id,
                technology_id=technology_id,
                scores=scores.score_map() if scores else {},
                submitted_by=submitted_by,
                notes=notes,
            )
            written = await self._answers.upsert_answers(
                db,
                technology_id,
                _answer_entries(answers, source_submission_id=submission.id),
                answered_by=submitted_by,
            )
            await db.commit()
        logger.debug(
            "Submission %s saved with %d answers for technology %s",
            submission.id, len(written), technology_id,
        )
        return str(submission.id)
