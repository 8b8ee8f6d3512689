"""Async repositories for canonical answers and form submissions.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries (a save records a submission and upserts its
answers in one transaction).

The repositories avoid business-logic validation; that belongs in the SDK.
They *do* rely on the ``uq_technology_answer_key`` constraint so that an
upsert never creates a second current value for a key.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.ext.asyncio import AsyncSession

from triage_db.models.answer import TechnologyAnswer
from triage_db.models.enums import SubmissionStatus
from triage_db.models.submission import CalculatedScore, FormSubmission


def build_answer_upsert(rows: list[dict[str, Any]]) -> Insert:
    """``INSERT ... ON CONFLICT (technology_id, question_key) DO UPDATE``.

    Each row carries ``technology_id``, ``question_key``, ``value``,
    ``revision_id``, ``answered_by``, ``source_submission_id`` and
    ``answered_at``.
    """
    stmt = insert(TechnologyAnswer).values(rows)
    return stmt.on_conflict_do_update(
        constraint="uq_technology_answer_key",
        set_={
            "value": stmt.excluded.value,
            "revision_id": stmt.excluded.revision_id,
            "answered_by": stmt.excluded.answered_by,
            "source_submission_id": stmt.excluded.source_submission_id,
            "answered_at": stmt.excluded.answered_at,
        },
    )


class AnswerRepository:
    """Async read/write operations on the ``technology_answers`` table."""

    async def upsert_answers(
        self,
        db: AsyncSession,
        technology_id: str,
        answers: dict[str, dict[str, Any]],
        *,
        answered_by: str | None = None,
    ) -> list[str]:
        """Insert or replace one row per dictionary key; return the keys written.

        ``answers`` maps dictionary key -> {value, revision_id,
        source_submission_id, answered_at}.
        """
        if not answers:
            return []
        now = datetime.now(timezone.utc)
        rows = [
            {
                "id": uuid.uuid4(),
                "technology_id": technology_id,
                "question_key": key,
                "value": entry["value"],
                "revision_id": entry.get("revision_id"),
                "answered_by": answered_by,
                "source_submission_id": entry.get("source_submission_id"),
                "answered_at": entry.get("answered_at") or now,
            }
            for key, entry in answers.items()
        ]
        await db.execute(build_answer_upsert(rows))
        await db.flush()
        return list(answers)

    async def list_for_technology(
        self, db: AsyncSession, technology_id: str
    ) -> list[TechnologyAnswer]:
        """Every canonical answer of a technology, ordered by key."""
        stmt = (
            select(TechnologyAnswer)
            .where(TechnologyAnswer.technology_id == technology_id)
            .order_by(TechnologyAnswer.question_key)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


class SubmissionRepository:
    """Async read/write operations on ``form_submissions`` and ``calculated_scores``."""

    async def create_submission(
        self,
        db: AsyncSession,
        *,
        template_id: str,
        technology_id: str,
        scores: dict[str, float],
        submitted_by: str | None = None,
        notes: str | None = None,
        status: SubmissionStatus = SubmissionStatus.DRAFT,
    ) -> FormSubmission:
        """Insert a submission with its calculated scores and return it.

        The caller must ``await db.commit()`` to persist.
        """
        submission = FormSubmission(
            id=uuid.uuid4(),
            template_id=template_id,
            technology_id=technology_id,
            status=status,
            submitted_by=submitted_by,
            notes=notes,
            submitted_at=datetime.now(timezone.utc) if status == SubmissionStatus.SUBMITTED else None,
        )
        submission.scores = [
            CalculatedScore(score_type=score_type, value=value)
            for score_type, value in scores.items()
        ]
        db.add(submission)
        await db.flush()
        return submission

    async def latest_for_technology(
        self, db: AsyncSession, technology_id: str
    ) -> FormSubmission | None:
        """Most recent submission of a technology, if any."""
        stmt = (
            select(FormSubmission)
            .where(FormSubmission.technology_id == technology_id)
            .order_by(FormSubmission.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

