"""TechnologyAnswer ORM model — one canonical answer per (technology, key).

Answers are shared by every form that binds the same dictionary key, so a
value saved in one form pre-fills all others.  ``revision_id`` records the
question revision the answer was given against; a later revision makes the
answer stale.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Index, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from triage_db.models.base import Base


class TechnologyAnswer(Base):
    """Current value of one dictionary key for one technology."""

    __tablename__ = "technology_answers"

    # --- Primary key ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Identity ---
    technology_id: Mapped[str] = mapped_column(Text, nullable=False)
    # Dictionary key, e.g. "triage.marketScore"
    question_key: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Answer ---
    # Scalar, list of options, or list of repeat-group rows
    value: Mapped[Any] = mapped_column(JSONB, nullable=False)
    revision_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Provenance ---
    answered_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_submission_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    answered_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        # At most one current value per key per technology
        UniqueConstraint("technology_id", "question_key", name="uq_technology_answer_key"),
        Index("ix_technology_answers_technology", "technology_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TechnologyAnswer(technology={self.technology_id!r}, "
            f"key={self.question_key!r}, revision={self.revision_id!r})>"
        )
