"""FormSubmission and CalculatedScore ORM models.

Every save of a form records a submission row; the scores calculated at
save time hang off it, one row per score type, so a recommendation can be
audited later against the inputs it was derived from.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Float, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from triage_db.models.base import Base
from triage_db.models.enums import SubmissionStatus


class FormSubmission(Base):
    """One save of a form for a technology."""

    __tablename__ = "form_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    template_id: Mapped[str] = mapped_column(Text, nullable=False)
    technology_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[SubmissionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionStatus.DRAFT,
    )
    submitted_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    scores: Mapped[list["CalculatedScore"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_form_submissions_technology", "technology_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<FormSubmission(id={self.id!s}, template={self.template_id!r}, "
            f"technology={self.technology_id!r}, status={self.status!r})>"
        )


class CalculatedScore(Base):
    """One numeric score of a submission (impact_score, value_score, ...)."""

    __tablename__ = "calculated_scores"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("form_submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    score_type: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    submission: Mapped[FormSubmission] = relationship(back_populates="scores")
