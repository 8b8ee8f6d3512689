"""Answer, hydration and save models.

These models are the contract between a form session and its host:

  - HydrationPayload: canonical answers handed to a session at start or refresh
  - SavePayload / SaveOptions: what the session hands to the save callback
  - SaveOutcome: what the callback may hand back (submission id, save time)
  - SessionState: read-only snapshot of a session for API consumers

They are intentionally decoupled from the ORM models in ``triage_db``.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from triage_forms.models.scoring import ScoringResult


class AnswerStatus(str, enum.Enum):
    """Freshness of a canonical answer relative to its question revision.

    UNANSWERED: no meaningful value
    STALE:      saved against an older revision of the question
    CURRENT:    saved against the current revision, or revision unknown
    """

    CURRENT = "CURRENT"
    STALE = "STALE"
    UNANSWERED = "UNANSWERED"


class AnswerMetadata(BaseModel):
    """Per-key provenance of a canonical answer."""

    model_config = ConfigDict(frozen=True)

    status: AnswerStatus = AnswerStatus.CURRENT
    answered_at: Optional[datetime] = None
    source_submission_id: Optional[str] = None
    saved_revision_id: Optional[str] = None
    current_revision_id: Optional[str] = None


class VersionedAnswer(BaseModel):
    """A canonical value together with the revision it was saved against."""

    model_config = ConfigDict(frozen=True)

    value: Any = None
    revision_id: Optional[str] = None
    answered_at: Optional[datetime] = None
    source_submission_id: Optional[str] = None


class HydrationPayload(BaseModel):
    """Canonical answers for one technology.

    Also used for override payloads (previews and demos).
    """

    technology_id: Optional[str] = None
    responses: dict[str, Any] = {}
    repeat_groups: dict[str, list[dict[str, Any]]] = {}
    answer_metadata: dict[str, AnswerMetadata] = {}
    notes: Optional[str] = None


class SaveOptions(BaseModel):
    """Options passed to the host save callback."""

    model_config = ConfigDict(frozen=True)

    # Background autosaves are silent: the host should not notify the user.
    silent: bool = False


class SavePayload(BaseModel):
    """Snapshot of the session handed to the host save callback."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    technology_id: Optional[str] = None
    responses: dict[str, Any] = {}
    repeat_groups: dict[str, list[dict[str, Any]]] = {}
    calculated_scores: Optional[ScoringResult] = None
    notes: Optional[str] = None
    # Keys edited since the last successful save
    dirty_keys: list[str] = []


class SaveOutcome(BaseModel):
    """Result a save callback may return; None means "saved, no details"."""

    model_config = ConfigDict(frozen=True)

    submission_id: Optional[str] = None
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionState(BaseModel):
    """Read-only snapshot of a form session."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    technology_id: Optional[str] = None
    current_section_index: int
    section_count: int
    responses: dict[str, Any]
    repeat_groups: dict[str, list[dict[str, Any]]]
    answer_metadata: dict[str, AnswerMetadata]
    calculated_scores: Optional[ScoringResult] = None
    visible_keys: list[str]
    required_keys: list[str]
    errors: dict[str, str]
    dirty_keys: list[str]
    notes: Optional[str] = None
    is_saving: bool = False
    last_saved_at: Optional[datetime] = None
    last_save_error: Optional[str] = None
