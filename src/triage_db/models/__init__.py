"""ORM models for triage_db."""

from triage_db.models.base import Base
from triage_db.models.enums import SubmissionStatus
from triage_db.models.answer import TechnologyAnswer
from triage_db.models.submission import CalculatedScore, FormSubmission

__all__ = [
    "Base",
    "CalculatedScore",
    "FormSubmission",
    "SubmissionStatus",
    "TechnologyAnswer",
]
