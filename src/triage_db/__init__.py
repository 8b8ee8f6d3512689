"""triage_db — PostgreSQL persistence layer for canonical triage answers.

This package provides the ORM models, the ``Database`` connection pool,
repositories and an ``AnswerStore`` implementation consumed by the FastAPI
server.
"""

from triage_db.config import DatabaseSettings, load_database_settings
from triage_db.engine import Database
from triage_db.models import (
    CalculatedScore,
    FormSubmission,
    SubmissionStatus,
    TechnologyAnswer,
)
from triage_db.repository import AnswerRepository, SubmissionRepository
from triage_db.store import SqlAnswerStore

__all__ = [
    "AnswerRepository",
    "CalculatedScore",
    "Database",
    "DatabaseSettings",
    "FormSubmission",
    "SqlAnswerStore",
    "SubmissionRepository",
    "SubmissionStatus",
    "TechnologyAnswer",
    "load_database_settings",
]
