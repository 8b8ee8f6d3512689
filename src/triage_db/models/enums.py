"""Database-level enumerations for form submissions."""

import enum


class SubmissionStatus(str, enum.Enum):
    """Lifecycle states of a form submission.

    Transitions:
        DRAFT -> SUBMITTED  (reviewer submits the completed form)
    """

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
