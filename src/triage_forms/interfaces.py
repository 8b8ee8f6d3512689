"""Abstract interfaces between form sessions and their host.

A session never talks to storage directly.  The host supplies an async
save callback; ``store_save_callback`` builds one from any ``AnswerStore``
and writes each save through ``AnswerStore.save_submission``.

Typical integration flow::

    store: AnswerStore = Database(load_database_settings()).answer_store()
    payload = await store.load(technology_id, template)

    session = FormSession(
        template,
        payload,
        save=store_save_callback(store, template),
        scheduler=AsyncioScheduler(),
    )
    session.update_response("triage.marketScore", 2)
    await session.flush_save()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from triage_forms.models.answer import (
    HydrationPayload,
    SaveOptions,
    SaveOutcome,
    SavePayload,
    VersionedAnswer,
)
from triage_forms.models.scoring import ScoringResult
from triage_forms.models.template import FormTemplate

# save(payload, options) -> SaveOutcome | None; raising marks the save failed.
SaveCallback = Callable[[SavePayload, SaveOptions], Awaitable[SaveOutcome | None]]


class AnswerStore(ABC):
    """Canonical answer storage: one current value per (technology, key).

    Implementations must upsert by (technology_id, dictionary_key) so that
    repeated saves never create a second current value for a key.
    """

    @abstractmethod
    async def load(self, technology_id: str, template: FormTemplate) -> HydrationPayload:
        """Return the canonical answers of ``technology_id``.

        Repeat-group questions of ``template`` are returned under
        ``repeat_groups``; every other key under ``responses``.  Answers for
        keys outside the template are included too.
        """
        ...

    @abstractmethod
    async def upsert_answers(
        self,
        technology_id: str,
        answers: dict[str, VersionedAnswer],
        answered_by: str | None = None,
    ) -> list[str]:
        """Insert or replace answers; return the keys written.

        Answers without a meaningful value are skipped.
        """
        ...

    @abstractmethod
    async def record_submission(
        self,
        template_id: str,
        technology_id: str,
        scores: ScoringResult | None,
        submitted_by: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Record one save of a form with its calculated scores; return its id."""
        ...

    @abstractmethod
    async def save_submission(
        self,
        template_id: str,
        technology_id: str,
        answers: dict[str, VersionedAnswer],
        scores: ScoringResult | None,
        submitted_by: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Record a submission and upsert its answers as one unit; return its id.

        Every written answer gets the new submission as its
        ``source_submission_id``.  If any step fails nothing is written, so
        a failed save never leaves a submission without its answers.
        """
        ...
