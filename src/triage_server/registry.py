"""SessionRegistry — in-process form sessions addressed by id.

Sessions hold unsaved edits and debounce timers, so they live in the
server process rather than the database.  Every session saves through
the configured ``AnswerStore``; closing a session discards unsaved edits.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from triage_forms.answer_store import store_save_callback
from triage_forms.interfaces import AnswerStore
from triage_forms.models.answer import HydrationPayload
from triage_forms.models.template import FormTemplate
from triage_forms.scheduler import AsyncioScheduler
from triage_forms.session import FormSession

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """A hosted session and the identity it was opened for."""

    session_id: str
    template: FormTemplate
    technology_id: str
    session: FormSession
    scheduler: AsyncioScheduler


class SessionRegistry:
    """Opens, looks up and closes hosted form sessions."""

    def __init__(self, answer_store: AnswerStore, autosave: bool = True) -> None:
        self._answer_store = answer_store
        self._autosave = autosave
        self._entries: dict[str, SessionEntry] = {}

    async def open(
        self,
        template: FormTemplate,
        technology_id: str,
        *,
        override: HydrationPayload | None = None,
        answered_by: str | None = None,
    ) -> SessionEntry:
        """Load canonical answers and open a session over them."""
        canonical = await self._answer_store.load(technology_id, template)
        if override is not None and override.technology_id is None:
            override = override.model_copy(update={"technology_id": technology_id})

        scheduler = AsyncioScheduler()
        session = FormSession(
            template,
            canonical,
            override=override,
            save=store_save_callback(self._answer_store, template, answered_by=answered_by),
            scheduler=scheduler,
            autosave=self._autosave,
        )
        entry = SessionEntry(
            session_id=str(uuid.uuid4()),
            template=template,
            technology_id=technology_id,
            session=session,
            scheduler=scheduler,
        )
        self._entries[entry.session_id] = entry
        logger.info(
            "Opened session %s (template=%s, technology=%s)",
            entry.session_id, template.id, technology_id,
        )
        return entry

    def get(self, session_id: str) -> SessionEntry:
        entry = self._entries.get(session_id)
        if entry is None:
            raise ValueError(f"Session not found: session_id={session_id}")
        return entry

    def close(self, session_id: str) -> None:
        """Close a session; pending timers are cancelled and nothing is saved."""
        entry = self._entries.pop(session_id, None)
        if entry is None:
            raise ValueError(f"Session not found: session_id={session_id}")
        entry.session.close()
        logger.info("Closed session %s", session_id)

    async def refresh(self, session_id: str) -> bool:
        """Reload canonical answers; True if the session state was replaced."""
        entry = self.get(session_id)
        payload = await self._answer_store.load(entry.technology_id, entry.template)
        return entry.session.rehydrate(payload)

    async def close_all(self) -> None:
        """Close every session after letting in-flight saves finish."""
        for entry in list(self._entries.values()):
            await entry.scheduler.drain()
            entry.session.close()
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
