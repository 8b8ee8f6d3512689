"""FormSession — in-memory editing context for one (template, technology) pair.

The session owns the response, repeat-group and answer-metadata maps and
keeps the derived state (visibility, requirement, scores, errors) in step
with every edit:

  1. ``update_response`` / ``update_repeat_group`` replace the value, drop
     the key's metadata entry (clearing any stale flag), mark it dirty and
     bump its edit version
  2. visibility and requirement are recomputed synchronously; scores too
     when the key feeds scoring
  3. single-field validation and autosave are debounced through the
     session's ``Scheduler``

Races are resolved by edit versions: a validation that fires after a newer
edit discards itself, and a save that completes after a newer edit leaves
that key dirty.  Saves of one session run one at a time; a save that fires
while another is in flight waits for it and then snapshots the latest
values, so the most recent edit is always written last.  There are no
automatic retries.

Usage::

    session = FormSession(template, payload, save=callback, scheduler=AsyncioScheduler())
    session.update_response("triage.marketScore", 2)
    state = session.snapshot()
    await session.flush_save()
    session.close()
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from triage_forms.constants import (
    AUTOSAVE_DEBOUNCE_MS,
    AUTOSAVE_TASK_KEY,
    SCORING_KEYS,
    VALIDATION_DEBOUNCE_MS,
)
from triage_forms.errors import FormEngineError, SaveError
from triage_forms.evaluator import ConditionalEvaluator
from triage_forms.hydration import AnswerHydrator, HydratedState, stamp_saved
from triage_forms.interfaces import SaveCallback
from triage_forms.models.answer import (
    AnswerMetadata,
    HydrationPayload,
    SaveOptions,
    SaveOutcome,
    SavePayload,
    SessionState,
)
from triage_forms.models.scoring import ScoringResult
from triage_forms.models.template import FormSection, FormTemplate
from triage_forms.scheduler import AsyncioScheduler, Scheduler
from triage_forms.scoring import calculate_all_scores, extract_scoring_inputs
from triage_forms.validation import validate_form_submission, validate_question

logger = logging.getLogger(__name__)

_SCORING_INPUT_KEYS = frozenset(SCORING_KEYS.values())


class FormSession:
    """One editing session; never shared between templates or technologies."""

    def __init__(
        self,
        template: FormTemplate,
        payload: HydrationPayload | None = None,
        *,
        save: SaveCallback | None = None,
        scheduler: Scheduler | None = None,
        override: HydrationPayload | None = None,
        on_save_error: Callable[[SaveError], Any] | None = None,
        autosave: bool = True,
        validation_debounce_ms: int = VALIDATION_DEBOUNCE_MS,
        autosave_debounce_ms: int = AUTOSAVE_DEBOUNCE_MS,
    ) -> None:
        self.template = template
        self.technology_id = (payload or override or HydrationPayload()).technology_id
        self._save = save
        self._scheduler = scheduler or AsyncioScheduler()
        self._on_save_error = on_save_error
        self._autosave = autosave
        self._validation_debounce_ms = validation_debounce_ms
        self._autosave_debounce_ms = autosave_debounce_ms
        self._evaluator = ConditionalEvaluator()
        self._hydrator = AnswerHydrator(template, canonical=payload, override=override)
        self._has_scoring = any(
            q.dictionary_key in _SCORING_INPUT_KEYS for q in template.questions
        )

        self.current_section_index = 0
        self.responses: dict[str, Any] = {}
        self.repeat_groups: dict[str, list[dict[str, Any]]] = {}
        self.answer_metadata: dict[str, AnswerMetadata] = {}
        self.notes: str | None = None
        self.calculated_scores: ScoringResult | None = None
        self.visible_keys: set[str] = set()
        self.required_keys: set[str] = set()
        self.errors: dict[str, str] = {}
        self.dirty_keys: set[str] = set()
        self.is_saving = False
        self.last_saved_at: datetime | None = None
        self.last_save_error: str | None = None

        # Per-key edit counters; never reset so that late callbacks can
        # always tell they were superseded.
        self._versions: dict[str, int] = {}
        # Bumped whenever hydration replaces local state
        self._generation = 0
        self._closed = False
        self._save_lock = asyncio.Lock()
        # A pending autosave is silent only if every request folded into it was
        self._pending_silent = True

        self._apply(self._hydrator.initial_state)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def _values(self) -> dict[str, Any]:
        """Response snapshot seen by conditional rules (rows included)."""
        return {**self.responses, **self.repeat_groups}

    def _value_of(self, key: str) -> Any:
        if key in self.repeat_groups:
            return self.repeat_groups[key]
        return self.responses.get(key)

    def _recompute_conditions(self) -> None:
        values = self._values()
        questions = self.template.questions
        self.visible_keys = self._evaluator.visible_keys(questions, values)
        self.required_keys = self._evaluator.required_keys(questions, values)
        # Hidden questions never show errors; their values are kept
        self.errors = {k: v for k, v in self.errors.items() if k in self.visible_keys}

    def _recompute_scores(self) -> None:
        if self._has_scoring:
            self.calculated_scores = calculate_all_scores(extract_scoring_inputs(self.responses))

    def _apply(self, state: HydratedState) -> None:
        self.responses = dict(state.responses)
        self.repeat_groups = {k: list(v) for k, v in state.repeat_groups.items()}
        self.answer_metadata = dict(state.answer_metadata)
        self.notes = state.notes
        self.errors = {}
        self.dirty_keys = set()
        self._recompute_conditions()
        self._recompute_scores()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def section_count(self) -> int:
        return self.template.section_count

    @property
    def current_section(self) -> FormSection:
        return self.template.sections[self.current_section_index]

    def go_to_section(self, index: int) -> int:
        """Jump to ``index``, clamped into the valid range."""
        self.current_section_index = min(max(index, 0), self.section_count - 1)
        return self.current_section_index

    def next_section(self) -> int:
        """Advance one section; no-op on the last one.  Never blocked by validation."""
        return self.go_to_section(self.current_section_index + 1)

    def previous_section(self) -> int:
        return self.go_to_section(self.current_section_index - 1)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise FormEngineError("Session is closed")

    def update_response(self, key: str, value: Any) -> None:
        """Replace the value of ``key`` and update derived state."""
        self._check_open()
        self.responses[key] = value
        self._after_edit(key)

    def update_repeat_group(self, key: str, rows: list[dict[str, Any]]) -> None:
        """Replace the whole row list of ``key``."""
        self._check_open()
        self.repeat_groups[key] = [dict(row) for row in rows]
        self._after_edit(key)

    def update_notes(self, notes: str | None) -> None:
        """Replace the free-text notes saved with the next submission."""
        self._check_open()
        self.notes = notes
        if self._save is not None and self._autosave:
            self.save_draft(silent=True)

    def _after_edit(self, key: str) -> None:
        self.answer_metadata.pop(key, None)
        self.dirty_keys.add(key)
        self._versions[key] = self._versions.get(key, 0) + 1

        self._recompute_conditions()
        if key in _SCORING_INPUT_KEYS:
            self._recompute_scores()

        self._schedule_validation(key)
        if self._save is not None and self._autosave:
            self.save_draft(silent=True)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _schedule_validation(self, key: str) -> None:
        version = self._versions[key]
        self._scheduler.schedule(
            f"validate:{key}",
            self._validation_debounce_ms,
            lambda: self._run_validation(key, version),
        )

    def _run_validation(self, key: str, version: int) -> None:
        if self._closed or self._versions.get(key) != version:
            logger.debug("Discarding superseded validation of %s", key)
            return
        question = self.template.question_by_key(key)
        if question is None:
            return
        if key not in self.visible_keys:
            self.errors.pop(key, None)
            return

        # Required-ness is re-derived now, not taken from schedule time
        is_required = self._evaluator.is_required(question, self._values())
        message = validate_question(question, self._value_of(key), is_required)
        if message is None:
            self.errors.pop(key, None)
        else:
            self.errors[key] = message

    def validate_submission(self) -> dict[str, str]:
        """Validate every visible question; replaces and returns ``errors``."""
        self.errors = validate_form_submission(
            self.template.questions,
            self._values(),
            self.visible_keys,
            required_keys=self.required_keys,
            repeat_groups=self.repeat_groups,
        )
        return dict(self.errors)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_draft(self, silent: bool = False) -> None:
        """Schedule a debounced save; a newer call replaces a pending one.

        The pending save stays non-silent if any request folded into it
        was non-silent.
        """
        self._check_open()
        if self._save is None:
            logger.debug("save_draft ignored: no save callback configured")
            return
        self._pending_silent = self._pending_silent and silent
        self._scheduler.schedule(
            AUTOSAVE_TASK_KEY,
            self._autosave_debounce_ms,
            self._run_scheduled_save,
        )

    def _take_pending_silent(self) -> bool:
        silent, self._pending_silent = self._pending_silent, True
        return silent

    async def _run_scheduled_save(self) -> None:
        silent = self._take_pending_silent()
        if self._closed:
            return
        try:
            await self._save_now(silent)
        except SaveError:
            # Already recorded in last_save_error and passed to on_save_error
            pass

    async def flush_save(self, silent: bool = False) -> SaveOutcome | None:
        """Cancel any pending autosave and save now.

        A cancelled non-silent request makes the flush non-silent too.
        Raises ``SaveError`` if the save callback fails; dirty state is kept.
        """
        self._check_open()
        if self._scheduler.cancel(AUTOSAVE_TASK_KEY):
            silent = self._take_pending_silent() and silent
        return await self._save_now(silent)

    def _build_save_payload(self) -> SavePayload:
        return SavePayload(
            template_id=self.template.id,
            technology_id=self.technology_id,
            responses=copy.deepcopy(self.responses),
            repeat_groups=copy.deepcopy(self.repeat_groups),
            calculated_scores=self.calculated_scores,
            notes=self.notes,
            dirty_keys=sorted(self.dirty_keys),
        )

    async def _save_now(self, silent: bool) -> SaveOutcome | None:
        if self._save is None:
            raise SaveError("No save callback configured", silent=silent)
        async with self._save_lock:
            return await self._save_locked(silent)

    async def _save_locked(self, silent: bool) -> SaveOutcome | None:
        if self._closed:
            logger.debug("Session closed while a save was queued; skipping it")
            return None
        # Snapshot after acquiring the lock so a queued save sends newer values
        payload = self._build_save_payload()
        versions = {key: self._versions.get(key, 0) for key in self.dirty_keys}
        generation = self._generation

        self.is_saving = True
        try:
            outcome = await self._save(payload, SaveOptions(silent=silent))
        except Exception as exc:
            error = SaveError(f"Save failed: {exc}", silent=silent)
            self.last_save_error = str(error)
            logger.warning(
                "Save failed for template %s (technology %s): %s",
                self.template.id, self.technology_id, exc,
            )
            if self._on_save_error is not None:
                self._on_save_error(error)
            raise error from exc
        finally:
            self.is_saving = False

        if generation != self._generation:
            logger.debug("State replaced during save; skipping save bookkeeping")
            return outcome

        saved_at = outcome.saved_at if outcome else datetime.now(timezone.utc)
        submission_id = outcome.submission_id if outcome else None

        # Keys edited while the save was in flight stay dirty
        settled = [key for key, version in versions.items() if self._versions.get(key, 0) == version]
        self.dirty_keys.difference_update(settled)
        stamp_saved(
            self.template,
            self.answer_metadata,
            [key for key in settled if self.template.question_by_key(key) is not None],
            saved_at,
            submission_id,
            self._values(),
        )
        self.last_saved_at = saved_at
        self.last_save_error = None
        return outcome

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    def rehydrate(self, payload: HydrationPayload) -> bool:
        """Apply a canonical payload if its identity changed.

        Returns True when local state was replaced (pending timers are
        cancelled and unsaved edits dropped), False when it was kept.
        """
        self._check_open()
        state = self._hydrator.refresh(payload)
        if state is None:
            return False
        self._scheduler.cancel_all()
        self._pending_silent = True
        self._generation += 1
        if payload.technology_id:
            self.technology_id = payload.technology_id
        self._apply(state)
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def edit_version(self, key: str) -> int:
        """Number of edits made to ``key`` in this session."""
        return self._versions.get(key, 0)

    def snapshot(self) -> SessionState:
        """Immutable copy of the current state."""
        return SessionState(
            template_id=self.template.id,
            technology_id=self.technology_id,
            current_section_index=self.current_section_index,
            section_count=self.section_count,
            responses=copy.deepcopy(self.responses),
            repeat_groups=copy.deepcopy(self.repeat_groups),
            answer_metadata=dict(self.answer_metadata),
            calculated_scores=self.calculated_scores,
            visible_keys=sorted(self.visible_keys),
            required_keys=sorted(self.required_keys),
            errors=dict(self.errors),
            dirty_keys=sorted(self.dirty_keys),
            notes=self.notes,
            is_saving=self.is_saving,
            last_saved_at=self.last_saved_at,
            last_save_error=self.last_save_error,
        )

    def close(self) -> None:
        """Cancel every pending timer; unsaved edits are discarded."""
        self._scheduler.cancel_all()
        self._pending_silent = True
        self._closed = True
