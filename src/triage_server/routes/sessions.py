"""Form session endpoints — open, edit, navigate, save and close sessions.

A session is one in-process editing context for a (template, technology)
pair.  Edits update derived state immediately; validation and autosave are
debounced inside the session.  Sessions are addressed by the id returned
from ``POST /sessions``.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from triage_forms.models.answer import HydrationPayload, SessionState
from triage_forms.template import TemplateStore

from triage_server.dependencies import get_registry, get_template_store
from triage_server.registry import SessionEntry, SessionRegistry

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Body for POST /sessions."""
    template_id: str
    technology_id: str
    # Preview/demo data used instead of the canonical answers
    override: HydrationPayload | None = None
    answered_by: str | None = None


class UpdateResponseRequest(BaseModel):
    """Body for PUT /sessions/{id}/responses/{key}."""
    value: Any = None


class UpdateRepeatGroupRequest(BaseModel):
    """Body for PUT /sessions/{id}/repeat-groups/{key}."""
    rows: list[dict[str, Any]] = []


class SaveRequest(BaseModel):
    """Body for POST /sessions/{id}/save.

    ``explicit`` saves now and reports failures; otherwise the save is
    debounced like an autosave.
    """
    explicit: bool = True
    silent: bool = False


class SessionResponse(BaseModel):
    session_id: str
    state: SessionState


class SaveResponse(BaseModel):
    session_id: str
    saved: bool
    submission_id: str | None = None
    saved_at: datetime | None = None
    state: SessionState


class ValidateResponse(BaseModel):
    session_id: str
    valid: bool
    errors: dict[str, str]


class RefreshResponse(BaseModel):
    session_id: str
    replaced: bool
    state: SessionState


def _state(entry: SessionEntry) -> SessionResponse:
    return SessionResponse(session_id=entry.session_id, state=entry.session.snapshot())


def _require_question(entry: SessionEntry, key: str, repeat_group: bool) -> None:
    question = entry.template.question_by_key(key)
    if question is None:
        raise ValueError(f"Question not found: {key}")
    if question.is_repeat_group != repeat_group:
        kind = "a repeat group" if repeat_group else "a scalar question"
        raise ValueError(f"Question {key} is not {kind}")


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------

@router.post("", status_code=201)
async def create_session(
    body: CreateSessionRequest,
    templates: TemplateStore = Depends(get_template_store),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Open a session hydrated from the answer store (or the override payload).

    Returns 201 on success, 404 for an unknown template.
    """
    template = templates.get(body.template_id)
    entry = await registry.open(
        template,
        body.technology_id,
        override=body.override,
        answered_by=body.answered_by,
    )
    return _state(entry)


@router.get("/{session_id}")
def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Current snapshot of a session.  Raises 404 if it does not exist."""
    return _state(registry.get(session_id))


@router.delete("/{session_id}", status_code=204)
async def close_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    """Close a session; pending timers are cancelled and nothing is saved."""
    registry.close(session_id)


# ------------------------------------------------------------------
# Edits
# ------------------------------------------------------------------

@router.put("/{session_id}/responses/{key}")
async def update_response(
    session_id: str,
    key: str,
    body: UpdateResponseRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Replace the value of one scalar question."""
    entry = registry.get(session_id)
    _require_question(entry, key, repeat_group=False)
    entry.session.update_response(key, body.value)
    return _state(entry)


@router.put("/{session_id}/repeat-groups/{key}")
async def update_repeat_group(
    session_id: str,
    key: str,
    body: UpdateRepeatGroupRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Replace the whole row list of one repeat-group question."""
    entry = registry.get(session_id)
    _require_question(entry, key, repeat_group=True)
    entry.session.update_repeat_group(key, body.rows)
    return _state(entry)


# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------

@router.post("/{session_id}/next")
def next_section(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Advance one section (never blocked by validation)."""
    entry = registry.get(session_id)
    entry.session.next_section()
    return _state(entry)


@router.post("/{session_id}/previous")
def previous_section(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Go back one section."""
    entry = registry.get(session_id)
    entry.session.previous_section()
    return _state(entry)


# ------------------------------------------------------------------
# Save / validate / refresh
# ------------------------------------------------------------------

@router.post("/{session_id}/save")
async def save_session(
    session_id: str,
    body: SaveRequest | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SaveResponse:
    """Save the session's answers.

    Explicit saves run immediately and return 502 if the store fails;
    otherwise a debounced save is scheduled and ``saved`` is False.
    """
    body = body or SaveRequest()
    entry = registry.get(session_id)
    if not body.explicit:
        entry.session.save_draft(silent=body.silent)
        return SaveResponse(session_id=session_id, saved=False, state=entry.session.snapshot())

    outcome = await entry.session.flush_save(silent=body.silent)
    return SaveResponse(
        session_id=session_id,
        saved=True,
        submission_id=outcome.submission_id if outcome else None,
        saved_at=outcome.saved_at if outcome else None,
        state=entry.session.snapshot(),
    )


@router.post("/{session_id}/validate")
def validate_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> ValidateResponse:
    """Validate every visible question; errors replace the session's error map."""
    entry = registry.get(session_id)
    errors = entry.session.validate_submission()
    return ValidateResponse(session_id=session_id, valid=not errors, errors=errors)


@router.post("/{session_id}/refresh")
async def refresh_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> RefreshResponse:
    """Reload canonical answers; local state is replaced only if they changed."""
    replaced = await registry.refresh(session_id)
    entry = registry.get(session_id)
    return RefreshResponse(
        session_id=session_id, replaced=replaced, state=entry.session.snapshot()
    )
