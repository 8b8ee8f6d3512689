"""Template endpoints — list, fetch and statelessly evaluate form templates.

These are read-only endpoints over the templates loaded from the template
directory at startup.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from triage_forms.evaluator import ConditionalEvaluator
from triage_forms.models.scoring import ScoringResult
from triage_forms.models.template import FormTemplate
from triage_forms.scoring import calculate_all_scores, extract_scoring_inputs
from triage_forms.template import TemplateStore
from triage_forms.validation import validate_form_submission

from triage_server.dependencies import get_template_store

router = APIRouter(prefix="/templates", tags=["templates"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class EvaluateRequest(BaseModel):
    """Body for POST /templates/{id}/evaluate."""
    responses: dict[str, Any] = {}
    repeat_groups: dict[str, list[dict[str, Any]]] = {}


class EvaluateResponse(BaseModel):
    visible_keys: list[str]
    required_keys: list[str]
    errors: dict[str, str]
    calculated_scores: ScoringResult


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("")
def list_templates(
    store: TemplateStore = Depends(get_template_store),
) -> list[dict]:
    """Return a summary of every loaded template."""
    return [
        {
            "id": t.id,
            "name": t.name,
            "version": t.version,
            "description": t.description,
            "is_active": t.is_active,
            "section_count": t.section_count,
            "question_count": len(t.questions),
        }
        for t in store.list_templates()
    ]


@router.get("/{template_id}")
def get_template(
    template_id: str,
    store: TemplateStore = Depends(get_template_store),
) -> FormTemplate:
    """Return the full template.  Raises 404 for an unknown id."""
    return store.get(template_id)


@router.post("/{template_id}/evaluate")
def evaluate_template(
    template_id: str,
    body: EvaluateRequest,
    store: TemplateStore = Depends(get_template_store),
) -> EvaluateResponse:
    """Visible/required keys, submission errors and scores for a response snapshot.

    Nothing is stored; the same snapshot always gives the same answer.
    """
    template = store.get(template_id)
    values = {**body.responses, **body.repeat_groups}
    evaluator = ConditionalEvaluator()
    visible = evaluator.visible_keys(template.questions, values)
    required = evaluator.required_keys(template.questions, values)
    errors = validate_form_submission(
        template.questions,
        values,
        visible,
        required_keys=required,
        repeat_groups=body.repeat_groups,
    )
    return EvaluateResponse(
        visible_keys=sorted(visible),
        required_keys=sorted(required),
        errors=errors,
        calculated_scores=calculate_all_scores(extract_scoring_inputs(body.responses)),
    )
