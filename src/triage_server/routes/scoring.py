"""Scoring endpoint — stateless triage scores from a response map."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from triage_forms.models.scoring import ScoringInputs, ScoringResult
from triage_forms.scoring import calculate_all_scores, extract_scoring_inputs

router = APIRouter(prefix="/scoring", tags=["scoring"])


class CalculateRequest(BaseModel):
    """Body for POST /scoring/calculate, keyed by dictionary key."""
    responses: dict[str, Any] = {}


class CalculateResponse(BaseModel):
    inputs: ScoringInputs
    result: ScoringResult


@router.post("/calculate")
def calculate_scores(body: CalculateRequest) -> CalculateResponse:
    """Extract the six scoring inputs and compute every derived score."""
    inputs = extract_scoring_inputs(body.responses)
    return CalculateResponse(inputs=inputs, result=calculate_all_scores(inputs))
