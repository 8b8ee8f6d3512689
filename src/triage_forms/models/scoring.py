"""Scoring models: the six raw triage inputs and the derived result."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class Recommendation(str, enum.Enum):
    """Triage recommendation derived from the impact and value scores."""

    PROCEED = "Proceed"
    ALTERNATIVE_PATHWAY = "Consider Alternative Pathway"
    CLOSE = "Close"


class ScoringInputs(BaseModel):
    """Raw inputs, each bounded to [0, 3]."""

    model_config = ConfigDict(frozen=True)

    mission_alignment_score: float = Field(default=0.0, ge=0, le=3)
    unmet_need_score: float = Field(default=0.0, ge=0, le=3)
    ip_strength_score: float = Field(default=0.0, ge=0, le=3)
    market_size_score: float = Field(default=0.0, ge=0, le=3)
    patient_population_score: float = Field(default=0.0, ge=0, le=3)
    competitors_score: float = Field(default=0.0, ge=0, le=3)


class ScoringResult(BaseModel):
    """Derived scores, rounded to two decimals, plus the recommendation."""

    model_config = ConfigDict(frozen=True)

    impact_score: float
    value_score: float
    market_score: float
    overall_score: float
    recommendation: Recommendation
    recommendation_text: str

    def score_map(self) -> dict[str, float]:
        """Numeric scores keyed by score type, as persisted per submission."""
        return {
            "impact_score": self.impact_score,
            "value_score": self.value_score,
            "market_score": self.market_score,
            "overall_score": self.overall_score,
        }
