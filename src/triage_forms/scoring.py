"""Scoring engine — deterministic triage scores from six raw inputs.

Formulas (every intermediate result rounded half-up to two decimals):

    market  = mean(market_size, patient_population, competitors)
    impact  = 0.5 * mission_alignment + 0.5 * unmet_need
    value   = 0.5 * ip_strength + 0.5 * market
    overall = mean(impact, value)

Recommendation, with pct(x) = x / 3:

    Close                         pct(impact) < 0.20 or pct(value) < 0.20
    Proceed                       max(pct) > 0.67 and min(pct) >= 0.33
    Consider Alternative Pathway  otherwise

Arithmetic runs on ``Decimal`` built from the shortest float repr, so
boundary values (e.g. 0.6 / 3 == 0.20) compare exactly.  Every function
here is total: non-numeric input scores 0, never NaN.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from triage_forms.constants import (
    CLOSE_THRESHOLD,
    HIGH_THRESHOLD,
    MEDIUM_THRESHOLD,
    SCORE_MAX,
    SCORE_MIN,
    SCORING_KEYS,
)
from triage_forms.models.scoring import Recommendation, ScoringInputs, ScoringResult
from triage_forms.values import coerce_number

_CENT = Decimal("0.01")
_HALF = Decimal("0.5")
_SCALE = Decimal(str(SCORE_MAX))

__all__ = [
    "SCORING_KEYS",
    "calculate_all_scores",
    "calculate_impact_score",
    "calculate_market_score",
    "calculate_overall_score",
    "calculate_recommendation",
    "calculate_value_score",
    "extract_scoring_inputs",
    "recommendation_text",
    "round2",
]


def _dec(value: Any) -> Decimal:
    num = coerce_number(value)
    return Decimal(0) if num is None else Decimal(str(num))


def _round(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def round2(value: float) -> float:
    """Round half-up to two decimals on the base-10 value; non-numeric -> 0.0.

    ``round2(1.005) == 1.01`` and ``round2(2.675) == 2.68``, unlike ``round()``.
    """
    return _round(_dec(value))


def calculate_market_score(
    market_size: float, patient_population: float, competitors: float
) -> float:
    total = _dec(market_size) + _dec(patient_population) + _dec(competitors)
    return _round(total / 3)


def calculate_impact_score(mission_alignment: float, unmet_need: float) -> float:
    return _round(_HALF * _dec(mission_alignment) + _HALF * _dec(unmet_need))


def calculate_value_score(ip_strength: float, market: float) -> float:
    return _round(_HALF * _dec(ip_strength) + _HALF * _dec(market))


def calculate_overall_score(impact: float, value: float) -> float:
    return _round((_dec(impact) + _dec(value)) / 2)


def calculate_recommendation(impact: float, value: float) -> Recommendation:
    """Bucket the (impact, value) pair into a recommendation."""
    impact_pct = _dec(impact) / _SCALE
    value_pct = _dec(value) / _SCALE

    if impact_pct < Decimal(CLOSE_THRESHOLD) or value_pct < Decimal(CLOSE_THRESHOLD):
        return Recommendation.CLOSE
    if (
        max(impact_pct, value_pct) > Decimal(HIGH_THRESHOLD)
        and min(impact_pct, value_pct) >= Decimal(MEDIUM_THRESHOLD)
    ):
        return Recommendation.PROCEED
    return Recommendation.ALTERNATIVE_PATHWAY


def recommendation_text(impact: float, value: float, recommendation: Recommendation) -> str:
    """Human-readable summary embedding both rounded scores."""
    return (
        f"Impact Score: {round2(impact):g}, Value Score: {round2(value):g}. "
        f"Recommendation: {recommendation.value}."
    )


def calculate_all_scores(inputs: ScoringInputs) -> ScoringResult:
    """Compute every derived score and the recommendation."""
    market = calculate_market_score(
        inputs.market_size_score,
        inputs.patient_population_score,
        inputs.competitors_score,
    )
    impact = calculate_impact_score(inputs.mission_alignment_score, inputs.unmet_need_score)
    value = calculate_value_score(inputs.ip_strength_score, market)
    overall = calculate_overall_score(impact, value)
    recommendation = calculate_recommendation(impact, value)
    return ScoringResult(
        impact_score=impact,
        value_score=value,
        market_score=market,
        overall_score=overall,
        recommendation=recommendation,
        recommendation_text=recommendation_text(impact, value, recommendation),
    )


def _clamp(num: float | None) -> float:
    if num is None:
        return 0.0
    return min(max(num, SCORE_MIN), SCORE_MAX)


def extract_scoring_inputs(responses: Mapping[str, Any]) -> ScoringInputs:
    """Read the six scoring inputs from their dictionary keys.

    Numeric strings are coerced; missing, None, boolean and non-numeric
    values score 0; out-of-range numbers are clamped into [0, 3].
    """
    return ScoringInputs(
        **{
            field: _clamp(coerce_number(responses.get(key)))
            for field, key in SCORING_KEYS.items()
        }
    )
