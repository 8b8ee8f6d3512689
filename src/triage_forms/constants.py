"""Form engine constants shared across the SDK.

These values are referenced by the scoring engine, the session and the
hydration layer.  Debounce windows can be overridden via environment
variables so that hosts can tune responsiveness without code changes.
"""

import os

# Bounds of every scoring input (SCORING_0_3 questions).
SCORE_MIN = 0.0
SCORE_MAX = 3.0

# Scoring input field -> dictionary key it is read from.
# The dictionary keys predate the field names, hence the mismatch
# (e.g. ip_strength_score is stored under "triage.stateOfArtScore").
SCORING_KEYS: dict[str, str] = {
    "mission_alignment_score": "triage.missionAlignmentScore",
    "unmet_need_score": "triage.unmetNeedScore",
    "ip_strength_score": "triage.stateOfArtScore",
    "market_size_score": "triage.marketScore",
    "patient_population_score": "triage.reimbursementPath",
    "competitors_score": "triage.regulatoryPath",
}

# Recommendation thresholds, expressed as a fraction of SCORE_MAX.
CLOSE_THRESHOLD = "0.20"
HIGH_THRESHOLD = "0.67"
MEDIUM_THRESHOLD = "0.33"

# Debounce windows (milliseconds).
# Overridable via VALIDATION_DEBOUNCE_MS / AUTOSAVE_DEBOUNCE_MS env vars.
VALIDATION_DEBOUNCE_MS = int(os.getenv("VALIDATION_DEBOUNCE_MS", "300"))
AUTOSAVE_DEBOUNCE_MS = int(os.getenv("AUTOSAVE_DEBOUNCE_MS", "2000"))

# Scheduler key used for the session-wide autosave task.
AUTOSAVE_TASK_KEY = "__autosave"
