"""Question models for triage form templates.

Each question binds a form field to one canonical answer slot through its
``dictionary_key`` ("stage.field").  Field types map to UI components:

  Scalar answers (stored in the response map):
    - SHORT_TEXT / LONG_TEXT: free text
    - INTEGER: whole-number input
    - SINGLE_SELECT: pick one option
    - MULTI_SELECT / CHECKBOX_GROUP: pick any number of options
    - DATE: ISO date string
    - SCORING_0_3: numeric score between 0 and 3
    - SCORING_MATRIX: read-only display of calculated scores

  Row answers (stored in the repeat-group map):
    - REPEATABLE_GROUP: user-extensible table of rows
    - DATA_TABLE_SELECTOR: predefined rows with per-row inputs

Stored ``conditional`` and ``validation`` payloads are accepted as dicts or
JSON text.
"""

from __future__ import annotations

import enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from triage_forms.models.conditional import (
    ConditionalConfig,
    normalize_conditional_payload,
)
from triage_forms.models.validation import ValidationConfig, parse_validation_config


class FieldType(str, enum.Enum):
    """Closed set of supported field types."""

    SHORT_TEXT = "SHORT_TEXT"
    LONG_TEXT = "LONG_TEXT"
    INTEGER = "INTEGER"
    SINGLE_SELECT = "SINGLE_SELECT"
    MULTI_SELECT = "MULTI_SELECT"
    CHECKBOX_GROUP = "CHECKBOX_GROUP"
    DATE = "DATE"
    SCORING_0_3 = "SCORING_0_3"
    SCORING_MATRIX = "SCORING_MATRIX"
    REPEATABLE_GROUP = "REPEATABLE_GROUP"
    DATA_TABLE_SELECTOR = "DATA_TABLE_SELECTOR"


class Option(BaseModel):
    """A selectable option with a stored value and display label."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class RepeatableColumn(BaseModel):
    """One column of a repeat-group row."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    type: FieldType = FieldType.SHORT_TEXT
    required: bool = False


class RepeatableConfig(BaseModel):
    """Column layout and row-count bounds of a repeat group."""

    model_config = ConfigDict(frozen=True)

    columns: List[RepeatableColumn] = []
    min_rows: Optional[int] = Field(default=None, ge=0)
    max_rows: Optional[int] = Field(default=None, ge=1)


class Question(BaseModel):
    """One question of a form section."""

    model_config = ConfigDict(frozen=True)

    id: str
    dictionary_key: str
    label: str
    type: FieldType
    is_required: bool = False
    order: int = 0
    help_text: Optional[str] = None
    options: List[Option] = []
    validation: Optional[ValidationConfig] = None
    conditional: Optional[ConditionalConfig] = None
    repeatable_config: Optional[RepeatableConfig] = None
    # Current revision of the dictionary entry; answers saved against an
    # older revision are stale.
    revision_id: Optional[str] = None

    @field_validator("conditional", mode="before")
    @classmethod
    def _parse_conditional(cls, raw: Any) -> Any:
        # Malformed payloads mean "no condition"; rules with unknown
        # operator/action tags still reach the model and fail the load.
        return normalize_conditional_payload(raw)

    @field_validator("validation", mode="before")
    @classmethod
    def _parse_validation(cls, raw: Any) -> Any:
        return parse_validation_config(raw)

    @property
    def is_repeat_group(self) -> bool:
        """True if this question's value lives in the repeat-group map."""
        return self.type in (FieldType.REPEATABLE_GROUP, FieldType.DATA_TABLE_SELECTOR)
