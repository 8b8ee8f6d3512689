"""Small builders for questions, sections and templates used across tests."""

from typing import Any

from triage_forms.models.question import FieldType, Question
from triage_forms.models.template import FormSection, FormTemplate


def build_question(key: str, type: FieldType | str = FieldType.SHORT_TEXT, **kwargs: Any) -> Question:
    """Question with ``id``/``label`` derived from the dictionary key."""
    data: dict[str, Any] = {
        "id": f"q-{key}",
        "dictionary_key": key,
        "label": kwargs.pop("label", key.split(".")[-1]),
        "type": type,
    }
    data.update(kwargs)
    return Question.model_validate(data)


def build_section(questions: list[Question], code: str = "F0", order: int = 0) -> FormSection:
    return FormSection(id=f"sec-{code}", code=code, title=f"Section {code}", order=order, questions=questions)


def build_template(*sections: list[Question], template_id: str = "tpl-test") -> FormTemplate:
    """Template with one section per positional question list."""
    return FormTemplate(
        id=template_id,
        name="Test Template",
        sections=[
            build_section(questions, code=f"F{i}", order=i)
            for i, questions in enumerate(sections)
        ],
    )


def template_dict(questions: list[dict[str, Any]], template_id: str = "tpl-raw") -> dict[str, Any]:
    """Raw (YAML-shaped) template mapping with a single section."""
    return {
        "id": template_id,
        "name": "Raw Template",
        "sections": [
            {"id": "sec-0", "code": "F0", "title": "Only", "questions": questions},
        ],
    }


def raw_question(key: str, type: str = "SHORT_TEXT", **kwargs: Any) -> dict[str, Any]:
    return {"id": f"q-{key}", "dictionary_key": key, "label": key, "type": type, **kwargs}
