"""Form template models: ordered sections of ordered questions.

Templates are immutable for the life of a session.  Loading a template
checks that dictionary keys are unique and that conditional rules never
form a dependency cycle (a question whose visibility depends, directly or
transitively, on its own value).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from triage_forms.models.question import Question


def find_rule_cycle(questions: list[Question]) -> list[str] | None:
    """Return the dictionary keys of one conditional-rule cycle, or None.

    Edges run from a question to every in-template key its rules reference.
    References to keys outside the template are ignored.
    """
    known = {q.dictionary_key for q in questions}
    graph: dict[str, list[str]] = {}
    for q in questions:
        deps = q.conditional.referenced_fields if q.conditional else set()
        graph[q.dictionary_key] = sorted(dep for dep in deps if dep in known)

    # Iterative DFS with white/grey/black colouring
    WHITE, GREY, BLACK = 0, 1, 2
    colour = {key: WHITE for key in graph}
    for root in graph:
        if colour[root] != WHITE:
            continue
        path: list[str] = [root]
        stack = [iter(graph[root])]
        colour[root] = GREY
        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                colour[path.pop()] = BLACK
                stack.pop()
                continue
            if colour[nxt] == GREY:
                return path[path.index(nxt):] + [nxt]
            if colour[nxt] == WHITE:
                colour[nxt] = GREY
                path.append(nxt)
                stack.append(iter(graph[nxt]))
    return None


class FormSection(BaseModel):
    """An ordered group of questions shown as one page."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    title: str
    description: Optional[str] = None
    order: int = 0
    questions: List[Question] = []

    @field_validator("questions")
    @classmethod
    def _sort_questions(cls, questions: list[Question]) -> list[Question]:
        return sorted(questions, key=lambda q: q.order)


class FormTemplate(BaseModel):
    """A versioned form: ordered sections, each with ordered questions."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    version: str = "1"
    description: Optional[str] = None
    is_active: bool = True
    sections: List[FormSection]

    @field_validator("sections")
    @classmethod
    def _sort_sections(cls, sections: list[FormSection]) -> list[FormSection]:
        return sorted(sections, key=lambda s: s.order)

    @model_validator(mode="after")
    def _chk(self):
        if not self.sections:
            raise ValueError(f"template {self.id!r} has no sections")
        seen: set[str] = set()
        for q in self.questions:
            if q.dictionary_key in seen:
                raise ValueError(f"duplicate dictionary key {q.dictionary_key!r}")
            seen.add(q.dictionary_key)
        cycle = find_rule_cycle(self.questions)
        if cycle:
            raise ValueError(f"conditional rule cycle: {' -> '.join(cycle)}")
        return self

    @property
    def questions(self) -> list[Question]:
        """All questions, in section then question order."""
        return [q for section in self.sections for q in section.questions]

    @property
    def section_count(self) -> int:
        return len(self.sections)

    def question_by_key(self, dictionary_key: str) -> Question | None:
        for q in self.questions:
            if q.dictionary_key == dictionary_key:
                return q
        return None
