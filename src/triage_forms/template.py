"""TemplateStore — loads YAML form templates into typed models.

Templates are loaded once at startup and are immutable afterwards.  Each
``*.yaml`` / ``*.yml`` file under the template directory holds one template
(a mapping) or several (a list of mappings).

Usage::

    store = TemplateStore()          # defaults to templates/ relative to repo root
    store.load()                     # parse and check all YAML files

    template = store.get("triage-v1")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from triage_forms.errors import TemplateError
from triage_forms.models.template import FormTemplate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_template(raw: Any, source: str = "<memory>") -> FormTemplate:
    """Build a FormTemplate from a raw mapping.

    Raises ``TemplateError`` for duplicate dictionary keys, unrecognized
    conditional operators/actions, rule cycles or missing fields.
    """
    if not isinstance(raw, dict):
        raise TemplateError(f"Template in {source} must be a mapping, got {type(raw).__name__}")
    try:
        return FormTemplate.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        detail = f"{location}: {first['msg']}" if location else first["msg"]
        raise TemplateError(f"Invalid template in {source}: {detail}") from exc


# ---------------------------------------------------------------------------
# TemplateStore
# ---------------------------------------------------------------------------

class TemplateStore:
    """Loads all templates from a directory and provides lookup by id."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = find_repo_root() / "templates"
        self._base = Path(template_dir)

        # Populated by load() / add()
        self.templates: dict[str, FormTemplate] = {}

    def load(self) -> None:
        """Parse every YAML file under the template directory.

        Call this once at startup.  Raises ``FileNotFoundError`` if the
        directory is missing and ``TemplateError`` for invalid templates.
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing template directory: {self._base}")

        paths = sorted([*self._base.glob("*.yaml"), *self._base.glob("*.yml")])
        for path in paths:
            raw = load_yaml(path)
            entries = raw if isinstance(raw, list) else [raw]
            for entry in entries:
                self.add(parse_template(entry, source=path.name))

        logger.info(
            "TemplateStore loaded: %d templates from %s", len(self.templates), self._base
        )

    def add(self, template: FormTemplate) -> None:
        """Register an already-parsed template."""
        if template.id in self.templates:
            raise TemplateError(f"Template '{template.id}' already exists")
        self.templates[template.id] = template

    def get(self, template_id: str) -> FormTemplate:
        """Look up a template by id.

        Raises:
            KeyError: if no template has this id.
        """
        return self.templates[template_id]

    def list_templates(self, active_only: bool = False) -> list[FormTemplate]:
        """All templates sorted by id, optionally only active ones."""
        return [
            t for _, t in sorted(self.templates.items())
            if t.is_active or not active_only
        ]
