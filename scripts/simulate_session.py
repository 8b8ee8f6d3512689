#!/usr/bin/env python3
"""Walk a form template end-to-end with an in-memory answer store.

Opens a FormSession over a template, answers every visible question
section by section (random or deterministic mock answers), lets the
debounced validation and autosave fire on a virtual clock, and prints the
visibility, errors and scores after each section.  A second session over
the same technology is then opened to show canonical answers pre-filling it.

Usage::

    # Default run (random answers over templates/triage.yaml)
    python scripts/simulate_session.py

    # Deterministic answers
    python scripts/simulate_session.py --no-random

    # Another template
    python scripts/simulate_session.py -t my-template-id --template-dir ./templates

    # List loaded templates
    python scripts/simulate_session.py --list-templates
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Ensure project root is on sys.path so the SDK imports without installing.
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from rich.console import Console  # noqa: E402
from rich.table import Table  # noqa: E402

from triage_forms.answer_store import InMemoryAnswerStore, store_save_callback  # noqa: E402
from triage_forms.constants import AUTOSAVE_DEBOUNCE_MS  # noqa: E402
from triage_forms.models.question import FieldType, Question  # noqa: E402
from triage_forms.models.template import FormTemplate  # noqa: E402
from triage_forms.scheduler import ManualScheduler  # noqa: E402
from triage_forms.session import FormSession  # noqa: E402
from triage_forms.template import TemplateStore  # noqa: E402

TECHNOLOGY_ID = "TECH-SIM-001"
_DEFAULT_TEMPLATE = "triage-v1"

_RANDOM_TEXT_POOL = [
    "Wearable sensor for early sepsis detection",
    "Point-of-care assay for antibiotic resistance",
    "Software platform for remote cardiac rehab",
    "Low-cost neonatal oxygen concentrator",
]

console = Console()


# ---------------------------------------------------------------------------
# Mock answer generation
# ---------------------------------------------------------------------------

def mock_answer(question: Question, randomise: bool) -> Any:
    """Produce a plausible answer for ``question``."""
    qt = question.type
    if qt == FieldType.SCORING_0_3:
        return random.choice([0, 1, 2, 3]) if randomise else 2
    if qt == FieldType.INTEGER:
        return random.randint(1, 100) if randomise else 10
    if qt == FieldType.SINGLE_SELECT and question.options:
        return random.choice(question.options).value if randomise else question.options[-1].value
    if qt in (FieldType.MULTI_SELECT, FieldType.CHECKBOX_GROUP) and question.options:
        return [opt.value for opt in question.options[:2]]
    if qt == FieldType.DATE:
        return "2026-01-15"
    if qt in (FieldType.REPEATABLE_GROUP, FieldType.DATA_TABLE_SELECTOR):
        columns = question.repeatable_config.columns if question.repeatable_config else []
        return [{col.key: f"{col.label} {i}" for col in columns} for i in (1, 2)]
    if qt == FieldType.SHORT_TEXT and "email" in question.dictionary_key.lower():
        return "inventor@example.org"
    if randomise:
        return random.choice(_RANDOM_TEXT_POOL)
    return "Wearable sensor for early sepsis detection, validated in a pilot study"


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def print_section(session: FormSession) -> None:
    section = session.current_section
    table = Table(title=f"{section.code} — {section.title}", show_lines=False)
    table.add_column("Key", min_width=30)
    table.add_column("Visible", width=8)
    table.add_column("Required", width=9)
    table.add_column("Value")
    table.add_column("Error", style="red")
    for q in section.questions:
        key = q.dictionary_key
        value = session.repeat_groups.get(key) if q.is_repeat_group else session.responses.get(key)
        table.add_row(
            key,
            "yes" if key in session.visible_keys else "[dim]no[/]",
            "yes" if key in session.required_keys else "",
            "" if value is None else str(value),
            session.errors.get(key, ""),
        )
    console.print(table)


def print_scores(session: FormSession) -> None:
    scores = session.calculated_scores
    if scores is None:
        console.print("  [dim]Template has no scoring questions[/]")
        return
    console.print(
        f"  Impact {scores.impact_score}  Value {scores.value_score}  "
        f"Market {scores.market_score}  Overall {scores.overall_score}"
    )
    console.print(f"  [bold]{scores.recommendation_text}[/]")


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

async def run_simulation(template: FormTemplate, randomise: bool) -> bool:
    answer_store = InMemoryAnswerStore()
    scheduler = ManualScheduler()
    session = FormSession(
        template,
        await answer_store.load(TECHNOLOGY_ID, template),
        save=store_save_callback(answer_store, template, answered_by="simulator"),
        scheduler=scheduler,
        on_save_error=lambda err: console.print(f"  [red]ERROR[/] {err}"),
    )

    console.rule(f"[bold]{template.name} (v{template.version})")
    for _ in range(session.section_count):
        for q in session.current_section.questions:
            if q.dictionary_key not in session.visible_keys or q.type == FieldType.SCORING_MATRIX:
                continue
            answer = mock_answer(q, randomise)
            if q.is_repeat_group:
                session.update_repeat_group(q.dictionary_key, answer)
            else:
                session.update_response(q.dictionary_key, answer)
        # Let debounced validation and autosave fire
        await scheduler.advance(AUTOSAVE_DEBOUNCE_MS)
        print_section(session)
        session.next_section()

    console.rule("[bold]Scores")
    print_scores(session)

    errors = session.validate_submission()
    await session.flush_save()
    session.close()

    console.rule("[bold]Submission")
    if errors:
        for key, msg in errors.items():
            console.print(f"  [yellow]![/] {key}: {msg}")
    else:
        console.print("  [green]✓[/] All visible questions valid")
    console.print(f"  Submissions recorded: {len(answer_store.submissions)}")

    # Reopen: canonical answers pre-fill a fresh session
    reopened = FormSession(
        template,
        await answer_store.load(TECHNOLOGY_ID, template),
        scheduler=ManualScheduler(),
    )
    prefilled = sum(1 for meta in reopened.answer_metadata.values() if meta.status.value == "CURRENT")
    console.print(f"  Reopened session pre-filled {prefilled} current answers")
    reopened.close()
    return not errors


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Walk a form template end-to-end with an in-memory answer store.",
    )
    parser.add_argument(
        "-t", "--template",
        default=_DEFAULT_TEMPLATE,
        help="Template id to simulate (default: triage-v1)",
    )
    parser.add_argument(
        "--template-dir",
        default=None,
        help="Directory of YAML templates (default: templates/ at the repo root)",
    )
    parser.add_argument(
        "--list-templates",
        action="store_true",
        help="List all loaded templates and exit",
    )
    parser.add_argument(
        "--random",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Randomise mock answers (default: on). Use --no-random for deterministic mode.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show SDK debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    store = TemplateStore(template_dir=args.template_dir)
    store.load()

    if args.list_templates:
        for t in store.list_templates():
            console.print(f"  {t.id:<20s} {t.name} ({t.section_count} sections)")
        sys.exit(0)

    ok = asyncio.run(run_simulation(store.get(args.template), args.random))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
