"""InMemoryAnswerStore and store-backed save callback tests.

Covers the canonical-answer round trip: a session saves through the
callback, the store keeps one value per dictionary key, and a new session
over the same technology is pre-filled from it.
"""

import pytest

from triage_forms.answer_store import InMemoryAnswerStore, store_save_callback
from triage_forms.errors import SaveError
from triage_forms.models.answer import (
    AnswerStatus,
    SaveOptions,
    SavePayload,
    VersionedAnswer,
)
from triage_forms.scheduler import ManualScheduler
from triage_forms.session import FormSession

TECH = "TECH-42"


@pytest.fixture
def store():
    return InMemoryAnswerStore()


class TestInMemoryAnswerStore:
    """Store primitives."""

    @pytest.mark.asyncio
    async def test_upsert_skips_empty_values(self, store):
        written = await store.upsert_answers(TECH, {
            "a.x": VersionedAnswer(value="kept"),
            "a.y": VersionedAnswer(value="   "),
        })
        assert written == ["a.x"]
        assert set(store.answers[TECH]) == {"a.x"}

    @pytest.mark.asyncio
    async def test_upsert_replaces_previous_value(self, store):
        await store.upsert_answers(TECH, {"a.x": VersionedAnswer(value="one")})
        await store.upsert_answers(TECH, {"a.x": VersionedAnswer(value="two")})
        assert store.answers[TECH]["a.x"].value == "two"

    @pytest.mark.asyncio
    async def test_load_splits_repeat_groups(self, store, triage_template):
        rows = [{"name": "Ada"}]
        await store.upsert_answers(TECH, {
            "technology.inventors": VersionedAnswer(value=rows),
            "technology.name": VersionedAnswer(value="Sensor", revision_id="rev-technology-name-1"),
        })
        payload = await store.load(TECH, triage_template)
        assert payload.technology_id == TECH
        assert payload.repeat_groups == {"technology.inventors": rows}
        assert payload.responses == {"technology.name": "Sensor"}
        assert payload.answer_metadata["technology.name"].saved_revision_id == "rev-technology-name-1"

    @pytest.mark.asyncio
    async def test_load_uses_latest_notes(self, store, triage_template):
        await store.record_submission("triage-v1", TECH, None, notes="first")
        await store.record_submission("triage-v1", TECH, None, notes="second")
        await store.record_submission("triage-v1", "OTHER", None, notes="other")
        payload = await store.load(TECH, triage_template)
        assert payload.notes == "second"

    @pytest.mark.asyncio
    async def test_unknown_technology_loads_empty(self, store, triage_template):
        payload = await store.load("nobody", triage_template)
        assert payload.responses == {}
        assert payload.notes is None


class TestStoreSaveCallback:
    """The callback records a submission and upserts template answers."""

    @pytest.mark.asyncio
    async def test_requires_technology_id(self, store, triage_template):
        save = store_save_callback(store, triage_template)
        with pytest.raises(ValueError, match="technology id"):
            await save(SavePayload(template_id="triage-v1"), SaveOptions())

    @pytest.mark.asyncio
    async def test_saves_template_answers_with_revision(self, store, triage_template):
        save = store_save_callback(store, triage_template, answered_by="reviewer")
        outcome = await save(
            SavePayload(
                template_id="triage-v1",
                technology_id=TECH,
                responses={"technology.name": "Sensor", "not.in.template": "x", "triage.summary": ""},
                notes="n",
            ),
            SaveOptions(silent=True),
        )
        record = store.submissions[outcome.submission_id]
        assert record.submitted_by == "reviewer"
        assert record.notes == "n"
        assert record.scores == {}

        answer = store.answers[TECH]["technology.name"]
        assert set(store.answers[TECH]) == {"technology.name"}
        assert answer.revision_id == "rev-technology-name-1"
        assert answer.source_submission_id == outcome.submission_id

    @pytest.mark.asyncio
    async def test_save_submission_stamps_answers(self, store):
        submission_id = await store.save_submission(
            "triage-v1", TECH,
            {"a.x": VersionedAnswer(value="v"), "a.y": VersionedAnswer(value=None)},
            None, submitted_by="me", notes="n",
        )
        assert set(store.answers[TECH]) == {"a.x"}
        assert store.answers[TECH]["a.x"].source_submission_id == submission_id
        assert store.submissions[submission_id].notes == "n"


class FailingUpsertStore(InMemoryAnswerStore):
    """Store whose answer writes always fail."""

    async def upsert_answers(self, technology_id, answers, answered_by=None):
        raise RuntimeError("disk full")


class TestFailedSave:
    """A save that fails part-way leaves nothing behind."""

    @pytest.mark.asyncio
    async def test_failed_answer_write_records_no_submission(self, triage_template):
        store = FailingUpsertStore()
        save = store_save_callback(store, triage_template)
        with pytest.raises(RuntimeError, match="disk full"):
            await save(
                SavePayload(template_id="triage-v1", technology_id=TECH, responses={"technology.name": "S"}),
                SaveOptions(),
            )
        assert store.submissions == {}

    @pytest.mark.asyncio
    async def test_session_retries_do_not_accumulate_submissions(self, triage_template):
        store = FailingUpsertStore()
        session = FormSession(
            triage_template,
            await store.load(TECH, triage_template),
            save=store_save_callback(store, triage_template),
            scheduler=ManualScheduler(),
            autosave=False,
        )
        session.update_response("technology.name", "Sepsis sensor")
        for _ in range(2):
            with pytest.raises(SaveError):
                await session.flush_save()
        assert store.submissions == {}
        assert store.answers == {}
        assert session.dirty_keys == {"technology.name"}


class TestRoundTrip:
    """Canonical answers written by one session pre-fill the next."""

    @pytest.mark.asyncio
    async def test_session_round_trip(self, store, triage_template):
        scheduler = ManualScheduler()
        session = FormSession(
            triage_template,
            await store.load(TECH, triage_template),
            save=store_save_callback(store, triage_template),
            scheduler=scheduler,
            autosave=False,
        )
        session.update_response("technology.name", "Sepsis sensor")
        session.update_response("triage.missionAlignmentScore", 3)
        session.update_repeat_group("technology.inventors", [{"name": "Ada"}])
        await session.flush_save()
        session.close()

        record = next(iter(store.submissions.values()))
        assert record.scores["impact_score"] == 1.5

        reopened = FormSession(
            triage_template,
            await store.load(TECH, triage_template),
            scheduler=ManualScheduler(),
        )
        assert reopened.responses["technology.name"] == "Sepsis sensor"
        assert reopened.responses["triage.missionAlignmentScore"] == 3.0
        assert reopened.repeat_groups["technology.inventors"] == [{"name": "Ada"}]
        assert reopened.answer_metadata["triage.missionAlignmentScore"].status == AnswerStatus.CURRENT
        assert reopened.answer_metadata["triage.unmetNeedScore"].status == AnswerStatus.UNANSWERED

    @pytest.mark.asyncio
    async def test_answer_saved_on_old_revision_is_stale(self, store, triage_template):
        await store.upsert_answers(TECH, {
            "triage.missionAlignmentScore": VersionedAnswer(value=2, revision_id="rev-mission-1"),
        })
        session = FormSession(
            triage_template,
            await store.load(TECH, triage_template),
            scheduler=ManualScheduler(),
        )
        meta = session.answer_metadata["triage.missionAlignmentScore"]
        assert meta.status == AnswerStatus.STALE
        assert meta.current_revision_id == "rev-mission-2"
        assert session.responses["triage.missionAlignmentScore"] == 2.0
