"""REST API tests against the in-memory answer store.

Runs the full application (lifespan included) through FastAPI's
TestClient, so templates are loaded from the repository's templates/
directory and sessions are hosted by the real SessionRegistry.
"""

import pytest
from fastapi.testclient import TestClient

from triage_forms.template import find_repo_root
from triage_server.app import create_app
from triage_server.config import ServerSettings, load_settings

API = "/api/v1"
TECH = "TECH-API-1"


@pytest.fixture
def client():
    settings = ServerSettings(
        answer_store="memory",
        autosave=False,
        template_dir=str(find_repo_root() / "templates"),
    )
    with TestClient(create_app(settings)) as c:
        yield c


def open_session(client, technology_id=TECH, **extra):
    resp = client.post(f"{API}/sessions", json={
        "template_id": "triage-v1", "technology_id": technology_id, **extra,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


# =====================================================================
# Health and templates
# =====================================================================


class TestTemplates:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.json() == {"status": "ok", "answer_store": "memory"}

    def test_list_templates(self, client):
        resp = client.get(f"{API}/templates")
        assert resp.status_code == 200
        summary = next(t for t in resp.json() if t["id"] == "triage-v1")
        assert summary["section_count"] == 4

    def test_get_template(self, client):
        resp = client.get(f"{API}/templates/triage-v1")
        assert resp.status_code == 200
        assert resp.json()["sections"][0]["code"] == "F0"

    def test_unknown_template_is_404(self, client):
        resp = client.get(f"{API}/templates/missing")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}

    def test_evaluate(self, client):
        resp = client.post(f"{API}/templates/triage-v1/evaluate", json={
            "responses": {
                "technology.developmentStage": "clinical",
                "triage.missionAlignmentScore": 3,
                "triage.unmetNeedScore": 3,
            },
        })
        assert resp.status_code == 200
        body = resp.json()
        assert "technology.clinicalTrialPhase" in body["visible_keys"]
        assert "technology.clinicalTrialPhase" in body["required_keys"]
        assert body["errors"]["technology.clinicalTrialPhase"] == "Clinical Trial Phase is required"
        assert body["calculated_scores"]["impact_score"] == 3.0

    def test_scoring_calculate(self, client):
        resp = client.post(f"{API}/scoring/calculate", json={"responses": {"triage.marketScore": "3"}})
        assert resp.status_code == 200
        body = resp.json()
        assert body["inputs"]["market_size_score"] == 3.0
        assert body["result"]["market_score"] == 1.0
        assert body["result"]["recommendation"] == "Close"


# =====================================================================
# Sessions
# =====================================================================


class TestSessions:
    """Session lifecycle over HTTP."""

    def test_create_and_get(self, client):
        created = open_session(client)
        state = created["state"]
        assert state["technology_id"] == TECH
        assert state["current_section_index"] == 0
        assert "technology.clinicalTrialPhase" not in state["visible_keys"]

        resp = client.get(f"{API}/sessions/{created['session_id']}")
        assert resp.status_code == 200

    def test_unknown_session_is_404(self, client):
        assert client.get(f"{API}/sessions/nope").status_code == 404

    def test_update_response_updates_visibility(self, client):
        sid = open_session(client)["session_id"]
        resp = client.put(
            f"{API}/sessions/{sid}/responses/technology.developmentStage",
            json={"value": "clinical"},
        )
        assert resp.status_code == 200
        state = resp.json()["state"]
        assert "technology.clinicalTrialPhase" in state["visible_keys"]
        assert state["dirty_keys"] == ["technology.developmentStage"]

    def test_unknown_question_is_404(self, client):
        sid = open_session(client)["session_id"]
        resp = client.put(f"{API}/sessions/{sid}/responses/no.such.key", json={"value": 1})
        assert resp.status_code == 404

    def test_wrong_question_kind_is_400(self, client):
        sid = open_session(client)["session_id"]
        resp = client.put(f"{API}/sessions/{sid}/repeat-groups/technology.name", json={"rows": []})
        assert resp.status_code == 400
        resp = client.put(f"{API}/sessions/{sid}/responses/technology.inventors", json={"value": []})
        assert resp.status_code == 400

    def test_navigation(self, client):
        sid = open_session(client)["session_id"]
        assert client.post(f"{API}/sessions/{sid}/next").json()["state"]["current_section_index"] == 1
        assert client.post(f"{API}/sessions/{sid}/previous").json()["state"]["current_section_index"] == 0
        assert client.post(f"{API}/sessions/{sid}/previous").json()["state"]["current_section_index"] == 0

    def test_validate(self, client):
        sid = open_session(client)["session_id"]
        body = client.post(f"{API}/sessions/{sid}/validate").json()
        assert body["valid"] is False
        assert body["errors"]["technology.name"] == "Technology Name is required"

    def test_save_prefills_next_session(self, client):
        sid = open_session(client)["session_id"]
        client.put(f"{API}/sessions/{sid}/responses/technology.name", json={"value": "Sepsis sensor"})
        client.put(
            f"{API}/sessions/{sid}/repeat-groups/technology.inventors",
            json={"rows": [{"name": "Ada", "department": "Bioengineering"}]},
        )
        resp = client.post(f"{API}/sessions/{sid}/save")
        assert resp.status_code == 200
        body = resp.json()
        assert body["saved"] is True
        assert body["submission_id"]
        assert body["state"]["dirty_keys"] == []
        assert body["state"]["answer_metadata"]["technology.name"]["status"] == "CURRENT"

        second = open_session(client)["state"]
        assert second["responses"]["technology.name"] == "Sepsis sensor"
        assert second["repeat_groups"]["technology.inventors"][0]["name"] == "Ada"

    def test_deferred_save(self, client):
        sid = open_session(client)["session_id"]
        resp = client.post(f"{API}/sessions/{sid}/save", json={"explicit": False})
        assert resp.status_code == 200
        assert resp.json()["saved"] is False

    def test_refresh(self, client):
        sid = open_session(client)["session_id"]
        resp = client.post(f"{API}/sessions/{sid}/refresh")
        assert resp.json()["replaced"] is False, "canonical answers unchanged"

        other = open_session(client)["session_id"]
        client.put(f"{API}/sessions/{other}/responses/technology.name", json={"value": "Remote edit"})
        client.post(f"{API}/sessions/{other}/save")

        resp = client.post(f"{API}/sessions/{sid}/refresh")
        body = resp.json()
        assert body["replaced"] is True
        assert body["state"]["responses"]["technology.name"] == "Remote edit"

    def test_override_payload(self, client):
        state = open_session(
            client, override={"responses": {"technology.name": "Preview"}},
        )["state"]
        assert state["responses"]["technology.name"] == "Preview"
        assert state["technology_id"] == TECH

    def test_close(self, client):
        sid = open_session(client)["session_id"]
        assert client.delete(f"{API}/sessions/{sid}").status_code == 204
        assert client.get(f"{API}/sessions/{sid}").status_code == 404
        assert client.delete(f"{API}/sessions/{sid}").status_code == 404


class TestSettings:
    def test_load_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("ANSWER_STORE", "memory")
        monkeypatch.setenv("SERVER_AUTOSAVE", "off")
        monkeypatch.setenv("SERVER_CORS_ORIGINS", "http://a, http://b")
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/triage")
        monkeypatch.setenv("PG_POOL_SIZE", "7")
        settings = load_settings()
        assert settings.answer_store == "memory"
        assert settings.autosave is False
        assert settings.cors_origins == ["http://a", "http://b"]
        assert settings.database.url == "postgresql+asyncpg://u:p@db/triage"
        assert settings.database.pool_size == 7

    def test_unsupported_answer_store(self, monkeypatch):
        monkeypatch.setenv("ANSWER_STORE", "sqlite")
        with pytest.raises(ValueError):
            load_settings()
