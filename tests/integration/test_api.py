"""API tests through the FastAPI test client with the full lifespan."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from smile_report import samples
from smile_report.api.app import create_app
from smile_report.config.settings import Settings


def body_for(intake) -> dict:
    return {
        "session_id": intake.session_id,
        "answers": [{"question_id": a.question_id, "answer": a.answer} for a in intake.answers],
        "metadata": intake.metadata,
    }


@pytest.fixture
def client(tmp_path: Path):
    settings = Settings(
        api_keys="k1,k2",
        jwt_secret="test-secret",
        sqlite_audit_db_path=str(tmp_path / "audits.db"),
        llm_evaluator_enabled=False,
        log_json=False,
        rate_limit_requests_per_minute=20,
    )
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def headers(client):
    resp = client.post("/auth/token", json={"api_key": "k2"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["rule_versions"]["composition"] == "1.0.0"
    assert data["audits_by_outcome"] == {}
    assert resp.headers["X-Request-ID"]
    assert "X-Duration-MS" in resp.headers


def test_request_id_is_propagated(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert resp.headers["X-Request-ID"] == "req-42"


def test_token_rejects_unknown_key(client):
    resp = client.post("/auth/token", json={"api_key": "wrong"})
    assert resp.status_code == 401


def test_token_unavailable_without_keys(tmp_path):
    settings = Settings(api_keys="", sqlite_audit_db_path=str(tmp_path / "a.db"), log_json=False)
    with TestClient(create_app(settings)) as c:
        assert c.post("/auth/token", json={"api_key": "k1"}).status_code == 503


def test_report_requires_token(client):
    resp = client.post("/report", json=body_for(samples.minimal()))
    assert resp.status_code in (401, 403)


def test_report_rejects_bad_token(client):
    resp = client.post(
        "/report", json=body_for(samples.minimal()), headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401


def test_create_report(client, headers):
    resp = client.post("/report", json=body_for(samples.single_missing_front_tooth()), headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["outcome"] == "PASS"
    assert data["scenario"] == "S02"
    assert data["tone"] == "TP-02"
    assert data["report"]["sections"][0]["section_number"] <= data["report"]["sections"][-1]["section_number"]
    assert data["error"] is None

    audit = client.get("/audits/sample-001", headers=headers)
    assert audit.status_code == 200
    assert audit.json()["final_outcome"] == "PASS"


def test_blocked_report_is_not_an_http_error(client, headers):
    resp = client.post("/report", json={"session_id": "blocked-1", "answers": []}, headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is False
    assert data["outcome"] == "BLOCK"
    assert data["scenario"] == "VALIDATION_ERROR"
    assert data["report"] is None
    assert data["error"].startswith("Input validation failed")


def test_quick_report(client, headers):
    resp = client.post("/report/quick", json=body_for(samples.urgent_pain()), headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is True
    assert data["scenario"] == "S12"
    assert data["drivers"]["clinical_priority"] == "urgent"


def test_invalid_request_body(client, headers):
    resp = client.post("/report", json={"answers": "nope"}, headers=headers)
    assert resp.status_code == 422


def test_audit_endpoints(client, headers):
    assert client.get("/audits/unknown", headers=headers).status_code == 404

    client.post("/report", json=body_for(samples.premium_aesthetic()), headers=headers)
    listing = client.get("/audits", params={"limit": 5}, headers=headers)
    assert listing.status_code == 200
    assert [a["session_id"] for a in listing.json()] == ["sample-003"]

    assert client.get("/audits", params={"limit": 0}, headers=headers).status_code == 422

    health = client.get("/health").json()
    assert sum(health["audits_by_outcome"].values()) == 1


def test_audits_unavailable_without_persistence(tmp_path):
    settings = Settings(api_keys="k1", persist_audits=False, log_json=False)
    with TestClient(create_app(settings)) as c:
        token = c.post("/auth/token", json={"api_key": "k1"}).json()["access_token"]
        resp = c.get("/audits/x", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 503


def test_rate_limit(client, headers):
    statuses = [client.get("/audits", headers=headers).status_code for _ in range(21)]
    assert statuses[:20] == [200] * 20
    assert statuses[20] == 429
