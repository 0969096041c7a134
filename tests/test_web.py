"""HTTP surface of the quiz app."""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import TEST_SECRET
from pipeline_score.config import Settings, get_settings
from pipeline_score.dataforseo import LocalPackResult, SerpResult
from pipeline_score.result_token import verify
from pipeline_score.web import app, get_provider

ANSWERS = {
    "fullName": "Dana Smith",
    "businessName": "Smith Coatings",
    "city": "Milwaukee, WI",
    "services": ["Epoxy", "Polyurea", "Polyaspartic"],
    "radius": 45,
    "responseTime": 5,
    "smsCapability": "both",
    "premiumPages": "all",
    "reviewCount": 12,
    "businessData": {"hasGBP": True, "name": "Smith Coatings", "placeId": "ChIJ-smith"},
}


class StubProvider:
    async def location_code(self, city):
        return 1017000

    async def search_volumes(self, keywords, location_code):
        return {kw.lower(): 1000 for kw in keywords}

    async def serp(self, keyword, location_code):
        return SerpResult(local_pack=[LocalPackResult(place_id="ChIJ-smith", position=3)])


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_provider] = StubProvider
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit(client, **overrides):
    body = {"quizId": "qz_1a2b3c4d", "email": "dana@smithcoatings.com", "answers": ANSWERS,
            "utm": {"utm_source": "google"}, "consent": True}
    body.update(overrides)
    return client.post("/api/quiz/submit", json=body)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_start_issues_quiz_id(client):
    quiz_id = client.post("/api/quiz/start").json()["quizId"]
    assert quiz_id.startswith("qz_")
    assert len(quiz_id) == 11


def test_submit_returns_verifiable_token(client):
    response = _submit(client)
    assert response.status_code == 200
    data = response.json()
    summary = verify(data["resultToken"], TEST_SECRET)
    assert summary.quiz_id == "qz_1a2b3c4d"
    assert data["resultPath"] == f"/r/{data['resultToken']}"
    assert data["branch"] == summary.branch
    assert len(summary.top_moves) == 3


def test_submit_requires_core_fields(client):
    response = client.post("/api/quiz/submit", json={"email": "dana@smithcoatings.com"})
    assert response.status_code == 400


def test_submit_rejects_unknown_choice(client):
    response = _submit(client, answers={**ANSWERS, "smsCapability": "carrier pigeon"})
    assert response.status_code == 400
    assert "smsCapability" in response.json()["detail"]


def test_submit_rejects_non_numeric_seo_rank(client):
    seo = {"rankings": [{"keyword": "epoxy flooring milwaukee", "searchVolume": 500, "currentRank": "third"}]}
    response = _submit(client, answers={**ANSWERS, "seoIntelligence": seo})
    assert response.status_code == 400


def test_submit_accepts_numeric_string_rank(client):
    seo = {"rankings": [{"keyword": "epoxy flooring milwaukee", "searchVolume": 500, "currentRank": "3"}]}
    response = _submit(client, answers={**ANSWERS, "seoIntelligence": seo})
    assert response.status_code == 200


def test_result_round_trip(client):
    token = _submit(client).json()["resultToken"]
    data = client.get(f"/api/results/{token}").json()
    assert data["quizId"] == "qz_1a2b3c4d"
    assert set(data) == {"quizId", "branch", "score", "band", "scoreBucket", "forecast", "topMoves"}
    assert "email" not in data


def test_tampered_result_is_rejected(client):
    token = _submit(client).json()["resultToken"]
    header, payload, mac = token.split(".")
    response = client.get(f"/api/results/{header}.{payload}.{mac[::-1]}")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid token"


def test_email_report_not_queued_without_kit(client):
    token = _submit(client).json()["resultToken"]
    response = client.post("/api/email-report", json={"token": token, "email": "dana@smithcoatings.com"})
    assert response.json() == {"success": True, "queued": False}


def test_email_report_rejects_bad_token(client):
    response = client.post("/api/email-report", json={"token": "a.b.c", "email": "x@y.com"})
    assert response.status_code == 400


def test_seo_rankings(client):
    response = client.post("/api/seo-rankings", json={
        "keywords": ["epoxy flooring milwaukee", "garage flooring milwaukee"],
        "businessPlaceId": "ChIJ-smith",
        "city": "Milwaukee, WI",
        "services": ["Epoxy"],
    })
    data = response.json()
    assert data["success"] is True
    assert data["totalKeywords"] == 2
    # 1000 * (0.446 - 0.098) = 348 per keyword
    assert [r["missedLeadsPerMonth"] for r in data["rankings"]] == [348, 348]
    assert data["totalMissedLeads"] == 696
    assert data["topOpportunity"] == "epoxy flooring milwaukee"
    assert [r["isServiceKeyword"] for r in data["rankings"]] == [True, False]
    assert [r["priority"] for r in data["rankings"]] == ["high", "high"]


def test_seo_rankings_requires_parameters(client):
    response = client.post("/api/seo-rankings", json={"keywords": ["a"]})
    assert response.status_code == 400


def test_seo_volumes(client):
    response = client.post("/api/seo-volumes", json={"keywords": ["Epoxy Flooring"], "city": "Madison"})
    assert response.json() == {"success": True, "city": "Madison", "volumes": {"epoxy flooring": 1000}}


def test_seo_endpoints_need_credentials():
    app.dependency_overrides[get_settings] = lambda: Settings(results_token_secret=TEST_SECRET)
    try:
        response = TestClient(app).post("/api/seo-volumes", json={"keywords": ["a"], "city": "Madison"})
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500


def test_cities_lists_every_served_market(client):
    cities = client.get("/api/cities").json()["cities"]
    assert "Milwaukee" in cities and "De Pere" in cities
    assert cities == sorted(cities)


def test_provider_and_http_client_shared_across_requests(settings, monkeypatch):
    monkeypatch.setenv("PIPELINE_ENV", "development")
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if request.url.path.endswith("/locations/US"):
            return httpx.Response(200, json={"tasks": [{"status_code": 20000, "result": [
                {"location_code": 1017000, "location_name": "Milwaukee,Wisconsin,United States",
                 "location_type": "City"},
            ]}]})
        return httpx.Response(200, json={"tasks": [{"status_code": 20000, "result": [
            {"keyword": "epoxy flooring", "search_volume": 880},
        ]}]})

    app.dependency_overrides[get_settings] = lambda: settings
    try:
        with TestClient(app) as shared:
            opened = app.state.http
            app.state.http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            for _ in range(2):
                response = shared.post("/api/seo-volumes", json={"keywords": ["epoxy flooring"], "city": "Milwaukee"})
                assert response.json()["volumes"] == {"epoxy flooring": 880}
            assert len(app.state.providers) == 1
            app.state.http = opened
    finally:
        app.dependency_overrides.clear()
        app.state.http = None
        app.state.providers = None

    # The second request reused the cached location code
    assert calls.count("/v3/keywords_data/google_ads/locations/US") == 1
    assert opened.is_closed
