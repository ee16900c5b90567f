"""Tests for the HTTP surface.

The model is replaced by overriding get_client with a scripted client.
"""

import json

import pytest
from fastapi.testclient import TestClient

from storygap.main import app, get_client
from tests.helpers import WHALE_OWL_OK, WHALE_TWICE, make_client


@pytest.fixture
def api():
    """Factory: TestClient whose model answers with the given script."""

    def _make(responses=()):
        client = make_client(list(responses))
        app.dependency_overrides[get_client] = lambda: client
        return TestClient(app), client._client

    yield _make
    app.dependency_overrides.clear()


class TestRootEndpoints:
    def test_root_redirects_to_docs(self, api):
        http, _ = api()
        response = http.get("/", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/docs"

    def test_health(self, api):
        http, _ = api()
        data = http.get("/health").json()
        assert data["status"] == "ok"
        assert data["ambiguity_check"] is False
        assert len(data["models"]) >= 1

    def test_meta(self, api):
        http, _ = api()
        data = http.get("/meta").json()
        assert set(data["difficulties"]) == {"green", "yellow", "red"}
        assert data["default_difficulty"] == "yellow"
        assert data["max_words"] == 8


class TestStoryGap:
    def test_success(self, api):
        """A valid first answer comes back as the exercise JSON."""
        http, fake = api([WHALE_OWL_OK])
        response = http.post("/story-gap", json={"wordSet": ["whale", "owl"], "difficulty": "green"})
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"gap_text", "solution_text", "used_words", "gaps_meta", "notes"}
        assert data["used_words"] == ["whale", "owl"]
        assert [m["index"] for m in data["gaps_meta"]] == [1, 2]
        assert len(fake.calls) == 1

    def test_swedish_difficulty_alias(self, api):
        http, fake = api([WHALE_OWL_OK])
        response = http.post("/story-gap", json={"wordSet": ["whale", "owl"], "difficulty": "röd"})
        assert response.status_code == 200
        assert fake.calls[0]["temperature"] == 0.6

    def test_missing_word_set(self, api):
        """Bad input is rejected before any model call."""
        http, fake = api()
        response = http.post("/story-gap", json={"difficulty": "green"})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"
        assert fake.calls == []

    def test_no_usable_words(self, api):
        http, fake = api()
        response = http.post("/story-gap", json={"wordSet": ["", "  "]})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_words"

    def test_unknown_difficulty(self, api):
        http, _ = api()
        response = http.post("/story-gap", json={"wordSet": ["owl"], "difficulty": "purple"})
        assert response.status_code == 400

    def test_nested_words_are_a_client_error(self, api):
        """A word contained in another word is refused up front, not retried."""
        http, fake = api()
        response = http.post("/story-gap", json={"wordSet": ["ice", "ice cream"]})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "preflight_failed"
        assert data["retryable"] is False
        assert fake.calls == []

    def test_exhausted_budget(self, api):
        """Three rejected attempts end in a retryable 502 with diagnostics."""
        http, fake = api([WHALE_TWICE] * 3)
        response = http.post("/story-gap", json={"wordSet": ["whale", "owl"]})
        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "story_gap_failed"
        assert data["retryable"] is True
        assert data["missing_words"] == ["owl"]
        assert data["attempts"] == 3


class TestEvaluate:
    def test_evaluate(self, api):
        answer = json.dumps({"coherence_score": 35, "word_choice_score": 30, "ending_score": 15, "total_score": 80})
        http, _ = api([answer])
        response = http.post(
            "/story-gap/evaluate",
            json={
                "completedStory": "The whale sings. An owl hoots.",
                "correctWords": ["whale", "owl"],
                "userWords": ["whale", "owl"],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 80
        assert data["feedback"] == "Bra jobbat!"

    def test_evaluate_missing_fields(self, api):
        http, fake = api()
        response = http.post("/story-gap/evaluate", json={"completedStory": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"
        assert fake.calls == []

    def test_evaluate_model_failure(self, api):
        http, _ = api(["not json"])
        response = http.post(
            "/story-gap/evaluate",
            json={"completedStory": "x", "correctWords": ["a"], "userWords": ["b"]},
        )
        assert response.status_code == 502
        assert response.json()["error"] == "evaluation_failed"
