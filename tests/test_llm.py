"""Tests for the model fallback chain."""

import pytest

from storygap.errors import GenerationError
from storygap.llm import GenerationClient, _extract_content, is_model_unavailable
from storygap.schemas import Difficulty
from tests.helpers import FakeInferenceClient, StatusError

MODELS = ("primary/model", "fallback/model")


def client_with(responses):
    fake = FakeInferenceClient(responses)
    return GenerationClient(client=fake, models=MODELS, timeout=5), fake


class TestModelChain:
    def test_primary_answers(self):
        client, fake = client_with(["hello"])
        assert client.complete("sys", "user") == "hello"
        assert [c["model"] for c in fake.calls] == ["primary/model"]

    def test_not_found_model_is_skipped(self):
        client, fake = client_with([Exception("Model not found"), "from fallback"])
        assert client.complete("sys", "user") == "from fallback"
        assert [c["model"] for c in fake.calls] == list(MODELS)

    def test_404_status_is_skipped(self):
        client, fake = client_with([StatusError("gone", 404), "ok"])
        assert client.complete("sys", "user") == "ok"

    def test_empty_answer_falls_through(self):
        client, fake = client_with(["   ", "second"])
        assert client.complete("sys", "user") == "second"

    def test_other_error_before_last_falls_through(self):
        client, fake = client_with([StatusError("overloaded", 503), "second"])
        assert client.complete("sys", "user") == "second"

    def test_error_from_last_model_raises(self):
        client, fake = client_with([Exception("Model not found"), StatusError("rate limited", 429)])
        with pytest.raises(GenerationError) as exc:
            client.complete("sys", "user")
        assert exc.value.code == "generation_failed"
        assert "rate limited" in exc.value.message

    def test_all_empty_raises(self):
        client, fake = client_with(["", ""])
        with pytest.raises(GenerationError):
            client.complete("sys", "user")

    def test_no_retries_beyond_chain(self):
        client, fake = client_with([StatusError("boom", 500), StatusError("boom", 500)])
        with pytest.raises(GenerationError):
            client.complete("sys", "user")
        assert len(fake.calls) == 2


class TestGenerate:
    def test_feedback_is_a_trailing_message(self):
        client, fake = client_with(["{}"])
        client.generate("sys", "user", Difficulty.GREEN, 2, feedback="fix it")
        messages = fake.calls[0]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "user"]
        assert messages[-1]["content"] == "fix it"

    def test_tier_parameters(self):
        client, fake = client_with(["{}"])
        client.generate("sys", "user", Difficulty.RED, 3)
        assert fake.calls[0]["temperature"] == 0.6
        assert fake.calls[0]["max_tokens"] == 500 + 90 * 3

    def test_token_budget_is_capped(self):
        client, fake = client_with(["{}"])
        client.generate("sys", "user", Difficulty.GREEN, 8)
        assert fake.calls[0]["max_tokens"] == 800


class TestHelpers:
    def test_missing_token(self):
        client = GenerationClient(models=MODELS)
        with pytest.raises(GenerationError):
            client.complete("sys", "user")

    def test_unavailable_detection(self):
        assert is_model_unavailable(Exception("model_not_supported"))
        assert is_model_unavailable(StatusError("whatever", 410))
        assert not is_model_unavailable(StatusError("server error", 500))

    def test_chunked_content(self):
        resp = {"choices": [{"message": {"content": [{"type": "text", "text": "a"}, {"text": "b"}, "c"]}}]}
        assert _extract_content(resp) == "abc"

    def test_no_choices(self):
        assert _extract_content({"choices": []}) == ""
