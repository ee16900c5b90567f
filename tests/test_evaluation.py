"""Tests for scoring a learner's completed story."""

import json

import pytest

from storygap.errors import EvaluationFailed
from storygap.evaluation import DEFAULT_FEEDBACK, build_evaluation_prompt, evaluate_completion
from storygap.schemas import EvaluateRequest
from tests.helpers import make_client


@pytest.fixture
def request_body():
    return EvaluateRequest.model_validate(
        {
            "completedStory": "The whale sings in the sea. An owl hoots at night.",
            "correctWords": ["whale", "owl"],
            "userWords": ["whale", "cat"],
        }
    )


def test_prompt_lists_both_word_sets(request_body):
    prompt = build_evaluation_prompt(request_body)
    assert 'CORRECT WORDS: ["whale", "owl"]' in prompt
    assert 'USER\'S WORDS: ["whale", "cat"]' in prompt
    assert "SCENARIO: General setting" in prompt


def test_scores_are_clamped(request_body):
    answer = json.dumps(
        {
            "coherence_score": 55,
            "word_choice_score": -3,
            "ending_score": 12,
            "total_score": 150,
            "feedback": "Snyggt!",
            "word_evaluations": [{"word": "cat", "correct": "owl", "points": 5, "comment": "does not hoot"}],
        }
    )
    result = evaluate_completion(request_body, client=make_client([answer]))
    assert (result.coherence, result.wordChoice, result.ending, result.total) == (40, 0, 12, 100)
    assert result.feedback == "Snyggt!"
    assert result.wordEvaluations[0].comment == "does not hoot"


def test_missing_total_and_feedback(request_body):
    answer = json.dumps({"coherence_score": 30, "word_choice_score": 20, "ending_score": 10})
    result = evaluate_completion(request_body, client=make_client([answer]))
    assert result.total == 60
    assert result.feedback == DEFAULT_FEEDBACK
    assert result.wordEvaluations == []


def test_no_json_fails(request_body):
    with pytest.raises(EvaluationFailed) as exc:
        evaluate_completion(request_body, client=make_client(["I liked it!"]))
    assert exc.value.code == "evaluation_failed"


def test_model_failure_fails(request_body):
    with pytest.raises(EvaluationFailed):
        evaluate_completion(request_body, client=make_client([Exception("upstream down")]))
