# storygap/evaluation.py

"""Scoring of a learner's completed story (coherence, word choice, ending)."""

import json
import logging
from typing import Any, List, Optional

from .errors import EvaluationFailed, GenerationError
from .llm import GenerationClient
from .parser import parse_json_object
from .schemas import EvaluateRequest, EvaluationResult, WordEvaluation

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "Bra jobbat!"

EVALUATOR_SYSTEM = """
You are evaluating a student's fill-in-the-blank story completion.
Score the student's work on three criteria:

1. COHERENCE (0-40 points): Does the completed story make logical sense? Do the sentences flow together?
2. WORD_CHOICE (0-40 points): Are the chosen words appropriate for the context? Do they fit grammatically and semantically?
3. ENDING (0-20 points): Does the story reach a satisfying conclusion? Does it feel complete?

For each wrong word (user word differs from correct word), deduct points based on how badly it affects coherence.
If a wrong word still makes grammatical and semantic sense in context, give partial credit.

Respond with JSON only:
{
  "coherence_score": number,
  "word_choice_score": number,
  "ending_score": number,
  "total_score": number,
  "feedback": "Brief encouraging feedback in Swedish",
  "word_evaluations": [
    {"word": "user word", "correct": "correct word", "points": number, "comment": "brief comment"}
  ]
}
""".strip()


def _score(value: Any, upper: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(upper, v))


def _word_evaluations(value: Any) -> List[WordEvaluation]:
    out: List[WordEvaluation] = []
    if not isinstance(value, list):
        return out
    for item in value:
        if not isinstance(item, dict):
            continue
        out.append(
            WordEvaluation(
                word=str(item.get("word") or ""),
                correct=str(item.get("correct") or ""),
                points=_score(item.get("points"), 40),
                comment=str(item.get("comment") or ""),
            )
        )
    return out


def build_evaluation_prompt(req: EvaluateRequest) -> str:
    return f"""
Evaluate this story completion:

SCENARIO: {req.scenario or 'General setting'}

COMPLETED STORY:
{req.completed_story}

CORRECT WORDS: {json.dumps(req.correct_words, ensure_ascii=False)}
USER'S WORDS: {json.dumps(req.user_words, ensure_ascii=False)}

Evaluate and provide scores.
""".strip()


def evaluate_completion(req: EvaluateRequest, client: Optional[GenerationClient] = None) -> EvaluationResult:
    client = client or GenerationClient()
    try:
        raw = client.complete(EVALUATOR_SYSTEM, build_evaluation_prompt(req), temperature=0.3, max_tokens=500)
    except GenerationError as e:
        raise EvaluationFailed(f"Evaluation failed: {e.message}") from e

    data = parse_json_object(raw)
    if data is None:
        logger.error("Evaluator returned no JSON (%d chars)", len(raw))
        raise EvaluationFailed("Evaluation failed: model returned no JSON.")

    coherence = _score(data.get("coherence_score"), 40)
    word_choice = _score(data.get("word_choice_score"), 40)
    ending = _score(data.get("ending_score"), 20)
    total = data.get("total_score")
    total = _score(total, 100) if total is not None else coherence + word_choice + ending

    return EvaluationResult(
        coherence=coherence,
        wordChoice=word_choice,
        ending=ending,
        total=total,
        feedback=str(data.get("feedback") or "").strip() or DEFAULT_FEEDBACK,
        wordEvaluations=_word_evaluations(data.get("word_evaluations")),
    )
