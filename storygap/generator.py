# storygap/generator.py

"""
Generate -> parse -> validate loop for story gap exercises.

- 1 initial attempt + up to 2 corrective retries for structural/contextual failures
- 1 extra regeneration when the text contains a placeholder ("the word is ...")
- 1 extra regeneration for grammar findings; the original is kept unless the
  retry is still valid and has strictly fewer findings
- A failed budget ends in StoryGapFailed; nothing is patched up and shipped
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple, Union

from .ambiguity import AmbiguityChallenger
from .errors import GenerationError, StoryGapFailed
from .grammar import lint_grammar
from .llm import GenerationClient
from .parser import normalize_exercise
from .prompts import build_generation_prompt, multi_word
from .schemas import Difficulty, Exercise, check_preflight, preflight_warnings
from .validators import (
    GAP_COUNT_MISMATCH,
    MUST_BE_ONCE,
    ContextualFailure,
    GrammarIssues,
    NoOutput,
    Ok,
    StructuralFailure,
    ValidationResult,
    check_context,
    check_structure,
)

logger = logging.getLogger(__name__)

MAX_CORRECTIVE_RETRIES = 2

_PLACEHOLDER_RE = re.compile(r"the word is", re.IGNORECASE)
_PLACEHOLDER_LINE_RE = re.compile(r"^\s*this is an? ", re.IGNORECASE | re.MULTILINE)

OVERLAP_INSTRUCTIONS = (
    "Phrase overlap: every multi-word phrase must be fully self-contained in ITS OWN sentence. "
    "Do not use any word of one phrase in the sentence written for another phrase. "
    "Give each phrase a different topic, subject and setting."
)

LAST_RESORT_INSTRUCTIONS = (
    "This is the LAST attempt. Keep it simple: write short sentences of 5-8 words, "
    "one simple pattern per sentence (subject + verb + target + ending), "
    "and double-check that each word appears exactly once."
)

PLACEHOLDER_FEEDBACK = (
    'Your previous answer contained a placeholder sentence such as "The word is ...". '
    "Placeholders are forbidden. Write a real, concrete sentence for every word, "
    "keeping all the other rules, and answer with the full JSON again."
)


@dataclass(frozen=True)
class RetrySession:
    """Loop state for one request; advanced with dataclasses.replace."""

    words: Tuple[str, ...]
    difficulty: Difficulty
    attempt: int = 0
    feedback: Optional[str] = None
    last_result: Optional[ValidationResult] = None
    calls: int = 0
    placeholder_retry_used: bool = False
    grammar_retry_used: bool = False
    history: Tuple[str, ...] = ()  # summaries of rejected attempts, oldest first

    @property
    def retries_left(self) -> int:
        return MAX_CORRECTIVE_RETRIES - self.attempt


def has_placeholder(exercise: Exercise) -> bool:
    for text in (exercise.solution_text, exercise.gap_text):
        if _PLACEHOLDER_RE.search(text) or _PLACEHOLDER_LINE_RE.search(text):
            return True
    return False


def _times(result: StructuralFailure, word: str) -> str:
    needed = result.expected.get(word, 1)
    used = f"{result.counts[word]} times"
    return f'"{word}" ({used})' if needed == 1 else f'"{word}" ({used}, listed {needed} times)'


def summarize(result: ValidationResult) -> str:
    """One-line reason for a rejected attempt, kept across retries."""
    if isinstance(result, StructuralFailure):
        text = ", ".join(result.reasons)
        if result.missing_words:
            text += "; missing " + ", ".join(f'"{w}"' for w in result.missing_words)
        if result.overused_words:
            text += "; overused " + ", ".join(f'"{w}"' for w in result.overused_words)
        return text
    if isinstance(result, ContextualFailure):
        return "contextual_issues: " + "; ".join(result.issues)
    if isinstance(result, NoOutput):
        return result.code
    return "unknown"


def build_feedback(
    result: ValidationResult,
    words: Sequence[str],
    final: bool,
    history: Sequence[str] = (),
) -> str:
    """Corrective message for the next attempt after a rejected one.

    ``history``: summaries of the earlier rejected attempts, oldest first.
    """
    parts: List[str] = ["Your previous answer was rejected. Fix the problems below and answer with the full JSON again."]

    if isinstance(result, StructuralFailure):
        if MUST_BE_ONCE in result.reasons:
            parts.append(
                f"Reason: {MUST_BE_ONCE}: every word must appear in solution_text EXACTLY once "
                "per time it is listed."
            )
            missing = result.missing_words
            if missing:
                parts.append("Missing words (each needs its own sentence): " + ", ".join(f'"{w}"' for w in missing))
            underused = result.underused_words
            if underused:
                parts.append("Used too few times: " + ", ".join(_times(result, w) for w in underused))
            overused = result.overused_words
            if overused:
                parts.append("Used too many times: " + ", ".join(_times(result, w) for w in overused))
        if GAP_COUNT_MISMATCH in result.reasons:
            parts.append(
                f"Reason: {GAP_COUNT_MISMATCH}: gap_text has {result.gap_count} blanks "
                f"but must have exactly {result.expected_count} (one per word)."
            )
    elif isinstance(result, ContextualFailure):
        parts.append("Reason: contextual_issues:")
        parts.extend(f"- {issue}" for issue in result.issues)
        if result.overlap:
            parts.append(OVERLAP_INSTRUCTIONS)
    elif isinstance(result, NoOutput):
        if result.code == "model_output_invalid":
            parts.append("Reason: the answer was not valid JSON in the required schema. Output the JSON object only.")
        else:
            parts.append("Reason: no usable answer was produced. Output the JSON object only.")

    if multi_word(words) and not (isinstance(result, ContextualFailure) and result.overlap):
        parts.append("Remember: words of a multi-word phrase may appear only in that phrase's sentence.")
    if history:
        parts.append("Earlier answers were also rejected; do not repeat these problems:")
        parts.extend(f"- attempt {i}: {reason}" for i, reason in enumerate(history, start=1))
    if final:
        parts.append(LAST_RESORT_INSTRUCTIONS)
    return "\n".join(parts)


def build_grammar_feedback(result: GrammarIssues) -> str:
    lines = ["Your previous answer was valid but has grammar problems. Rewrite the affected sentences:"]
    lines.extend(f"- Sentence {i.sentence_index}: {i.reason}" for i in result.issues)
    lines.append("Keep every other rule and answer with the full JSON again.")
    return "\n".join(lines)


def _issue_count(result: Union[Ok, GrammarIssues]) -> int:
    return len(result.issues) if isinstance(result, GrammarIssues) else 0


class StoryGapGenerator:
    """Drives the bounded retry loop; owns all per-request state."""

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        challenger: Optional[AmbiguityChallenger] = None,
    ):
        self.client = client or GenerationClient()
        self.challenger = challenger

    # ---------- single attempt ----------
    def _attempt(
        self, session: RetrySession, feedback: Optional[str]
    ) -> Tuple[RetrySession, Optional[Exercise], ValidationResult]:
        words = session.words
        system, user = build_generation_prompt(words, session.difficulty)
        session = replace(session, calls=session.calls + 1)
        try:
            raw = self.client.generate(system, user, session.difficulty, len(words), feedback=feedback)
        except GenerationError as e:
            logger.warning("Call %d: generation failed: %s", session.calls, e.message)
            return session, None, NoOutput("generation_failed", e.message)

        exercise = normalize_exercise(raw, words)
        if exercise is None:
            logger.warning("Call %d: model output could not be parsed", session.calls)
            return session, None, NoOutput("model_output_invalid", "no JSON object in model output")

        result = check_structure(exercise, words)
        if isinstance(result, Ok):
            result = check_context(exercise, words)
        if isinstance(result, Ok) and self.challenger is not None:
            result = self._challenge(words, exercise)
        return session, exercise, result

    def _challenge(self, words: Sequence[str], exercise: Exercise) -> Union[Ok, ContextualFailure]:
        try:
            verdict = self.challenger.challenge(words, exercise)
        except GenerationError as e:
            logger.warning("Ambiguity challenge skipped: %s", e.message)
            return Ok()
        if verdict.ok:
            return Ok()
        issues = tuple(
            f"Gap {g.index} is ambiguous: also fits {', '.join(g.alternatives) or 'another word'}"
            + (f" ({g.reason})" if g.reason else "")
            for g in verdict.ambiguous
        ) or ("The reviewer found an ambiguous gap",)
        return ContextualFailure(issues=issues)

    def _terminal(self, session: RetrySession) -> StoryGapFailed:
        result = session.last_result
        details = {"attempts": session.calls, "missing_words": [], "issues": []}
        if isinstance(result, NoOutput):
            code, reason = result.code, result.reason
        elif isinstance(result, StructuralFailure):
            code, reason = "story_gap_failed", ", ".join(result.reasons)
            details.update(
                missing_words=result.missing_words,
                counts=result.counts,
                expected_counts=result.expected,
                gap_count=result.gap_count,
                expected_count=result.expected_count,
            )
        elif isinstance(result, ContextualFailure):
            code, reason = "story_gap_failed", "contextual_issues"
            details["issues"] = list(result.issues)
        else:
            code, reason = "story_gap_failed", "unknown"
        message = f"Could not generate a valid exercise after {session.calls} attempts ({reason})."
        logger.error("%s words=%s", message, list(session.words))
        return StoryGapFailed(code, message, reason=reason, **details)

    # ---------- main loop ----------
    def generate(self, words: Sequence[str], difficulty: Difficulty) -> Exercise:
        session = RetrySession(words=tuple(words), difficulty=difficulty)
        check_preflight(session.words)
        preflight = preflight_warnings(session.words)
        if preflight:
            logger.info("Preflight warnings: %s", preflight)

        while True:
            session, exercise, result = self._attempt(session, session.feedback)
            session = replace(session, last_result=result)
            if isinstance(result, Ok):
                logger.info("Attempt %d passed validation (call %d)", session.attempt + 1, session.calls)
                break
            logger.warning("Attempt %d rejected: %s", session.attempt + 1, result)
            if session.retries_left <= 0:
                raise self._terminal(session)
            next_attempt = session.attempt + 1
            session = replace(
                session,
                attempt=next_attempt,
                feedback=build_feedback(
                    result,
                    session.words,
                    final=next_attempt == MAX_CORRECTIVE_RETRIES,
                    history=session.history,
                ),
                history=session.history + (summarize(result),),
            )

        notes = list(exercise.notes) + preflight

        if has_placeholder(exercise):
            logger.info("Placeholder text found; regenerating once")
            session = replace(session, placeholder_retry_used=True)
            session, retry, retry_result = self._attempt(session, PLACEHOLDER_FEEDBACK)
            if isinstance(retry_result, Ok):
                exercise = retry
                notes = list(exercise.notes) + preflight
            if has_placeholder(exercise):
                notes.append("placeholder text could not be removed")

        lint = lint_grammar(exercise, session.words)
        if isinstance(lint, GrammarIssues):
            logger.info("Grammar findings: %d; regenerating once", len(lint.issues))
            session = replace(session, grammar_retry_used=True)
            session, retry, retry_result = self._attempt(session, build_grammar_feedback(lint))
            if (
                isinstance(retry_result, Ok)
                and not (has_placeholder(retry) and not has_placeholder(exercise))
            ):
                retry_lint = lint_grammar(retry, session.words)
                if _issue_count(retry_lint) < _issue_count(lint):
                    exercise, lint = retry, retry_lint
                    notes = list(exercise.notes) + preflight
            if isinstance(lint, GrammarIssues):
                notes.extend(f"grammar: sentence {i.sentence_index}: {i.reason}" for i in lint.issues)

        logger.info("Story gap ready after %d calls", session.calls)
        return exercise.model_copy(update={"notes": notes, "used_words": list(session.words)})


def generate_story_gap(
    words: Sequence[str],
    difficulty: Difficulty,
    client: Optional[GenerationClient] = None,
    challenger: Optional[AmbiguityChallenger] = None,
) -> Exercise:
    return StoryGapGenerator(client=client, challenger=challenger).generate(words, difficulty)
