# storygap/validators.py

"""
Validation results and the two blocking validators.

Structural: every word exactly once in solution_text, one blank per word.
Contextual: no component leakage between multi-word targets, no sentence
from the small catalogue of known illogical patterns.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .schemas import Exercise
from .textutil import count_blanks, count_occurrences, split_sentences, word_pattern


# ---------- Result variants ----------
@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class StructuralFailure:
    counts: Dict[str, int]
    gap_count: int
    expected_count: int
    reasons: Tuple[str, ...] = ()
    # how often each word must occur: its multiplicity in the word set
    expected: Dict[str, int] = field(default_factory=dict)

    def _needed(self, word: str) -> int:
        return self.expected.get(word, 1)

    @property
    def missing_words(self) -> List[str]:
        return [w for w, c in self.counts.items() if c == 0]

    @property
    def underused_words(self) -> List[str]:
        return [w for w, c in self.counts.items() if 0 < c < self._needed(w)]

    @property
    def overused_words(self) -> List[str]:
        return [w for w, c in self.counts.items() if c > self._needed(w)]


@dataclass(frozen=True)
class ContextualFailure:
    issues: Tuple[str, ...]
    overlap: bool = False


@dataclass(frozen=True)
class GrammarIssue:
    sentence_index: int  # 1-based
    rule: str
    reason: str


@dataclass(frozen=True)
class GrammarIssues:
    issues: Tuple[GrammarIssue, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NoOutput:
    """The attempt produced nothing usable (oracle failure or unparseable text)."""

    code: str  # generation_failed | model_output_invalid
    reason: str


ValidationResult = Union[Ok, StructuralFailure, ContextualFailure, GrammarIssues, NoOutput]

MUST_BE_ONCE = "must_be_once"
GAP_COUNT_MISMATCH = "gap_count_mismatch"


# ---------- Structural ----------
def expected_counts(words: Sequence[str]) -> Dict[str, int]:
    """Multiplicity of each word (case-insensitive, first spelling kept).

    A repeated target such as "told" (past simple and participle) gets one
    sentence, and so one occurrence, per listing.
    """
    out: Dict[str, int] = {}
    spelling: Dict[str, str] = {}
    for w in words:
        key = w.lower()
        if key in spelling:
            out[spelling[key]] += 1
        else:
            spelling[key] = w
            out[w] = 1
    return out


def occurrence_counts(text: str, words: Sequence[str]) -> Dict[str, int]:
    return {w: count_occurrences(w, text) for w in expected_counts(words)}


def check_structure(exercise: Exercise, words: Sequence[str]) -> Union[Ok, StructuralFailure]:
    expected = expected_counts(words)
    counts = occurrence_counts(exercise.solution_text, words)
    gap_count = count_blanks(exercise.gap_text)
    reasons = []
    if any(counts[w] != n for w, n in expected.items()):
        reasons.append(MUST_BE_ONCE)
    if gap_count != len(words):
        reasons.append(GAP_COUNT_MISMATCH)
    if reasons:
        return StructuralFailure(
            counts=counts,
            gap_count=gap_count,
            expected_count=len(words),
            reasons=tuple(reasons),
            expected=expected,
        )
    return Ok()


# ---------- Contextual ----------
# Component words that carry no cue on their own
FUNCTION_WORDS = {
    "the", "and", "but", "for", "with", "from", "into", "onto", "over", "under",
    "out", "off", "its", "our", "your", "their", "his", "her", "was", "were", "are",
    "has", "have", "had", "not", "all", "any", "some", "this", "that", "than", "then",
}

_LOCOMOTION = (
    r"run|runs|ran|running|walk|walks|walked|walking|jump|jumps|jumped|jumping|"
    r"race|races|raced|racing|swim|swims|swam|swimming|fly|flies|flew|flying|"
    r"climb|climbs|climbed|climbing|skip|skips|skipped|skipping"
)
_HEART_RE = re.compile(r"\bheart\b", re.IGNORECASE)
_LOCOMOTION_RE = re.compile(rf"\b(?:{_LOCOMOTION})\b", re.IGNORECASE)
_HEART_COLLOCATION_RE = re.compile(r"\bheart\s*(?:rate|beat)s?\b|\bheartbeats?\b", re.IGNORECASE)
_HAD_EVER_BEEN_RE = re.compile(
    r"\bhad\s+ever\s+been\s+(?:[a-z]+ed|[a-z]+en|seen|done|made|told|bought|brought|taught|"
    r"caught|thought|found|heard|held|kept|left|lost|met|paid|sold|sent|built|felt)\b",
    re.IGNORECASE,
)


def heart_locomotion(sentence: str) -> Optional[str]:
    if _HEART_RE.search(sentence) and _LOCOMOTION_RE.search(sentence) and not _HEART_COLLOCATION_RE.search(sentence):
        return '"heart" used with a movement verb (did you mean "heart rate" or "heartbeat"?)'
    return None


def had_ever_been_participle(sentence: str) -> Optional[str]:
    if _HAD_EVER_BEEN_RE.search(sentence):
        return 'malformed "had ever been" + past participle'
    return None


ILLOGICAL_PATTERNS: List[Tuple[str, Callable[[str], Optional[str]]]] = [
    ("heart_locomotion", heart_locomotion),
    ("had_ever_been_participle", had_ever_been_participle),
]


def components(phrase: str) -> List[str]:
    """Cue-carrying component words of a phrase (length >= 3, no function words)."""
    out = []
    for token in phrase.split():
        t = re.sub(r"^\W+|\W+$", "", token).lower()
        if len(t) >= 3 and t not in FUNCTION_WORDS:
            out.append(t)
    return out


def _sentence_of(phrase: str, sentences: Sequence[str]) -> Optional[int]:
    pat = word_pattern(phrase)
    for i, s in enumerate(sentences):
        if pat.search(s):
            return i
    return None


def phrase_overlaps(sentences: Sequence[str], words: Sequence[str]) -> List[str]:
    phrases = []
    seen = set()
    for w in words:
        if len(w.split()) >= 2 and w.lower() not in seen:
            seen.add(w.lower())
            phrases.append(w)

    located = [(p, _sentence_of(p, sentences)) for p in phrases]
    issues = []
    for i, (a, sa) in enumerate(located):
        for b, sb in located[i + 1:]:
            if sa is None or sb is None or sa == sb:
                continue
            a_in_b = any(word_pattern(c).search(sentences[sb]) for c in components(a))
            b_in_a = any(word_pattern(c).search(sentences[sa]) for c in components(b))
            if a_in_b or b_in_a:
                issues.append(f'Overlapping phrases "{a}" and "{b}" (sentences {sa + 1} and {sb + 1})')
    return issues


def check_context(exercise: Exercise, words: Sequence[str]) -> Union[Ok, ContextualFailure]:
    sentences = split_sentences(exercise.solution_text)
    overlaps = phrase_overlaps(sentences, words)

    issues = list(overlaps)
    for idx, sentence in enumerate(sentences, start=1):
        for _name, pattern in ILLOGICAL_PATTERNS:
            reason = pattern(sentence)
            if reason:
                issues.append(f"Sentence {idx}: {reason}")

    if issues:
        return ContextualFailure(issues=tuple(issues), overlap=bool(overlaps))
    return Ok()
