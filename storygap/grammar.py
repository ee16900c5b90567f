# storygap/grammar.py

"""
Advisory grammar lint over solution_text.

Each rule is a plain function (sentence, words) -> reason | None; the linter
runs the ordered RULES list over every sentence. Heuristic by nature: a
finding triggers at most one regeneration, never a hard failure.
"""

import re
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .schemas import Exercise
from .textutil import count_occurrences, split_sentences, word_pattern
from .validators import GrammarIssue, GrammarIssues, Ok, expected_counts

Rule = Callable[[str, Sequence[str]], Optional[str]]

MODALS = ("can", "could", "may", "might", "must", "shall", "should", "will", "would")

IRREGULAR_PARTICIPLES = {
    "arisen", "awoken", "been", "beaten", "become", "begun", "bitten", "blown", "broken",
    "brought", "built", "bought", "caught", "chosen", "come", "done", "drawn", "driven",
    "drunk", "eaten", "fallen", "felt", "flown", "forgotten", "forgiven", "frozen", "given",
    "gone", "grown", "hidden", "held", "known", "left", "lost", "made", "met", "paid",
    "ridden", "risen", "run", "seen", "sent", "shaken", "shown", "sold", "spoken", "stolen",
    "sung", "swum", "taken", "taught", "thought", "thrown", "told", "torn", "woken", "worn",
    "won", "written",
}

# Multi-word nouns that are easily mis-used as verbs
NOUN_PHRASES = (
    "pocket money", "fast food", "ice cream", "birthday party", "fairy tale",
    "bedtime story", "good luck", "bad luck",
)
SUPPORT_VERBS = {
    "earn", "earns", "earned", "earning",
    "get", "gets", "got", "gotten", "getting",
    "have", "has", "had", "having",
    "make", "makes", "made", "making",
    "eat", "eats", "ate", "eaten", "eating",
    "tell", "tells", "told", "telling",
}
_DETERMINERS = {"a", "an", "the", "my", "your", "his", "her", "its", "our", "their", "some", "any", "this", "that"}

INFINITIVE_FRAMES = (
    "want to", "wants to", "wanted to", "need to", "needs to", "needed to",
    "try to", "tries to", "tried to", "plan to", "plans to", "planned to",
    "hope to", "hopes to", "hoped to", "decide to", "decides to", "decided to",
    "like to", "likes to", "liked to", "love to", "loves to", "loved to",
    "learn to", "learns to", "learned to", "forget to", "forgot to",
    "remember to", "remembered to", "promise to", "promised to",
    "agree to", "agreed to", "going to", "have to", "has to", "had to",
    "used to", "in order to",
)
PARTICIPLE_AUXILIARIES = {
    "has", "have", "had", "was", "were", "is", "are", "be", "been", "being",
    "get", "got", "gotten",
}

_TOKEN_RE = re.compile(r"[A-Za-zÀ-ÖØ-öø-ÿĀ-ſ']+")
_MODAL_TO_RE = re.compile(rf"\b(?:{'|'.join(MODALS)})\s+to\s+[a-z]+", re.IGNORECASE)
_REPEAT_RE = re.compile(r"\b([A-Za-zÀ-ÖØ-öø-ÿ']+)\s+\1\b", re.IGNORECASE)
_REPEAT_OK = {"had", "that", "very", "bye", "ha", "no"}
_PERFECT_AUX = {"has", "have", "had"}
_PASSIVE_PREPS = ("by", "from", "into", "out of", "to")
_ED_RE = re.compile(r"^[a-z]{3,}ed$")


def _tokens(sentence: str) -> List[str]:
    return [t.lower() for t in _TOKEN_RE.findall(sentence)]


def looks_like_participle(token: str) -> bool:
    t = token.lower()
    return t in IRREGULAR_PARTICIPLES or bool(_ED_RE.match(t))


# ---------- Rules ----------
def modal_to(sentence: str, words: Sequence[str]) -> Optional[str]:
    m = _MODAL_TO_RE.search(sentence)
    if m:
        return f'modal followed by "to" + verb: "{m.group(0)}"'
    return None


def repeated_word(sentence: str, words: Sequence[str]) -> Optional[str]:
    for m in _REPEAT_RE.finditer(sentence):
        if m.group(1).lower() not in _REPEAT_OK:
            return f'repeated word: "{m.group(0)}"'
    return None


def target_repeated(sentence: str, words: Sequence[str]) -> Optional[str]:
    for w, n in expected_counts(words).items():
        if count_occurrences(w, sentence) > n:
            return f'target "{w}" appears more often in one sentence than it is listed'
    return None


def passive_without_been(sentence: str, words: Sequence[str]) -> Optional[str]:
    tokens = _tokens(sentence)
    for i, tok in enumerate(tokens):
        if tok not in _PERFECT_AUX:
            continue
        for j in range(i + 1, len(tokens)):
            if tokens[j] == "been":
                break
            if not looks_like_participle(tokens[j]):
                continue
            rest = " ".join(tokens[j + 1:])
            if any(re.search(rf"\b{p}\b", rest) for p in _PASSIVE_PREPS):
                return f'"{tok} {tokens[j]}" reads as a passive without "been"'
            break
    return None


def noun_phrase_as_verb(sentence: str, words: Sequence[str]) -> Optional[str]:
    lowered = [w.lower() for w in words]
    sent_tokens = set(_tokens(sentence))
    if sent_tokens & SUPPORT_VERBS:
        return None
    for phrase in NOUN_PHRASES:
        if phrase not in lowered:
            continue
        for m in word_pattern(phrase).finditer(sentence):
            before = _tokens(sentence[:m.start()])
            after = _tokens(sentence[m.end():])
            if not before or not after:
                continue
            if before[-1] in _DETERMINERS:
                continue
            return f'"{phrase}" used like a verb'
    return None


def infinitive_not_licensed(sentence: str, words: Sequence[str]) -> Optional[str]:
    for w in words:
        if not w.lower().startswith("to ") or count_occurrences(w, sentence) == 0:
            continue
        if not any(word_pattern(frame).search(sentence) for frame in INFINITIVE_FRAMES):
            return f'infinitive not licensed: "{w}"'
    return None


def participle_without_auxiliary(sentence: str, words: Sequence[str]) -> Optional[str]:
    tokens = set(_tokens(sentence))
    for w in words:
        if len(w.split()) != 1 or not looks_like_participle(w):
            continue
        if count_occurrences(w, sentence) == 0:
            continue
        if not tokens & PARTICIPLE_AUXILIARIES:
            return f'participle lacks auxiliary: "{w}"'
    return None


RULES: List[Tuple[str, Rule]] = [
    ("modal_to", modal_to),
    ("repeated_word", repeated_word),
    ("target_repeated", target_repeated),
    ("passive_without_been", passive_without_been),
    ("noun_phrase_as_verb", noun_phrase_as_verb),
    ("infinitive_not_licensed", infinitive_not_licensed),
    ("participle_without_auxiliary", participle_without_auxiliary),
]


def lint_sentence(sentence: str, words: Sequence[str], index: int) -> List[GrammarIssue]:
    issues = []
    for name, rule in RULES:
        reason = rule(sentence, words)
        if reason:
            issues.append(GrammarIssue(sentence_index=index, rule=name, reason=reason))
    return issues


def lint_grammar(exercise: Exercise, words: Sequence[str]) -> Union[Ok, GrammarIssues]:
    issues: List[GrammarIssue] = []
    for idx, sentence in enumerate(split_sentences(exercise.solution_text), start=1):
        issues.extend(lint_sentence(sentence, words, idx))
    if issues:
        return GrammarIssues(issues=tuple(issues))
    return Ok()
