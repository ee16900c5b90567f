# storygap/textutil.py

"""Word-boundary matching, blank counting and sentence splitting."""

import re
from functools import lru_cache
from typing import List, Tuple

# Letters that count as "inside a word" for boundary purposes:
# ASCII, Latin-1 letters (Å, Ä, Ö, é, ß ...) and Latin Extended-A.
WORD_CHARS = "0-9A-Za-zÀ-ÖØ-öø-ÿĀ-ſ"

BLANK_RE = re.compile(r"_{3,}")
_SENTENCE_RE = re.compile(r"[^.!?\n]+(?:[.!?]+[\"'”’)]*)?")
_HAS_CONTENT_RE = re.compile(rf"[{WORD_CHARS}_]")

WORD_PATTERN_CACHE_SIZE = 512


@lru_cache(maxsize=WORD_PATTERN_CACHE_SIZE)
def _compile_word_pattern(key: str) -> re.Pattern:
    body = r"\s+".join(re.escape(t) for t in key.split())
    return re.compile(rf"(?<![{WORD_CHARS}]){body}(?![{WORD_CHARS}])", re.IGNORECASE)


def word_pattern(word: str) -> re.Pattern:
    """Case-insensitive whole-word/phrase pattern; inner spaces match any whitespace."""
    return _compile_word_pattern(word.strip().lower())


def count_occurrences(word: str, text: str) -> int:
    if not word.strip():
        return 0
    return len(word_pattern(word).findall(text or ""))


def count_blanks(text: str) -> int:
    return len(BLANK_RE.findall(text or ""))


def has_blanks(text: str) -> bool:
    return bool(text) and BLANK_RE.search(text) is not None


def sentence_spans(text: str) -> List[Tuple[int, int]]:
    """(start, end) offsets of sentences, split on sentence-final punctuation and newlines."""
    spans: List[Tuple[int, int]] = []
    for m in _SENTENCE_RE.finditer(text or ""):
        s, e = m.span()
        while s < e and text[s].isspace():
            s += 1
        while e > s and text[e - 1].isspace():
            e -= 1
        if s < e and _HAS_CONTENT_RE.search(text, s, e):
            spans.append((s, e))
    return spans


def split_sentences(text: str) -> List[str]:
    return [text[s:e] for s, e in sentence_spans(text)]
