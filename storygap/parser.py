# storygap/parser.py

"""
Tolerant parsing of model output into an Exercise.

HARDENED:
- Sanitization: unescape HTML entities, strip code fences
- Direct json.loads first, then the first balanced {...} span (string-aware)
- gap_text / solution_text accepted as string or list
- Two reconstruction heuristics: fill blanks with words in order, and
  blank out each word in its own sentence
- Never raises; validity is judged elsewhere
"""

import html
import itertools
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .schemas import BLANK, Exercise, GapMeta, Reject
from .textutil import BLANK_RE, has_blanks, sentence_spans, word_pattern

logger = logging.getLogger(__name__)

MAX_REJECTS = 2


def _strip_code_fences(s: str) -> str:
    # keep the inner text of ```json ... ``` blocks
    return re.sub(r"```(?:json|JSON)?\s*(.*?)```", lambda m: m.group(1), s, flags=re.DOTALL)


def _sanitize(s: str) -> str:
    return _strip_code_fences(html.unescape(s or "")).strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first top-level {...} span, honouring strings and escapes."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_str = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
                continue
            if ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_json_object(raw: str) -> Optional[Dict[str, Any]]:
    text = _sanitize(raw)
    if not text:
        return None
    try:
        data = json.loads(text)
    except ValueError:
        span = extract_json_object(text)
        if span is None:
            return None
        try:
            data = json.loads(span)
        except ValueError:
            return None
    return data if isinstance(data, dict) else None


def canonical_blanks(text: str) -> str:
    return BLANK_RE.sub(BLANK, text)


def rebuild_solution_from_gap(gap_text: str, words: Sequence[str]) -> str:
    """Fill the i-th blank with the i-th word; surplus blanks stay."""
    counter = itertools.count()

    def _fill(m: "re.Match[str]") -> str:
        i = next(counter)
        return words[i] if i < len(words) else m.group(0)

    return BLANK_RE.sub(_fill, gap_text)


def rebuild_gap_from_solution(solution_text: str, words: Sequence[str]) -> Optional[str]:
    """Blank each word in the first unconsumed sentence containing it.

    Returns None when there are fewer sentences than words.
    """
    spans = sentence_spans(solution_text)
    if len(spans) < len(words):
        return None

    consumed = set()
    cuts = []
    for word in words:
        pat = word_pattern(word)
        for idx, (s, e) in enumerate(spans):
            if idx in consumed:
                continue
            m = pat.search(solution_text[s:e])
            if m:
                consumed.add(idx)
                cuts.append((s + m.start(), s + m.end()))
                break

    out = solution_text
    for a, b in sorted(cuts, reverse=True):
        out = out[:a] + BLANK + out[b:]
    return out


def _coerce_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return " ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    return ""


def _to_int(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    try:
        return int(str(v).strip())
    except (TypeError, ValueError):
        return None


def _coerce_rejects(value: Any) -> List[Reject]:
    out: List[Reject] = []
    if not isinstance(value, list):
        return out
    for item in value:
        if isinstance(item, dict) and str(item.get("word") or "").strip():
            out.append(Reject(word=str(item["word"]).strip(), reason=str(item.get("reason") or "").strip()))
        elif isinstance(item, str) and item.strip():
            out.append(Reject(word=item.strip()))
        if len(out) == MAX_REJECTS:
            break
    return out


def reconcile_gaps_meta(value: Any, words: Sequence[str]) -> List[GapMeta]:
    """One entry per word, 1-based in word order; legacy 0-based indices are shifted."""
    entries = [e for e in value if isinstance(e, dict)] if isinstance(value, list) else []
    indices = [_to_int(e.get("index")) for e in entries]
    zero_based = any(i == 0 for i in indices)

    by_index: Dict[int, Dict[str, Any]] = {}
    for pos, (entry, idx) in enumerate(zip(entries, indices)):
        if idx is None or idx < 0:
            idx = pos + 1
        elif zero_based:
            idx += 1
        by_index.setdefault(idx, entry)

    meta: List[GapMeta] = []
    for i, word in enumerate(words, start=1):
        entry = by_index.get(i, {})
        meta.append(
            GapMeta(
                index=i,
                correct=word,
                why_unique=str(entry.get("why_unique") or "").strip(),
                rejects=_coerce_rejects(entry.get("rejects")),
            )
        )
    return meta


def _coerce_notes(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def normalize_exercise(raw: str, expected_words: Sequence[str]) -> Optional[Exercise]:
    """Best-effort Exercise from raw model text, or None if nothing usable."""
    data = parse_json_object(raw)
    if data is None:
        logger.info("No JSON object in model output (%d chars)", len(raw or ""))
        return None

    words = list(expected_words)
    gap = canonical_blanks(_coerce_text(data.get("gap_text")))

    sol_raw = data.get("solution_text")
    if isinstance(sol_raw, str):
        solution = sol_raw
    elif isinstance(sol_raw, list) and len(sol_raw) == len(words) and has_blanks(gap):
        solution = rebuild_solution_from_gap(gap, words)
    elif isinstance(sol_raw, list):
        solution = _coerce_text(sol_raw)
    elif has_blanks(gap):
        solution = rebuild_solution_from_gap(gap, words)
    else:
        solution = ""

    if not has_blanks(gap) and solution:
        rebuilt = rebuild_gap_from_solution(solution, words)
        if rebuilt is not None:
            gap = rebuilt

    if not gap.strip() and not solution.strip():
        logger.info("Model output has neither gap_text nor solution_text")
        return None

    try:
        return Exercise(
            gap_text=gap.strip(),
            solution_text=solution.strip(),
            used_words=words,
            gaps_meta=reconcile_gaps_meta(data.get("gaps_meta"), words),
            notes=_coerce_notes(data.get("notes")),
        )
    except ValidationError as e:
        logger.warning("Could not build Exercise from model output: %s", e)
        return None
