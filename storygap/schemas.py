# storygap/schemas.py

import re
import unicodedata
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidInput

MAX_WORDS = 8
BLANK = "______"


class Difficulty(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


DEFAULT_DIFFICULTY = Difficulty.YELLOW

# ==== ALIASES (accept EN/SV input) ====
DIFFICULTY_ALIASES = {
    "green": Difficulty.GREEN,
    "easy": Difficulty.GREEN,
    "grön": Difficulty.GREEN,
    "gron": Difficulty.GREEN,

    "yellow": Difficulty.YELLOW,
    "medium": Difficulty.YELLOW,
    "gul": Difficulty.YELLOW,

    "red": Difficulty.RED,
    "hard": Difficulty.RED,
    "röd": Difficulty.RED,
    "rod": Difficulty.RED,
}

# Characters that tend to break prompts or the blank marker
_FORBIDDEN_RE = re.compile(r"[#@/\\<>`{|}]|_{3,}")


def norm(s: str) -> str:
    """NFC normalize, trim and collapse inner whitespace."""
    return re.sub(r"\s+", " ", unicodedata.normalize("NFC", s).strip())


def normalize_difficulty(v: Any) -> Difficulty:
    if v is None or (isinstance(v, str) and not v.strip()):
        return DEFAULT_DIFFICULTY
    if isinstance(v, Difficulty):
        return v
    key = str(v).strip().lower()
    if key in DIFFICULTY_ALIASES:
        return DIFFICULTY_ALIASES[key]
    raise InvalidInput(
        "invalid_input",
        f"difficulty must be one of: {[d.value for d in Difficulty]}",
        details=str(v),
    )


def normalize_word_set(payload: Dict[str, Any]) -> Tuple[str, ...]:
    """Validate and cap the raw wordSet to 1..MAX_WORDS usable entries."""
    raw = payload.get("wordSet") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        raise InvalidInput("invalid_input", "wordSet must be a list of words or phrases.")
    if not raw:
        raise InvalidInput("invalid_input", "wordSet is empty.")

    words: List[str] = []
    for item in raw:
        if item is None:
            continue
        w = norm(str(item))
        if w:
            words.append(w)
    words = words[:MAX_WORDS]
    if not words:
        raise InvalidInput("invalid_words", "wordSet contains no usable words.")
    return tuple(words)


def component_overlaps(words: Tuple[str, ...]) -> List[str]:
    """Pairs where one word sits whole inside another ("ice" in "ice cream").

    Repeats of the same word are allowed and never reported.
    """
    out: List[str] = []
    for i, a in enumerate(words):
        for j, b in enumerate(words):
            if i == j or a.lower() == b.lower():
                continue
            if re.search(rf"(?<!\w){re.escape(a.lower())}(?!\w)", b.lower()):
                out.append(f'Component overlap between "{a}" and "{b}"')
    return out


def check_preflight(words: Tuple[str, ...]) -> None:
    """Reject word sets whose targets can never each occur exactly once."""
    overlaps = component_overlaps(words)
    if overlaps:
        raise InvalidInput(
            "preflight_failed",
            "A word is contained in another word of the set, so it cannot appear exactly once.",
            details=overlaps,
        )


def preflight_warnings(words: Tuple[str, ...]) -> List[str]:
    """Informational issues with a word set; never blocks generation."""
    return [f'Forbidden character(s) in word: "{w}"' for w in words if _FORBIDDEN_RE.search(w)]


class Reject(BaseModel):
    word: str
    reason: str = ""


class GapMeta(BaseModel):
    index: int = Field(..., ge=1)
    correct: str
    why_unique: str = ""
    rejects: List[Reject] = Field(default_factory=list, max_length=2)


class Exercise(BaseModel):
    gap_text: str
    solution_text: str
    used_words: List[str]
    gaps_meta: List[GapMeta]
    notes: List[str] = Field(default_factory=list)


class AmbiguousGap(BaseModel):
    index: int
    alternatives: List[str] = Field(default_factory=list)
    reason: str = ""


class AmbiguityVerdict(BaseModel):
    ok: bool = True
    ambiguous: List[AmbiguousGap] = Field(default_factory=list)


class EvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_story: Optional[str] = Field(None, alias="originalStory")
    completed_story: str = Field(..., alias="completedStory", min_length=1)
    correct_words: List[str] = Field(..., alias="correctWords")
    user_words: List[str] = Field(..., alias="userWords")
    scenario: Optional[str] = None


class WordEvaluation(BaseModel):
    word: str = ""
    correct: str = ""
    points: float = 0
    comment: str = ""


class EvaluationResult(BaseModel):
    coherence: float
    wordChoice: float
    ending: float
    total: float
    feedback: str
    wordEvaluations: List[WordEvaluation]
