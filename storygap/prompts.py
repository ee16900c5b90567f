# storygap/prompts.py

"""
Prompt builders for the story gap pipeline.

Both prompts carry the same contract: one sentence per word in word order,
the exact surface form exactly once, no leakage of multi-word components
across sentences, and a fixed JSON schema.
"""

import json
import random
import uuid
from typing import Dict, Optional, Sequence, Tuple

from .schemas import BLANK, Difficulty

# ====== Register per tier (CEFR-like bands) ======
DIFFICULTY_GUIDANCE: Dict[Difficulty, str] = {
    Difficulty.GREEN: (
        "GREEN LEVEL (easiest):\n"
        "- Use ONLY very simple, common words (CEFR A1).\n"
        "- Keep sentences VERY SHORT: 4-7 words.\n"
        "- Simple present tense, Subject-Verb-Object.\n"
        "- No idioms, no advanced vocabulary."
    ),
    Difficulty.YELLOW: (
        "YELLOW LEVEL (moderate):\n"
        "- Moderate vocabulary (CEFR A2-B1).\n"
        "- Sentences of 6-10 words.\n"
        "- Simple past/future tenses and basic clauses are fine.\n"
        "- Some variety in structure, still accessible."
    ),
    Difficulty.RED: (
        "RED LEVEL (advanced):\n"
        "- Richer vocabulary and structures (CEFR B1-B2).\n"
        "- Sentences of 8-15 words, clauses allowed.\n"
        "- Varied tenses and nuanced expressions, but always clear."
    ),
}

DIFFICULTY_LABELS: Dict[Difficulty, str] = {
    Difficulty.GREEN: "CEFR A1, 4-7 words per sentence",
    Difficulty.YELLOW: "CEFR A2-B1, 6-10 words per sentence",
    Difficulty.RED: "CEFR B1-B2, 8-15 words per sentence",
}

# (temperature, base tokens, tokens per word, cap)
_GEN_PARAMS: Dict[Difficulty, Tuple[float, int, int, int]] = {
    Difficulty.GREEN: (0.85, 350, 60, 800),
    Difficulty.YELLOW: (0.85, 400, 70, 900),
    Difficulty.RED: (0.6, 500, 90, 1200),
}

ANIMALS = {
    "cat", "dog", "fox", "bear", "owl", "whale", "elephant", "giraffe", "penguin", "eagle",
    "lion", "tiger", "wolf", "deer", "seal", "dolphin", "shark", "horse", "cow", "sheep",
    "goat", "chicken", "duck", "bird", "fish", "rabbit", "mouse", "rat", "hamster", "turtle",
    "snake", "lizard", "frog", "spider", "bee", "butterfly", "ant", "fly", "mosquito", "worm",
    "snail", "otter", "moose", "elk", "bison", "leopard", "cheetah", "zebra", "hippo", "rhino",
    "monkey", "ape", "gorilla", "chimpanzee", "panda", "koala", "kangaroo",
}

OUTPUT_SCHEMA = {
    "gap_text": f"sentence 1 with {BLANK}\\nsentence 2 with {BLANK}\\n...",
    "solution_text": "sentence 1 written out\\nsentence 2 written out\\n...",
    "used_words": ["word1", "word2", "..."],
    "gaps_meta": [
        {
            "index": 1,
            "correct": "word1",
            "why_unique": "short reason only word1 fits",
            "rejects": [{"word": "word2", "reason": "why it does not fit"}],
        }
    ],
    "notes": [],
}


def generation_params(difficulty: Difficulty, n_words: int) -> Tuple[float, int]:
    """Return (temperature, max_tokens) for a tier and word count."""
    temperature, base, per_word, cap = _GEN_PARAMS[difficulty]
    return temperature, min(cap, base + per_word * max(1, n_words))


def looks_like_animal(word: str) -> bool:
    return word.strip().lower() in ANIMALS


def multi_word(words: Sequence[str]) -> list:
    return [w for w in words if len(w.split()) >= 2]


def new_signature(words: Sequence[str]) -> str:
    return f"{uuid.uuid4().hex[:12]}-{random.randint(1, 10**9)}-{len(words)}"


def _contract(words: Sequence[str]) -> str:
    n = len(words)
    lines = [
        f"- Write EXACTLY {n} sentences, one per line, in the SAME ORDER as the word list.",
        "- Sentence i must contain word i in its EXACT surface form (case-insensitive), EXACTLY ONCE.",
        "- No other target word may appear in sentence i.",
        f'- In gap_text, replace each target with "{BLANK}" (one blank per sentence, {n} blanks total).',
        "- Every sentence ends with '.', '!' or '?'.",
        "- used_words must be EXACTLY the word list, same order.",
        "- gaps_meta has one entry per word: index 1..N, correct = the word, "
        "why_unique = why only this word fits, rejects = at most 2 other words that do not fit and why.",
    ]
    repeated = sorted({w for w in words if sum(1 for v in words if v.lower() == w.lower()) > 1})
    if repeated:
        lines.append(
            "- "
            + ", ".join(f'"{w}"' for w in repeated)
            + " is listed more than once: write one sentence per listing, each using it once "
            "(for example once as past simple and once as past participle)."
        )
    phrases = multi_word(words)
    if phrases:
        lines.append(
            "- Multi-word phrases: NONE of the words of "
            + ", ".join(f'"{p}"' for p in phrases)
            + " may appear in any sentence other than the one written for that phrase."
        )
    return "\n".join(lines)


def build_generation_prompt(
    words: Sequence[str],
    difficulty: Difficulty,
    signature: Optional[str] = None,
) -> Tuple[str, str]:
    """Primary ("simple") prompt. Returns (system, user).

    Corrective feedback is not part of the prompt; the client sends it as a
    separate trailing message.
    """
    animal = ""
    if any(looks_like_animal(w) for w in words):
        animal = "\n- If animals appear, give distinctive, unambiguous cues (habitat, behaviour, features)."

    system = f"""
You write sentence-gap (cloze) exercises for language learners. Output JSON only.

{DIFFICULTY_GUIDANCE[difficulty]}

Creativity:
- Every sentence is a small, concrete scene with its own subject, place and action.
- Vary structure, tense, perspective and context across sentences.
- NEVER write templated or placeholder sentences such as "The word is X." or "This is a X."{animal}
- Each target must fit ONLY its own sentence: build a context where the other targets would be wrong.

Hard constraints:
{_contract(words)}

Output JSON schema (no prose, no code fences):
{json.dumps(OUTPUT_SCHEMA, ensure_ascii=False, indent=2)}
""".strip()

    numbered = "\n".join(f'{i}. "{w}"' for i, w in enumerate(words, start=1))
    user = f"""
Word list (order matters):
{numbered}

difficulty={difficulty.value} sig={signature or new_signature(words)}
used_words must be EXACTLY: {json.dumps(list(words), ensure_ascii=False)}
Respond with JSON only.
""".strip()

    return system, user


def build_challenge_prompt(words: Sequence[str], gap_text: str, solution_text: str) -> Tuple[str, str]:
    """Strict verifier prompt for the optional ambiguity challenge. Returns (system, user)."""
    system = f"""
You are a strict reviewer of sentence-gap exercises. For every blank, decide whether
ANY other word from the word list would also fit that sentence grammatically and
semantically. The contract the exercise must satisfy:
{_contract(words)}

Return JSON only:
{{"ok": true|false, "ambiguous": [{{"index": 1, "alternatives": ["word"], "reason": "..."}}]}}
"ok" is true only when every blank has exactly one fitting word from the list.
""".strip()
    user = json.dumps(
        {"wordSet": list(words), "gap_text": gap_text, "solution_text": solution_text},
        ensure_ascii=False,
    )
    return system, user
