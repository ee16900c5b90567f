# storygap/ambiguity.py

"""Optional second-opinion check: could another listed word fill a blank?"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .llm import GenerationClient
from .parser import parse_json_object
from .prompts import build_challenge_prompt
from .schemas import AmbiguityVerdict, AmbiguousGap, Exercise

logger = logging.getLogger(__name__)


def parse_verdict(raw: str) -> Optional[AmbiguityVerdict]:
    data = parse_json_object(raw)
    if data is None:
        return None
    items: List[AmbiguousGap] = []
    for item in data.get("ambiguous") or []:
        if not isinstance(item, dict):
            continue
        try:
            items.append(AmbiguousGap(**_clean_gap(item)))
        except ValidationError:
            continue
    ok = data.get("ok")
    if not isinstance(ok, bool):
        ok = not items
    return AmbiguityVerdict(ok=ok and not items, ambiguous=items)


def _clean_gap(item: Dict[str, Any]) -> Dict[str, Any]:
    alts = item.get("alternatives")
    if isinstance(alts, str):
        alts = [alts]
    return {
        "index": item.get("index"),
        "alternatives": [str(a) for a in alts or []],
        "reason": str(item.get("reason") or ""),
    }


class AmbiguityChallenger:
    """Asks the model to find blanks that more than one listed word could fill.

    Off by default. A verdict that cannot be parsed counts as "not ambiguous"
    so a flaky reviewer never blocks an otherwise valid exercise.
    """

    def __init__(self, client: Optional[GenerationClient] = None):
        self.client = client or GenerationClient()

    def challenge(self, words: Sequence[str], exercise: Exercise) -> AmbiguityVerdict:
        system, user = build_challenge_prompt(words, exercise.gap_text, exercise.solution_text)
        raw = self.client.complete(system, user, temperature=0.1, max_tokens=500)
        verdict = parse_verdict(raw)
        if verdict is None:
            logger.warning("Unparseable ambiguity verdict; treating as ok")
            return AmbiguityVerdict()
        return verdict
