# tests/generate_example.py
# Manual smoke run against the real model (needs HF_TOKEN), not collected by pytest:
#   python -m tests.generate_example
# or directly:
#   python tests/generate_example.py whale owl "pocket money"

import json
import logging
import os
import sys

# --- file-run fallback: put the project root on sys.path ---
if __package__ is None and __name__ == "__main__":
    _root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if _root not in sys.path:
        sys.path.insert(0, _root)

from storygap.errors import StoryGapError
from storygap.generator import generate_story_gap
from storygap.log import configure_logging
from storygap.schemas import Difficulty, normalize_word_set

if __name__ == "__main__":
    configure_logging(logging.DEBUG)
    words = normalize_word_set({"wordSet": sys.argv[1:] or ["whale", "owl", "pocket money"]})
    try:
        out = generate_story_gap(words, Difficulty.GREEN)
    except StoryGapError as e:
        print(json.dumps(e.to_payload(), ensure_ascii=False, indent=2))
        sys.exit(1)
    print(json.dumps(out.model_dump(), ensure_ascii=False, indent=2))
