"""Scripted stand-in for huggingface_hub.InferenceClient and canned model answers."""

import json
from typing import Any, Dict, List, Optional

from storygap.llm import GenerationClient


class FakeInferenceClient:
    """Replays scripted answers; exceptions in the script are raised."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def chat_completion(self, messages, model=None, temperature=None, max_tokens=None):
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens}
        )
        if not self.responses:
            raise AssertionError("FakeInferenceClient ran out of scripted responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return {"choices": [{"message": {"role": "assistant", "content": item}}]}


class StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def exercise_json(
    gap_text: Any,
    solution_text: Any,
    used_words: Optional[List[str]] = None,
    gaps_meta: Optional[List[Dict[str, Any]]] = None,
    notes: Any = None,
) -> str:
    data: Dict[str, Any] = {"gap_text": gap_text, "solution_text": solution_text}
    if used_words is not None:
        data["used_words"] = used_words
    if gaps_meta is not None:
        data["gaps_meta"] = gaps_meta
    if notes is not None:
        data["notes"] = notes
    return json.dumps(data)


WHALE_OWL_OK = exercise_json(
    "The ______ sings deep in the cold sea.\nAn ______ hoots from the barn at night.",
    "The whale sings deep in the cold sea.\nAn owl hoots from the barn at night.",
    ["whale", "owl"],
    [
        {"index": 1, "correct": "whale", "why_unique": "sings in the sea", "rejects": []},
        {"index": 2, "correct": "owl", "why_unique": "hoots at night", "rejects": []},
    ],
)

WHALE_TWICE = exercise_json(
    "The ______ sings to another whale.\nA bird sits in the barn.",
    "The whale sings to another whale.\nA bird sits in the barn.",
)


def make_client(responses: List[Any], models=("test/model",)) -> GenerationClient:
    return GenerationClient(client=FakeInferenceClient(responses), models=models, timeout=5)
