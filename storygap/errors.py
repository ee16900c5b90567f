# storygap/errors.py

from typing import Any, Dict


class StoryGapError(Exception):
    """Base error carrying a machine-readable code and an HTTP status."""

    status_code = 500

    def __init__(self, code: str, message: str, *, retryable: bool = False, **details: Any):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message, "retryable": self.retryable}
        payload.update(self.details)
        return payload


class InvalidInput(StoryGapError):
    """invalid_input / invalid_words: rejected before any model call."""

    status_code = 400


class GenerationError(StoryGapError):
    """Every model in the chain failed for one call."""

    status_code = 502

    def __init__(self, message: str, **details: Any):
        super().__init__("generation_failed", message, retryable=True, **details)


class StoryGapFailed(StoryGapError):
    """Retry budget exhausted without a structurally valid exercise."""

    status_code = 502

    def __init__(self, code: str, message: str, **details: Any):
        super().__init__(code, message, retryable=True, **details)


class EvaluationFailed(StoryGapError):
    status_code = 502

    def __init__(self, message: str, **details: Any):
        super().__init__("evaluation_failed", message, retryable=True, **details)
