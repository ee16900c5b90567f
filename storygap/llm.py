# storygap/llm.py

"""
HF Inference chat client with an ordered model fallback chain.

- Models come from LLM_MODELS (primary first, cheaper/more available next)
- Token from HF_TOKEN or HUGGINGFACEHUB_API_TOKEN, checked on first use
- A not-found/unsupported model is skipped; an empty answer falls through
- Any other error only surfaces when it comes from the last model
- No retries beyond the chain: the orchestrator owns retry semantics
- Robustly extracts content (handles list-of-chunks responses)
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from huggingface_hub import InferenceClient

from .config import get_settings
from .errors import GenerationError
from .prompts import generation_params
from .schemas import Difficulty

logger = logging.getLogger(__name__)

_UNAVAILABLE_STATUS = {404, 410}
_UNAVAILABLE_HINTS = ("not found", "does not exist", "not supported", "model_not_supported", "unknown model")


def _status_of(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_model_unavailable(exc: Exception) -> bool:
    """True for the not-found class of errors (skip to the next model)."""
    if _status_of(exc) in _UNAVAILABLE_STATUS:
        return True
    msg = str(exc).lower()
    return any(h in msg for h in _UNAVAILABLE_HINTS)


def _flatten_content(content: Union[str, List[Any], None]) -> str:
    """HF may return a string or a list of chunks; concatenate text fields safely."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    out_parts: List[str] = []
    for chunk in content:
        if isinstance(chunk, str):
            out_parts.append(chunk)
        elif isinstance(chunk, dict):
            # common shapes: {"type":"text","text":"..."} or {"text":"..."}
            out_parts.append(str(chunk.get("text") or ""))
        else:
            out_parts.append(str(getattr(chunk, "text", "") or ""))
    return "".join(out_parts)


def _extract_content(resp: Any) -> str:
    """Support both object and dict response shapes."""
    if isinstance(resp, dict):
        choices = resp.get("choices") or []
        if not choices:
            return ""
        msg = choices[0].get("message") or {}
        return _flatten_content(msg.get("content"))

    choices = getattr(resp, "choices", None) or []
    if not choices:
        return ""
    msg = getattr(choices[0], "message", None)
    if isinstance(msg, dict):
        return _flatten_content(msg.get("content"))
    return _flatten_content(getattr(msg, "content", None))


class GenerationClient:
    """Chat wrapper around InferenceClient; one call walks the model chain once."""

    def __init__(
        self,
        client: Optional[Any] = None,
        models: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.models = tuple(models or settings.models)
        self._timeout = timeout if timeout is not None else settings.timeout_s
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            token = get_settings().hf_token
            if not token:
                raise GenerationError(
                    "Missing HF token. Set HF_TOKEN or HUGGINGFACEHUB_API_TOKEN."
                )
            self._client = InferenceClient(token=token, timeout=self._timeout)
        return self._client

    def chat(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        """Return the first non-empty answer along the model chain."""
        errors: List[str] = []
        last = len(self.models) - 1
        for i, model in enumerate(self.models):
            try:
                resp = self.client.chat_completion(
                    messages=messages,
                    model=model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            except GenerationError:
                raise
            except Exception as e:
                if is_model_unavailable(e):
                    logger.warning("Model %s unavailable, skipping: %s", model, e)
                    errors.append(f"{model}: unavailable")
                    continue
                if i == last:
                    logger.error("Model %s failed: %s", model, e)
                    errors.append(f"{model}: {e}")
                    raise GenerationError(
                        f"All models failed: {'; '.join(errors)}", models=list(self.models)
                    ) from e
                logger.warning("Model %s failed, trying next: %s", model, e)
                errors.append(f"{model}: {e}")
                continue

            text = _extract_content(resp).strip()
            if text:
                logger.debug("Model %s answered (%d chars)", model, len(text))
                return text
            logger.warning("Model %s returned an empty response", model)
            errors.append(f"{model}: empty response")

        raise GenerationError(
            f"No model produced output: {'; '.join(errors) or 'empty model chain'}",
            models=list(self.models),
        )

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        difficulty: Difficulty,
        n_words: int,
        feedback: Optional[str] = None,
    ) -> str:
        """One exercise generation call: [system, user, feedback?]."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        if feedback:
            messages.append({"role": "user", "content": feedback})
        temperature, max_tokens = generation_params(difficulty, n_words)
        return self.chat(messages, temperature=temperature, max_tokens=max_tokens)

    def complete(self, system_prompt: str, user_prompt: str, temperature: float = 0.2, max_tokens: int = 600) -> str:
        """Low-temperature call for verifier/evaluator prompts."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return self.chat(messages, temperature=temperature, max_tokens=max_tokens)


def current_models() -> List[str]:
    """Expose the configured model chain for /health."""
    return list(get_settings().models)
