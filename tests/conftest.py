"""Common test fixtures."""

import pytest

from storygap.config import get_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from a developer's .env."""
    for name in ("LLM_MODELS", "STORY_GAP_AMBIGUITY_CHECK", "HF_TOKEN", "HUGGINGFACEHUB_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
