"""Tests for request normalisation and the difficulty tiers."""

import pytest

from storygap.errors import InvalidInput
from storygap.schemas import (
    Difficulty,
    check_preflight,
    normalize_difficulty,
    normalize_word_set,
    preflight_warnings,
)


class TestNormalizeWordSet:
    def test_keeps_order(self):
        assert normalize_word_set({"wordSet": ["whale", "owl", "fox"]}) == ("whale", "owl", "fox")

    def test_truncates_to_eight(self):
        words = [f"w{i}" for i in range(12)]
        assert normalize_word_set({"wordSet": words}) == tuple(words[:8])

    def test_drops_falsy_and_coerces(self):
        assert normalize_word_set({"wordSet": ["", None, 42, "  pocket   money "]}) == ("42", "pocket money")

    @pytest.mark.parametrize("payload", [{}, {"wordSet": "whale"}, {"wordSet": []}, ["whale"], None])
    def test_invalid_input(self, payload):
        with pytest.raises(InvalidInput) as exc:
            normalize_word_set(payload)
        assert exc.value.code == "invalid_input"
        assert exc.value.status_code == 400

    def test_invalid_words(self):
        with pytest.raises(InvalidInput) as exc:
            normalize_word_set({"wordSet": ["", "   ", None]})
        assert exc.value.code == "invalid_words"

    def test_blank_entries_after_truncation_do_not_count(self):
        words = ["a"] + [""] * 10
        assert normalize_word_set({"wordSet": words}) == ("a",)


class TestNormalizeDifficulty:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("green", Difficulty.GREEN),
            ("GREEN", Difficulty.GREEN),
            ("grön", Difficulty.GREEN),
            ("easy", Difficulty.GREEN),
            ("gul", Difficulty.YELLOW),
            ("red", Difficulty.RED),
            ("röd", Difficulty.RED),
            (None, Difficulty.YELLOW),
            ("", Difficulty.YELLOW),
        ],
    )
    def test_aliases(self, value, expected):
        assert normalize_difficulty(value) == expected

    def test_unknown(self):
        with pytest.raises(InvalidInput):
            normalize_difficulty("purple")


class TestPreflight:
    def test_clean_set(self):
        check_preflight(("whale", "owl"))
        assert preflight_warnings(("whale", "owl")) == []

    def test_nested_word_is_rejected(self):
        """A word inside another word can never occur exactly once."""
        with pytest.raises(InvalidInput) as exc:
            check_preflight(("ice", "ice cream"))
        assert exc.value.code == "preflight_failed"
        payload = exc.value.to_payload()
        assert payload["retryable"] is False
        assert payload["details"] == ['Component overlap between "ice" and "ice cream"']

    def test_part_of_a_word_is_not_overlap(self):
        check_preflight(("ice", "rice pudding"))

    def test_forbidden_characters_only_warn(self):
        check_preflight(("a/b", "ok"))
        assert preflight_warnings(("a/b", "ok")) == ['Forbidden character(s) in word: "a/b"']

    def test_repeated_word_is_allowed(self):
        check_preflight(("told", "told"))
        assert preflight_warnings(("told", "told")) == []
