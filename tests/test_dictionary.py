"""
Tests for the dictionary rewriter, edit-boundary validation and store.
"""

import json
import os
import unittest
from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

from openvoice.dictionary import (
    MAX_DICTIONARY_ENTRIES,
    MAX_ENTRY_LENGTH,
    DictionaryStore,
    apply_dictionary,
    validate_dictionary,
)
from openvoice.exceptions import (
    DictionaryStoreError,
    DictionaryValidationError,
    ValidationError,
)


class TestApplyDictionary(unittest.TestCase):
    """Substitution semantics."""

    def test_whole_word_only(self):
        result = apply_dictionary("hello there he said", {"he": "she"})
        self.assertEqual(result, "hello there she said")

    def test_punctuation_trailing_key(self):
        result = apply_dictionary("I know c++.", {"c++": "C Plus Plus"})
        self.assertEqual(result, "I know C Plus Plus.")

    def test_punctuation_leading_key(self):
        result = apply_dictionary("use .net now", {".net": "dotnet"})
        self.assertEqual(result, "use dotnet now")

    def test_punctuation_key_not_matched_inside_word(self):
        result = apply_dictionary("abc++ c++", {"c++": "cpp"})
        self.assertEqual(result, "abc++ cpp")

    def test_case_insensitive(self):
        result = apply_dictionary("Open AI and OPEN ai", {"open ai": "OpenAI"})
        self.assertEqual(result, "OpenAI and OpenAI")

    def test_all_occurrences_replaced(self):
        result = apply_dictionary("foo foo foo", {"foo": "bar"})
        self.assertEqual(result, "bar bar bar")

    def test_regex_metacharacters_escaped(self):
        result = apply_dictionary("a.b axb", {"a.b": "dot"})
        self.assertEqual(result, "dot axb")

    def test_match_at_text_edges(self):
        result = apply_dictionary("c++", {"c++": "cpp"})
        self.assertEqual(result, "cpp")

    def test_replacement_backslashes_literal(self):
        result = apply_dictionary("path here", {"path": r"C:\new\1"})
        self.assertEqual(result, r"C:\new\1 here")

    def test_later_entries_see_earlier_output(self):
        table = {"alpha": "beta", "beta": "gamma"}
        self.assertEqual(apply_dictionary("alpha", table), "gamma")

    def test_order_matters(self):
        table = {"beta": "gamma", "alpha": "beta"}
        self.assertEqual(apply_dictionary("alpha", table), "beta")

    def test_none_text_returned_unchanged(self):
        self.assertIsNone(apply_dictionary(None, {"a": "b"}))

    def test_empty_text_returned_unchanged(self):
        self.assertEqual(apply_dictionary("", {"a": "b"}), "")

    def test_missing_table_returns_input(self):
        self.assertEqual(apply_dictionary("text", None), "text")
        self.assertEqual(apply_dictionary("text", {}), "text")

    def test_empty_key_ignored(self):
        self.assertEqual(apply_dictionary("abc", {"": "x"}), "abc")


_KEYS = st.sampled_from(["he", "she", "cat", "dog", "open", "voice"])
_VALUES = st.text(alphabet="0123456789", min_size=1, max_size=4)


@settings(max_examples=100)
@given(
    words=st.lists(st.sampled_from(["he", "hello", "cat", "dog", "the", "voice", "x"]), max_size=12),
    table=st.dictionaries(_KEYS, _VALUES, max_size=4),
)
def test_apply_is_idempotent_when_values_are_not_keys(words, table):
    text = " ".join(words)
    once = apply_dictionary(text, table)
    assert apply_dictionary(once, table) == once


class TestValidateDictionary:
    """Edit boundary checks."""

    def test_accepts_string_mapping(self):
        payload = {"gpt": "GPT", "c++": "C++"}
        result = validate_dictionary(payload)
        assert result == payload
        assert result is not payload

    def test_rejects_list(self):
        with pytest.raises(DictionaryValidationError):
            validate_dictionary([["a", "b"]])

    def test_rejects_non_mapping(self):
        for payload in ("a=b", 42, None):
            with pytest.raises(DictionaryValidationError):
                validate_dictionary(payload)

    def test_rejects_non_string_value(self):
        with pytest.raises(DictionaryValidationError):
            validate_dictionary({"a": 1})

    def test_rejects_nested_value(self):
        with pytest.raises(DictionaryValidationError):
            validate_dictionary({"a": {"b": "c"}})

    def test_rejects_too_many_entries(self):
        payload = {f"k{i}": "v" for i in range(MAX_DICTIONARY_ENTRIES + 1)}
        with pytest.raises(DictionaryValidationError):
            validate_dictionary(payload)

    def test_accepts_max_entries(self):
        payload = {f"k{i}": "v" for i in range(MAX_DICTIONARY_ENTRIES)}
        assert len(validate_dictionary(payload)) == MAX_DICTIONARY_ENTRIES

    def test_rejects_long_key(self):
        with pytest.raises(DictionaryValidationError):
            validate_dictionary({"k" * (MAX_ENTRY_LENGTH + 1): "v"})

    def test_rejects_long_value(self):
        with pytest.raises(DictionaryValidationError):
            validate_dictionary({"k": "v" * (MAX_ENTRY_LENGTH + 1)})

    def test_error_is_validation_error(self):
        assert issubclass(DictionaryValidationError, ValidationError)
        assert issubclass(DictionaryValidationError, ValueError)


class TestDictionaryStore:
    """Whole-table persistence."""

    def test_missing_file_loads_empty(self, tmp_path):
        assert DictionaryStore(tmp_path / "dictionary.json").load() == {}

    def test_save_then_load(self, tmp_path):
        store = DictionaryStore.in_dir(tmp_path)
        store.save({"open ai": "OpenAI"})
        assert store.load() == {"open ai": "OpenAI"}
        assert store.path == tmp_path / "dictionary.json"

    def test_save_creates_directory(self, tmp_path):
        store = DictionaryStore(tmp_path / "nested" / "dictionary.json")
        store.save({"a": "b"})
        assert store.path.is_file()

    def test_save_replaces_whole_table(self, tmp_path):
        store = DictionaryStore.in_dir(tmp_path)
        store.save({"a": "b", "c": "d"})
        store.save({"e": "f"})
        assert store.load() == {"e": "f"}

    def test_invalid_table_not_written(self, tmp_path):
        store = DictionaryStore.in_dir(tmp_path)
        store.save({"a": "b"})
        with pytest.raises(DictionaryValidationError):
            store.save(["not", "a", "dict"])
        assert store.load() == {"a": "b"}

    def test_no_temp_files_left_behind(self, tmp_path):
        store = DictionaryStore.in_dir(tmp_path)
        store.save({"a": "b"})
        assert os.listdir(tmp_path) == ["dictionary.json"]

    def test_failed_replace_keeps_old_table(self, tmp_path):
        store = DictionaryStore.in_dir(tmp_path)
        store.save({"a": "b"})
        with patch("openvoice.dictionary.os.replace", side_effect=OSError("denied")):
            with pytest.raises(DictionaryStoreError):
                store.save({"x": "y"})
        assert store.load() == {"a": "b"}
        assert os.listdir(tmp_path) == ["dictionary.json"]

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "dictionary.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DictionaryStoreError):
            DictionaryStore(path).load()

    def test_invalid_content_raises_store_error(self, tmp_path):
        path = tmp_path / "dictionary.json"
        path.write_text(json.dumps(["a", "b"]), encoding="utf-8")
        with pytest.raises(DictionaryStoreError):
            DictionaryStore(path).load()

    def test_unicode_round_trip(self, tmp_path):
        store = DictionaryStore.in_dir(tmp_path)
        store.save({"cafe": "café"})
        assert store.load() == {"cafe": "café"}
