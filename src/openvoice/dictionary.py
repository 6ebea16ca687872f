"""
Dictionary Module
Whole-phrase, case-insensitive substitutions applied to transcribed text,
plus validation and persistence of the user's dictionary table.

Pipeline: TranscriptionEngine -> apply_dictionary -> ClipboardOutput
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from openvoice.exceptions import DictionaryStoreError, DictionaryValidationError


logger = logging.getLogger(__name__)

MAX_DICTIONARY_ENTRIES = 500
MAX_ENTRY_LENGTH = 200

_WORD_CHAR = re.compile(r"\w")


def _compile_entry(phrase: str) -> "re.Pattern[str]":
    """Build the boundary-aware pattern for one dictionary key."""
    escaped = re.escape(phrase)
    # \b only works next to a word character; punctuation-edged keys
    # such as "c++" need an explicit non-word-or-edge check instead.
    prefix = r"\b" if _WORD_CHAR.match(phrase[0]) else r"(?:(?<=\W)|^)"
    suffix = r"\b" if _WORD_CHAR.match(phrase[-1]) else r"(?=\W|$)"
    return re.compile(prefix + escaped + suffix, re.IGNORECASE)


def apply_dictionary(text: Optional[str], table: Optional[Mapping[str, str]]) -> Optional[str]:
    """
    Replace every whole-phrase occurrence of each key with its value.

    Entries are applied in table order, so a later entry can rewrite text
    produced by an earlier one.

    Args:
        text: Raw transcription
        table: Mapping of phrase -> replacement

    Returns:
        Rewritten text, or the input unchanged when text or table is empty.
    """
    if not text or not table:
        return text

    result = text
    for phrase, replacement in table.items():
        if not phrase:
            continue
        pattern = _compile_entry(phrase)
        # Callable replacement keeps backslashes in values literal
        result = pattern.sub(lambda _match, value=replacement: value, result)
    return result


def validate_dictionary(payload: Any) -> Dict[str, str]:
    """
    Validate a dictionary edit coming from outside the core.

    Args:
        payload: Candidate table

    Returns:
        A new dict holding the validated entries.

    Raises:
        DictionaryValidationError: If payload is not a str -> str mapping
            within the entry count and length bounds.
    """
    if not isinstance(payload, Mapping):
        raise DictionaryValidationError(
            f"Dictionary must be a mapping of strings, got {type(payload).__name__}"
        )

    if len(payload) > MAX_DICTIONARY_ENTRIES:
        raise DictionaryValidationError(
            f"Dictionary has {len(payload)} entries; maximum is {MAX_DICTIONARY_ENTRIES}"
        )

    validated: Dict[str, str] = {}
    for key, value in payload.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise DictionaryValidationError(
                f"Dictionary entries must be strings: {key!r} -> {value!r}"
            )
        if len(key) > MAX_ENTRY_LENGTH or len(value) > MAX_ENTRY_LENGTH:
            raise DictionaryValidationError(
                f"Dictionary entry longer than {MAX_ENTRY_LENGTH} characters: {key[:40]!r}"
            )
        validated[key] = value
    return validated


class DictionaryStore:
    """Loads and saves the dictionary table as one JSON object."""

    FILENAME = "dictionary.json"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def in_dir(cls, data_dir: Union[str, Path]) -> "DictionaryStore":
        """Store located at <data_dir>/dictionary.json."""
        return cls(Path(data_dir) / cls.FILENAME)

    def load(self) -> Dict[str, str]:
        """
        Read the whole table from disk.

        Returns:
            The validated table; empty if the file does not exist yet.

        Raises:
            DictionaryStoreError: If the file cannot be read or holds an
                invalid table.
        """
        if not self.path.is_file():
            return {}

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DictionaryStoreError(f"Could not read dictionary {self.path}: {e}") from e

        try:
            return validate_dictionary(payload)
        except DictionaryValidationError as e:
            raise DictionaryStoreError(f"Invalid dictionary in {self.path}: {e}") from e

    def save(self, table: Any) -> Dict[str, str]:
        """
        Validate and atomically replace the stored table.

        The table is written to a temporary file next to the destination and
        renamed over it, so readers see either the old or the new table.

        Returns:
            The validated table that was written.

        Raises:
            DictionaryValidationError: If the table is invalid (nothing written).
            DictionaryStoreError: If the file cannot be written.
        """
        validated = validate_dictionary(table)
        payload = json.dumps(validated, indent=2, ensure_ascii=False)

        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=".dictionary-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise DictionaryStoreError(f"Could not save dictionary {self.path}: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

        logger.debug(f"Saved {len(validated)} dictionary entries to {self.path}")
        return validated
