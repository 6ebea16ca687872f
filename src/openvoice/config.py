"""
Configuration Module
Loads and validates settings from environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from openvoice.exceptions import ConfigurationError, HotkeyValidationError, ValidationError
from openvoice.hotkey import DEFAULT_HOTKEY, parse_hotkey
from openvoice.model_fetcher import DEFAULT_MODEL, MODEL_URLS, validate_model_name
from openvoice.output_handler import DEFAULT_RESTORE_DELAY_MS


def default_data_dir() -> Path:
    """Application data directory (~/.openvoice)."""
    return Path.home() / ".openvoice"


@dataclass
class Config:
    """Application configuration from environment variables."""

    data_dir: Path = field(default_factory=default_data_dir)
    model_name: str = DEFAULT_MODEL
    hotkey: str = DEFAULT_HOTKEY
    language: str = "en"

    # Output
    auto_paste: bool = True
    clipboard_restore_delay: int = DEFAULT_RESTORE_DELAY_MS

    debug: bool = False

    @property
    def dictionary_path(self) -> Path:
        return Path(self.data_dir) / "dictionary.json"

    @property
    def log_path(self) -> Path:
        return Path(self.data_dir) / "openvoice.log"

    @classmethod
    def from_env(cls) -> "Config":
        """
        Load configuration from environment variables.

        Environment Variables:
            OPENVOICE_DATA_DIR: Optional. Models, dictionary and logs (default: ~/.openvoice).
            OPENVOICE_MODEL: Optional. Model file to use (default: ggml-distil-large-v3.5.bin).
            OPENVOICE_HOTKEY: Optional. Toggle hotkey (default: ctrl+shift+space).
            OPENVOICE_LANGUAGE: Optional. Transcription language (default: en).
            OPENVOICE_AUTO_PASTE: Optional. Paste into the active app (default: true).
            OPENVOICE_CLIPBOARD_RESTORE_DELAY: Optional. Milliseconds before the previous
                                               clipboard is restored (default: 150).
            OPENVOICE_DEBUG: Optional. Debug logging to console and file (default: false).

        Returns:
            Config instance with loaded values.

        Raises:
            ConfigurationError: If a numeric value cannot be parsed.
        """
        load_dotenv()

        def parse_bool(value: str, default: bool) -> bool:
            if not value:
                return default
            return value.strip().lower() in ("true", "1", "yes")

        def parse_int(name: str, default: int) -> int:
            raw = os.environ.get(name, "")
            if not raw.strip():
                return default
            try:
                return int(raw)
            except ValueError:
                raise ConfigurationError(f"{name} must be an integer. Got: {raw}")

        data_dir = os.environ.get("OPENVOICE_DATA_DIR")

        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else default_data_dir(),
            model_name=os.environ.get("OPENVOICE_MODEL", DEFAULT_MODEL),
            hotkey=os.environ.get("OPENVOICE_HOTKEY", DEFAULT_HOTKEY),
            language=os.environ.get("OPENVOICE_LANGUAGE", "en").lower(),
            auto_paste=parse_bool(os.environ.get("OPENVOICE_AUTO_PASTE", ""), True),
            clipboard_restore_delay=parse_int(
                "OPENVOICE_CLIPBOARD_RESTORE_DELAY", DEFAULT_RESTORE_DELAY_MS
            ),
            debug=parse_bool(os.environ.get("OPENVOICE_DEBUG", ""), False),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of warning messages (empty if no warnings).

        Raises:
            ConfigurationError: If configuration values are invalid.
        """
        warnings = []

        try:
            validate_model_name(self.model_name)
        except ValidationError as e:
            raise ConfigurationError(f"OPENVOICE_MODEL is invalid: {e}") from e

        if self.model_name not in MODEL_URLS:
            raise ConfigurationError(
                f"OPENVOICE_MODEL must be one of: {', '.join(sorted(MODEL_URLS))}. "
                f"Got: {self.model_name}"
            )

        try:
            parse_hotkey(self.hotkey)
        except HotkeyValidationError as e:
            raise ConfigurationError(f"OPENVOICE_HOTKEY is invalid: {e}") from e

        if not self.language or not self.language.isalpha():
            raise ConfigurationError(
                f"OPENVOICE_LANGUAGE must be a language code like 'en'. Got: {self.language}"
            )

        if self.clipboard_restore_delay < 0:
            raise ConfigurationError("OPENVOICE_CLIPBOARD_RESTORE_DELAY must be non-negative")

        if self.clipboard_restore_delay > 5000:
            warnings.append(
                f"Long clipboard restore delay ({self.clipboard_restore_delay} ms); "
                "the previous clipboard stays replaced until it elapses"
            )

        if self.model_name.endswith(".en.bin") and self.language != "en":
            warnings.append(
                f"Model {self.model_name} is English-only but OPENVOICE_LANGUAGE={self.language}"
            )

        return warnings
