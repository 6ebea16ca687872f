"""
OpenVoice - Speech-to-Text

Press a hotkey, speak, press it again: the utterance is transcribed locally
with whisper.cpp, corrected with a user dictionary and pasted into the
active application.
"""

from openvoice.config import Config
from openvoice.dictionary import DictionaryStore, apply_dictionary, validate_dictionary
from openvoice.engine import TranscriptionEngine
from openvoice.exceptions import (
    OpenVoiceError,
    ValidationError,
    TrustError,
    TransportError,
    StateError,
    DeviceError,
    TranscriptionError,
    OutputError,
)
from openvoice.model_fetcher import fetch_model, model_exists, resolve_model_path
from openvoice.session import RecordingSession, SessionState, SessionStateMachine
from openvoice.status import SessionStatus

__version__ = "0.1.0"

__all__ = [
    "Config",
    "DictionaryStore",
    "apply_dictionary",
    "validate_dictionary",
    "TranscriptionEngine",
    "OpenVoiceError",
    "ValidationError",
    "TrustError",
    "TransportError",
    "StateError",
    "DeviceError",
    "TranscriptionError",
    "OutputError",
    "fetch_model",
    "model_exists",
    "resolve_model_path",
    "RecordingSession",
    "SessionState",
    "SessionStateMachine",
    "SessionStatus",
]
