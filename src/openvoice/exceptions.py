"""
Custom Exceptions for OpenVoice.

This module defines the exception hierarchy used throughout the application.
Validation errors are also ValueErrors so callers that only know the
standard library can still catch them.
"""


class OpenVoiceError(Exception):
    """Base exception for all OpenVoice errors."""
    pass


class ValidationError(OpenVoiceError, ValueError):
    """Input rejected before any side effect took place."""
    pass


class ConfigurationError(ValidationError):
    """Error in application configuration."""
    pass


class InvalidModelNameError(ValidationError):
    """Model identifier contains forbidden characters or sequences."""
    pass


class PathTraversalError(ValidationError):
    """Resolved model path escapes the models directory."""
    pass


class UnknownModelError(ValidationError):
    """Model identifier is not in the known model catalogue."""
    pass


class DictionaryValidationError(ValidationError):
    """Dictionary payload is malformed or exceeds its bounds."""
    pass


class HotkeyValidationError(ValidationError):
    """Hotkey specification cannot be parsed."""
    pass


class WavFormatError(ValidationError):
    """WAV header cannot be written or patched with the given values."""
    pass


class TrustError(OpenVoiceError):
    """Download target uses an untrusted scheme or host."""
    pass


class TransportError(OpenVoiceError):
    """Network or HTTP failure while downloading."""
    pass


class TooManyRedirectsError(TransportError):
    """Redirect chain exceeded the allowed number of hops."""
    pass


class DownloadHTTPError(TransportError):
    """Download finished with a non-2xx HTTP status."""

    def __init__(self, status_code: int):
        super().__init__(f"Download failed: HTTP {status_code}")
        self.status_code = status_code


class StateError(OpenVoiceError):
    """Operation called in a state that does not allow it."""
    pass


class ModelNotLoadedError(StateError):
    """Transcription requested before a model was loaded."""
    pass


class DeviceError(OpenVoiceError):
    """Error opening or using the audio capture device."""
    pass


class EngineUnavailableError(OpenVoiceError):
    """Speech recognition engine cannot be used on this platform."""
    pass


class TranscriptionError(OpenVoiceError):
    """Error transcribing audio locally via whisper.cpp."""
    pass


class OutputError(OpenVoiceError):
    """Error outputting text to clipboard or active application."""
    pass


class DictionaryStoreError(OpenVoiceError):
    """Error reading or writing the persisted dictionary."""
    pass


class HotkeyRegistrationError(OpenVoiceError):
    """Error when the global hotkey listener fails to start."""
    pass
