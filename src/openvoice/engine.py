"""
Transcription Engine Module
Local speech-to-text using whisper.cpp via pywhispercpp.

TranscriptionEngine owns the load/unload lifecycle and normalizes whatever
segment shape the recognition backend returns into a single string.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from openvoice.exceptions import (
    EngineUnavailableError,
    ModelNotLoadedError,
    TranscriptionError,
)


logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


class RecognitionBackend(ABC):
    """Opaque speech recognition capability."""

    @abstractmethod
    def transcribe(
        self,
        model_path: str,
        audio_path: str,
        language: str,
        use_gpu: bool,
    ) -> Optional[Iterable[Any]]:
        """
        Recognize one utterance.

        Returns:
            Segments, each either a string, a sequence whose first element is
            the text (followed by timing data), or an object with a ``text``
            attribute.
        """
        pass

    def release(self) -> None:
        """Free any model held in memory."""
        pass


class WhisperCppBackend(RecognitionBackend):
    """Runs ggml models through pywhispercpp."""

    def __init__(self, n_threads: Optional[int] = None):
        """
        Args:
            n_threads: whisper.cpp worker threads (library default if None)

        Raises:
            EngineUnavailableError: If pywhispercpp cannot be imported.
        """
        try:
            from pywhispercpp.model import Model
        except ImportError as e:
            raise EngineUnavailableError(
                f"whisper.cpp bindings not available on this platform: {e}"
            ) from e

        self._model_cls = Model
        self._n_threads = n_threads
        self._model = None
        self._model_path: Optional[str] = None

    def _ensure_model_loaded(self, model_path: str) -> Any:
        if self._model is None or self._model_path != model_path:
            params: Dict[str, Any] = {"print_realtime": False, "print_progress": False}
            if self._n_threads:
                params["n_threads"] = self._n_threads
            logger.info(f"Loading whisper.cpp model from {model_path}")
            self._model = self._model_cls(model_path, **params)
            self._model_path = model_path
        return self._model

    def transcribe(self, model_path, audio_path, language, use_gpu):
        # GPU offload is chosen when whisper.cpp is built; nothing to toggle here
        model = self._ensure_model_loaded(model_path)
        return model.transcribe(audio_path, language=language)

    def release(self) -> None:
        self._model = None
        self._model_path = None


def _default_backend() -> Optional[RecognitionBackend]:
    try:
        return WhisperCppBackend()
    except EngineUnavailableError as e:
        logger.warning(str(e))
        return None


def _segment_text(segment: Any) -> str:
    if isinstance(segment, str):
        return segment
    if isinstance(segment, (list, tuple)):
        return str(segment[0]) if segment else ""
    text = getattr(segment, "text", None)
    return "" if text is None else str(text)


def normalize_segments(segments: Optional[Iterable[Any]]) -> str:
    """Join the text of every segment with one space and trim the result."""
    if not segments:
        return ""
    return " ".join(_segment_text(seg) for seg in segments).strip()


class TranscriptionEngine:
    """Adapter around a recognition backend with an explicit loaded state."""

    _UNSET = object()

    def __init__(
        self,
        backend: Any = _UNSET,
        language: str = DEFAULT_LANGUAGE,
        use_gpu: bool = True,
    ):
        """
        Initialize the engine.

        Args:
            backend: Recognition backend. Defaults to whisper.cpp; pass None
                to model a platform where no backend can be bound.
            language: Fixed transcription language
            use_gpu: Request hardware acceleration from the backend
        """
        if backend is self._UNSET:
            backend = _default_backend()
        self._backend: Optional[RecognitionBackend] = backend
        self.language = language
        self.use_gpu = use_gpu
        self._model_path: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        """Whether a model is loaded."""
        return self._model_path is not None

    @property
    def model_path(self) -> Optional[str]:
        return self._model_path

    def load_model(self, model_path: Union[str, Path]) -> None:
        """
        Record the model to use for subsequent transcriptions.

        Raises:
            EngineUnavailableError: If no recognition backend is bound.
        """
        if self._backend is None:
            raise EngineUnavailableError(
                "Speech recognition engine not available on this platform"
            )
        self._model_path = str(model_path)
        logger.info(f"Model loaded: {self._model_path}")

    def transcribe(self, audio_path: Union[str, Path]) -> str:
        """
        Transcribe a WAV file.

        Returns:
            Transcribed text; empty string when nothing was recognized.

        Raises:
            ModelNotLoadedError: If load_model() was not called.
            TranscriptionError: If the backend fails.
        """
        if not self.is_loaded:
            raise ModelNotLoadedError("Model not loaded")

        try:
            segments = self._backend.transcribe(
                self._model_path,
                str(audio_path),
                language=self.language,
                use_gpu=self.use_gpu,
            )
            if segments is not None:
                segments = list(segments)
        except Exception as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        return normalize_segments(segments)

    def unload(self) -> None:
        """Return to the unloaded state. Safe to call repeatedly."""
        if self._backend is not None:
            self._backend.release()
        self._model_path = None
