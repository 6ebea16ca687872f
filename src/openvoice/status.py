"""
Session Status Module
Observable holder for the process-wide status string and the
transcription/error events that the presentation layer listens to.
"""

import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)

IDLE = "idle"
RECORDING = "recording"
TRANSCRIBING = "transcribing"
DOWNLOADING_MODEL = "downloading model"
LOADING_MODEL = "loading model"


def error_status(message: str) -> str:
    """Status string for a user-visible error."""
    return f"error: {message}"


class SessionStatus:
    """Holds the current status and notifies subscribers of changes."""

    def __init__(self, initial: str = IDLE):
        self._value = initial
        self._lock = threading.Lock()
        self._status_subscribers: List[Callable[[str], None]] = []
        self._transcription_subscribers: List[Callable[[str], None]] = []
        self._error_subscribers: List[Callable[[str], None]] = []

    @property
    def value(self) -> str:
        """Current status string."""
        return self._value

    def _subscribe(self, subscribers: list, callback: Callable[[str], None]) -> Callable[[], None]:
        with self._lock:
            subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in subscribers:
                    subscribers.remove(callback)

        return unsubscribe

    def subscribe_status(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register for status changes. Returns an unsubscribe function."""
        return self._subscribe(self._status_subscribers, callback)

    def subscribe_transcription(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register for final transcription text (possibly empty)."""
        return self._subscribe(self._transcription_subscribers, callback)

    def subscribe_error(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register for transcription/recording error messages."""
        return self._subscribe(self._error_subscribers, callback)

    def _notify(self, subscribers: list, payload: str) -> None:
        with self._lock:
            callbacks = list(subscribers)
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception("Status subscriber failed")

    def set(self, status: str) -> None:
        """Publish a new status."""
        self._value = status
        logger.debug(f"Status: {status}")
        self._notify(self._status_subscribers, status)

    def set_error(self, message: str) -> None:
        """Publish an ``error: <message>`` status."""
        self.set(error_status(message))

    def publish_transcription(self, text: str) -> None:
        self._notify(self._transcription_subscribers, text)

    def publish_error(self, message: str) -> None:
        self._notify(self._error_subscribers, message)
