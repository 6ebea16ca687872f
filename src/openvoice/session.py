"""
Recording Session Module

SessionStateMachine turns hotkey presses into start/stop intents.
RecordingSession implements them: capture into a temporary WAV file, then
transcribe -> apply dictionary -> output on stop.

The only state shared between a stopping utterance and a newly started one
is the CaptureSlot. end_capture() empties the slot and stops the capture in
the caller's thread; process() does the slow work afterwards, so a new
recording can start while the previous one is still being transcribed.
"""

import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Generic, Mapping, Optional, TypeVar

from openvoice import status as st
from openvoice.audio_capture import CaptureDevice, CaptureHandle
from openvoice.dictionary import apply_dictionary
from openvoice.engine import TranscriptionEngine
from openvoice.output_handler import DEFAULT_RESTORE_DELAY_MS, ClipboardOutput
from openvoice.status import SessionStatus
from openvoice.wav_framer import HEADER_SIZE, patch_header, write_header


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(Enum):
    """Hotkey toggle states."""
    IDLE = "idle"
    RECORDING = "recording"


class SessionStateMachine:
    """Two-state toggle that sequences start/stop intents."""

    def __init__(self, on_start: Callable[[], None], on_stop: Callable[[], None]):
        self.on_start = on_start
        self.on_stop = on_stop
        self._state = SessionState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    def _flip(self, expected: Optional[SessionState] = None) -> Optional[bool]:
        # Returns True when the flip started a recording, None when skipped
        with self._lock:
            if expected is not None and self._state is not expected:
                return None
            starting = self._state is SessionState.IDLE
            self._state = SessionState.RECORDING if starting else SessionState.IDLE
        return starting

    def _dispatch(self, starting: Optional[bool]) -> None:
        if starting is None:
            return
        if starting:
            self.on_start()
        else:
            self.on_stop()

    def toggle(self) -> None:
        """Idle -> Recording calls on_start; Recording -> Idle calls on_stop."""
        self._dispatch(self._flip())

    def start(self) -> None:
        """Toggle only if idle."""
        self._dispatch(self._flip(SessionState.IDLE))

    def stop(self) -> None:
        """Toggle only if recording."""
        self._dispatch(self._flip(SessionState.RECORDING))


class CaptureSlot(Generic[T]):
    """
    Single-value slot with atomic claim and exchange.

    The optional callbacks run while the slot lock is held, so whatever they
    publish is ordered with every other slot transition.
    """

    def __init__(self):
        self._value: Optional[T] = None
        self._lock = threading.RLock()

    def peek(self) -> Optional[T]:
        return self._value

    def claim(self, value: T, on_claimed: Optional[Callable[[], None]] = None) -> bool:
        """Store value if the slot is empty. Returns True on success."""
        with self._lock:
            if self._value is not None:
                return False
            self._value = value
            if on_claimed is not None:
                on_claimed()
            return True

    def take(self, on_taken: Optional[Callable[[], None]] = None) -> Optional[T]:
        """Empty the slot and return what it held."""
        with self._lock:
            value, self._value = self._value, None
            if value is not None and on_taken is not None:
                on_taken()
            return value

    def release(self, value: T) -> None:
        """Empty the slot only if it still holds value."""
        with self._lock:
            if self._value is value:
                self._value = None

    def when_empty(self, callback: Callable[[], None]) -> bool:
        """Run callback only if the slot is empty. Returns True if it ran."""
        with self._lock:
            if self._value is not None:
                return False
            callback()
            return True


class Utterance:
    """One recording, written to a temporary WAV file as samples arrive."""

    def __init__(self, temp_dir: Optional[str] = None):
        self.temp_dir = temp_dir
        self.path: Optional[Path] = None
        self.byte_count = 0
        self.started_at = time.time()
        self.capture: Optional[CaptureHandle] = None
        self._file = None
        self._lock = threading.Lock()

    def open(self) -> None:
        """Create the file and write the placeholder header."""
        fd, path = tempfile.mkstemp(prefix="openvoice-", suffix=".wav", dir=self.temp_dir)
        self.path = Path(path)
        self._file = os.fdopen(fd, "wb")
        write_header(self._file, 0)

    def write(self, chunk: bytes) -> None:
        """Append raw samples. Called from the capture thread."""
        with self._lock:
            if self._file is None:
                return
            self._file.write(chunk)
            self.byte_count += len(chunk)

    @property
    def duration(self) -> float:
        """Seconds elapsed since the utterance started."""
        return time.time() - self.started_at

    def finalize(self) -> Path:
        """
        Stop capture, close the file and fix the header sizes.

        Returns:
            Path of the finished WAV file.
        """
        try:
            if self.capture is not None:
                capture, self.capture = self.capture, None
                capture.stop()
        finally:
            with self._lock:
                f, self._file = self._file, None
            if f is not None:
                f.close()

        patch_header(self.path, self.byte_count)
        logger.debug(
            f"Utterance finalized: {self.path} ({self.byte_count} bytes, "
            f"{self.byte_count + HEADER_SIZE} on disk)"
        )
        return self.path

    def discard(self) -> None:
        """Close and delete the temporary file."""
        with self._lock:
            f, self._file = self._file, None
        if f is not None:
            f.close()
        if self.path is not None:
            try:
                os.unlink(self.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove temporary audio {self.path}: {e}")


@dataclass(frozen=True)
class OutputOptions:
    """How final text is delivered."""
    auto_paste: bool = True
    restore_delay_ms: int = DEFAULT_RESTORE_DELAY_MS


class RecordingSession:
    """Runs capture -> transcribe -> dictionary -> output for each utterance."""

    def __init__(
        self,
        capture_device: CaptureDevice,
        engine: TranscriptionEngine,
        output: ClipboardOutput,
        status: Optional[SessionStatus] = None,
        dictionary_provider: Optional[Callable[[], Optional[Mapping[str, str]]]] = None,
        output_options_provider: Optional[Callable[[], OutputOptions]] = None,
        temp_dir: Optional[str] = None,
    ):
        """
        Initialize the session.

        Args:
            capture_device: Microphone capture engine
            engine: Loaded transcription engine
            output: Clipboard/paste sink
            status: Status holder to publish to (a new one if omitted)
            dictionary_provider: Returns the current dictionary table; called
                on every stop so edits apply to the next utterance
            output_options_provider: Returns current output options, also
                read on every stop
            temp_dir: Directory for temporary WAV files (system default if None)
        """
        self.capture_device = capture_device
        self.engine = engine
        self.output = output
        self.status = status or SessionStatus()
        self._dictionary_provider = dictionary_provider or (lambda: None)
        self._output_options_provider = output_options_provider or OutputOptions
        self.temp_dir = temp_dir
        self._current: CaptureSlot[Utterance] = CaptureSlot()

    @property
    def is_recording(self) -> bool:
        """Whether an utterance is being captured."""
        return self._current.peek() is not None

    def _report_error(self, message: str) -> None:
        self.status.set_error(message)
        self.status.publish_error(message)

    def start(self) -> bool:
        """
        Begin a new utterance.

        Ignored while a capture is already active. Device failures are
        reported through the status and leave the session ready for another
        attempt.

        Returns:
            True if a capture was started.
        """
        if self._current.peek() is not None:
            logger.debug("Start ignored: already recording")
            return False

        utterance = Utterance(self.temp_dir)
        if not self._current.claim(utterance, lambda: self.status.set(st.RECORDING)):
            logger.debug("Start ignored: already recording")
            return False

        try:
            utterance.open()
            utterance.capture = self.capture_device.open_capture(utterance.write)
        except Exception as e:
            logger.error(f"Recording failed to start: {e}")
            self._current.release(utterance)
            utterance.discard()
            self._report_error(str(e))
            return False

        logger.info(f"Recording started: {utterance.path}")
        return True

    def end_capture(self) -> Optional[Utterance]:
        """
        Detach the current utterance and finish its WAV file.

        Runs in the caller's thread: once it returns, the capture is stopped
        and a new recording can start.

        Returns:
            The finalized utterance to pass to process(), or None if nothing
            was recording or the file could not be finished.
        """
        utterance = self._current.take(lambda: self.status.set(st.TRANSCRIBING))
        if utterance is None:
            return None

        try:
            utterance.finalize()
        except Exception as e:
            logger.exception(f"Recording failed to stop: {e}")
            self._report_error(str(e))
            self._finish(utterance)
            return None

        logger.info(f"Recording stopped. Duration: {utterance.duration:.1f}s")
        return utterance

    def process(self, utterance: Utterance) -> Optional[str]:
        """
        Transcribe a finalized utterance, apply the dictionary and output it.

        The temporary WAV file is deleted whether the pipeline succeeds or
        fails.

        Returns:
            Final text, or None if the pipeline failed.
        """
        text = None
        try:
            raw_text = self.engine.transcribe(utterance.path)
            text = apply_dictionary(raw_text, self._dictionary_provider())
            if text != raw_text:
                logger.debug(f"Dictionary applied: '{raw_text}' -> '{text}'")

            if text:
                options = self._output_options_provider()
                self.output.emit(
                    text,
                    auto_paste=options.auto_paste,
                    restore_delay_ms=options.restore_delay_ms,
                )
            self.status.publish_transcription(text)
        except Exception as e:
            logger.exception(f"Transcription failed: {e}")
            text = None
            self._report_error(str(e))
        finally:
            self._finish(utterance)

        return text

    def stop(self) -> Optional[str]:
        """
        Finish the current utterance and deliver its transcription.

        Equivalent to end_capture() followed by process() in one thread.
        Does nothing when no capture is active.

        Returns:
            Final text, or None if nothing was recorded or the pipeline failed.
        """
        utterance = self.end_capture()
        if utterance is None:
            return None
        return self.process(utterance)

    def _finish(self, utterance: Utterance) -> None:
        utterance.discard()
        # A newer utterance owns the status if one started meanwhile
        self._current.when_empty(lambda: self.status.set(st.IDLE))

    def cancel(self) -> None:
        """Abort the current capture without transcribing it."""
        utterance = self._current.take()
        if utterance is None:
            return
        try:
            if utterance.capture is not None:
                utterance.capture.stop()
        except Exception as e:
            logger.warning(f"Error stopping capture: {e}")
        finally:
            utterance.discard()
            self._current.when_empty(lambda: self.status.set(st.IDLE))
