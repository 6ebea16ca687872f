"""
Audio Capture Module
Streams 16 kHz mono 16-bit PCM from the default microphone.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from openvoice.exceptions import DeviceError
from openvoice.wav_framer import CHANNELS, SAMPLE_RATE


logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes], None]


class CaptureHandle(ABC):
    """A running capture."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing; no on_data call happens after this returns."""
        pass


class CaptureDevice(ABC):
    """Opaque microphone capture capability."""

    @abstractmethod
    def open_capture(self, on_data: DataCallback) -> CaptureHandle:
        """
        Start streaming raw little-endian int16 samples to on_data.

        Raises:
            DeviceError: If the input device cannot be opened.
        """
        pass


class _StreamHandle(CaptureHandle):
    def __init__(self, stream: sd.InputStream):
        self._stream: Optional[sd.InputStream] = stream

    def stop(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        try:
            # stop() waits for pending callbacks to finish
            stream.stop()
        finally:
            stream.close()


class SoundDeviceCapture(CaptureDevice):
    """Records from an input device using sounddevice."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS,
                 device: Optional[int] = None):
        """
        Initialize capture settings.

        Args:
            sample_rate: Sample rate in Hz (default 16000 for Whisper)
            channels: Number of audio channels (default 1 for mono)
            device: Input device index (None for the system default)
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device

    def open_capture(self, on_data: DataCallback) -> CaptureHandle:
        def _audio_callback(indata: np.ndarray, frames: int, time_info, status) -> None:
            if status:
                logger.debug(f"Audio callback status: {status}")
            on_data(indata.astype("<i2", copy=False).tobytes())

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
                callback=_audio_callback,
            )
        except (sd.PortAudioError, OSError, ValueError) as e:
            raise DeviceError(f"Could not open microphone: {e}") from e

        try:
            stream.start()
        except (sd.PortAudioError, OSError) as e:
            stream.close()
            raise DeviceError(f"Could not start recording: {e}") from e

        logger.debug(f"Capture started ({self.sample_rate} Hz, {self.channels} ch)")
        return _StreamHandle(stream)
