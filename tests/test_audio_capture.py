"""
Tests for the sounddevice-backed microphone capture.

sounddevice is replaced with a mock; no audio hardware is touched.
"""

import unittest
from unittest.mock import MagicMock, patch

import numpy as np

from openvoice.audio_capture import SoundDeviceCapture
from openvoice.exceptions import DeviceError


class FakePortAudioError(Exception):
    pass


class TestSoundDeviceCapture(unittest.TestCase):

    def setUp(self):
        patcher = patch("openvoice.audio_capture.sd")
        self.mock_sd = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_sd.PortAudioError = FakePortAudioError
        self.stream = self.mock_sd.InputStream.return_value

    def test_opens_16k_mono_int16(self):
        SoundDeviceCapture().open_capture(MagicMock())

        kwargs = self.mock_sd.InputStream.call_args.kwargs
        self.assertEqual(kwargs["samplerate"], 16000)
        self.assertEqual(kwargs["channels"], 1)
        self.assertEqual(kwargs["dtype"], "int16")
        self.assertIsNone(kwargs["device"])
        self.stream.start.assert_called_once()

    def test_callback_forwards_little_endian_bytes(self):
        on_data = MagicMock()
        SoundDeviceCapture().open_capture(on_data)
        callback = self.mock_sd.InputStream.call_args.kwargs["callback"]

        callback(np.array([[1], [-2]], dtype=np.int16), 2, None, None)

        on_data.assert_called_once_with(b"\x01\x00\xfe\xff")

    def test_stop_closes_stream_once(self):
        handle = SoundDeviceCapture().open_capture(MagicMock())
        handle.stop()
        handle.stop()

        self.stream.stop.assert_called_once()
        self.stream.close.assert_called_once()

    def test_stream_closed_even_if_stop_fails(self):
        self.stream.stop.side_effect = FakePortAudioError("gone")
        handle = SoundDeviceCapture().open_capture(MagicMock())

        with self.assertRaises(FakePortAudioError):
            handle.stop()
        self.stream.close.assert_called_once()

    def test_open_failure_raises_device_error(self):
        self.mock_sd.InputStream.side_effect = FakePortAudioError("No default input device")

        with self.assertRaises(DeviceError) as ctx:
            SoundDeviceCapture().open_capture(MagicMock())
        self.assertIn("No default input device", str(ctx.exception))

    def test_start_failure_closes_stream(self):
        self.stream.start.side_effect = FakePortAudioError("busy")

        with self.assertRaises(DeviceError):
            SoundDeviceCapture().open_capture(MagicMock())
        self.stream.close.assert_called_once()

    def test_custom_device(self):
        SoundDeviceCapture(sample_rate=8000, device=3).open_capture(MagicMock())
        kwargs = self.mock_sd.InputStream.call_args.kwargs
        self.assertEqual(kwargs["samplerate"], 8000)
        self.assertEqual(kwargs["device"], 3)


if __name__ == "__main__":
    unittest.main()
