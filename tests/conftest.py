"""
Pytest configuration and fixtures for openvoice tests.

IMPORTANT: This file sets up mocks for hardware/display-bound modules
BEFORE any test imports happen. pynput needs an X/Wayland session and
sounddevice needs the PortAudio library; neither is available on headless
CI machines.
"""

import sys
from unittest.mock import MagicMock


def _setup_global_mocks():
    """
    Replace modules that cannot be imported on this machine.

    Tests never talk to the real keyboard, clipboard or microphone; they
    inject fakes or patch the module attributes directly.
    """
    try:
        import pynput.keyboard  # noqa: F401
    except Exception:
        mock_pynput = MagicMock()
        sys.modules['pynput'] = mock_pynput
        sys.modules['pynput.keyboard'] = mock_pynput.keyboard

    try:
        import sounddevice  # noqa: F401
    except Exception:
        mock_sd = MagicMock()
        mock_sd.PortAudioError = type("PortAudioError", (Exception,), {})
        sys.modules['sounddevice'] = mock_sd


# Run mocks setup immediately when conftest is loaded
_setup_global_mocks()


import logging
import threading

import pytest

from fakes import FakeBackend, FakeCaptureDevice, FakeOutput, StatusRecorder
from openvoice.status import SessionStatus


# =============================================================================
# LOGGING PROTECTION
# =============================================================================

@pytest.fixture(autouse=True)
def _protect_logging_handlers():
    """
    Ensure all handlers have integer levels before and after each test.

    MagicMock-heavy tests can leave mock attributes on handlers, which makes
    logging's level comparisons raise TypeError.
    """
    def _fix_handler_levels():
        for handler in logging.root.handlers[:]:
            if not isinstance(handler.level, int):
                handler.level = logging.NOTSET
        for name in list(logging.Logger.manager.loggerDict.keys()):
            logger = logging.getLogger(name)
            for handler in logger.handlers[:]:
                if not isinstance(handler.level, int):
                    handler.level = logging.NOTSET

    _fix_handler_levels()
    yield
    _fix_handler_levels()


@pytest.fixture
def capture_device():
    return FakeCaptureDevice()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def fake_output():
    return FakeOutput()


@pytest.fixture
def session_status():
    return SessionStatus()


@pytest.fixture
def status_recorder(session_status):
    return StatusRecorder(session_status)


@pytest.fixture
def gate():
    """Event used to hold a fake backend inside transcribe()."""
    return threading.Event()
