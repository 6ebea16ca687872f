"""
OpenVoice - Speech-to-Text

Main application entry point.
Orchestrates model setup, hotkey detection, recording, transcription and
text output.
"""

import logging
import signal
import sys
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

from openvoice import status as st
from openvoice.audio_capture import CaptureDevice, SoundDeviceCapture
from openvoice.config import Config
from openvoice.dictionary import DictionaryStore
from openvoice.engine import TranscriptionEngine
from openvoice.exceptions import (
    ConfigurationError,
    DictionaryStoreError,
    HotkeyRegistrationError,
)
from openvoice.hotkey import HotkeyListener
from openvoice.model_fetcher import fetch_model, model_exists, print_progress, resolve_model_path
from openvoice.output_handler import ClipboardOutput
from openvoice.session import OutputOptions, RecordingSession, SessionStateMachine
from openvoice.status import SessionStatus


logger = logging.getLogger(__name__)


class OpenVoiceApp:
    """Main application class coordinating all modules."""

    def __init__(
        self,
        config: Config,
        engine: Optional[TranscriptionEngine] = None,
        capture_device: Optional[CaptureDevice] = None,
        output: Optional[ClipboardOutput] = None,
        status: Optional[SessionStatus] = None,
    ):
        """
        Initialize all components.

        Args:
            config: Application configuration loaded from environment.
            engine, capture_device, output, status: Optional replacements for
                the default whisper.cpp engine, microphone, clipboard sink
                and status holder.
        """
        self.config = config
        self.status = status or SessionStatus()
        self.engine = engine or TranscriptionEngine(language=config.language)
        self.capture_device = capture_device or SoundDeviceCapture()
        self.output = output or ClipboardOutput()
        self.dictionary_store = DictionaryStore(config.dictionary_path)

        self.session = RecordingSession(
            capture_device=self.capture_device,
            engine=self.engine,
            output=self.output,
            status=self.status,
            dictionary_provider=self._load_dictionary,
            output_options_provider=self._output_options,
        )
        self.state_machine = SessionStateMachine(
            on_start=self.handle_start,
            on_stop=self.handle_stop,
        )
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="openvoice-stop")
        self.hotkey_listener: Optional[HotkeyListener] = None

        self._ready = False
        self._running = False

    @property
    def is_ready(self) -> bool:
        """Whether the model is loaded and recording is enabled."""
        return self._ready

    @property
    def is_running(self) -> bool:
        """Whether the application is running."""
        return self._running

    # ------------------------------------------------------------------
    # Providers read on every stop
    # ------------------------------------------------------------------
    def _load_dictionary(self) -> Dict[str, str]:
        try:
            return self.dictionary_store.load()
        except DictionaryStoreError as e:
            logger.warning(f"Dictionary not applied: {e}")
            return {}

    def _output_options(self) -> OutputOptions:
        return OutputOptions(
            auto_paste=self.config.auto_paste,
            restore_delay_ms=self.config.clipboard_restore_delay,
        )

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    def initialize(self) -> bool:
        """
        Make sure the model is installed and loaded.

        Failures are published as an error status and leave recording
        disabled until restart.

        Returns:
            True if the app is ready to record.
        """
        data_dir = self.config.data_dir
        model_name = self.config.model_name
        try:
            model_path = resolve_model_path(data_dir, model_name)
            if not model_exists(data_dir, model_name):
                self.status.set(st.DOWNLOADING_MODEL)
                print(f"[Model] Downloading '{model_name}' (this may take a few minutes)...")
                fetch_model(data_dir, model_name, on_progress=print_progress)
                print()

            self.status.set(st.LOADING_MODEL)
            self.engine.load_model(model_path)
        except Exception as e:
            logger.exception(f"Initialization failed: {e}")
            self.status.set_error(str(e))
            return False

        self._ready = True
        self.status.set(st.IDLE)
        return True

    def register_hotkey(self) -> bool:
        """Start listening for the configured hotkey."""
        self.hotkey_listener = HotkeyListener(self.config.hotkey, self.state_machine.toggle)
        try:
            self.hotkey_listener.start()
        except HotkeyRegistrationError as e:
            logger.error(str(e))
            self.status.set_error(f'hotkey "{self.config.hotkey}" could not be registered')
            return False
        return True

    # ------------------------------------------------------------------
    # Session callbacks
    # ------------------------------------------------------------------
    def handle_start(self) -> None:
        """Called on the first hotkey press - start recording."""
        if not self._ready:
            logger.warning("Recording unavailable: model not loaded")
            return
        if self.session.start():
            print("\n[Recording] Started... Speak now.")

    def handle_stop(self) -> Optional[Future]:
        """Called on the second hotkey press - transcribe in the background."""
        utterance = self.session.end_capture()
        if utterance is None:
            return None
        print("[Transcribing] Processing locally...")
        return self._executor.submit(self.session.process, utterance)

    # ------------------------------------------------------------------
    # Settings edits
    # ------------------------------------------------------------------
    def get_dictionary(self) -> Dict[str, str]:
        return self._load_dictionary()

    def set_dictionary(self, payload: Any) -> Dict[str, str]:
        """
        Replace the dictionary table.

        Raises:
            DictionaryValidationError: If payload is rejected.
            DictionaryStoreError: If it cannot be saved.
        """
        return self.dictionary_store.save(payload)

    def set_hotkey(self, hotkey: str) -> None:
        """
        Switch the toggle hotkey.

        Raises:
            HotkeyValidationError: If the spec is malformed.
        """
        if self.hotkey_listener is None:
            self.hotkey_listener = HotkeyListener(hotkey, self.state_machine.toggle)
        else:
            try:
                self.hotkey_listener.restart(hotkey)
            except HotkeyRegistrationError as e:
                logger.error(str(e))
                self.status.set_error(f'hotkey "{hotkey}" could not be registered')
        self.config.hotkey = hotkey

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Start the application and block until stop() is called."""
        self._running = True

        if self.initialize():
            self.register_hotkey()

        self._print_banner()

        while self._running:
            time.sleep(0.1)

    def _print_banner(self) -> None:
        """Print welcome message and instructions."""
        hotkey = (
            self.hotkey_listener.get_hotkey_description()
            if self.hotkey_listener else self.config.hotkey
        )

        print("=" * 55)
        print("  OpenVoice - Speech-to-Text")
        print("=" * 55)
        print()
        print(f"  Model: {self.config.model_name}")
        print(f"  Status: {self.status.value}")
        print(f"  Hotkey: {hotkey} (press to start, press again to stop)")
        print()
        print("  The transcribed text will be:")
        if self.config.auto_paste:
            print("    - Pasted at the current cursor position")
            print("    - Your previous clipboard is restored afterwards")
        else:
            print("    - Copied to clipboard")
        print()
        print("  Press Ctrl+C to exit")
        print("=" * 55)
        print()

    def stop(self) -> None:
        """Stop the application gracefully."""
        if not self._running:
            return

        self._running = False

        if self.hotkey_listener is not None:
            self.hotkey_listener.stop()

        self.session.cancel()
        self._executor.shutdown(wait=True)
        self.engine.unload()

        print("\nOpenVoice stopped. Goodbye!")


def _print_transcription(text: str) -> None:
    if text:
        print(f"[Transcription] {text}")
    else:
        print("[Warning] No transcription returned (empty response)")


def _print_error(message: str) -> None:
    print(f"[Error] {message}")


def setup_logging(debug: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure logging for the application.

    Args:
        debug: If True, enable debug-level logging
        log_file: File to also log to in debug mode
    """
    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt=date_format
    )

    if debug and log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not set up file logging: {e}")
            return
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(format_str, datefmt=date_format))
        logging.getLogger().addHandler(file_handler)


def main():
    """Main entry point."""
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(debug=config.debug, log_file=config.log_path)
    logger.info("OpenVoice starting...")

    try:
        warnings = config.validate()
        for warning in warnings:
            print(f"Warning: {warning}")
            logger.warning(warning)
    except ConfigurationError as e:
        print(f"Error: {e}")
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        app = OpenVoiceApp(config=config)
    except Exception as e:
        print(f"Error: Failed to initialize application: {e}")
        logger.exception(f"Unexpected initialization error: {e}")
        sys.exit(1)

    app.status.subscribe_transcription(_print_transcription)
    app.status.subscribe_error(_print_error)

    def signal_handler(sig, frame):
        logger.info("Received shutdown signal")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("OpenVoice running")
        app.run()
    except Exception as e:
        print(f"Fatal error: {e}")
        logger.exception(f"Fatal error during execution: {e}")
        app.stop()
        sys.exit(1)


if __name__ == "__main__":
    main()
