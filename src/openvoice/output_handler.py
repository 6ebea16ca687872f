"""
Output Handler Module
Copies transcription to the clipboard and pastes it into the active
application, restoring the previous clipboard afterwards.
"""

import logging
import sys
import time
from typing import Any, Optional

import pyperclip
from pynput.keyboard import Controller, Key

from openvoice.exceptions import OutputError

logger = logging.getLogger(__name__)

DEFAULT_RESTORE_DELAY_MS = 150
SETTLE_DELAY = 0.05

_UNSET = object()


def _create_keyboard() -> Optional[Controller]:
    try:
        return Controller()
    except Exception as e:
        logger.warning(f"Could not initialize pynput keyboard controller: {e}")
        return None


class ClipboardOutput:
    """Handles output of transcribed text to clipboard and active app."""

    def __init__(
        self,
        clipboard: Any = pyperclip,
        keyboard: Any = _UNSET,
        settle_delay: float = SETTLE_DELAY,
    ):
        """
        Initialize output handler.

        Args:
            clipboard: Object with copy(text)/paste() (default: pyperclip).
                None means no clipboard is available.
            keyboard: pynput-style controller used to send the paste
                shortcut. Created on demand when omitted; None disables
                auto-paste (text stays on the clipboard).
            settle_delay: Seconds to wait between copying and pasting
        """
        self._clipboard = clipboard
        self._keyboard = _create_keyboard() if keyboard is _UNSET else keyboard
        self.settle_delay = settle_delay

    @property
    def can_paste(self) -> bool:
        """Whether keystroke injection is available."""
        return self._keyboard is not None

    def copy_to_clipboard(self, text: str) -> None:
        """
        Copy text to system clipboard.

        Raises:
            OutputError: If clipboard operation fails
        """
        if self._clipboard is None:
            raise OutputError("Clipboard not available")
        try:
            self._clipboard.copy(text)
        except Exception as e:
            raise OutputError(f"Failed to copy to clipboard: {e}") from e

    def get_clipboard_content(self) -> str:
        """
        Get current clipboard content.

        Raises:
            OutputError: If clipboard read fails
        """
        if self._clipboard is None:
            raise OutputError("Clipboard not available")
        try:
            return self._clipboard.paste()
        except Exception as e:
            raise OutputError(f"Failed to read clipboard: {e}") from e

    def _send_paste_shortcut(self) -> None:
        modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
        try:
            self._keyboard.press(modifier)
            self._keyboard.press("v")
            self._keyboard.release("v")
            self._keyboard.release(modifier)
        except Exception as e:
            raise OutputError(f"Failed to paste: {e}") from e

    def emit(self, text: str, auto_paste: bool = True,
             restore_delay_ms: int = DEFAULT_RESTORE_DELAY_MS) -> None:
        """
        Put text on the clipboard and optionally paste it.

        With auto_paste the previous clipboard content is saved first and
        restored restore_delay_ms after the paste shortcut was sent. Without
        a keyboard controller the text is left on the clipboard for a manual
        paste.

        Raises:
            OutputError: If no clipboard is available or an operation fails.
        """
        original = self.get_clipboard_content() if auto_paste else None

        self.copy_to_clipboard(text)

        if not auto_paste:
            return
        if not self.can_paste:
            logger.info("Keystroke injection unavailable; text left on clipboard")
            return

        time.sleep(self.settle_delay)
        self._send_paste_shortcut()

        if original is not None:
            time.sleep(restore_delay_ms / 1000.0)
            self.copy_to_clipboard(original)
