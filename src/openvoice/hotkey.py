"""
Hotkey Module
Parses user hotkey specs and listens for them globally with pynput.
"""

import logging
from typing import Callable, Optional

from pynput import keyboard

from openvoice.exceptions import HotkeyRegistrationError, HotkeyValidationError

logger = logging.getLogger(__name__)

DEFAULT_HOTKEY = "ctrl+shift+space"

MODIFIER_ALIASES = {
    "ctrl": "<ctrl>",
    "control": "<ctrl>",
    "shift": "<shift>",
    "alt": "<alt>",
    "option": "<alt>",
    "cmd": "<cmd>",
    "command": "<cmd>",
    "super": "<cmd>",
    "win": "<cmd>",
    "meta": "<cmd>",
}

NAMED_KEYS = {
    "space": "<space>",
    "enter": "<enter>",
    "return": "<enter>",
    "tab": "<tab>",
    "esc": "<esc>",
    "escape": "<esc>",
    "backspace": "<backspace>",
    "delete": "<delete>",
    "insert": "<insert>",
    "home": "<home>",
    "end": "<end>",
    "pageup": "<page_up>",
    "pagedown": "<page_down>",
    "up": "<up>",
    "down": "<down>",
    "left": "<left>",
    "right": "<right>",
    "pause": "<pause>",
}
NAMED_KEYS.update({f"f{n}": f"<f{n}>" for n in range(1, 25)})


def parse_hotkey(spec: str) -> str:
    """
    Convert a hotkey like "Ctrl+Shift+Space" to pynput's format.

    Args:
        spec: '+'-separated modifiers followed by exactly one key

    Returns:
        pynput hotkey string, e.g. "<ctrl>+<shift>+<space>".

    Raises:
        HotkeyValidationError: If the spec is empty, uses unknown names,
            repeats a key or has no non-modifier key.
    """
    if not isinstance(spec, str) or not spec.strip():
        raise HotkeyValidationError("Hotkey must be a non-empty string")

    parts = [p.strip().lower() for p in spec.split("+")]
    if any(not p for p in parts):
        raise HotkeyValidationError(f"Malformed hotkey: {spec!r}")

    modifiers = []
    keys = []
    for part in parts:
        if part in MODIFIER_ALIASES:
            token = MODIFIER_ALIASES[part]
            target = modifiers
        elif part in NAMED_KEYS:
            token = NAMED_KEYS[part]
            target = keys
        elif len(part) == 1 and part.isprintable() and not part.isspace():
            token = part
            target = keys
        else:
            raise HotkeyValidationError(f"Unknown key {part!r} in hotkey {spec!r}")

        if token in modifiers or token in keys:
            raise HotkeyValidationError(f"Duplicate key {part!r} in hotkey {spec!r}")
        target.append(token)

    if len(keys) != 1:
        raise HotkeyValidationError(
            f"Hotkey {spec!r} must contain exactly one non-modifier key"
        )

    return "+".join(modifiers + keys)


class HotkeyListener:
    """Calls on_activate whenever the global hotkey is pressed."""

    def __init__(self, hotkey: str, on_activate: Callable[[], None]):
        """
        Args:
            hotkey: User hotkey spec, validated immediately
            on_activate: Called on pynput's listener thread

        Raises:
            HotkeyValidationError: If the spec is malformed.
        """
        self.hotkey = hotkey
        self._combo = parse_hotkey(hotkey)
        self.on_activate = on_activate
        self._listener: Optional[keyboard.GlobalHotKeys] = None

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def get_hotkey_description(self) -> str:
        """Human-readable hotkey, e.g. "Ctrl+Shift+Space"."""
        return "+".join(part.strip().capitalize() for part in self.hotkey.split("+"))

    def start(self) -> None:
        """
        Start listening.

        Raises:
            HotkeyRegistrationError: If the listener cannot be started.
        """
        if self._listener is not None:
            return
        try:
            listener = keyboard.GlobalHotKeys({self._combo: self.on_activate})
            listener.start()
        except Exception as e:
            raise HotkeyRegistrationError(
                f"Failed to register hotkey {self.hotkey!r}: {e}"
            ) from e
        self._listener = listener
        logger.info(f"Hotkey registered: {self.hotkey}")

    def stop(self) -> None:
        """Stop listening. Safe to call when not started."""
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()

    def restart(self, hotkey: str) -> None:
        """
        Switch to a new hotkey.

        The new spec is validated before the current listener is touched.
        """
        combo = parse_hotkey(hotkey)
        was_running = self.is_running
        self.stop()
        self.hotkey = hotkey
        self._combo = combo
        if was_running:
            self.start()
