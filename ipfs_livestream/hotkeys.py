"""Global "stop broadcast" hotkey for IPFS Livestream.

Registers a system-wide keyboard shortcut so the user can end an
unbounded broadcast cleanly from any application, in addition to
Ctrl-C in the terminal.

Uses the ``keyboard`` library for low-level hook-based hotkeys.
Linux and macOS require root for the keyboard hook; without it the
hotkey is skipped with a warning and Ctrl-C remains available.
"""

import logging
import os
import platform
from collections.abc import Callable

logger = logging.getLogger(__name__)

try:
    import keyboard as _kb  # type: ignore[import-untyped]

    _HAS_KEYBOARD = True
except ImportError:
    _HAS_KEYBOARD = False
    logger.warning("keyboard library not installed — global hotkey disabled.")

_ROOT_MSG = (
    "Global hotkey unavailable — the keyboard library requires root on "
    "this platform. Use Ctrl-C to stop the broadcast instead."
)


def _can_listen() -> bool:
    """Return True if the keyboard listener will work on this OS.

    On macOS and Linux the ``keyboard`` library needs root to install
    its hook; the listener otherwise dies in a background thread.
    """
    if platform.system() == "Windows":
        return True
    return os.geteuid() == 0


class StopHotkey:
    """Register a single global hotkey that invokes *on_stop*.

    Pass an empty string as *key* to leave it unassigned.
    """

    def __init__(self, key: str, on_stop: Callable[[], None]):
        self._key = key.strip().lower()
        self._on_stop = on_stop
        self._registered = False

    @property
    def available(self) -> bool:
        """Return whether the keyboard library is importable."""
        return _HAS_KEYBOARD

    @property
    def registered(self) -> bool:
        return self._registered

    def register(self) -> None:
        if not self._key or self._registered:
            return
        if not _HAS_KEYBOARD:
            logger.info("Global hotkey unavailable (keyboard library missing).")
            return
        if not _can_listen():
            logger.warning(_ROOT_MSG)
            return
        try:
            _kb.add_hotkey(self._key, self._on_stop, suppress=False)
            self._registered = True
            logger.info("Press %s to end the broadcast.", self._key)
        except Exception:
            logger.exception("Failed to register global hotkey.")

    def unregister(self) -> None:
        if not _HAS_KEYBOARD or not self._registered:
            return
        try:
            _kb.remove_hotkey(self._key)
            self._registered = False
            logger.info("Global hotkey unregistered.")
        except Exception:
            logger.exception("Error unregistering hotkey.")
