"""
Global stop hotkey using pynput.

Stopping is cooperative: the listener thread only sets an event. The
runner polls it between ticks and cancels the session, which keeps every
frame gathered so far for stitching.
"""

import threading
import asyncio
import time
from typing import Callable, Optional, Set, Any
from dataclasses import dataclass

from scrollshot.logging import get_logger

logger = get_logger(__name__)

try:
    from pynput import keyboard
    PYNPUT_AVAILABLE = True
except Exception:
    # ImportError, or no input backend (headless Linux)
    PYNPUT_AVAILABLE = False
    keyboard = None  # type: ignore

KeyType = Any  # keyboard.Key | keyboard.KeyCode when pynput is available

MODIFIERS = ("ctrl", "shift", "alt", "cmd")


class StopRequested(Exception):
    """Raised by interruptible waits once the stop hotkey has fired."""
    pass


@dataclass
class HotkeyConfig:
    """Parsed hotkey configuration."""

    modifiers: Set[str]
    key: str

    @classmethod
    def parse(cls, hotkey_str: str) -> "HotkeyConfig":
        """
        Parse hotkey string like 'ctrl+cmd+s' into components.
        """
        parts = hotkey_str.lower().split("+")
        key = parts[-1]
        modifiers = set(parts[:-1])
        return cls(modifiers=modifiers, key=key)


class StopSwitch:
    """
    Global stop hotkey.

    Runs a pynput listener on its own thread and watches for the
    configured combination (default: Ctrl+Cmd+S).
    """

    def __init__(
        self,
        hotkey: str = "ctrl+cmd+s",
        on_stop: Optional[Callable[[], None]] = None,
    ):
        self.hotkey_config = HotkeyConfig.parse(hotkey)
        self.on_stop = on_stop

        self._stopped = threading.Event()
        self._listener = None
        self._lock = threading.RLock()
        self._pressed_modifiers: Set[str] = set()
        self._stop_source: Optional[str] = None

        logger.info(
            "Stop switch initialized",
            hotkey=hotkey,
            modifiers=sorted(self.hotkey_config.modifiers),
            key=self.hotkey_config.key,
        )

    @property
    def triggered(self) -> bool:
        """Check if a stop has been requested."""
        return self._stopped.is_set()

    @property
    def stop_source(self) -> Optional[str]:
        return self._stop_source

    def check(self) -> None:
        """
        Raise if a stop has been requested.

        Raises:
            StopRequested: If the stop switch has fired
        """
        if self._stopped.is_set():
            raise StopRequested(f"Stop requested by {self._stop_source or 'unknown'}")

    def start(self) -> None:
        """Start the hotkey listener."""
        if not PYNPUT_AVAILABLE:
            logger.warning("pynput not available, stop hotkey disabled")
            return

        if self._listener is not None:
            return

        self._listener = keyboard.Listener(
            on_press=self._on_press,
            on_release=self._on_release,
        )
        self._listener.start()

        logger.info("Stop hotkey listener started")

    def stop(self) -> None:
        """Stop the hotkey listener."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            logger.info("Stop hotkey listener stopped")

    def trigger(self, source: str = "manual") -> None:
        """Request a stop."""
        with self._lock:
            if self._stopped.is_set():
                return

            self._stop_source = source
            logger.info("Stop requested", source=source)
            self._stopped.set()

            if self.on_stop:
                try:
                    self.on_stop()
                except Exception as e:
                    logger.error("Error in stop callback", error=str(e))

    def reset(self) -> None:
        """Clear a previous stop request."""
        with self._lock:
            self._stopped.clear()
            self._pressed_modifiers.clear()
            self._stop_source = None

    def _on_press(self, key: KeyType) -> None:
        if self._stopped.is_set():
            return

        key_name = self._get_key_name(key)

        if key_name in MODIFIERS:
            self._pressed_modifiers.add(key_name)

        if self._matches(key_name):
            self.trigger(f"hotkey:{'+'.join(sorted(self.hotkey_config.modifiers))}+{self.hotkey_config.key}")

    def _on_release(self, key: KeyType) -> None:
        self._pressed_modifiers.discard(self._get_key_name(key))

    def _get_key_name(self, key: KeyType) -> str:
        """Get normalized key name."""
        name = getattr(key, "name", None)
        if name:
            name = name.lower()
            for modifier in MODIFIERS:
                if name == modifier or name.startswith(modifier + "_"):
                    return modifier
            return name
        char = getattr(key, "char", None)
        if char:
            return char.lower()
        return ""

    def _matches(self, key_name: str) -> bool:
        if not self.hotkey_config.modifiers.issubset(self._pressed_modifiers):
            return False
        return key_name == self.hotkey_config.key


def wait_with_stop(
    stop_switch: StopSwitch,
    duration: float,
    check_interval: float = 0.05,
) -> None:
    """
    Sleep for ``duration`` while polling the stop switch.

    Raises:
        StopRequested: If a stop is requested during the wait
    """
    end_time = time.monotonic() + duration
    stop_switch.check()
    while True:
        remaining = end_time - time.monotonic()
        if remaining <= 0:
            break
        time.sleep(min(check_interval, remaining))
        stop_switch.check()


async def async_wait_with_stop(
    stop_switch: StopSwitch,
    duration: float,
    check_interval: float = 0.05,
) -> None:
    """
    Async variant of :func:`wait_with_stop`.

    Raises:
        StopRequested: If a stop is requested during the wait
    """
    end_time = time.monotonic() + duration
    stop_switch.check()
    while True:
        remaining = end_time - time.monotonic()
        if remaining <= 0:
            break
        await asyncio.sleep(min(check_interval, remaining))
        stop_switch.check()


class MockStopSwitch(StopSwitch):
    """Stop switch without a keyboard listener (tests, headless hosts)."""

    def start(self) -> None:
        logger.info("Mock stop switch started")

    def stop(self) -> None:
        logger.info("Mock stop switch stopped")
