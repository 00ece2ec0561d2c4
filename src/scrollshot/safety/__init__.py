"""
Safety module - cooperative stop hotkey.
"""
from scrollshot.safety.stopswitch import (
    StopSwitch,
    StopRequested,
    MockStopSwitch,
    HotkeyConfig,
    wait_with_stop,
    async_wait_with_stop,
)

__all__ = [
    "StopSwitch",
    "StopRequested",
    "MockStopSwitch",
    "HotkeyConfig",
    "wait_with_stop",
    "async_wait_with_stop",
]
