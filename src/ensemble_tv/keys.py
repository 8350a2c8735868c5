"""Key codes, actions and commands shared by the device, host and handler.

Key codes use the platform (Android KeyEvent) numbering so that values
coming from a TV remote line up with what the application layer expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class KeyCode(IntEnum):
    UNKNOWN = 0
    HOME = 3
    BACK = 4
    DPAD_UP = 19
    DPAD_DOWN = 20
    DPAD_LEFT = 21
    DPAD_RIGHT = 22
    DPAD_CENTER = 23
    VOLUME_UP = 24
    VOLUME_DOWN = 25
    ENTER = 66
    MENU = 82
    MEDIA_PLAY_PAUSE = 85
    MEDIA_STOP = 86
    MEDIA_NEXT = 87
    MEDIA_PREVIOUS = 88
    MEDIA_REWIND = 89
    MEDIA_FAST_FORWARD = 90
    MEDIA_PLAY = 126
    MEDIA_PAUSE = 127
    VOLUME_MUTE = 164
    MEDIA_SKIP_FORWARD = 272
    MEDIA_SKIP_BACKWARD = 273


class KeyAction(IntEnum):
    DOWN = 0
    UP = 1


class Command(str, Enum):
    """Outbound method names understood by the application layer."""

    PLAY_PAUSE = "playPause"
    NEXT = "next"
    PREVIOUS = "previous"
    SHOW_MENU = "showMenu"
    STOP = "stop"


@dataclass(frozen=True)
class KeyEvent:
    key_code: int
    action: KeyAction
    repeat_count: int = 0  # >0 for auto-repeat while held


def key_name(key_code: int) -> str:
    """Readable name for logging; unknown codes render as their number."""
    try:
        return KeyCode(key_code).name
    except ValueError:
        return str(key_code)
