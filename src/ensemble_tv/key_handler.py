"""Maps TV remote key presses to player commands.

Media keys are forwarded to the application layer over the remote channel.
Volume, navigation and every other key are left to the system.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ensemble_tv.keys import Command, KeyAction, KeyCode, KeyEvent, key_name

if TYPE_CHECKING:
    from ensemble_tv.channel.method_channel import MethodChannel

logger = logging.getLogger(__name__)

COMMAND_KEYS: dict[int, Command] = {
    # Play/Pause button
    KeyCode.MEDIA_PLAY_PAUSE: Command.PLAY_PAUSE,
    KeyCode.MEDIA_PLAY: Command.PLAY_PAUSE,
    KeyCode.MEDIA_PAUSE: Command.PLAY_PAUSE,
    # Skip / Next
    KeyCode.MEDIA_NEXT: Command.NEXT,
    KeyCode.MEDIA_SKIP_FORWARD: Command.NEXT,
    KeyCode.MEDIA_FAST_FORWARD: Command.NEXT,
    # Previous
    KeyCode.MEDIA_PREVIOUS: Command.PREVIOUS,
    KeyCode.MEDIA_SKIP_BACKWARD: Command.PREVIOUS,
    KeyCode.MEDIA_REWIND: Command.PREVIOUS,
    KeyCode.MENU: Command.SHOW_MENU,
    KeyCode.MEDIA_STOP: Command.STOP,
}

# Keys the system keeps: volume, back/home, and the D-pad (no on-screen navigation)
SYSTEM_KEYS: frozenset[int] = frozenset({
    KeyCode.VOLUME_UP,
    KeyCode.VOLUME_DOWN,
    KeyCode.VOLUME_MUTE,
    KeyCode.BACK,
    KeyCode.HOME,
    KeyCode.DPAD_UP,
    KeyCode.DPAD_DOWN,
    KeyCode.DPAD_LEFT,
    KeyCode.DPAD_RIGHT,
    KeyCode.DPAD_CENTER,
    KeyCode.ENTER,
})


class KeyEventHandler:
    """Forwards remote key presses to the application as channel commands."""

    def __init__(self, channel: MethodChannel) -> None:
        self._channel = channel

    def resolve(self, event: KeyEvent) -> Command | None:
        """Return the command for a key event, or None if the system keeps it."""
        # Only key down; acting on release too would double-trigger
        if event.action != KeyAction.DOWN:
            return None
        if event.key_code in SYSTEM_KEYS:
            return None
        return COMMAND_KEYS.get(event.key_code)

    def handle_key_event(self, event: KeyEvent) -> bool:
        """Handle a key event from the remote control.

        Returns True if a command was sent to the application, False if the
        event should fall through to default system handling.
        """
        command = self.resolve(event)
        if command is None:
            logger.debug("Key %s left to system", key_name(event.key_code))
            return False

        logger.info("Key %s -> %s", key_name(event.key_code), command.value)
        self._channel.invoke_method(command.value, None)
        return True
