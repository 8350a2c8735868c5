"""TV remote input via Linux evdev.

Bluetooth and IR remotes (SHIELD remote, CEC bridges, USB media keyboards)
show up as /dev/input/event* devices. Each EV_KEY event carries a Linux key
code and a value:
  - 1: press    -> KeyAction.DOWN
  - 0: release  -> KeyAction.UP
  - 2: autorepeat while held -> KeyAction.DOWN with repeat_count > 0

Linux codes are translated to platform key codes (KeyCode) before the event
reaches the host, following the platform's generic key layout.
"""

from __future__ import annotations

import logging
import select
import threading
from typing import Any, Callable

from ensemble_tv.keys import KeyAction, KeyCode, KeyEvent

logger = logging.getLogger(__name__)

KeyCallback = Callable[[KeyEvent], bool]  # returns True if consumed

# Linux input-event-codes.h -> platform key code
LINUX_KEY_MAP: dict[int, KeyCode] = {
    28: KeyCode.ENTER,  # KEY_ENTER
    103: KeyCode.DPAD_UP,  # KEY_UP
    105: KeyCode.DPAD_LEFT,  # KEY_LEFT
    106: KeyCode.DPAD_RIGHT,  # KEY_RIGHT
    108: KeyCode.DPAD_DOWN,  # KEY_DOWN
    113: KeyCode.VOLUME_MUTE,  # KEY_MUTE
    114: KeyCode.VOLUME_DOWN,  # KEY_VOLUMEDOWN
    115: KeyCode.VOLUME_UP,  # KEY_VOLUMEUP
    128: KeyCode.MEDIA_STOP,  # KEY_STOP
    139: KeyCode.MENU,  # KEY_MENU
    158: KeyCode.BACK,  # KEY_BACK
    163: KeyCode.MEDIA_NEXT,  # KEY_NEXTSONG
    164: KeyCode.MEDIA_PLAY_PAUSE,  # KEY_PLAYPAUSE
    165: KeyCode.MEDIA_PREVIOUS,  # KEY_PREVIOUSSONG
    166: KeyCode.MEDIA_STOP,  # KEY_STOPCD
    168: KeyCode.MEDIA_REWIND,  # KEY_REWIND
    172: KeyCode.HOME,  # KEY_HOMEPAGE
    200: KeyCode.MEDIA_PLAY,  # KEY_PLAYCD
    201: KeyCode.MEDIA_PAUSE,  # KEY_PAUSECD
    207: KeyCode.MEDIA_PLAY,  # KEY_PLAY
    208: KeyCode.MEDIA_FAST_FORWARD,  # KEY_FASTFORWARD
    352: KeyCode.DPAD_CENTER,  # KEY_OK
    353: KeyCode.DPAD_CENTER,  # KEY_SELECT
    407: KeyCode.MEDIA_SKIP_FORWARD,  # KEY_NEXT
    412: KeyCode.MEDIA_SKIP_BACKWARD,  # KEY_PREVIOUS
}

# Any of these marks a device as a media remote during auto-discovery
_MEDIA_KEY_CODES = frozenset({139, 163, 164, 165, 166, 200, 201, 207})

_VALUE_RELEASE = 0
_VALUE_PRESS = 1
_VALUE_REPEAT = 2


class DeviceError(Exception):
    """The remote was found but could not be set up as configured."""


class KeyTranslator:
    """Turns Linux EV_KEY (code, value) pairs into KeyEvents.

    Tracks the auto-repeat count per key so held buttons report
    repeat_count 1, 2, ... until released.
    """

    def __init__(self) -> None:
        self._repeats: dict[int, int] = {}

    def translate(self, code: int, value: int) -> KeyEvent | None:
        key_code = LINUX_KEY_MAP.get(code, KeyCode.UNKNOWN)
        if value == _VALUE_PRESS:
            self._repeats[code] = 0
            return KeyEvent(key_code, KeyAction.DOWN)
        if value == _VALUE_REPEAT:
            count = self._repeats.get(code, 0) + 1
            self._repeats[code] = count
            return KeyEvent(key_code, KeyAction.DOWN, repeat_count=count)
        if value == _VALUE_RELEASE:
            self._repeats.pop(code, None)
            return KeyEvent(key_code, KeyAction.UP)
        return None


def _is_media_remote(capabilities: dict[int, list[int]], ev_key: int) -> bool:
    keys = capabilities.get(ev_key, [])
    return any(code in _MEDIA_KEY_CODES for code in keys)


class EvdevRemote:
    """Reads a TV remote through evdev on a background thread.

    Events are delivered one at a time on the reader thread, in order.
    With grab=True the device is opened exclusively and a uinput clone of it
    is created: keys the host declines are written back through the clone so
    the rest of the system still sees them. Without grab the host only
    monitors the device and every key also reaches the system.
    """

    def __init__(self, device_name: str = "", grab: bool = True) -> None:
        self._device_name = device_name
        self._grab = grab
        self._evdev: Any = None
        self._device: Any = None
        self._uinput: Any = None
        self._grabbed = False
        self._key_callback: KeyCallback | None = None
        self._translator = KeyTranslator()
        # Linux codes whose press was consumed; their repeats and release
        # stay with the host as well
        self._consumed_codes: set[int] = set()
        self._reader_thread: threading.Thread | None = None
        self._reader_stop = threading.Event()

    @property
    def connected(self) -> bool:
        return self._device is not None

    def open(self) -> bool:
        """Find and open the remote. Returns True if a device was opened.

        Raises DeviceError when grab is requested but exclusive access or the
        passthrough clone cannot be set up.
        """
        try:
            import evdev
        except ImportError:
            logger.warning("evdev is not installed; no remote input available")
            return False
        self._evdev = evdev

        try:
            self._device = self._find_device()
        except OSError:
            logger.exception("Failed to enumerate input devices")
            return False

        if self._device is None:
            logger.warning("No remote input device found (name filter %r)", self._device_name)
            return False

        if self._grab:
            self._take_exclusive()
        else:
            logger.info("Monitoring %s without grab; all keys also reach the system",
                        self._device.path)

        logger.info("Remote opened: %s (%s)", self._device.name, self._device.path)
        return True

    def _take_exclusive(self) -> None:
        evdev = self._evdev
        path = self._device.path
        try:
            self._device.grab()
            self._grabbed = True
            self._uinput = evdev.UInput.from_device(
                self._device, name=f"{self._device.name} (passthrough)"
            )
        except (OSError, evdev.UInputError) as e:
            self.close()
            raise DeviceError(f"Could not take exclusive control of {path}: {e}") from e
        logger.info("Grabbed %s (exclusive mode, declined keys passed through)", path)

    def _find_device(self) -> Any:
        evdev = self._evdev
        wanted = self._device_name.lower()
        chosen = None
        try:
            for path in evdev.list_devices():
                device = evdev.InputDevice(path)
                try:
                    matched = chosen is None and self._matches(device, wanted)
                except Exception:
                    device.close()
                    raise
                if matched:
                    chosen = device
                else:
                    device.close()
        except Exception:
            if chosen is not None:
                chosen.close()
            raise
        return chosen

    def _matches(self, device: Any, wanted: str) -> bool:
        if wanted:
            return wanted in device.name.lower()
        return _is_media_remote(device.capabilities(), self._evdev.ecodes.EV_KEY)

    def set_key_callback(self, callback: KeyCallback) -> None:
        self._key_callback = callback

    def start_listening(self) -> None:
        if self._device is None:
            return
        self._reader_stop.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name="evdev-reader",
        )
        self._reader_thread.start()
        logger.info("Key event listener started")

    def _reader_loop(self) -> None:
        ev_key = self._evdev.ecodes.EV_KEY
        while not self._reader_stop.is_set():
            try:
                # 100ms timeout so the stop flag is checked
                readable, _, _ = select.select([self._device.fd], [], [], 0.1)
                if not readable:
                    continue
                for event in self._device.read():
                    if event.type != ev_key:
                        continue
                    self._deliver(event.code, event.value)
            except BlockingIOError:
                continue
            except OSError as e:
                if not self._reader_stop.is_set():
                    logger.warning("Remote read error, listener stopped: %s", e)
                break
            except Exception:
                if not self._reader_stop.is_set():
                    logger.exception("Error in remote reader")

    def _deliver(self, code: int, value: int) -> None:
        key_event = self._translator.translate(code, value)
        if key_event is None:
            return
        consumed = bool(self._key_callback and self._key_callback(key_event))
        if value == _VALUE_PRESS:
            if consumed:
                self._consumed_codes.add(code)
            else:
                self._consumed_codes.discard(code)
        elif code in self._consumed_codes:
            consumed = True
            if value == _VALUE_RELEASE:
                self._consumed_codes.discard(code)
        logger.debug("Linux key %d value %d -> consumed=%s", code, value, consumed)
        if not consumed:
            self._pass_through(code, value)

    def _pass_through(self, code: int, value: int) -> None:
        if self._uinput is None:
            return
        try:
            self._uinput.write(self._evdev.ecodes.EV_KEY, code, value)
            self._uinput.syn()
        except OSError as e:
            logger.warning("Failed to pass key %d through: %s", code, e)

    def close(self) -> None:
        """Stop the reader and release the device. Safe to call twice."""
        self._reader_stop.set()
        if self._reader_thread and self._reader_thread.is_alive():
            self._reader_thread.join(timeout=2.0)
        self._reader_thread = None

        if self._uinput is not None:
            self._uinput.close()
            self._uinput = None
        self._consumed_codes.clear()

        if self._device is not None:
            if self._grabbed:
                try:
                    self._device.ungrab()
                except OSError:
                    pass
                self._grabbed = False
            self._device.close()
            self._device = None
            logger.info("Remote device released")


class StubRemote:
    """Stub remote for running without input hardware."""

    def __init__(self) -> None:
        self._key_callback: KeyCallback | None = None

    @property
    def connected(self) -> bool:
        return True

    def open(self) -> bool:
        logger.info("Stub remote opened")
        return True

    def close(self) -> None:
        logger.info("Stub remote closed")

    def set_key_callback(self, callback: KeyCallback) -> None:
        self._key_callback = callback

    def start_listening(self) -> None:
        logger.info("Stub: key listener started (no-op)")

    def simulate_key(self, key_code: int) -> bool:
        """For testing: press and release a key. Returns the press result."""
        if self._key_callback is None:
            return False
        consumed = self._key_callback(KeyEvent(key_code, KeyAction.DOWN))
        self._key_callback(KeyEvent(key_code, KeyAction.UP))
        return consumed
