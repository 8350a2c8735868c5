"""Host activity: owns the remote channel and intercepts key events.

PlatformActivity carries the default platform behaviour (keys are not
consumed, lifecycle bookkeeping). MainActivity wires the remote channel and
key handler on top of it.
"""

from __future__ import annotations

import logging
from enum import Enum

from ensemble_tv.channel.codec import MethodCall
from ensemble_tv.channel.messenger import BinaryMessenger
from ensemble_tv.channel.method_channel import REMOTE_CHANNEL, MethodChannel, MethodResult
from ensemble_tv.key_handler import KeyEventHandler
from ensemble_tv.keys import KeyAction, KeyEvent, key_name

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    ACTIVE = "active"
    DESTROYED = "destroyed"


class PlatformActivity:
    """Default host behaviour. Subclasses call super() for anything they don't consume."""

    def __init__(self) -> None:
        self.state = LifecycleState.UNINITIALIZED

    def configure_engine(self, messenger: BinaryMessenger) -> None:
        if self.state is LifecycleState.DESTROYED:
            raise RuntimeError("Cannot configure a destroyed activity")
        self.state = LifecycleState.CONFIGURED
        logger.info("Engine configured")

    def start(self) -> None:
        if self.state is not LifecycleState.CONFIGURED:
            raise RuntimeError(f"Cannot start activity in state {self.state.value}")
        self.state = LifecycleState.ACTIVE
        logger.info("Activity started")

    def dispatch_key_event(self, event: KeyEvent) -> bool:
        """Interception point for raw key events. Returns True if consumed."""
        if event.action == KeyAction.DOWN:
            return self.on_key_down(event.key_code, event)
        return self.on_key_up(event.key_code, event)

    def on_key_down(self, key_code: int, event: KeyEvent) -> bool:
        logger.debug("Key %s deferred to system", key_name(key_code))
        return False

    def on_key_up(self, key_code: int, event: KeyEvent) -> bool:
        return False

    def destroy(self) -> None:
        self.state = LifecycleState.DESTROYED
        logger.info("Activity destroyed")


class MainActivity(PlatformActivity):
    """Forwards remote media keys to the application over the remote channel."""

    def __init__(self, channel_name: str = REMOTE_CHANNEL) -> None:
        super().__init__()
        self.channel_name = channel_name
        self._method_channel: MethodChannel | None = None
        self._key_event_handler: KeyEventHandler | None = None

    @property
    def method_channel(self) -> MethodChannel | None:
        return self._method_channel

    @property
    def key_event_handler(self) -> KeyEventHandler | None:
        return self._key_event_handler

    def configure_engine(self, messenger: BinaryMessenger) -> None:
        super().configure_engine(messenger)

        self._method_channel = MethodChannel(messenger, self.channel_name)
        self._key_event_handler = KeyEventHandler(self._method_channel)

        # Calls coming from the application layer
        self._method_channel.set_method_call_handler(self._on_method_call)
        logger.info("Remote channel %s ready", self.channel_name)

    def _on_method_call(self, call: MethodCall, result: MethodResult) -> None:
        # No application-to-host methods are defined
        logger.info("Method %s not implemented", call.method)
        result.not_implemented()

    def on_key_down(self, key_code: int, event: KeyEvent) -> bool:
        handler = self._key_event_handler
        if (
            self.state is LifecycleState.ACTIVE
            and handler is not None
            and handler.handle_key_event(event)
        ):
            return True
        return super().on_key_down(key_code, event)

    def destroy(self) -> None:
        # Drop the channel before default teardown so nothing is sent afterwards
        if self._method_channel is not None:
            self._method_channel.set_method_call_handler(None)
        self._method_channel = None
        self._key_event_handler = None
        super().destroy()
