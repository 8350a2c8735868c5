"""Tests for the host activity lifecycle and key interception."""

import json

import pytest

from ensemble_tv.activity import LifecycleState, MainActivity, PlatformActivity
from ensemble_tv.channel.codec import JsonMethodCodec, MethodCall
from ensemble_tv.channel.messenger import LocalMessenger
from ensemble_tv.channel.method_channel import REMOTE_CHANNEL, MethodResult
from ensemble_tv.keys import KeyAction, KeyCode, KeyEvent


@pytest.fixture
def messenger() -> LocalMessenger:
    return LocalMessenger()


@pytest.fixture
def activity(messenger: LocalMessenger) -> MainActivity:
    a = MainActivity()
    a.configure_engine(messenger)
    a.start()
    return a


def _sent_methods(messenger: LocalMessenger) -> list[str]:
    return [json.loads(msg)["method"] for _, msg in messenger.sent]


def _down(key_code: int) -> KeyEvent:
    return KeyEvent(key_code, KeyAction.DOWN)


class TestLifecycle:
    def test_initial_state(self):
        assert MainActivity().state is LifecycleState.UNINITIALIZED

    def test_configure_creates_channel_and_handler(self, messenger: LocalMessenger):
        a = MainActivity()
        a.configure_engine(messenger)
        assert a.state is LifecycleState.CONFIGURED
        assert a.method_channel is not None
        assert a.method_channel.name == REMOTE_CHANNEL
        assert a.key_event_handler is not None

    def test_start_activates(self, activity: MainActivity):
        assert activity.state is LifecycleState.ACTIVE

    def test_start_before_configure_raises(self):
        with pytest.raises(RuntimeError):
            MainActivity().start()

    def test_destroy_clears_references(self, activity: MainActivity):
        activity.destroy()
        assert activity.state is LifecycleState.DESTROYED
        assert activity.method_channel is None
        assert activity.key_event_handler is None

    def test_destroy_twice_is_safe(self, activity: MainActivity):
        activity.destroy()
        activity.destroy()
        assert activity.state is LifecycleState.DESTROYED

    def test_configure_after_destroy_raises(self, activity: MainActivity, messenger):
        activity.destroy()
        with pytest.raises(RuntimeError):
            activity.configure_engine(messenger)

    def test_custom_channel_name(self, messenger: LocalMessenger):
        a = MainActivity(channel_name="living_room/remote")
        a.configure_engine(messenger)
        a.start()
        a.dispatch_key_event(_down(KeyCode.MEDIA_STOP))
        assert messenger.sent[0][0] == "living_room/remote"


class TestKeyInterception:
    def test_media_key_consumed(self, activity: MainActivity, messenger: LocalMessenger):
        assert activity.on_key_down(KeyCode.MEDIA_PLAY_PAUSE, _down(KeyCode.MEDIA_PLAY_PAUSE))
        assert _sent_methods(messenger) == ["playPause"]

    def test_volume_falls_through_to_platform(self, activity, messenger):
        assert activity.on_key_down(KeyCode.VOLUME_UP, _down(KeyCode.VOLUME_UP)) is False
        assert not messenger.sent

    def test_dispatch_press_and_release(self, activity, messenger):
        assert activity.dispatch_key_event(_down(KeyCode.MENU)) is True
        assert activity.dispatch_key_event(KeyEvent(KeyCode.MENU, KeyAction.UP)) is False
        assert _sent_methods(messenger) == ["showMenu"]

    def test_unknown_key_falls_through(self, activity, messenger):
        assert activity.dispatch_key_event(_down(9999)) is False
        assert not messenger.sent

    def test_not_dispatched_before_start(self, messenger: LocalMessenger):
        a = MainActivity()
        a.configure_engine(messenger)
        assert a.dispatch_key_event(_down(KeyCode.MEDIA_NEXT)) is False
        assert not messenger.sent

    def test_not_dispatched_after_destroy(self, activity, messenger):
        activity.destroy()
        assert activity.dispatch_key_event(_down(KeyCode.MEDIA_NEXT)) is False
        assert not messenger.sent

    def test_uninitialized_defers_to_platform(self):
        a = MainActivity()
        assert a.dispatch_key_event(_down(KeyCode.MEDIA_PLAY)) is False

    def test_platform_default_never_consumes(self):
        base = PlatformActivity()
        assert base.dispatch_key_event(_down(KeyCode.MEDIA_PLAY)) is False
        assert base.dispatch_key_event(KeyEvent(KeyCode.MEDIA_PLAY, KeyAction.UP)) is False


class TestInboundCalls:
    def test_unknown_method_not_implemented(self, activity, messenger):
        message = JsonMethodCodec().encode_method_call(MethodCall("unknownMethod"))
        assert messenger.handle_message(REMOTE_CHANNEL, message) is None

    def test_inbound_with_args_not_implemented(self, activity, messenger):
        message = JsonMethodCodec().encode_method_call(MethodCall("setVolume", {"level": 4}))
        assert messenger.handle_message(REMOTE_CHANNEL, message) is None

    def test_handler_detached_on_destroy(self, activity, messenger):
        activity.destroy()
        message = JsonMethodCodec().encode_method_call(MethodCall("unknownMethod"))
        assert messenger.handle_message(REMOTE_CHANNEL, message) is None
        assert not messenger.sent

    def test_reply_is_not_implemented_result(self, activity):
        result = MethodResult(JsonMethodCodec())
        activity._on_method_call(MethodCall("unknownMethod"), result)
        assert result.is_not_implemented
