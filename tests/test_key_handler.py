"""Tests for the remote KeyEventHandler."""

from unittest.mock import MagicMock

import pytest

from ensemble_tv.key_handler import COMMAND_KEYS, SYSTEM_KEYS, KeyEventHandler
from ensemble_tv.keys import Command, KeyAction, KeyCode, KeyEvent


@pytest.fixture
def channel() -> MagicMock:
    return MagicMock()


@pytest.fixture
def handler(channel: MagicMock) -> KeyEventHandler:
    return KeyEventHandler(channel)


def _down(key_code: int) -> KeyEvent:
    return KeyEvent(key_code, KeyAction.DOWN)


def _up(key_code: int) -> KeyEvent:
    return KeyEvent(key_code, KeyAction.UP)


class TestCommandKeys:
    @pytest.mark.parametrize(
        "key_code, command",
        [
            (KeyCode.MEDIA_PLAY_PAUSE, "playPause"),
            (KeyCode.MEDIA_PLAY, "playPause"),
            (KeyCode.MEDIA_PAUSE, "playPause"),
            (KeyCode.MEDIA_NEXT, "next"),
            (KeyCode.MEDIA_SKIP_FORWARD, "next"),
            (KeyCode.MEDIA_FAST_FORWARD, "next"),
            (KeyCode.MEDIA_PREVIOUS, "previous"),
            (KeyCode.MEDIA_SKIP_BACKWARD, "previous"),
            (KeyCode.MEDIA_REWIND, "previous"),
            (KeyCode.MENU, "showMenu"),
            (KeyCode.MEDIA_STOP, "stop"),
        ],
    )
    def test_key_down_sends_command(self, handler, channel, key_code, command):
        assert handler.handle_key_event(_down(key_code)) is True
        channel.invoke_method.assert_called_once_with(command, None)

    def test_play_pause_scenario(self, handler, channel):
        assert handler.handle_key_event(_down(KeyCode.MEDIA_PLAY_PAUSE)) is True
        channel.invoke_method.assert_called_once_with("playPause", None)

    def test_menu_scenario(self, handler, channel):
        assert handler.handle_key_event(_down(KeyCode.MENU)) is True
        channel.invoke_method.assert_called_once_with("showMenu", None)

    def test_raw_integer_key_code(self, handler, channel):
        assert handler.handle_key_event(_down(85)) is True
        channel.invoke_method.assert_called_once_with("playPause", None)

    def test_repeat_still_sends(self, handler, channel):
        event = KeyEvent(KeyCode.MEDIA_NEXT, KeyAction.DOWN, repeat_count=3)
        assert handler.handle_key_event(event) is True
        channel.invoke_method.assert_called_once_with("next", None)

    def test_repeated_calls_send_each_time(self, handler, channel):
        event = _down(KeyCode.MEDIA_STOP)
        for _ in range(3):
            assert handler.handle_key_event(event) is True
        assert channel.invoke_method.call_count == 3
        assert all(c.args == ("stop", None) for c in channel.invoke_method.call_args_list)

    def test_every_command_is_reachable(self):
        assert set(COMMAND_KEYS.values()) == set(Command)


class TestSystemKeys:
    @pytest.mark.parametrize("key_code", sorted(SYSTEM_KEYS))
    def test_key_down_left_to_system(self, handler, channel, key_code):
        assert handler.handle_key_event(_down(key_code)) is False
        channel.invoke_method.assert_not_called()

    def test_volume_up_scenario(self, handler, channel):
        assert handler.handle_key_event(_down(KeyCode.VOLUME_UP)) is False
        channel.invoke_method.assert_not_called()

    def test_dpad_center_scenario(self, handler, channel):
        assert handler.handle_key_event(_down(KeyCode.DPAD_CENTER)) is False
        channel.invoke_method.assert_not_called()

    def test_system_and_command_sets_are_disjoint(self):
        assert not SYSTEM_KEYS & set(COMMAND_KEYS)


class TestKeyUp:
    @pytest.mark.parametrize("key_code", list(KeyCode))
    def test_key_up_never_sends(self, handler, channel, key_code):
        assert handler.handle_key_event(_up(key_code)) is False
        channel.invoke_method.assert_not_called()

    def test_next_up_scenario(self, handler, channel):
        assert handler.handle_key_event(_up(KeyCode.MEDIA_NEXT)) is False
        channel.invoke_method.assert_not_called()


class TestUnknownKeys:
    @pytest.mark.parametrize("key_code", [0, 1, 7, 999, -1, 2**31])
    def test_unknown_key_left_to_system(self, handler, channel, key_code):
        assert handler.handle_key_event(_down(key_code)) is False
        channel.invoke_method.assert_not_called()

    def test_resolve_returns_none_for_unknown(self, handler):
        assert handler.resolve(_down(12345)) is None

    def test_resolve_returns_command(self, handler):
        assert handler.resolve(_down(KeyCode.MEDIA_REWIND)) is Command.PREVIOUS
