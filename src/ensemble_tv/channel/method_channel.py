"""Named method channel between the host and the application layer."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ensemble_tv.channel.codec import JsonMethodCodec, MethodCall, MethodCodecError
from ensemble_tv.channel.messenger import BinaryMessenger

logger = logging.getLogger(__name__)

REMOTE_CHANNEL = "ensemble_tv/remote"


class MethodResult:
    """Reply sink for one inbound method call. Reply exactly once."""

    def __init__(self, codec: JsonMethodCodec) -> None:
        self._codec = codec
        self._replied = False
        self._not_implemented = False
        self.reply: bytes | None = None

    @property
    def replied(self) -> bool:
        return self._replied

    @property
    def is_not_implemented(self) -> bool:
        return self._not_implemented

    def success(self, result: Any = None) -> None:
        self._mark_replied()
        self.reply = self._codec.encode_success_envelope(result)

    def error(self, code: str, message: str | None = None, details: Any = None) -> None:
        self._mark_replied()
        self.reply = self._codec.encode_error_envelope(code, message, details)

    def not_implemented(self) -> None:
        self._mark_replied()
        self._not_implemented = True
        self.reply = None

    def _mark_replied(self) -> None:
        if self._replied:
            raise RuntimeError("Reply already submitted")
        self._replied = True


MethodCallHandler = Callable[[MethodCall, MethodResult], None]


class MethodChannel:
    """Sends method calls to the application and routes calls coming back."""

    def __init__(
        self,
        messenger: BinaryMessenger,
        name: str = REMOTE_CHANNEL,
        codec: JsonMethodCodec | None = None,
    ) -> None:
        self._messenger = messenger
        self._name = name
        self._codec = codec or JsonMethodCodec()
        self._handler: MethodCallHandler | None = None

    @property
    def name(self) -> str:
        return self._name

    def invoke_method(self, method: str, arguments: Any = None) -> None:
        """Fire-and-forget call into the application layer."""
        message = self._codec.encode_method_call(MethodCall(method, arguments))
        self._messenger.send(self._name, message)

    def set_method_call_handler(self, handler: MethodCallHandler | None) -> None:
        self._handler = handler
        self._messenger.set_message_handler(
            self._name, self._on_message if handler is not None else None
        )

    def _on_message(self, message: bytes) -> bytes | None:
        handler = self._handler
        if handler is None:
            return None

        try:
            call = self._codec.decode_method_call(message)
        except MethodCodecError as e:
            logger.warning("Malformed call on %s: %s", self._name, e)
            return self._codec.encode_error_envelope("malformed", str(e))

        result = MethodResult(self._codec)
        try:
            handler(call, result)
        except Exception as e:
            logger.exception("Handler failed for %s on %s", call.method, self._name)
            if not result.replied:
                return self._codec.encode_error_envelope("error", str(e))
        # No reply submitted is reported as not implemented
        return result.reply
