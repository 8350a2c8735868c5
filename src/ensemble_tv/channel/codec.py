"""JSON method codec for the remote channel.

Wire format:
  - Method call:  {"method": <name>, "args": <any>}
  - Success:      [result]
  - Error:        [code, message, details]
  - Not implemented: empty reply
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


class MethodCodecError(ValueError):
    """Raised when a message is not a valid method call envelope."""


@dataclass(frozen=True)
class MethodCall:
    method: str
    arguments: Any = None


class JsonMethodCodec:
    def encode_method_call(self, call: MethodCall) -> bytes:
        return self._dumps({"method": call.method, "args": call.arguments})

    def decode_method_call(self, data: bytes) -> MethodCall:
        try:
            decoded = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MethodCodecError(f"Invalid method call payload: {e}") from e

        if not isinstance(decoded, dict):
            raise MethodCodecError(f"Invalid method call: {decoded!r}")
        method = decoded.get("method")
        if not isinstance(method, str):
            raise MethodCodecError(f"Invalid method name: {method!r}")
        return MethodCall(method=method, arguments=decoded.get("args"))

    def encode_success_envelope(self, result: Any = None) -> bytes:
        return self._dumps([result])

    def encode_error_envelope(
        self, code: str, message: str | None = None, details: Any = None
    ) -> bytes:
        return self._dumps([code, message, details])

    @staticmethod
    def _dumps(value: Any) -> bytes:
        return json.dumps(value, separators=(",", ":")).encode("utf-8")
