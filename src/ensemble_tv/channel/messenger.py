"""Binary messengers carrying channel messages to the application layer."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], "bytes | None"]
MessageListener = Callable[[str, bytes], None]  # (channel, message)

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_HISTORY_SIZE = 100


class MessengerError(Exception):
    """Raised when the application layer rejects a message."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Messenger error {status_code}: {message}")


class BinaryMessenger(ABC):
    """Base messenger: outbound send plus per-channel inbound handlers.

    Transports deliver inbound messages by calling handle_message().
    """

    def __init__(self) -> None:
        self._handlers: dict[str, MessageHandler] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def send(self, channel: str, message: bytes) -> None:
        """Deliver one outbound message to the application layer."""

    def set_message_handler(self, channel: str, handler: MessageHandler | None) -> None:
        if handler is None:
            self._handlers.pop(channel, None)
        else:
            self._handlers[channel] = handler

    def handle_message(self, channel: str, message: bytes) -> bytes | None:
        """Deliver an inbound message.

        Returns the encoded reply, or None when the call is not implemented
        or no handler listens on the channel.
        """
        handler = self._handlers.get(channel)
        if handler is None:
            logger.debug("No handler registered for channel %s", channel)
            return None
        return handler(message)

    def close(self) -> None:
        self._handlers.clear()
        self._closed = True


class LocalMessenger(BinaryMessenger):
    """In-process messenger for tests and headless runs.

    Keeps only the most recent `history_size` messages in `sent`.
    """

    def __init__(
        self,
        listener: MessageListener | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        super().__init__()
        self._listener = listener
        self.sent: deque[tuple[str, bytes]] = deque(maxlen=history_size)

    def send(self, channel: str, message: bytes) -> None:
        if self._closed:
            logger.warning("Dropping message on closed messenger (channel %s)", channel)
            return
        logger.debug("Local send on %s: %r", channel, message)
        self.sent.append((channel, message))
        if self._listener:
            self._listener(channel, message)


class HttpMessenger(BinaryMessenger):
    """POSTs channel messages to the application process over HTTP.

    Each send runs on its own daemon thread so the key path never waits on
    the network. Failures are logged and dropped; nothing is retried.

    Outbound only: there is no HTTP endpoint for calls from the application,
    so inbound messages reach handlers only if another transport calls
    handle_message().
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__()
        self.url = url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=self.url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
        )
        self._inflight: set[threading.Thread] = set()
        self._inflight_lock = threading.Lock()

    def post(self, channel: str, message: bytes) -> bytes:
        """POST one message and return the raw reply body, or raise."""
        resp = self._client.post(f"/{channel}", content=message)
        if resp.status_code >= 400:
            raise MessengerError(resp.status_code, resp.text)
        return resp.content

    def send(self, channel: str, message: bytes) -> None:
        thread = threading.Thread(
            target=self._post_quietly,
            args=(channel, message),
            daemon=True,
            name="channel-post",
        )
        with self._inflight_lock:
            if self._closed:
                logger.warning("Dropping message on closed messenger (channel %s)", channel)
                return
            self._inflight.add(thread)
            thread.start()

    def _post_quietly(self, channel: str, message: bytes) -> None:
        try:
            self.post(channel, message)
            logger.debug("Posted to %s: %r", channel, message)
        except (MessengerError, httpx.HTTPError) as e:
            logger.warning("Failed to send on channel %s: %s", channel, e)
        finally:
            with self._inflight_lock:
                self._inflight.discard(threading.current_thread())

    def close(self, timeout: float = 2.0) -> None:
        """Wait for in-flight posts, then release the HTTP client."""
        with self._inflight_lock:
            self._closed = True
            pending = list(self._inflight)
        super().close()
        for thread in pending:
            thread.join(timeout=timeout)
        self._client.close()
        logger.info("HTTP messenger closed")
