"""Main entry point for the ensemble-tv remote bridge."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import Any

from ensemble_tv.activity import MainActivity
from ensemble_tv.channel.messenger import BinaryMessenger, HttpMessenger, LocalMessenger
from ensemble_tv.config import BridgeConfig, load_config
from ensemble_tv.device import DeviceError, EvdevRemote, StubRemote

logger = logging.getLogger(__name__)


def build_messenger(config: BridgeConfig) -> BinaryMessenger:
    if config.messenger.url:
        return HttpMessenger(
            url=config.messenger.url,
            token=config.messenger.token,
            timeout_seconds=config.messenger.timeout_seconds,
        )
    logger.info("No application URL configured, using in-process messenger")
    return LocalMessenger()


class RemoteController:
    """Orchestrates the remote device, host activity and messenger."""

    def __init__(self, config: BridgeConfig) -> None:
        self.config = config
        self._shutdown = threading.Event()
        self._stopped = False

        self.messenger = build_messenger(config)
        self.activity = MainActivity(channel_name=config.channel.name)

        # Device (try real, fall back to stub)
        self._device: EvdevRemote | StubRemote = EvdevRemote(
            device_name=config.remote.device_name,
            grab=config.remote.grab,
        )

    def start(self) -> None:
        """Configure the host, open the remote, start listening.

        DeviceError from the remote propagates; the caller owns stop().
        """
        logger.info("Starting remote bridge")

        self.activity.configure_engine(self.messenger)
        self.activity.start()

        if not self._device.open():
            logger.info("Using stub remote (no input device found)")
            self._device = StubRemote()
            self._device.open()

        self._device.set_key_callback(self.activity.dispatch_key_event)
        self._device.start_listening()

        logger.info("Remote bridge running on channel %s", self.activity.channel_name)

    def stop(self) -> None:
        """Clean shutdown: device first, then the host, then the transport."""
        self._shutdown.set()
        if self._stopped:
            return
        self._stopped = True
        logger.info("Shutting down remote bridge")
        self._device.close()
        self.activity.destroy()
        self.messenger.close()
        logger.info("Remote bridge stopped")

    def wait(self) -> None:
        """Block until shutdown is signaled."""
        try:
            while not self._shutdown.is_set():
                self._shutdown.wait(timeout=1.0)
        except KeyboardInterrupt:
            pass


def main() -> None:
    """Entry point."""
    try:
        config = load_config()
    except Exception as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger.info("ensemble-tv remote bridge v0.1.0")

    controller = RemoteController(config)

    # Handle signals for clean shutdown
    def _signal_handler(sig: int, frame: Any) -> None:
        logger.info("Received signal %d, shutting down", sig)
        controller.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        controller.start()
    except DeviceError as e:
        logger.error("Remote setup failed: %s (set remote.grab: false to only monitor it)", e)
        controller.stop()
        sys.exit(1)
    controller.wait()
    controller.stop()


if __name__ == "__main__":
    main()
