"""SWAP pack service - main orchestrator."""

import logging
import signal
import threading
from typing import List, Optional

from swapbridge.hub.client import HubClient
from swapbridge.hub.feeds import TopicWatcher
from swapbridge.swap.loader import read_motes
from swapbridge.swap.mote import SwapMote
from .config import Config
from .router import Router

logger = logging.getLogger(__name__)


class SwapPackService:
    """Listens for gateway frames and republishes mote readings."""

    def __init__(self, config: Config, motes: Optional[List[SwapMote]] = None):
        """Initialize the service.

        Args:
            config: Configuration object.
            motes: Mote table; read from ``config.mote_dir`` when omitted.
        """
        self.config = config
        self.motes = motes
        self.publisher: Optional[HubClient] = None
        self.subscriber: Optional[HubClient] = None
        self.router: Optional[Router] = None
        self.watcher: Optional[TopicWatcher] = None

    def _setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            signame = signal.Signals(signum).name
            logger.info(f"Received {signame}, shutting down...")
            # the main thread may hold the watcher queue lock when interrupted
            threading.Thread(target=self.stop, name="swap-stop", daemon=True).start()

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    def start(self):
        """Load motes, connect to the hub and subscribe.

        Raises:
            SchemaError: If a mote definition is invalid.
            HubConnectionError: If a broker connection fails.
        """
        if self.motes is None:
            self.motes = read_motes(self.config.mote_dir)

        # connect to MQTT and wait for it before doing anything else
        self.publisher = HubClient(self.config.publish)
        self.publisher.connect(self.config.name, retain=self.config.retain)

        if self.config.shared_broker:
            self.subscriber = self.publisher
        else:
            self.subscriber = HubClient(self.config.subscribe)
            self.subscriber.connect(f"{self.config.name}-sub", retain=False)

        self.router = Router(
            self.motes,
            self.publisher,
            retain=self.config.retain,
            prefix=self.config.topic_prefix,
        )
        self.watcher = self.subscriber.subscribe(self.config.topic)

    def serve(self):
        """Feed every received frame to the router until stopped."""
        for event in self.watcher:
            try:
                self.router.handle_frame(event.payload)
            except Exception as e:
                logger.error(f"Error handling frame from {event.topic}: {e}")

    def stop(self):
        """End serve() once the buffered frames are handled."""
        if self.watcher:
            self.watcher.close()

    def shutdown(self):
        if self.subscriber and self.subscriber is not self.publisher:
            self.subscriber.disconnect()
        if self.publisher:
            self.publisher.disconnect()
        logger.info("SWAP pack stopped.")

    def run(self):
        """Run the service (blocking)."""
        self._setup_signal_handlers()
        try:
            self.start()
            logger.info("SWAP pack is running. Press Ctrl+C to stop.")
            self.serve()
        finally:
            self.shutdown()
