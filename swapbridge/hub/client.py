"""The hub connection: one MQTT client shared by every publisher and watcher."""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from swapbridge.shared.mqtt import (
    MQTTConfig,
    TLSCredentials,
    build_tls_context,
    encode_payload,
    parse_address,
)
from .events import Event
from .feeds import TopicNotifier, TopicWatcher

logger = logging.getLogger(__name__)

PRESENCE_PREFIX = "jet/"


class HubConnectionError(ConnectionError):
    """Raised when the initial connection to the hub cannot be made."""


def make_client_id(name: str) -> str:
    """Append a "fairly random" 6-digit suffix so equal names don't collide."""
    return f"{name}/{time.time_ns() % 1_000_000:06d}"


class HubClient:
    """Owns one MQTT connection and exposes it as feeds.

    Connecting registers the presence topic ``jet/{client_id}``: the broker
    clears it through the last will if the connection drops, and ``0`` is
    published to it right after connecting.

    ``publish`` waits for the broker acknowledgment, so it must not be
    called from paho's network thread. Subscriptions hand their events to a
    TopicWatcher, which is consumed from application threads.
    """

    def __init__(self, config: MQTTConfig):
        """Initialize the hub client.

        Args:
            config: MQTT configuration.
        """
        self.config = config
        self.client: Optional[mqtt.Client] = None
        self.client_id: Optional[str] = None
        self.presence: Optional[TopicNotifier] = None
        self._connected = False
        self._connect_event = threading.Event()
        self._connect_reason: Any = None
        self._lock = threading.Lock()
        self._watchers: Dict[str, List[TopicWatcher]] = {}
        self._notifiers: List[TopicNotifier] = []

    @property
    def presence_topic(self) -> str:
        return f"{PRESENCE_PREFIX}{self.client_id}"

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Handle connection to broker."""
        if reason_code == 0:
            logger.info(f"Connected to MQTT broker at {self.config.address}")
            self._connected = True
            # subscriptions don't survive a clean-session reconnect
            with self._lock:
                watched = {p: ws[0].qos for p, ws in self._watchers.items() if ws}
            for pattern, qos in watched.items():
                client.subscribe(pattern, qos=qos)
                logger.info(f"Subscribed to: {pattern}")
        else:
            logger.error(f"Failed to connect to MQTT broker: {reason_code}")
            self._connected = False
            self._connect_reason = reason_code
        self._connect_event.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """Handle disconnection from broker."""
        self._connected = False
        if reason_code != 0:
            logger.warning(f"Unexpected MQTT disconnection (reason={reason_code})")
        else:
            logger.info("Disconnected from MQTT broker")

    def connect(self, name: str, retain: bool = True) -> TopicNotifier:
        """Connect to the broker and announce presence.

        Args:
            name: Logical client name; a numeric suffix is added to it.
            retain: Retain flag for the presence topic and the last will.

        Returns:
            The presence notifier, for publishing later status values.

        Raises:
            HubConnectionError: If the connection cannot be established.
        """
        try:
            address = parse_address(self.config.address)
        except ValueError as e:
            raise HubConnectionError(f"Malformed URL: {e}") from e

        self.client_id = make_client_id(name)
        self._connect_event.clear()

        client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
        )
        client.will_set(self.presence_topic, None, qos=1, retain=retain)

        if address.secure:
            creds = self.config.credentials
            try:
                client.tls_set_context(build_tls_context(creds))
            except OSError as e:
                raise HubConnectionError(
                    f"Failed to load TLS material ({creds.certfile}, {creds.keyfile}, "
                    f"{creds.cafile}): {e}"
                ) from e

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        self.client = client

        logger.info(f"Connecting to MQTT broker at {self.config.address} as {self.client_id}")

        try:
            client.connect(address.host, address.port, keepalive=self.config.keepalive)
        except (OSError, ValueError) as e:
            self.client = None
            raise HubConnectionError(f"Failed to connect to MQTT broker: {e}") from e
        client.loop_start()

        if not self._connect_event.wait(timeout=self.config.connect_timeout):
            self._shutdown_client()
            raise HubConnectionError("Timeout waiting for MQTT connection")
        if not self._connected:
            reason = self._connect_reason
            self._shutdown_client()
            raise HubConnectionError(f"MQTT broker refused connection: {reason}")

        if retain:
            logger.info(f"connected as {self.client_id} to {self.config.address}")

        # register as jet client, cleared on disconnect by the will
        self.presence = self.notifier(self.presence_topic, retain)
        self.presence.send(0)
        return self.presence

    def publish(self, topic: str, payload: Any, retain: bool = False) -> bool:
        """Publish a message and wait for the broker to acknowledge it.

        Bytes are sent as-is, anything else is JSON-encoded. Failures are
        logged, never raised.

        Returns:
            True if the broker acknowledged the message.
        """
        data = encode_payload(payload)
        if data is None:
            return False
        if self.client is None:
            logger.warning(f"Not connected to MQTT broker, cannot publish to {topic}")
            return False

        try:
            info = self.client.publish(topic, data, qos=self.config.qos, retain=retain)
            info.wait_for_publish(timeout=self.config.publish_timeout)
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Failed to publish to {topic}: {e}")
            return False

        if not info.is_published():
            logger.warning(f"Timed out waiting for broker to acknowledge {topic}")
            return False
        logger.debug(f"Published to {topic}: {data!r}")
        return True

    def _make_message_handler(self, pattern: str):
        """Create a message callback feeding every watcher of ``pattern``."""
        def handler(client, userdata, msg: mqtt.MQTTMessage):
            event = Event(
                topic=msg.topic,
                payload=bytes(msg.payload),
                retained=bool(msg.retain),
            )
            with self._lock:
                watchers = list(self._watchers.get(pattern, []))
            for watcher in watchers:
                watcher.put(event)

        return handler

    def subscribe(self, pattern: str, qos: int = 0) -> TopicWatcher:
        """Subscribe to a topic filter and return a feed of its events.

        A failed subscription is logged; it is retried on the next reconnect.
        """
        if self.client is None:
            raise HubConnectionError("subscribe() called before connect()")

        watcher = TopicWatcher(
            pattern,
            qos=qos,
            queue_size=self.config.queue_size,
            on_close=self._unwatch,
        )
        with self._lock:
            watchers = self._watchers.setdefault(pattern, [])
            watchers.append(watcher)
            first = len(watchers) == 1

        if first:
            self.client.message_callback_add(pattern, self._make_message_handler(pattern))
            result, _ = self.client.subscribe(pattern, qos=qos)
            if result != mqtt.MQTT_ERR_SUCCESS:
                logger.error(f"Failed to subscribe to {pattern}: {mqtt.error_string(result)}")
            else:
                logger.info(f"Subscribed to: {pattern}")
        return watcher

    def _unwatch(self, watcher: TopicWatcher):
        with self._lock:
            watchers = self._watchers.get(watcher.pattern, [])
            if watcher in watchers:
                watchers.remove(watcher)
            last = not watchers
            if last:
                self._watchers.pop(watcher.pattern, None)

        if last and self.client is not None:
            self.client.message_callback_remove(watcher.pattern)
            self.client.unsubscribe(watcher.pattern)
            logger.info(f"Unsubscribed from: {watcher.pattern}")

    def notifier(self, topic: str, retain: bool = False) -> TopicNotifier:
        """Return a feed whose items are published to ``topic`` in order."""
        feed = TopicNotifier(
            topic,
            self.publish,
            retain=retain,
            queue_size=self.config.queue_size,
        )
        with self._lock:
            self._notifiers.append(feed)
        return feed

    def _shutdown_client(self):
        if self.client:
            self.client.loop_stop()
            self.client = None
        self._connected = False

    def disconnect(self):
        """Close every feed, then disconnect cleanly (no last will)."""
        with self._lock:
            notifiers = list(self._notifiers)
            watchers = [w for ws in self._watchers.values() for w in ws]
            self._notifiers.clear()
        for feed in notifiers:
            feed.close(timeout=5.0)
        for watcher in watchers:
            watcher.close()

        if self.client:
            self.client.disconnect()
            self.client.loop_stop()
            self.client = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if connected to MQTT broker."""
        return self._connected


def connect_to_hub(
    name: str,
    address: str,
    retain: bool = True,
    credentials: Optional[TLSCredentials] = None,
    **options: Any,
) -> HubClient:
    """Create a HubClient for ``address`` and connect it.

    Extra keyword arguments are passed on to MQTTConfig.

    Raises:
        HubConnectionError: If the connection cannot be established.
    """
    config = MQTTConfig(
        address=address,
        credentials=credentials or TLSCredentials(),
        **options,
    )
    hub = HubClient(config)
    hub.connect(name, retain=retain)
    return hub
